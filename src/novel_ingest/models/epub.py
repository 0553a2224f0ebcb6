"""Data models for EPUB structure."""

from typing import Literal

from pydantic import BaseModel, Field


class ManifestItem(BaseModel):
    """Single addressable resource declared in the package manifest."""

    id: str
    href: str  # as written in the manifest, relative to the package document
    media_type: str
    path: str  # resolved archive entry name

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith("image/")


class BookMetadata(BaseModel):
    """Book-level metadata."""

    title: str = "Unknown Title"
    authors: list[str] = Field(default_factory=list)
    language: str | None = None
    publisher: str | None = None


class PackageDocument(BaseModel):
    """Parsed package document: manifest, spine and cover/TOC pointers."""

    path: str
    directory: str = ""
    manifest: dict[str, ManifestItem] = Field(default_factory=dict)
    spine_idrefs: list[str] = Field(default_factory=list)
    cover_id: str | None = None
    toc_id: str | None = None
    metadata: BookMetadata = Field(default_factory=BookMetadata)

    @property
    def spine(self) -> list[ManifestItem]:
        """Reading order, skipping idrefs the manifest does not declare."""
        return [
            self.manifest[idref] for idref in self.spine_idrefs if idref in self.manifest
        ]

    @property
    def image_items(self) -> list[ManifestItem]:
        return [item for item in self.manifest.values() if item.is_image]


class NavigationEntry(BaseModel):
    """Single entry in the table of contents."""

    id: str
    label: str
    href: str  # fragment stripped, relative to the package document


class Chapter(BaseModel):
    """Chapter kept for reading."""

    id: str  # manifest href
    title: str
    content: str  # markup with image references rewritten to local files
    order: int
    source_toc_title: str | None = None


class ImageRef(BaseModel):
    """Image referenced by chapter markup."""

    src: str
    alt: str = ""


class SegmentedContent(BaseModel):
    """Result of segmenting chapter markup into title, paragraphs and images."""

    title: str
    paragraphs: list[str] = Field(default_factory=list)
    images: list[ImageRef] = Field(default_factory=list)
    is_title_page: bool = False
    is_cover_page: bool = False

    @property
    def has_content(self) -> bool:
        return bool(self.paragraphs or self.images)


class ParagraphItem(BaseModel):
    """Single renderable block of a chapter."""

    id: str
    type: Literal["title", "text", "image"]
    content: str = ""
    image_uri: str | None = None
    image_alt: str | None = None


class ParsedChapterView(BaseModel):
    """Ordered blocks of one chapter, derived on demand and never persisted."""

    chapter_id: str
    title: str
    items: list[ParagraphItem] = Field(default_factory=list)
    is_title_page: bool = False
    is_cover_page: bool = False


class ValidationResult(BaseModel):
    """Outcome of a structural check of an EPUB archive."""

    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    package_path: str | None = None
    manifest: dict[str, ManifestItem] | None = None


class RepairResult(BaseModel):
    """Outcome of an attempt to repair an EPUB archive."""

    success: bool
    message: str
    repaired: bool = False
    data: bytes | None = None
