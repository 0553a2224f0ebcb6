"""Cache data models."""

from datetime import datetime

from pydantic import BaseModel, Field

from novel_ingest.models.epub import BookMetadata, Chapter, NavigationEntry

CACHE_VERSION = "1.0"


class CacheMetadata(BaseModel):
    """Everything persisted for one extracted volume.

    Replaced wholesale on re-extraction, never patched.
    """

    volume_identity: str
    extracted_at: datetime = Field(default_factory=datetime.now)
    chapters: list[Chapter] = Field(default_factory=list)
    toc: list[NavigationEntry] = Field(default_factory=list)
    asset_alias_map: dict[str, str] = Field(default_factory=dict)  # alias -> local path
    total_images: int = 0
    cover_path: str | None = None
    book_metadata: BookMetadata = Field(default_factory=BookMetadata)
    cache_version: str = CACHE_VERSION


class CachedVolume(BaseModel):
    """Summary row for listing cached volumes."""

    volume_identity: str
    title: str
    chapter_count: int
    total_images: int
    extracted_at: datetime
    is_valid: bool
