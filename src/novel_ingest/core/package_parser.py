"""Parse the package document: manifest, spine, cover and TOC pointers."""

import logging
import posixpath
from urllib.parse import unquote

from bs4 import BeautifulSoup

from novel_ingest.core.archive import VolumeArchive
from novel_ingest.core.container import resolve_package_path
from novel_ingest.errors import MissingPackageDocument
from novel_ingest.models.epub import BookMetadata, ManifestItem, PackageDocument

log = logging.getLogger(__name__)


def resolve_href(base_dir: str, href: str) -> str:
    """Resolve a document-relative href to an archive entry name."""
    href = unquote(href.split("#", 1)[0])
    joined = posixpath.join(base_dir, href) if base_dir else href
    return posixpath.normpath(joined).lstrip("/")


def _text_of(soup: BeautifulSoup, name: str) -> str | None:
    element = soup.find(name)
    if element is None:
        return None
    text = element.get_text(strip=True)
    return text or None


def _parse_metadata(soup: BeautifulSoup) -> BookMetadata:
    """Extract Dublin Core metadata."""
    metadata = soup.find("metadata")
    if metadata is None:
        return BookMetadata()

    authors = [
        creator.get_text(strip=True)
        for creator in metadata.find_all("creator")
        if creator.get_text(strip=True)
    ]
    return BookMetadata(
        title=_text_of(metadata, "title") or "Unknown Title",
        authors=authors,
        language=_text_of(metadata, "language"),
        publisher=_text_of(metadata, "publisher"),
    )


def _parse_manifest(soup: BeautifulSoup, base_dir: str) -> dict[str, ManifestItem]:
    """Collect manifest items, skipping any that lack id, href or media-type."""
    manifest: dict[str, ManifestItem] = {}
    for element in soup.find_all("item"):
        item_id = element.get("id")
        href = element.get("href")
        media_type = element.get("media-type")
        if not (item_id and href and media_type):
            log.debug(f"Skipping incomplete manifest item: {element.attrs}")
            continue
        manifest[item_id] = ManifestItem(
            id=item_id,
            href=href,
            media_type=media_type.strip(),
            path=resolve_href(base_dir, href),
        )
    return manifest


def _find_cover_id(soup: BeautifulSoup, manifest: dict[str, ManifestItem]) -> str | None:
    """Find the cover item id: named cover meta first, then id="cover"."""
    meta = soup.find("meta", attrs={"name": "cover"})
    if meta is not None and meta.get("content"):
        return meta["content"]
    if "cover" in manifest:
        return "cover"
    return None


def parse_package_document(content: str, path: str) -> PackageDocument:
    """Parse package document markup located at ``path`` in the archive."""
    soup = BeautifulSoup(content, "xml")
    base_dir = posixpath.dirname(path)

    manifest = _parse_manifest(soup, base_dir)

    spine_element = soup.find("spine")
    toc_id = spine_element.get("toc") if spine_element is not None else None

    spine_idrefs = [
        itemref["idref"] for itemref in soup.find_all("itemref") if itemref.get("idref")
    ]
    missing = [idref for idref in spine_idrefs if idref not in manifest]
    if missing:
        log.debug(f"Spine references undeclared items (skipped): {missing}")

    package = PackageDocument(
        path=path,
        directory=base_dir,
        manifest=manifest,
        spine_idrefs=spine_idrefs,
        cover_id=_find_cover_id(soup, manifest),
        toc_id=toc_id or None,
        metadata=_parse_metadata(soup),
    )
    log.info(
        f"Parsed package document: {len(manifest)} manifest items, "
        f"{len(package.spine)} spine entries"
    )
    return package


def load_package_document(archive: VolumeArchive) -> PackageDocument:
    """Resolve and parse the package document of an opened archive.

    Raises:
        MissingDescriptor: If container.xml is absent
        MissingPackageDocument: If no package path is declared or the
            declared document is absent from the archive
    """
    path = resolve_package_path(archive)
    content = archive.read_text(path)
    if content is None:
        raise MissingPackageDocument(f"Invalid EPUB: missing package document {path}")
    return parse_package_document(content, path)


def package_relative(path: str, base_dir: str) -> str:
    """Express an archive entry name relative to the package directory."""
    if not base_dir:
        return path
    return posixpath.relpath(path, base_dir)
