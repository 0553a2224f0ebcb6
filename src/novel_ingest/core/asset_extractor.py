"""Extract image manifest items to per-volume storage."""

import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote

from novel_ingest.core.archive import VolumeArchive
from novel_ingest.errors import AssetWriteFailure
from novel_ingest.models.assets import AssetRecord
from novel_ingest.models.epub import ManifestItem, PackageDocument

log = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "svg", "bmp"}

MEDIA_TYPE_EXTENSIONS = {
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
    "image/bmp": "bmp",
    "image/jpeg": "jpg",
}


def _is_image_extension(ext: str) -> bool:
    return ext.lower().lstrip(".") in IMAGE_EXTENSIONS


def normalize_filename(href: str, media_type: str) -> str:
    """Build the on-disk filename for an image manifest item.

    Takes the href basename, collapses doubled image extensions
    ("a.png.png" -> "a.png"), appends an extension derived from the media
    type when none is recognized, and always writes ".jpeg" as ".jpg".
    """
    name = posixpath.basename(unquote(href)) or "image"
    stem, ext = posixpath.splitext(name)

    if _is_image_extension(ext):
        inner_stem, inner_ext = posixpath.splitext(stem)
        while inner_ext and _is_image_extension(inner_ext):
            stem = inner_stem
            inner_stem, inner_ext = posixpath.splitext(stem)
    else:
        stem = name
        ext = "." + MEDIA_TYPE_EXTENSIONS.get(media_type.lower(), "jpg")

    if ext.lower() == ".jpeg":
        ext = ".jpg"
    return stem + ext


class AssetIndex:
    """Extracted assets with O(1) lookup by any alias.

    Each record is stored once under its asset id; aliases point at asset
    ids rather than holding their own copy of the path.
    """

    def __init__(self) -> None:
        self.records: dict[str, AssetRecord] = {}
        self.aliases: dict[str, str] = {}
        self.collisions: list[str] = []

    def __len__(self) -> int:
        return len(self.records)

    def add(self, record: AssetRecord, aliases: list[str]) -> None:
        """Register a record under its aliases.

        An alias already bound to another record is rebound to this one.
        """
        self.records[record.asset_id] = record
        for alias in aliases:
            if not alias:
                continue
            previous = self.aliases.get(alias)
            if previous is not None and previous != record.asset_id:
                log.debug(f"Alias {alias!r} rebound from {previous!r} to {record.asset_id!r}")
                self.collisions.append(alias)
            self.aliases[alias] = record.asset_id

    def resolve(self, alias: str) -> AssetRecord | None:
        asset_id = self.aliases.get(alias)
        if asset_id is None:
            return None
        return self.records[asset_id]

    def alias_map(self) -> dict[str, str]:
        """Flatten to alias -> local path."""
        return {
            alias: self.records[asset_id].local_path
            for alias, asset_id in self.aliases.items()
        }

    @property
    def cover(self) -> AssetRecord | None:
        return next((r for r in self.records.values() if r.is_cover), None)


@dataclass
class AssetExtraction:
    """Outcome of extracting a volume's images."""

    index: AssetIndex
    total_images: int
    skipped: list[str] = field(default_factory=list)


def _aliases_for(item: ManifestItem, filename: str) -> list[str]:
    return [item.href, filename, item.id, posixpath.basename(item.href)]


def _read_asset(archive: VolumeArchive, item: ManifestItem) -> bytes:
    # zipfile reports unreadable entries through unrelated exception types.
    try:
        data = archive.read_bytes(item.path)
    except Exception as e:
        raise AssetWriteFailure(f"Cannot read {item.path}: {e}") from e
    if data is None:
        raise AssetWriteFailure(f"Cannot read {item.path}: entry vanished")
    return data


def _write_asset(data: bytes, target: Path) -> None:
    try:
        target.write_bytes(data)
    except OSError as e:
        raise AssetWriteFailure(f"Cannot write {target}: {e}") from e


def extract_assets(
    archive: VolumeArchive,
    package: PackageDocument,
    asset_dir: Path,
) -> AssetExtraction:
    """Write every image manifest item into ``asset_dir`` one at a time.

    Missing or unreadable entries and failed writes are logged and skipped; they still
    count towards ``total_images``.
    """
    asset_dir.mkdir(parents=True, exist_ok=True)
    index = AssetIndex()
    skipped: list[str] = []
    written: dict[str, str] = {}
    total_images = 0

    for item in package.image_items:
        total_images += 1

        if not archive.has_entry(item.path):
            log.warning(f"Image {item.id} not found in archive: {item.path}")
            skipped.append(item.id)
            continue

        filename = normalize_filename(item.href, item.media_type)
        target = (asset_dir / filename).resolve()

        try:
            _write_asset(_read_asset(archive, item), target)
        except AssetWriteFailure as e:
            log.warning(f"Skipping image {item.id}: {e.message}")
            skipped.append(item.id)
            continue

        if filename in written:
            log.warning(
                f"Image {item.id} overwrote {written[filename]} at {filename}"
            )
        written[filename] = item.id

        record = AssetRecord(
            asset_id=item.id,
            manifest_id=item.id,
            href=item.href,
            filename=filename,
            local_path=str(target),
            media_type=item.media_type,
            is_cover=item.id == package.cover_id,
        )
        index.add(record, _aliases_for(item, filename))
        log.debug(f"Saved image: {item.href} -> {target}")
        if record.is_cover:
            log.info(f"Found cover image: {item.href}")

    log.info(f"Extracted {len(index)} of {total_images} images")
    return AssetExtraction(index=index, total_images=total_images, skipped=skipped)
