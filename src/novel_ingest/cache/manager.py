"""Cache management keyed by volume identity, validated against the asset directory."""

import hashlib
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path

from novel_ingest.cache.models import CachedVolume, CacheMetadata
from novel_ingest.config import CACHE_DIR

log = logging.getLogger(__name__)

# Filenames left behind by older extractions that wrote doubled extensions.
CORRUPT_SUFFIXES = (".png.png", ".jpg.jpg", ".jpeg.jpg", ".gif.gif")


def safe_identity(identity: str) -> str:
    """Make a volume identity usable as a directory name.

    Identities that needed characters replaced get a short digest suffix, so
    "novel/1" and "novel_1" land in different directories.
    """
    stripped = identity.strip()
    cleaned = re.sub(r"[^\w.-]", "_", stripped).lstrip(".")
    if not cleaned:
        raise ValueError(f"Invalid volume identity: {identity!r}")
    if cleaned != stripped:
        digest = hashlib.sha256(stripped.encode("utf-8")).hexdigest()[:8]
        cleaned = f"{cleaned}-{digest}"
    return cleaned


class CacheManager:
    """Manages persisted extraction results, one directory per volume.

    Layout::

        <cache_root>/<identity>/metadata.json
        <cache_root>/<identity>/assets/<one file per extracted image>
    """

    METADATA_FILE = "metadata.json"
    ASSETS_DIR = "assets"

    def __init__(self, cache_root: Path | None = None):
        self.cache_root = (cache_root or Path(CACHE_DIR)).resolve()

    def volume_dir(self, identity: str) -> Path:
        return self.cache_root / safe_identity(identity)

    def metadata_path(self, identity: str) -> Path:
        return self.volume_dir(identity) / self.METADATA_FILE

    def asset_dir(self, identity: str) -> Path:
        return self.volume_dir(identity) / self.ASSETS_DIR

    def prepare_asset_dir(self, identity: str) -> Path:
        """Start a fresh extraction: drop stale metadata and assets.

        Metadata goes first so an interrupted run reads as "no cache".
        """
        metadata_path = self.metadata_path(identity)
        metadata_path.unlink(missing_ok=True)

        asset_dir = self.asset_dir(identity)
        if asset_dir.exists():
            shutil.rmtree(asset_dir)
        asset_dir.mkdir(parents=True, exist_ok=True)
        return asset_dir

    def count_assets(self, identity: str) -> int:
        """Count physical files in a volume's asset directory."""
        asset_dir = self.asset_dir(identity)
        if not asset_dir.is_dir():
            return 0
        return sum(1 for path in asset_dir.iterdir() if path.is_file())

    def _has_corrupt_assets(self, asset_dir: Path) -> bool:
        return any(
            path.name.lower().endswith(CORRUPT_SUFFIXES) for path in asset_dir.iterdir()
        )

    def load(self, identity: str) -> CacheMetadata | None:
        """Load cached metadata if it is still trustworthy.

        Returns None when the metadata file or asset directory is missing, the
        metadata cannot be read or was written for a different identity, the
        asset directory holds doubled-extension
        files, or the asset file count differs from ``total_images``.
        """
        metadata_path = self.metadata_path(identity)
        if not metadata_path.exists():
            return None

        try:
            metadata = CacheMetadata.model_validate_json(metadata_path.read_text())
        except (OSError, ValueError) as e:
            log.warning(f"Unreadable cache metadata for {identity}: {e}")
            return None

        if metadata.volume_identity != identity:
            log.info(
                f"Cache at {metadata_path} belongs to {metadata.volume_identity!r}, "
                f"not {identity!r}"
            )
            return None

        asset_dir = self.asset_dir(identity)
        if not asset_dir.is_dir():
            log.info(f"Cache for {identity} has no asset directory")
            return None

        if self._has_corrupt_assets(asset_dir):
            log.info(f"Cache for {identity} has doubled-extension assets")
            return None

        asset_count = self.count_assets(identity)
        if asset_count != metadata.total_images:
            log.info(
                f"Cache for {identity} is stale: {asset_count} asset files, "
                f"{metadata.total_images} expected"
            )
            return None

        return metadata

    def is_cache_valid(self, identity: str) -> bool:
        """Check if cached data exists and is still valid."""
        return self.load(identity) is not None

    def save(self, metadata: CacheMetadata) -> Path:
        """Persist metadata atomically, replacing any previous record."""
        volume_dir = self.volume_dir(metadata.volume_identity)
        volume_dir.mkdir(parents=True, exist_ok=True)
        target = volume_dir / self.METADATA_FILE

        fd, tmp_name = tempfile.mkstemp(dir=volume_dir, prefix=".metadata-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(metadata.model_dump_json(indent=2))
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        log.info(f"Cached {metadata.volume_identity} at {target}")
        return target

    def clear(self, identity: str) -> bool:
        """Delete one volume's cache. Returns True if anything was removed."""
        volume_dir = self.volume_dir(identity)
        if not volume_dir.exists():
            return False
        shutil.rmtree(volume_dir)
        return True

    def clear_all(self) -> int:
        """Clear all cached data. Returns number of volumes cleared."""
        if not self.cache_root.exists():
            return 0

        count = sum(1 for path in self.cache_root.iterdir() if path.is_dir())
        shutil.rmtree(self.cache_root)
        return count

    def list_cached(self) -> list[CachedVolume]:
        """List all volumes with readable metadata."""
        if not self.cache_root.exists():
            return []

        volumes = []
        for volume_dir in sorted(self.cache_root.iterdir()):
            metadata_path = volume_dir / self.METADATA_FILE
            if not metadata_path.is_file():
                continue
            try:
                metadata = CacheMetadata.model_validate_json(metadata_path.read_text())
            except (OSError, ValueError):
                continue
            volumes.append(
                CachedVolume(
                    volume_identity=metadata.volume_identity,
                    title=metadata.book_metadata.title,
                    chapter_count=len(metadata.chapters),
                    total_images=metadata.total_images,
                    extracted_at=metadata.extracted_at,
                    is_valid=self.is_cache_valid(metadata.volume_identity),
                )
            )
        return volumes
