"""Extraction pipeline: archive bytes in, cached chapters and assets out."""

import logging
import threading
import weakref
from typing import Callable

from pydantic import BaseModel

from novel_ingest.cache.manager import CacheManager
from novel_ingest.cache.models import CacheMetadata
from novel_ingest.config import IngestSettings
from novel_ingest.core.archive import open_archive
from novel_ingest.core.asset_extractor import extract_assets
from novel_ingest.core.chapter_view import build_chapter_view
from novel_ingest.core.navigation import build_title_map, parse_navigation
from novel_ingest.core.normalizer import normalize_chapters
from novel_ingest.core.package_parser import load_package_document
from novel_ingest.models.epub import Chapter, NavigationEntry, ParsedChapterView

log = logging.getLogger(__name__)


class ExtractionResult(BaseModel):
    """Chapters, TOC and asset aliases of one volume, plus the persisted record."""

    chapters: list[Chapter]
    toc: list[NavigationEntry]
    asset_map: dict[str, str]
    metadata: CacheMetadata

    @classmethod
    def from_metadata(cls, metadata: CacheMetadata) -> "ExtractionResult":
        return cls(
            chapters=metadata.chapters,
            toc=metadata.toc,
            asset_map=metadata.asset_alias_map,
            metadata=metadata,
        )

    @property
    def is_empty(self) -> bool:
        """True when the volume parsed but yielded no usable chapters."""
        return not self.chapters


def volume_identity(novel_id: str | None, volume_id: str | None) -> str:
    """Identity under which a volume's extraction is cached."""
    return f"{novel_id or 'unknown'}_{volume_id or 'unknown'}"


def extract_volume(
    data: bytes,
    identity: str,
    cache: CacheManager,
    settings: IngestSettings | None = None,
) -> ExtractionResult:
    """Run the full extraction for one volume and persist the result.

    Steps run sequentially; one image payload is held at a time.

    Raises:
        ArchiveCorrupt: If the bytes are not a readable archive
        MissingDescriptor: If container.xml is absent
        MissingPackageDocument: If the package document cannot be found
    """
    settings = settings or IngestSettings(cache_root=cache.cache_root)
    log.info(f"Extracting volume {identity} ({len(data):,} bytes)")

    with open_archive(data) as archive:
        package = load_package_document(archive)
        toc = parse_navigation(archive, package)

        asset_dir = cache.prepare_asset_dir(identity)
        assets = extract_assets(archive, package, asset_dir)

        chapters = normalize_chapters(
            archive, package, assets.index, build_title_map(toc), settings
        )

    cover = assets.index.cover
    metadata = CacheMetadata(
        volume_identity=identity,
        chapters=chapters,
        toc=toc,
        asset_alias_map=assets.index.alias_map(),
        total_images=assets.total_images,
        cover_path=cover.local_path if cover else None,
        book_metadata=package.metadata,
    )
    cache.save(metadata)

    if not chapters:
        log.warning(f"Volume {identity} has no usable chapters")
    return ExtractionResult.from_metadata(metadata)


class VolumeLibrary:
    """Cache-aware entry point for extracting volumes.

    Requests for the same identity are serialized, so a duplicate request
    issued while an extraction runs is answered from the fresh cache.
    """

    def __init__(self, settings: IngestSettings | None = None):
        self.settings = settings or IngestSettings()
        self.cache = CacheManager(self.settings.cache_root)
        # Entries vanish once no request holds the lock.
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    def _lock_for(self, identity: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(identity)
            if lock is None:
                lock = self._locks[identity] = threading.Lock()
            return lock

    def load(self, identity: str) -> ExtractionResult | None:
        """Return the cached extraction, or None if absent or stale."""
        metadata = self.cache.load(identity)
        if metadata is None:
            return None
        return ExtractionResult.from_metadata(metadata)

    def extract(self, data: bytes, identity: str) -> ExtractionResult:
        """Extract unconditionally, replacing any cached result."""
        with self._lock_for(identity):
            return extract_volume(data, identity, self.cache, self.settings)

    def get_or_extract(
        self,
        identity: str,
        source: bytes | Callable[[], bytes],
        force: bool = False,
    ) -> ExtractionResult:
        """Serve from cache when valid, otherwise extract.

        ``source`` may be a callable so archive bytes are only fetched on a
        cache miss.
        """
        with self._lock_for(identity):
            if not force:
                cached = self.load(identity)
                if cached is not None:
                    log.info(f"Using cached extraction for {identity}")
                    return cached

            data = source() if callable(source) else source
            return extract_volume(data, identity, self.cache, self.settings)

    def chapter_view(self, identity: str, order: int) -> ParsedChapterView | None:
        """Build the paragraph view of one cached chapter."""
        cached = self.load(identity)
        if cached is None or not 0 <= order < len(cached.chapters):
            return None
        return build_chapter_view(
            cached.chapters[order], cached.asset_map, self.settings.title_scan_lines
        )

    def delete(self, identity: str) -> bool:
        with self._lock_for(identity):
            return self.cache.clear(identity)
