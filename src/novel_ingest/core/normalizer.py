"""Turn spine entries into reading-order chapters."""

import logging
import re

from novel_ingest.config import DEFAULT_SETTINGS, IngestSettings
from novel_ingest.core.archive import VolumeArchive
from novel_ingest.core.asset_extractor import AssetIndex
from novel_ingest.core.package_parser import package_relative
from novel_ingest.core.segmenter import segment_content
from novel_ingest.errors import ChapterReadFailure
from novel_ingest.models.epub import Chapter, ManifestItem, PackageDocument, SegmentedContent

log = logging.getLogger(__name__)

_DOUBLE_EXTENSION_URI = re.compile(
    r"(file://[^\"']+\.(png|jpg|jpeg|gif|webp))\.\2", re.IGNORECASE
)

_IMAGE_REFERENCE = re.compile(r"""\b(src|xlink:href)=(["'])(.*?)\2""")


def _local_uri(reference: str, index: AssetIndex) -> str | None:
    record = index.resolve(reference)
    if record is None and reference.startswith("../"):
        record = index.resolve(reference[3:])
    return record.uri if record is not None else None


def rewrite_image_references(content: str, index: AssetIndex) -> str:
    """Point image references that match an asset alias at the local file.

    Matching is exact and case-sensitive; a "../" prefix is also accepted.
    """

    def replace(match: re.Match[str]) -> str:
        uri = _local_uri(match.group(3), index)
        if uri is None:
            return match.group(0)
        return f'{match.group(1)}="{uri}"'

    content = _IMAGE_REFERENCE.sub(replace, content)
    return _DOUBLE_EXTENSION_URI.sub(r"\1", content)


def is_meaningful(segmented: SegmentedContent, settings: IngestSettings) -> bool:
    """Retention check: some content, and text-only pages need enough text."""
    if not segmented.has_content:
        return False
    if segmented.paragraphs and not segmented.images:
        text = "".join(segmented.paragraphs).strip()
        if len(text) < settings.min_text_length:
            return False
    return True


def _toc_title(item: ManifestItem, package: PackageDocument, toc_titles: dict[str, str]) -> str | None:
    key = package_relative(item.path, package.directory)
    return toc_titles.get(key) or toc_titles.get(item.href)


def normalize_chapters(
    archive: VolumeArchive,
    package: PackageDocument,
    index: AssetIndex,
    toc_titles: dict[str, str],
    settings: IngestSettings = DEFAULT_SETTINGS,
) -> list[Chapter]:
    """Build chapters from the spine, in order, skipping non-content entries.

    Entries that fail to process are logged and skipped so one bad file does
    not cost the whole volume.
    """
    chapters: list[Chapter] = []

    for item in package.spine:
        try:
            chapter = _normalize_entry(
                archive, package, item, index, toc_titles, settings, order=len(chapters)
            )
        except Exception as e:
            failure = ChapterReadFailure(f"Failed to process chapter {item.href}: {e}")
            log.warning(failure.message)
            continue
        if chapter is not None:
            chapters.append(chapter)

    log.info(f"Kept {len(chapters)} of {len(package.spine)} spine entries")
    return chapters


def _normalize_entry(
    archive: VolumeArchive,
    package: PackageDocument,
    item: ManifestItem,
    index: AssetIndex,
    toc_titles: dict[str, str],
    settings: IngestSettings,
    order: int,
) -> Chapter | None:
    content = archive.read_text(item.path)
    if content is None:
        log.warning(f"Spine entry missing from archive: {item.path}")
        return None

    if settings.should_skip_file(item.href):
        log.info(f"Skipping file: {item.href} (unwanted file type)")
        return None
    if len(content) < settings.min_content_length:
        log.info(f"Skipping file: {item.href} (too short)")
        return None

    rewritten = rewrite_image_references(content, index)
    segmented = segment_content(rewritten, settings.title_scan_lines)
    if not is_meaningful(segmented, settings):
        log.info(f"Skipping file: {item.href} (no meaningful content)")
        return None

    toc_title = _toc_title(item, package, toc_titles)
    return Chapter(
        id=item.href,
        title=toc_title or segmented.title or "Chapter",
        content=rewritten,
        order=order,
        source_toc_title=toc_title,
    )
