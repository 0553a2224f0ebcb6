"""Data models."""

from novel_ingest.models.assets import AssetRecord
from novel_ingest.models.epub import (
    BookMetadata,
    Chapter,
    ImageRef,
    ManifestItem,
    NavigationEntry,
    PackageDocument,
    ParagraphItem,
    ParsedChapterView,
    RepairResult,
    SegmentedContent,
    ValidationResult,
)

__all__ = [
    # Package models
    "ManifestItem",
    "BookMetadata",
    "PackageDocument",
    "NavigationEntry",
    # Content models
    "Chapter",
    "ImageRef",
    "SegmentedContent",
    "ParagraphItem",
    "ParsedChapterView",
    # Asset models
    "AssetRecord",
    # Validation models
    "ValidationResult",
    "RepairResult",
]
