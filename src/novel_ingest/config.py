"""Settings for the ingestion pipeline."""

from dataclasses import dataclass, field
from pathlib import Path

CACHE_DIR = ".novel_ingest_cache"

# Spine hrefs containing any of these are front/back matter, not chapters.
SKIP_FILE_FRAGMENTS: tuple[str, ...] = (
    "copyright",
    "toc.",
    "nav.",
    "navigation",
    "contents",
    "index.",
    "titlepage",
    "title_page",
    "frontmatter",
    "backmatter",
    "acknowledgments",
    "acknowledgements",
    "dedication",
    "preface",
    "foreword",
    "about_author",
    "about-author",
    "aboutauthor",
    "colophon",
    "imprint",
    "publisher",
    "credits",
)


@dataclass
class IngestSettings:
    """Configuration for an extraction run."""

    cache_root: Path = field(default_factory=lambda: Path(CACHE_DIR))
    min_content_length: int = 50  # raw markup characters
    min_text_length: int = 100  # joined paragraph characters for text-only pages
    title_scan_lines: int = 10
    skip_file_fragments: tuple[str, ...] = SKIP_FILE_FRAGMENTS

    def should_skip_file(self, href: str) -> bool:
        """Check whether a spine href names boilerplate content."""
        lowered = href.lower()
        return any(fragment in lowered for fragment in self.skip_file_fragments)


DEFAULT_SETTINGS = IngestSettings()
