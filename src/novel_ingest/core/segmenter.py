"""Segment chapter markup into a title, paragraphs and image references.

Title detection and markup cleanup are both driven by ordered rule tables.
Order matters: the first rule that produces a title wins, and cleanup rules
rely on earlier rules having removed whole blocks before tags are stripped.
"""

import html
import logging
import posixpath
import re
from dataclasses import dataclass
from typing import Callable

from novel_ingest.models.epub import ImageRef, SegmentedContent

log = logging.getLogger(__name__)

DEFAULT_SCAN_LINES = 10


# =============================================================================
# Title Detection
# =============================================================================

COVER_MARKER = re.compile(r"\bcover\b", re.IGNORECASE)

TITLE_PAGE_INDICATORS: list[re.Pattern[str]] = [
    re.compile(r"book\s+title\s+page", re.IGNORECASE),
    re.compile(r"title\s+page", re.IGNORECASE),
    re.compile(r"copyright\s+page", re.IGNORECASE),
    re.compile(r"^title$", re.IGNORECASE),
]

_TAG = re.compile(r"<[^>]+>")

# Rewritten image references carry the cache location; only the asset
# filename belongs to the book.
_LOCAL_URI = re.compile(r"""file://[^"']*""")


def _without_local_paths(content: str) -> str:
    return _LOCAL_URI.sub(lambda m: posixpath.basename(m.group(0)), content)


def clean_inline(text: str) -> str:
    """Strip tags, decode entities and trim a fragment of markup."""
    text = _TAG.sub("", text)
    text = html.unescape(text).replace("\xa0", " ")
    return text.strip()


def _capitalize(title: str) -> str:
    return title[:1].upper() + title[1:]


def _numbered_chapter(match: re.Match[str]) -> str:
    number, description = match.group(1), match.group(2)
    description = clean_inline(description) if description else ""
    if description:
        return f"Chapter {number}: {description}"
    return f"Chapter {number}"


def _named_section(match: re.Match[str]) -> str:
    keyword = _capitalize(match.group("keyword"))
    description = clean_inline(match.group("description") or "")
    if description:
        return f"{keyword}: {description}"
    return keyword


def _heading_text(match: re.Match[str]) -> str:
    return clean_inline(match.group(1))


@dataclass(frozen=True)
class TitleRule:
    """A line-level title pattern and how to turn a match into a title."""

    name: str
    pattern: re.Pattern[str]
    build: Callable[[re.Match[str]], str]


def _named_section_rule(keyword: str) -> TitleRule:
    return TitleRule(
        name=keyword,
        pattern=re.compile(
            rf"^(?P<keyword>{keyword})(?:\s*[-:]\s*(?P<description>.+))?",
            re.IGNORECASE,
        ),
        build=_named_section,
    )


# Evaluated per line in scan order; within a line, chapter indicators are
# tried before heading elements.
LINE_TITLE_RULES: list[TitleRule] = [
    TitleRule(
        name="chapter_number",
        pattern=re.compile(
            r"^(?:chapter|ch\.?)\s*(\d+)(?:\s*[-:]\s*(.+))?", re.IGNORECASE
        ),
        build=_numbered_chapter,
    ),
    _named_section_rule("prologue"),
    _named_section_rule("epilogue"),
    _named_section_rule("afterword"),
    _named_section_rule("interlude"),
    TitleRule(
        name="h1",
        pattern=re.compile(r"<h1[^>]*>(.*?)</h1>", re.IGNORECASE),
        build=_heading_text,
    ),
    TitleRule(
        name="h2",
        pattern=re.compile(r"<h2[^>]*>(.*?)</h2>", re.IGNORECASE),
        build=_heading_text,
    ),
    TitleRule(
        name="title",
        pattern=re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE),
        build=_heading_text,
    ),
]

_NOT_A_TITLE_LINE = [
    re.compile(r"^[\W\d_]*$"),
    re.compile(r"^chapter\s+\d+$", re.IGNORECASE),
]


@dataclass
class TitleDetection:
    """Title and page-kind flags for a chunk of chapter markup."""

    title: str
    is_title_page: bool = False
    is_cover_page: bool = False
    rule: str | None = None


def scan_window(content: str, scan_lines: int = DEFAULT_SCAN_LINES) -> list[str]:
    """Return the first ``scan_lines`` non-empty, trimmed lines."""
    window: list[str] = []
    for line in content.split("\n"):
        line = line.strip()
        if not line:
            continue
        window.append(line)
        if len(window) >= scan_lines:
            break
    return window


def detect_title(content: str, scan_lines: int = DEFAULT_SCAN_LINES) -> TitleDetection:
    """Detect the title of chapter markup.

    Precedence: cover marker, title-page indicator, then per line in scan
    order the line rules, then the first meaningful plain line. Local
    ``file://`` image references count only by their filename, so the result
    does not depend on where assets were extracted.
    """
    content = _without_local_paths(content)

    if COVER_MARKER.search(content):
        return TitleDetection("Cover", is_title_page=True, is_cover_page=True, rule="cover")

    if any(pattern.search(content) for pattern in TITLE_PAGE_INDICATORS):
        return TitleDetection("Title Page", is_title_page=True, rule="title_page")

    window = scan_window(content, scan_lines)

    for line in window:
        for rule in LINE_TITLE_RULES:
            match = rule.pattern.search(line)
            if not match:
                continue
            title = rule.build(match)
            if title:
                return TitleDetection(title, rule=rule.name)

    for line in window:
        text = clean_inline(line)
        if not text or any(p.search(text) for p in _NOT_A_TITLE_LINE):
            continue
        return TitleDetection(text, rule="first_line")

    return TitleDetection("Chapter")


# =============================================================================
# Text Extraction
# =============================================================================

_IMG_TAG = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
_SVG_IMAGE_TAG = re.compile(r"<image\b[^>]*>", re.IGNORECASE)
_SRC_ATTR = re.compile(r"""\bsrc\s*=\s*(["'])(.*?)\1""", re.IGNORECASE)
_HREF_ATTR = re.compile(r"""\b(?:xlink:)?href\s*=\s*(["'])(.*?)\1""", re.IGNORECASE)
_ALT_ATTR = re.compile(r"""\balt\s*=\s*(["'])(.*?)\1""", re.IGNORECASE)


def normalize_image_src(src: str) -> str:
    """Reduce an image reference to its basename."""
    if src.startswith("../"):
        src = src[3:]
    return posixpath.basename(src.split("#", 1)[0]) or src


def extract_images(content: str) -> list[ImageRef]:
    """Collect image references, in document order, with their alt text."""
    found: list[tuple[int, ImageRef]] = []
    for tag_pattern, attr_pattern in ((_IMG_TAG, _SRC_ATTR), (_SVG_IMAGE_TAG, _HREF_ATTR)):
        for tag in tag_pattern.finditer(content):
            src_match = attr_pattern.search(tag.group(0))
            if not src_match or not src_match.group(2):
                continue
            alt_match = _ALT_ATTR.search(tag.group(0))
            found.append(
                (
                    tag.start(),
                    ImageRef(
                        src=normalize_image_src(src_match.group(2)),
                        alt=alt_match.group(2) if alt_match else "",
                    ),
                )
            )
    return [image for _, image in sorted(found, key=lambda pair: pair[0])]


def _rule(pattern: str, replacement: str) -> tuple[re.Pattern[str], str]:
    return re.compile(pattern, re.IGNORECASE), replacement


# Applied in order. Whole blocks go first, then line structure, then inline
# emphasis, then any remaining tags, then whitespace and punctuation.
CLEANUP_RULES: list[tuple[re.Pattern[str], str]] = [
    # Declarations
    _rule(r"<!DOCTYPE[^>]*>", ""),
    _rule(r"<\?xml[^>]*\?>", ""),
    # Document wrappers
    _rule(r"<html\b[^>]*>", ""),
    _rule(r"</html>", ""),
    _rule(r"<head\b[^>]*>[\s\S]*?</head>", ""),
    _rule(r"<body\b[^>]*>", ""),
    _rule(r"</body>", ""),
    # Non-text blocks
    _rule(r"<style\b[^>]*>[\s\S]*?</style>", ""),
    _rule(r"<script\b[^>]*>[\s\S]*?</script>", ""),
    # Head-only elements that survive outside <head>
    _rule(r"<meta\b[^>]*>", ""),
    _rule(r"<link\b[^>]*>", ""),
    _rule(r"<title\b[^>]*>[\s\S]*?</title>", ""),
    # Line structure
    _rule(r"<br\b[^>]*>", "\n"),
    _rule(r"<p\b[^>]*>", ""),
    _rule(r"</p>", "\n\n"),
    _rule(r"<div\b[^>]*>", ""),
    _rule(r"</div>", "\n"),
    # Emphasis
    _rule(r"<(?:em|i)\b[^>]*>", "_"),
    _rule(r"</(?:em|i)>", "_"),
    _rule(r"<(?:strong|b)\b[^>]*>", "**"),
    _rule(r"</(?:strong|b)>", "**"),
    # Everything else
    _rule(r"<[^>]+>", ""),
    # Whitespace and punctuation
    _rule(r"\n\s*\n\s*\n", "\n\n"),
    _rule(r"[ \t]+([.,!?;:])", r"\1"),
    _rule(r"([.,!?;:])(?=[^\s\d.,!?;:\"'”’)\]*_])", r"\1 "),
]


def clean_markup(content: str) -> str:
    """Convert decoded chapter markup into blank-line separated plain text."""
    for pattern, replacement in CLEANUP_RULES:
        content = pattern.sub(replacement, content)
    return content.strip()


SKIP_PARAGRAPH_PATTERNS: list[re.Pattern[str]] = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"copyright",
        r"all rights reserved",
        r"translation by",
        r"cover art by",
        r"this book is a work of fiction",
        r"published by",
        r"first published",
        r"newsletter",
        r"sign up",
        r"^[\s\d©]+$",
        r"^table of contents$",
        r"^contents$",
        r"^index$",
        r"^navigation$",
        r"^nav$",
        r"^toc$",
        r"^page \d+$",
        r"^\d+$",
        r"^chapter \d+$",
        r"^volume \d+$",
    )
]

_PUNCTUATION_ONLY = re.compile(r"^[\W\d_]+$")
_LETTER_RUN = re.compile(r"[^\W\d_]{3,}")


def keep_paragraph(paragraph: str) -> bool:
    """Decide whether a candidate paragraph of a regular chapter is content."""
    if any(pattern.search(paragraph) for pattern in SKIP_PARAGRAPH_PATTERNS):
        return False
    if _PUNCTUATION_ONLY.match(paragraph):
        return False
    if len(paragraph) < 10 and not _LETTER_RUN.search(paragraph):
        return False
    return True


def split_paragraphs(text: str, is_title_page: bool) -> list[str]:
    candidates = [p.strip() for p in re.split(r"\n\s*\n", text)]
    candidates = [p for p in candidates if p]
    if is_title_page:
        return candidates
    return [p for p in candidates if keep_paragraph(p)]


def segment_content(content: str, scan_lines: int = DEFAULT_SCAN_LINES) -> SegmentedContent:
    """Segment chapter markup into title, paragraphs, images and page flags.

    Cover pages short-circuit after image extraction and carry no paragraphs.
    """
    detection = detect_title(content, scan_lines)

    decoded = html.unescape(content)
    images = extract_images(decoded)

    if detection.is_cover_page:
        return SegmentedContent(
            title=detection.title,
            images=images,
            is_title_page=True,
            is_cover_page=True,
        )

    paragraphs = split_paragraphs(clean_markup(decoded), detection.is_title_page)
    log.debug(
        f"Segmented {detection.title!r} via {detection.rule}: "
        f"{len(paragraphs)} paragraphs, {len(images)} images"
    )
    return SegmentedContent(
        title=detection.title,
        paragraphs=paragraphs,
        images=images,
        is_title_page=detection.is_title_page,
        is_cover_page=False,
    )
