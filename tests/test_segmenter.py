"""Tests for title detection, markup cleanup and paragraph segmentation."""

import pytest

from novel_ingest.core.segmenter import (
    LINE_TITLE_RULES,
    clean_markup,
    detect_title,
    extract_images,
    keep_paragraph,
    normalize_image_src,
    segment_content,
    split_paragraphs,
)


def test_line_rules_are_ordered_chapter_indicators_before_headings() -> None:
    assert [rule.name for rule in LINE_TITLE_RULES] == [
        "chapter_number",
        "prologue",
        "epilogue",
        "afterword",
        "interlude",
        "h1",
        "h2",
        "title",
    ]


@pytest.mark.parametrize(
    ("content", "title", "rule"),
    [
        ("Chapter 3\n<p>Text</p>", "Chapter 3", "chapter_number"),
        ("chapter 12: The Long Night\nText", "Chapter 12: The Long Night", "chapter_number"),
        ("Ch. 4 - Return\nText", "Chapter 4: Return", "chapter_number"),
        ("Ch7\nText", "Chapter 7", "chapter_number"),
        ("prologue\nText", "Prologue", "prologue"),
        ("Epilogue: Ten Years Later\nText", "Epilogue: Ten Years Later", "epilogue"),
        ("Afterword - Notes\nText", "Afterword: Notes", "afterword"),
        ("INTERLUDE\nText", "INTERLUDE", "interlude"),
        ("<h1>The&nbsp;Gate</h1>\n<p>Text</p>", "The Gate", "h1"),
        ("<h2 class=\"x\">Smoke &amp; Ash</h2>", "Smoke & Ash", "h2"),
        ("<title>Book One</title>\n<p>Text</p>", "Book One", "title"),
    ],
)
def test_line_title_rules(content: str, title: str, rule: str) -> None:
    detection = detect_title(content)

    assert detection.title == title
    assert detection.rule == rule
    assert not detection.is_title_page


def test_earlier_line_wins_over_stronger_rule_on_later_line() -> None:
    content = "<h1>The Gate</h1>\nChapter 3"
    assert detect_title(content).title == "The Gate"


def test_chapter_indicator_beats_heading_on_same_line() -> None:
    content = "Chapter 2 <h1>Ignored</h1>\nText"
    assert detect_title(content).title == "Chapter 2"


def test_line_outside_scan_window_is_not_considered() -> None:
    filler = "\n".join(["<p>1</p>"] * 10)
    content = f"{filler}\n<h1>Too Late</h1>"

    assert detect_title(content).title == "Chapter"
    assert detect_title(content, scan_lines=11).title == "Too Late"


def test_cover_marker_wins_over_everything() -> None:
    detection = detect_title('<h1>Chapter 1</h1>\n<img src="cover.jpg"/>')

    assert detection.title == "Cover"
    assert detection.is_cover_page
    assert detection.is_title_page


def test_cover_marker_needs_a_whole_word() -> None:
    detection = detect_title("<p>They set out to discover the valley.</p>")
    assert not detection.is_cover_page


def test_local_image_paths_count_only_by_filename() -> None:
    chapter = '<h1>Chapter 3</h1>\n<img src="file:///data/book-cover/title page/assets/map.png"/>'
    detection = detect_title(chapter)

    assert detection.title == "Chapter 3"
    assert not detection.is_cover_page
    assert not detection.is_title_page

    cover = detect_title('<div><img src="file:///data/book/assets/cover.jpg"/></div>')
    assert cover.is_cover_page


@pytest.mark.parametrize(
    "content",
    ["<p>Book Title Page</p>", "<div>title page</div>", "<p>Copyright Page</p>", "Title"],
)
def test_title_page_indicators(content: str) -> None:
    detection = detect_title(content)

    assert detection.title == "Title Page"
    assert detection.is_title_page
    assert not detection.is_cover_page


def test_first_meaningful_line_fallback() -> None:
    content = "<p>42</p>\n<p>   </p>\n<p>chapter 9</p>\n<p>A Quiet Morning</p>"
    detection = detect_title(content)

    assert detection.title == "A Quiet Morning"
    assert detection.rule == "first_line"


def test_default_title() -> None:
    assert detect_title("<p>1</p>\n<p>***</p>").title == "Chapter"


def test_normalize_image_src() -> None:
    assert normalize_image_src("../Images/map.png") == "map.png"
    assert normalize_image_src("map.png") == "map.png"
    assert normalize_image_src("file:///cache/vol/assets/map.png") == "map.png"


def test_extract_images_in_document_order() -> None:
    content = """<p>Before</p>
<svg><image width="10" xlink:href="../Images/plate.jpg"/></svg>
<img alt="Map" src="../Images/map.png"/>
<img src=''/>"""
    images = extract_images(content)

    assert [(i.src, i.alt) for i in images] == [("plate.jpg", ""), ("map.png", "Map")]


def test_clean_markup_applies_rules_in_order() -> None:
    content = """<?xml version="1.0"?>
<!DOCTYPE html>
<html><head><title>Head Title</title><style>p { color: red; }</style></head>
<body>
<p>She said <em>nothing</em> ,then <strong>left</strong>.</p>
<div>Line one<br/>Line two</div>
<script>var x = 1;</script>
</body></html>"""
    text = clean_markup(content)

    assert "Head Title" not in text
    assert "color" not in text
    assert "var x" not in text
    assert "<" not in text
    assert "She said _nothing_, then **left**." in text
    assert "Line one\nLine two" in text
    assert "\n\n\n" not in text


@pytest.mark.parametrize(
    ("paragraph", "kept"),
    [
        ("The lanterns were still burning when she arrived.", True),
        ("Copyright 2020 Lantern House", False),
        ("All rights reserved.", False),
        ("Sign up for our newsletter!", False),
        ("Table of Contents", False),
        ("Page 12", False),
        ("Chapter 7", False),
        ("2020 ©", False),
        ("* * *", False),
        ("Yes.", True),
        ("No!", False),
    ],
)
def test_keep_paragraph(paragraph: str, kept: bool) -> None:
    assert keep_paragraph(paragraph) is kept


def test_title_pages_keep_every_candidate() -> None:
    text = "Copyright 2020\n\nThe Long Road\n\n* * *"
    assert split_paragraphs(text, is_title_page=True) == ["Copyright 2020", "The Long Road", "* * *"]
    assert split_paragraphs(text, is_title_page=False) == ["The Long Road"]


def test_segment_content_regular_chapter() -> None:
    content = """<h1>Chapter 1: Arrival</h1>

<p>The rain had not stopped for three days.</p>
<p>Copyright notice that should vanish.</p>
<img src="../Images/map.png" alt="Map"/>"""
    segmented = segment_content(content)

    assert segmented.title == "Chapter 1: Arrival"
    assert segmented.paragraphs == [
        "Chapter 1: Arrival",
        "The rain had not stopped for three days.",
    ]
    assert [i.src for i in segmented.images] == ["map.png"]
    assert segmented.has_content


def test_segment_content_cover_page_returns_images_only() -> None:
    content = '<div><p>Cover text</p><img src="../Images/cover.jpg"/></div>'
    segmented = segment_content(content)

    assert segmented.is_cover_page
    assert segmented.paragraphs == []
    assert [i.src for i in segmented.images] == ["cover.jpg"]
