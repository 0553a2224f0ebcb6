"""Derive renderable paragraph items from a cached chapter."""

from novel_ingest.core.segmenter import DEFAULT_SCAN_LINES, segment_content
from novel_ingest.models.epub import Chapter, ParagraphItem, ParsedChapterView


def _image_uri(src: str, asset_map: dict[str, str]) -> str:
    local_path = asset_map.get(src)
    if local_path is None:
        return src
    return f"file://{local_path}"


def build_chapter_view(
    chapter: Chapter,
    asset_map: dict[str, str],
    scan_lines: int = DEFAULT_SCAN_LINES,
) -> ParsedChapterView:
    """Lay out a chapter as title, image and text items.

    Title, cover and image-only pages get no title item; title and cover
    pages show their images only.
    """
    segmented = segment_content(chapter.content, scan_lines)
    is_image_page = bool(segmented.images) and not segmented.paragraphs
    show_text = not (segmented.is_title_page or segmented.is_cover_page)

    items: list[ParagraphItem] = []
    if show_text and not is_image_page:
        items.append(ParagraphItem(id="title", type="title", content=chapter.title))

    for idx, image in enumerate(segmented.images):
        items.append(
            ParagraphItem(
                id=f"image-{idx}",
                type="image",
                image_uri=_image_uri(image.src, asset_map),
                image_alt=image.alt,
            )
        )

    if show_text:
        items.extend(
            ParagraphItem(id=f"p-{idx}", type="text", content=paragraph)
            for idx, paragraph in enumerate(segmented.paragraphs)
        )

    return ParsedChapterView(
        chapter_id=chapter.id,
        title=chapter.title,
        items=items,
        is_title_page=segmented.is_title_page,
        is_cover_page=segmented.is_cover_page,
    )
