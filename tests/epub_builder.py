"""Build small EPUB archives in memory for tests."""

from __future__ import annotations

import io
import zipfile

EPUB_MIMETYPE = "application/epub+zip"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 48
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 48

_CONTAINER = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{package_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

_DEFAULT = object()


def container_xml(package_path: str = "OEBPS/content.opf") -> str:
    return _CONTAINER.format(package_path=package_path)


def build_epub(
    files: dict[str, str | bytes],
    *,
    descriptor: object = _DEFAULT,
    mimetype: str | None = EPUB_MIMETYPE,
) -> bytes:
    """Zip ``files`` with a mimetype entry and container descriptor.

    Pass ``descriptor=None`` or ``mimetype=None`` to leave either out.
    """
    if descriptor is _DEFAULT:
        descriptor = container_xml()

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        if mimetype is not None:
            zf.writestr("mimetype", mimetype, compress_type=zipfile.ZIP_STORED)
        if descriptor is not None:
            zf.writestr("META-INF/container.xml", descriptor)
        for name, payload in files.items():
            zf.writestr(name, payload)
    return buffer.getvalue()


def set_compression_method(data: bytes, name: str, method: int) -> bytes:
    """Rewrite one entry's compression method in its local and central headers."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        local = zf.getinfo(name).header_offset

    patched = bytearray(data)
    central = patched.rfind(name.encode("utf-8")) - 46
    assert patched[local : local + 4] == b"PK\x03\x04"
    assert patched[central : central + 4] == b"PK\x01\x02"

    method_bytes = method.to_bytes(2, "little")
    patched[local + 8 : local + 10] = method_bytes
    patched[central + 10 : central + 12] = method_bytes
    return bytes(patched)


def package_document(
    manifest: list[tuple[str, str, str]],
    spine: list[str],
    *,
    toc: str | None = "ncx",
    cover_meta: str | None = None,
    title: str = "The Long Road",
    creator: str = "A. Writer",
) -> str:
    """Render an OPF document from (id, href, media-type) triples."""
    items = "\n".join(
        f'    <item id="{item_id}" href="{href}" media-type="{media_type}"/>'
        for item_id, href, media_type in manifest
    )
    itemrefs = "\n".join(f'    <itemref idref="{idref}"/>' for idref in spine)
    toc_attr = f' toc="{toc}"' if toc else ""
    cover = f'\n    <meta name="cover" content="{cover_meta}"/>' if cover_meta else ""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="bookid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:title>{title}</dc:title>
    <dc:creator>{creator}</dc:creator>
    <dc:language>en</dc:language>
    <dc:publisher>Lantern House</dc:publisher>{cover}
  </metadata>
  <manifest>
{items}
  </manifest>
  <spine{toc_attr}>
{itemrefs}
  </spine>
</package>
"""


def ncx_document(points: list[tuple[str, str]]) -> str:
    """Render an NCX document from (label, src) pairs."""
    nav_points = "\n".join(
        f"""    <navPoint id="np-{index}" playOrder="{index + 1}">
      <navLabel><text>{label}</text></navLabel>
      <content src="{src}"/>
    </navPoint>"""
        for index, (label, src) in enumerate(points)
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <head/>
  <docTitle><text>The Long Road</text></docTitle>
  <navMap>
{nav_points}
  </navMap>
</ncx>
"""


def xhtml(body: str) -> str:
    return f"""<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<body>
{body}
</body>
</html>
"""


CHAPTER_ONE = xhtml(
    """<h1>Chapter 1: Arrival</h1>
<p>The rain had not stopped for three days when Mira finally reached the gates of the old city.</p>
<p>She tightened the strap of her pack and walked on, counting the lanterns that still burned.</p>
<img src="../Images/map.png" alt="Map of the city"/>"""
)

CHAPTER_TWO = xhtml(
    """<p>Morning came grey and slow over the harbour, and the ferryman was already waiting at the pier.</p>
<p>Nobody spoke during the crossing. The water was flat, and the far shore stayed hidden in fog.</p>"""
)

COVER_PAGE = xhtml('<div><img src="../Images/cover.jpg" alt="Cover"/></div>')

ILLUSTRATION_PAGE = xhtml('<div class="plate"><img src="../Images/map.png" alt="Map"/></div>')

TITLE_PAGE = "<html><body>t</body></html>"  # 27 characters


def sample_files() -> dict[str, str | bytes]:
    """A small two-chapter volume with a cover, a title page and one plate."""
    manifest = [
        ("ncx", "toc.ncx", "application/x-dtbncx+xml"),
        ("cover-page", "Text/cover.xhtml", "application/xhtml+xml"),
        ("titlepage", "Text/titlepage.xhtml", "application/xhtml+xml"),
        ("ch1", "Text/chapter1.xhtml", "application/xhtml+xml"),
        ("plate", "Text/plate.xhtml", "application/xhtml+xml"),
        ("ch2", "Text/chapter2.xhtml", "application/xhtml+xml"),
        ("cover-img", "Images/cover.jpg", "image/jpeg"),
        ("map", "Images/map.png", "image/png"),
    ]
    spine = ["cover-page", "titlepage", "ch1", "plate", "ch2"]
    return {
        "OEBPS/content.opf": package_document(manifest, spine, cover_meta="cover-img"),
        "OEBPS/toc.ncx": ncx_document(
            [
                ("Chapter 1: Arrival", "Text/chapter1.xhtml"),
                ("Chapter 2: Departure", "Text/chapter2.xhtml#start"),
            ]
        ),
        "OEBPS/Text/cover.xhtml": COVER_PAGE,
        "OEBPS/Text/titlepage.xhtml": TITLE_PAGE,
        "OEBPS/Text/chapter1.xhtml": CHAPTER_ONE,
        "OEBPS/Text/plate.xhtml": ILLUSTRATION_PAGE,
        "OEBPS/Text/chapter2.xhtml": CHAPTER_TWO,
        "OEBPS/Images/cover.jpg": JPEG_BYTES,
        "OEBPS/Images/map.png": PNG_BYTES,
    }
