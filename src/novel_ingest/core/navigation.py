"""Parse the NCX navigation document into a flat table of contents."""

import logging
import posixpath

from bs4 import BeautifulSoup

from novel_ingest.core.archive import VolumeArchive
from novel_ingest.core.package_parser import package_relative, resolve_href
from novel_ingest.models.epub import NavigationEntry, PackageDocument

log = logging.getLogger(__name__)


def parse_ncx(content: str, toc_dir: str = "", package_dir: str = "") -> list[NavigationEntry]:
    """Flatten NCX navPoints, depth first, into entries with fragment-free hrefs.

    Hrefs are re-expressed relative to the package directory so they match
    manifest hrefs even when the NCX lives elsewhere.
    """
    soup = BeautifulSoup(content, "xml")
    entries: list[NavigationEntry] = []

    for index, point in enumerate(soup.find_all("navPoint")):
        label_element = point.find("navLabel", recursive=False)
        content_element = point.find("content", recursive=False)
        if label_element is None or content_element is None:
            continue

        label = label_element.get_text(strip=True)
        src = content_element.get("src")
        if not label or not src:
            continue

        path = resolve_href(toc_dir, src)
        entries.append(
            NavigationEntry(
                id=point.get("id") or f"navpoint-{index}",
                label=label,
                href=package_relative(path, package_dir),
            )
        )

    return entries


def build_title_map(entries: list[NavigationEntry]) -> dict[str, str]:
    """Map hrefs to labels; a later entry for the same href replaces an earlier one."""
    return {entry.href: entry.label for entry in entries}


def parse_navigation(archive: VolumeArchive, package: PackageDocument) -> list[NavigationEntry]:
    """Parse the TOC referenced by the spine, or return [] when unresolvable."""
    if not package.toc_id:
        log.info("Spine declares no TOC; titles fall back to content detection")
        return []

    toc_item = package.manifest.get(package.toc_id)
    if toc_item is None:
        log.warning(f"TOC id {package.toc_id!r} is not in the manifest")
        return []

    content = archive.read_text(toc_item.path)
    if content is None:
        log.warning(f"TOC document missing from archive: {toc_item.path}")
        return []

    entries = parse_ncx(content, posixpath.dirname(toc_item.path), package.directory)
    log.info(f"Parsed {len(entries)} navigation entries")
    return entries
