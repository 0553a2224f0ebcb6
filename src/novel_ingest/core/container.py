"""Locate the package document through META-INF/container.xml."""

import logging

from bs4 import BeautifulSoup

from novel_ingest.core.archive import VolumeArchive
from novel_ingest.errors import MissingDescriptor, MissingPackageDocument

log = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"


def find_package_path(descriptor: str) -> str | None:
    """Return the first rootfile full-path declared by a container descriptor."""
    soup = BeautifulSoup(descriptor, "xml")
    for rootfile in soup.find_all("rootfile"):
        full_path = (rootfile.get("full-path") or "").strip()
        if full_path:
            return full_path
    return None


def resolve_package_path(archive: VolumeArchive) -> str:
    """Read the container descriptor and return the package document path.

    Raises:
        MissingDescriptor: If the archive has no container.xml
        MissingPackageDocument: If the descriptor declares no rootfile path
    """
    descriptor = archive.read_text(CONTAINER_PATH)
    if descriptor is None:
        raise MissingDescriptor(f"Invalid EPUB: missing {CONTAINER_PATH}")

    package_path = find_package_path(descriptor)
    if not package_path:
        raise MissingPackageDocument(
            "Invalid EPUB: cannot find package document path in container.xml"
        )

    log.debug(f"Package document: {package_path}")
    return package_path
