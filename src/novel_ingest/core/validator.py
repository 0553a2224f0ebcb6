"""Structural validation and minimal repair of EPUB archives.

Validation never stops at the first problem: every check that can still run
does, and the result carries whatever structure was recovered.
"""

import io
import logging
import zipfile

from bs4 import BeautifulSoup
from ebooklib import epub
from lxml import etree

from novel_ingest.core.archive import VolumeArchive, open_archive
from novel_ingest.core.container import CONTAINER_PATH, find_package_path
from novel_ingest.core.package_parser import parse_package_document
from novel_ingest.errors import ArchiveCorrupt
from novel_ingest.models.epub import RepairResult, ValidationResult

log = logging.getLogger(__name__)

MIMETYPE_PATH = "mimetype"
EPUB_MIMETYPE = "application/epub+zip"
DEFAULT_PACKAGE_PATH = "OEBPS/content.opf"

MISSING_MIMETYPE = "Missing mimetype file"
INVALID_MIMETYPE = f"Invalid mimetype - must be {EPUB_MIMETYPE}"
MISSING_CONTAINER = "Missing container.xml"
MALFORMED_CONTAINER = "Malformed container.xml"
MISSING_PACKAGE_PATH = "Cannot find package document path in container.xml"
MISSING_PACKAGE = "Missing package document"
MISSING_MANIFEST = "Missing <manifest> in package document"
MISSING_SPINE = "Missing <spine> in package document"
UNRESOLVED_SPINE_REF = "Spine references non-existent manifest item"

CONTAINER_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="{namespace}">
  <rootfiles>
    <rootfile full-path="{package_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""


def _check_mimetype(archive: VolumeArchive, issues: list[str]) -> None:
    mimetype = archive.read_text(MIMETYPE_PATH)
    if mimetype is None:
        issues.append(MISSING_MIMETYPE)
    elif mimetype.strip() != EPUB_MIMETYPE:
        issues.append(INVALID_MIMETYPE)


def _is_well_formed(raw: bytes) -> str | None:
    """Return a parse error message, or None if the XML is well-formed."""
    try:
        etree.fromstring(raw)
    except etree.XMLSyntaxError as e:
        return str(e)
    return None


def validate_archive(archive: VolumeArchive) -> ValidationResult:
    """Run every structural check against an opened archive."""
    issues: list[str] = []
    _check_mimetype(archive, issues)

    raw_descriptor = archive.read_bytes(CONTAINER_PATH)
    if raw_descriptor is None:
        issues.append(MISSING_CONTAINER)
        return _finish(issues)

    syntax_error = _is_well_formed(raw_descriptor)
    if syntax_error:
        issues.append(f"{MALFORMED_CONTAINER}: {syntax_error}")

    package_path = find_package_path(archive.read_text(CONTAINER_PATH) or "")
    if not package_path:
        issues.append(MISSING_PACKAGE_PATH)
        return _finish(issues)

    content = archive.read_text(package_path)
    if content is None:
        issues.append(f"{MISSING_PACKAGE}: {package_path}")
        return _finish(issues, package_path=package_path)

    soup = BeautifulSoup(content, "xml")
    if soup.find("manifest") is None:
        issues.append(MISSING_MANIFEST)
    if soup.find("spine") is None:
        issues.append(MISSING_SPINE)

    package = parse_package_document(content, package_path)
    for idref in package.spine_idrefs:
        if idref not in package.manifest:
            issues.append(f"{UNRESOLVED_SPINE_REF}: {idref}")

    return _finish(issues, package_path=package_path, manifest=package.manifest)


def _finish(issues: list[str], **recovered) -> ValidationResult:
    if issues:
        log.warning(f"EPUB validation issues: {issues}")
    else:
        log.info("EPUB validation: all checks passed")
    return ValidationResult(is_valid=not issues, issues=issues, **recovered)


def validate_epub(data: bytes) -> ValidationResult:
    """Validate raw EPUB bytes. A corrupt archive is an issue, not an exception."""
    try:
        archive = open_archive(data)
    except ArchiveCorrupt as e:
        return _finish([e.message])

    with archive:
        return validate_archive(archive)


def _guess_package_path(names: list[str]) -> str:
    return next((n for n in names if n.lower().endswith(".opf")), DEFAULT_PACKAGE_PATH)


def _rebuild(data: bytes, fix_mimetype: bool, fix_container: bool) -> bytes:
    """Copy the archive with a stored mimetype first and/or a default descriptor."""
    output = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(data)) as source, zipfile.ZipFile(
        output, "w", zipfile.ZIP_DEFLATED
    ) as target:
        names = source.namelist()
        if fix_mimetype:
            target.writestr(MIMETYPE_PATH, EPUB_MIMETYPE, compress_type=zipfile.ZIP_STORED)
        if fix_container:
            descriptor = CONTAINER_TEMPLATE.format(
                namespace=epub.NAMESPACES["CONTAINERNS"],
                package_path=_guess_package_path(names),
            )
            target.writestr(CONTAINER_PATH, descriptor)

        for info in source.infolist():
            if fix_mimetype and info.filename == MIMETYPE_PATH:
                continue
            if fix_container and info.filename == CONTAINER_PATH:
                continue
            target.writestr(info, source.read(info.filename))
    return output.getvalue()


def repair_epub(data: bytes) -> RepairResult:
    """Repair a missing/invalid mimetype and a missing container descriptor.

    Other problems are reported, not repaired.
    """
    validation = validate_epub(data)
    if validation.is_valid:
        return RepairResult(success=True, message="EPUB is valid", data=data)

    fix_mimetype = MISSING_MIMETYPE in validation.issues or INVALID_MIMETYPE in validation.issues
    fix_container = MISSING_CONTAINER in validation.issues
    failure = f"EPUB validation failed: {', '.join(validation.issues)}"

    if not (fix_mimetype or fix_container):
        return RepairResult(success=False, message=failure)

    try:
        repaired = _rebuild(data, fix_mimetype, fix_container)
    except zipfile.BadZipFile as e:
        return RepairResult(success=False, message=f"Cannot repair archive: {e}")

    revalidation = validate_epub(repaired)
    if revalidation.is_valid:
        log.info("EPUB repaired successfully")
        return RepairResult(
            success=True,
            message="EPUB repaired successfully",
            repaired=True,
            data=repaired,
        )

    return RepairResult(
        success=False,
        message=f"EPUB validation failed after repair: {', '.join(revalidation.issues)}",
    )
