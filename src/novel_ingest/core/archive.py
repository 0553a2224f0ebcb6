"""Random-access reading of EPUB archives held in memory."""

import codecs
import io
import logging
import zipfile

from novel_ingest.errors import ArchiveCorrupt

log = logging.getLogger(__name__)


def decode_text(raw: bytes) -> str:
    """Decode an archive entry, tolerating BOMs and stray bytes."""
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return raw.decode("utf-16")
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return raw.decode("utf-8", errors="replace")


class VolumeArchive:
    """Opened EPUB container.

    Owns entry access for the lifetime of one extraction; use as a context
    manager so the underlying zip handle is released afterwards.
    """

    def __init__(self, data: bytes):
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, OSError, ValueError) as e:
            raise ArchiveCorrupt(f"Cannot read archive: {e}") from e
        self._names = set(self._zip.namelist())

    def __enter__(self) -> "VolumeArchive":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def namelist(self) -> list[str]:
        return self._zip.namelist()

    def has_entry(self, name: str) -> bool:
        return name in self._names

    def read_bytes(self, name: str) -> bytes | None:
        """Read an entry's payload, or None if the archive lacks it."""
        if name not in self._names:
            return None
        return self._zip.read(name)

    def read_text(self, name: str) -> str | None:
        """Read and decode an entry, or None if the archive lacks it."""
        raw = self.read_bytes(name)
        if raw is None:
            return None
        return decode_text(raw)


def open_archive(data: bytes) -> VolumeArchive:
    """Open raw EPUB bytes as a random-access archive."""
    archive = VolumeArchive(data)
    log.debug(f"Opened archive with {len(archive.namelist())} entries")
    return archive
