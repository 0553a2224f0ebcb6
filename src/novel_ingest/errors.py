"""Error types raised by the ingestion pipeline."""


class IngestError(Exception):
    """Base error for a failed ingestion step."""

    error_type = "INGEST_ERROR"

    def __init__(self, message: str, error_type: str | None = None):
        if error_type is not None:
            self.error_type = error_type
        self.message = message
        super().__init__(f"{self.error_type}: {message}")


class ArchiveCorrupt(IngestError):
    """The archive bytes cannot be read as a zip container."""

    error_type = "ARCHIVE_CORRUPT"


class MissingDescriptor(IngestError):
    """META-INF/container.xml is absent."""

    error_type = "MISSING_DESCRIPTOR"


class MissingPackageDocument(IngestError):
    """The container names no package document, or it is absent."""

    error_type = "MISSING_PACKAGE_DOCUMENT"


class AssetWriteFailure(IngestError):
    """A single image could not be read or written. Logged and skipped."""

    error_type = "ASSET_WRITE_FAILURE"


class ChapterReadFailure(IngestError):
    """A single spine entry could not be processed. Logged and skipped."""

    error_type = "CHAPTER_READ_FAILURE"
