"""Ingest EPUB volumes into a validated, reusable chapter and asset cache."""

__version__ = "0.1.0"
