"""Shared pytest fixtures for the novel-ingest test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from novel_ingest.cache.manager import CacheManager
from novel_ingest.config import IngestSettings
from tests.epub_builder import build_epub, sample_files


@pytest.fixture
def sample_epub() -> bytes:
    """A well-formed volume: cover, title page, two chapters and a plate."""
    return build_epub(sample_files())


@pytest.fixture
def settings(tmp_path: Path) -> IngestSettings:
    return IngestSettings(cache_root=tmp_path / "cache")


@pytest.fixture
def cache_manager(settings: IngestSettings) -> CacheManager:
    return CacheManager(settings.cache_root)
