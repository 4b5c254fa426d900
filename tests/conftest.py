"""Shared test fixtures for scidigest."""

from __future__ import annotations

from pathlib import Path

import pytest

from scidigest.store import LibraryStore


@pytest.fixture
def tmp_home(tmp_path: Path) -> Path:
    """Provide a temporary library home directory for testing."""
    home = tmp_path / ".scidigest"
    home.mkdir()
    return home


@pytest.fixture
def store(tmp_home: Path) -> LibraryStore:
    """An initialized library store backed by the temporary home."""
    library = LibraryStore.open(tmp_home)
    yield library
    library.teardown()


@pytest.fixture
def remote_dir(tmp_path: Path) -> Path:
    """Folder standing in for the cloud, shared between simulated devices."""
    return tmp_path / "remote"
