"""Tests for the file-per-key storage layer."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from scidigest.storage import DATA_KEY, FileStorage, StorageError, StorageQuotaError


@pytest.fixture
def storage(tmp_path: Path) -> FileStorage:
    fs = FileStorage(tmp_path / "storage")
    fs.initialize()
    return fs


class TestFileStorage:
    """Basic get/set/remove behaviour."""

    def test_missing_key_is_none(self, storage: FileStorage):
        assert storage.get("nothing") is None
        assert storage.get_json("nothing") is None

    def test_set_then_get(self, storage: FileStorage):
        storage.set_json(DATA_KEY, {"version": "1.1.0"})
        assert storage.get_json(DATA_KEY) == {"version": "1.1.0"}
        assert (storage.root / f"{DATA_KEY}.json").exists()

    def test_no_temp_file_left_behind(self, storage: FileStorage):
        storage.set("k", "value")
        leftovers = [p.name for p in storage.root.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_overwrite_replaces_value(self, storage: FileStorage):
        storage.set("k", "one")
        storage.set("k", "two")
        assert storage.get("k") == "two"

    def test_corrupt_json_raises_value_error(self, storage: FileStorage):
        (storage.root / "broken.json").write_text("{not json")
        with pytest.raises(ValueError):
            storage.get_json("broken")

    def test_keys_and_clear(self, storage: FileStorage):
        storage.set_json("a", 1)
        storage.set_json("b", 2)
        assert storage.keys() == ["a", "b"]
        storage.clear()
        assert storage.keys() == []

    def test_remove_missing_key_is_noop(self, storage: FileStorage):
        storage.remove("ghost")

    def test_write_failure_raises_storage_error(self, tmp_path: Path):
        """A root that is a regular file cannot hold keys."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        fs = FileStorage(blocker, quota_bytes=None)
        with pytest.raises(StorageError):
            fs.set("k", "v")


class TestQuota:
    """Byte quota enforcement."""

    def test_write_over_quota_raises(self, tmp_path: Path):
        fs = FileStorage(tmp_path / "s", quota_bytes=100)
        with pytest.raises(StorageQuotaError):
            fs.set("big", "x" * 200)
        assert fs.get("big") is None

    def test_quota_error_is_storage_error(self):
        assert issubclass(StorageQuotaError, StorageError)

    def test_overwrite_does_not_count_old_value(self, tmp_path: Path):
        fs = FileStorage(tmp_path / "s", quota_bytes=100)
        fs.set("k", "x" * 80)
        fs.set("k", "y" * 80)
        assert fs.get("k") == "y" * 80

    def test_quota_counts_other_keys(self, tmp_path: Path):
        fs = FileStorage(tmp_path / "s", quota_bytes=100)
        fs.set("a", "x" * 60)
        with pytest.raises(StorageQuotaError):
            fs.set("b", "y" * 60)

    def test_used_bytes(self, storage: FileStorage):
        storage.set("a", "12345")
        storage.set("b", json.dumps("xy"))
        assert storage.used_bytes() == 5 + 4
        assert storage.used_bytes(exclude="a") == 4

    def test_no_quota(self, tmp_path: Path):
        fs = FileStorage(tmp_path / "s", quota_bytes=None)
        fs.set("big", "x" * 10_000)
        assert len(fs.get("big")) == 10_000

    def test_check_quota_counts_every_update(self, tmp_path: Path):
        fs = FileStorage(tmp_path / "s", quota_bytes=100)
        fs.set("a", "x" * 40)
        fs.check_quota({"a": "x" * 50, "b": "y" * 50})
        with pytest.raises(StorageQuotaError):
            fs.check_quota({"a": "x" * 60, "b": "y" * 60})
        assert fs.get("b") is None

    def test_used_bytes_excludes_several_keys(self, storage: FileStorage):
        storage.set("a", "123")
        storage.set("b", "45")
        storage.set("c", "6")
        assert storage.used_bytes(exclude=["a", "b"]) == 1
