"""Tests for config.yaml loading and saving."""

from __future__ import annotations

from pathlib import Path

from scidigest.config import AppConfig, config_path, load_config, save_config
from scidigest.storage import DEFAULT_QUOTA_BYTES
from scidigest.store import LibraryStore
from scidigest.sync.models import SyncBackendType


class TestConfig:
    def test_defaults_when_missing(self, tmp_home: Path):
        config = load_config(tmp_home)
        assert config.storage_dir == "storage"
        assert config.storage_quota_bytes == DEFAULT_QUOTA_BYTES
        assert config.sync.enabled is False
        assert config.sync.backend_type == SyncBackendType.LOCAL

    def test_save_and_load(self, tmp_home: Path):
        config = AppConfig()
        config.sync.enabled = True
        config.sync.backend_type = SyncBackendType.GDRIVE
        path = save_config(config, tmp_home)

        assert path == config_path(tmp_home)
        loaded = load_config(tmp_home)
        assert loaded.sync.enabled is True
        assert loaded.sync.backend_type == SyncBackendType.GDRIVE

    def test_malformed_yaml_falls_back(self, tmp_home: Path):
        path = config_path(tmp_home)
        path.parent.mkdir(parents=True)
        path.write_text("sync: [unclosed\n")
        assert load_config(tmp_home) == AppConfig()

    def test_invalid_values_fall_back(self, tmp_home: Path):
        path = config_path(tmp_home)
        path.parent.mkdir(parents=True)
        path.write_text("storage_quota_bytes: lots\n")
        assert load_config(tmp_home) == AppConfig()

    def test_store_honours_storage_settings(self, tmp_home: Path):
        save_config(AppConfig(storage_dir="data", storage_quota_bytes=None), tmp_home)
        store = LibraryStore.open(tmp_home)
        assert store.storage.root == tmp_home / "data"
        assert store.storage.quota_bytes is None
