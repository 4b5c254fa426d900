"""
Application configuration.

Lives in ``<home>/config/config.yaml``. Missing or malformed files fall
back to defaults so the library always opens.

Example::

    storage_dir: storage
    storage_quota_bytes: 5242880
    log_level: INFO
    sync:
      backend_type: gdrive
      enabled: true
      token_env_var: SCIDIGEST_DRIVE_TOKEN
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from . import APP_HOME
from .storage import DEFAULT_QUOTA_BYTES
from .sync.models import SyncBackendConfig

logger = logging.getLogger("scidigest.config")


class AppConfig(BaseModel):
    """Persistent configuration for a library home."""

    storage_dir: str = "storage"
    storage_quota_bytes: Optional[int] = DEFAULT_QUOTA_BYTES
    log_level: str = "WARNING"
    sync: SyncBackendConfig = Field(default_factory=SyncBackendConfig)


def resolve_home(home: Optional[Path] = None) -> Path:
    """Expand *home*, defaulting to ``$SCIDIGEST_HOME`` or ``~/.scidigest``."""
    return (home or Path(APP_HOME)).expanduser()


def config_path(home: Path) -> Path:
    return home / "config" / "config.yaml"


def load_config(home: Optional[Path] = None) -> AppConfig:
    """Load configuration from disk.

    Args:
        home: Library home directory.

    Returns:
        AppConfig loaded from config.yaml, or defaults.
    """
    config_file = config_path(resolve_home(home))
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return AppConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config, using defaults: %s", exc)
    return AppConfig()


def save_config(config: AppConfig, home: Optional[Path] = None) -> Path:
    """Persist configuration to ``config.yaml``."""
    config_file = config_path(resolve_home(home))
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(
        yaml.dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return config_file
