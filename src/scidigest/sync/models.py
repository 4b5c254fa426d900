"""
Sync data models -- backend configuration, connection status and bookkeeping.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

SYNC_FILENAME = "scidigest_sync_v1_enc.json"


class SyncBackendType(str, Enum):
    """Supported remote object stores."""

    LOCAL = "local"
    GDRIVE = "gdrive"


class SyncStatus(str, Enum):
    """Connection status shown to the user.

    disconnected -> syncing -> synced | error, and synced -> syncing on
    every later push.
    """

    DISCONNECTED = "disconnected"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"


class SyncBackendConfig(BaseModel):
    """Configuration for the remote object store."""

    backend_type: SyncBackendType = SyncBackendType.LOCAL
    enabled: bool = False

    # Local folder (USB drive, NAS mount, synced directory)
    local_path: Optional[Path] = None

    # Google Drive appDataFolder
    token_env_var: str = "SCIDIGEST_DRIVE_TOKEN"


class RemoteFile(BaseModel):
    """An object in the remote store."""

    id: str
    name: str
    modified_time: Optional[datetime] = None


class SyncState(BaseModel):
    """Sync bookkeeping persisted between runs."""

    last_push: Optional[datetime] = None
    last_pull: Optional[datetime] = None
    push_count: int = 0
    pull_count: int = 0
    last_error: Optional[str] = None
    remote_file_id: Optional[str] = None
