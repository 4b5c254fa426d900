"""
Encrypted cloud sync.

The library never leaves the device in plaintext. Every upload is
AES-256-GCM encrypted under a key derived from the local sync key, which
itself is never transmitted.
"""

from .backends import DriveAppDataStore, LocalFolderStore, RemoteStore, create_remote_store
from .engine import CloudSync
from .models import SyncStatus

__all__ = [
    "CloudSync",
    "DriveAppDataStore",
    "LocalFolderStore",
    "RemoteStore",
    "SyncStatus",
    "create_remote_store",
]
