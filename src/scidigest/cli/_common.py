"""Shared utilities for all CLI command modules.

Provides the Rich console, the store opener, status formatting and the
opportunistic sync push run after mutating commands.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console

from .. import APP_HOME
from ..config import load_config
from ..store import LibraryStore
from ..sync import CloudSync, SyncStatus, create_remote_store

console = Console()
logger = logging.getLogger("scidigest.cli")


def open_store(home: str) -> LibraryStore:
    """Open the library at *home*, creating it on first use."""
    return LibraryStore.open(Path(home).expanduser())


def open_sync(store: LibraryStore, home: str) -> CloudSync:
    """Build the sync engine for the configured remote store."""
    home_path = Path(home).expanduser()
    config = load_config(home_path)
    return CloudSync(store, create_remote_store(config.sync, home_path))


def sync_icon(status: SyncStatus) -> str:
    """Map sync status to a Rich-formatted indicator."""
    return {
        SyncStatus.SYNCED: "[bold green]SYNCED[/]",
        SyncStatus.SYNCING: "[bold cyan]SYNCING[/]",
        SyncStatus.ERROR: "[bold red]ERROR[/]",
        SyncStatus.DISCONNECTED: "[dim]DISCONNECTED[/]",
    }.get(status, "[dim]UNKNOWN[/]")


def auto_push(store: LibraryStore, home: str) -> Optional[bool]:
    """Push after a mutation when sync is enabled and the remote is reachable.

    Returns:
        None when sync is off or unreachable, otherwise the push result.
    """
    config = load_config(Path(home).expanduser())
    if not config.sync.enabled:
        return None
    engine = open_sync(store, home)
    if engine.connect() != SyncStatus.SYNCED:
        return None
    ok = engine.push()
    if not ok:
        console.print("  [yellow]Cloud sync failed; changes are saved locally.[/]")
    return ok


__all__ = ["APP_HOME", "auto_push", "console", "logger", "open_store", "open_sync", "sync_icon"]
