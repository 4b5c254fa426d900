"""Sync commands: key, connect, disconnect, push, pull, status."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel

from ..config import load_config, save_config
from ..sync import SyncStatus
from ..sync.models import SyncBackendType
from ._common import APP_HOME, console, open_store, open_sync, sync_icon


def _connected_engine(home: str):
    """Open the store and sync engine; exit when the remote is unreachable."""
    store = open_store(home)
    engine = open_sync(store, home)
    if engine.connect() != SyncStatus.SYNCED:
        console.print(f"[red]Remote store {engine.remote.name} is not available.[/]")
        raise SystemExit(1)
    return store, engine


def register_sync_commands(main: click.Group) -> None:
    """Register the sync command group."""

    @main.group()
    def sync():
        """Encrypted cloud sync.

        The whole library is encrypted on this device with the sync key
        and stored as a single remote object. The last device to push
        wins; nothing is merged.
        """

    @sync.command("key")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    @click.option("--set", "new_key", default=None, help="Adopt the sync key of another device.")
    def sync_key(home: str, new_key: Optional[str]):
        """Show this device's sync key, or adopt another device's.

        Every device sharing a library needs the same key. Keep it secret:
        it is the only thing protecting the remote copy.
        """
        store = open_store(home)
        if new_key is not None:
            try:
                store.set_sync_key(new_key)
            except ValueError as exc:
                console.print(f"[red]{exc}[/]")
                raise SystemExit(1)
            console.print("[green]Sync key updated.[/]")
            return
        console.print(f"  Sync key: [bold cyan]{store.get_sync_key()}[/]")

    @sync.command("connect")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    @click.option(
        "--backend",
        type=click.Choice([b.value for b in SyncBackendType]),
        default=None,
        help="Remote store to use (keeps the configured one if omitted).",
    )
    @click.option("--path", "local_path", default=None, type=click.Path(), help="Folder for the local backend.")
    def sync_connect(home: str, backend: Optional[str], local_path: Optional[str]):
        """Enable sync and check that the remote store is reachable."""
        home_path = Path(home).expanduser()
        config = load_config(home_path)
        if backend is not None:
            config.sync.backend_type = SyncBackendType(backend)
        if local_path is not None:
            config.sync.local_path = Path(local_path).expanduser()
        config.sync.enabled = True
        save_config(config, home_path)

        _, engine = _connected_engine(home)
        console.print(f"  {sync_icon(engine.status)} via [cyan]{engine.remote.name}[/]")

    @sync.command("disconnect")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    def sync_disconnect(home: str):
        """Disable automatic sync. The remote copy is left in place."""
        home_path = Path(home).expanduser()
        config = load_config(home_path)
        config.sync.enabled = False
        save_config(config, home_path)
        console.print(f"  {sync_icon(SyncStatus.DISCONNECTED)}")

    @sync.command("push")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    def sync_push(home: str):
        """Encrypt and upload the library, replacing the remote copy."""
        store, engine = _connected_engine(home)
        console.print("\n  Uploading encrypted library...", end=" ")
        if engine.push():
            console.print("[green]done[/]\n")
        else:
            console.print("[red]failed[/]")
            console.print(f"  [dim]{engine.state.last_error or 'no sync key'}[/]")
            raise SystemExit(1)

    @sync.command("pull")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    def sync_pull(home: str):
        """Download the remote copy and replace the local library with it."""
        store, engine = _connected_engine(home)
        console.print("\n  Downloading library...", end=" ")
        result = engine.pull()

        if engine.status == SyncStatus.SYNCED and result is None:
            console.print("[yellow]nothing to pull[/]\n")
            return
        if result is None or not result.success:
            console.print("[red]failed[/]")
            error = result.error if result is not None else engine.state.last_error
            console.print(f"  [dim]{error}[/]")
            raise SystemExit(1)

        console.print("[green]done[/]")
        console.print(f"  [dim]{store.summary()['articles']} article(s) in library[/]\n")

    @sync.command("status")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    def sync_status(home: str):
        """Show sync configuration and recent activity."""
        home_path = Path(home).expanduser()
        config = load_config(home_path)
        store = open_store(home)
        engine = open_sync(store, home)
        if config.sync.enabled:
            engine.connect()
        report = engine.status_report()
        state = report["state"]

        console.print()
        console.print(Panel(
            f"Backend: [cyan]{report['backend']}[/] "
            f"({'enabled' if config.sync.enabled else '[dim]disabled[/]'})\n"
            f"Status: {sync_icon(engine.status)}\n"
            f"Sync key: {'[green]present[/]' if report['has_key'] else '[yellow]none[/]'}\n"
            f"Last Push: {state['last_push'] or '[dim]never[/]'} ({state['push_count']} total)\n"
            f"Last Pull: {state['last_pull'] or '[dim]never[/]'} ({state['pull_count']} total)\n"
            f"Last Error: {state['last_error'] or '[dim]none[/]'}",
            title="Cloud Sync",
            border_style="magenta",
        ))
        console.print()
