"""Backup and export commands: backup export/import, export bibtex/citations."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel

from ._common import APP_HOME, auto_push, console, open_store


def _write_or_echo(text: str, output: Optional[str]) -> None:
    if output:
        path = Path(output).expanduser()
        path.write_text(text, encoding="utf-8")
        console.print(f"Wrote [cyan]{path}[/] ({len(text)} bytes)")
    else:
        click.echo(text)


def register_backup_commands(main: click.Group) -> None:
    """Register the backup and export command groups."""

    @main.group()
    def backup():
        """Backup and restore the whole library as JSON.

        A backup carries the library, interests, feeds and AI settings.
        It is plaintext; the sync key is never included.
        """

    @backup.command("export")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    @click.option("--output", "-o", default=None, type=click.Path(), help="Write to file instead of stdout.")
    def backup_export(home: str, output: Optional[str]):
        """Export a full backup.

        Examples:

            scidigest backup export -o library.json
        """
        _write_or_echo(open_store(home).export_backup(), output)

    @backup.command("import")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    def backup_import(path: str, home: str):
        """Replace the library with a backup file.

        The file is validated first; a rejected backup changes nothing.
        """
        store = open_store(home)
        result = store.import_backup(Path(path).read_text(encoding="utf-8"))
        if not result.success:
            console.print(f"[red]Import failed:[/] {result.error}")
            raise SystemExit(1)

        summary = store.summary()
        console.print(Panel(
            f"[bold green]Backup restored[/]\n"
            f"Articles: {summary['articles']}   Notes: {summary['notes']}   "
            f"Shelves: {summary['shelves']}"
            + ("\n[yellow]Backup came from a different scidigest version.[/]"
               if result.upgraded else ""),
            title="Import Complete",
            border_style="green",
        ))
        auto_push(store, home)

    @main.group()
    def export():
        """Export to reference managers."""

    @export.command("bibtex")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    @click.option("--shelf", default=None, help="Only articles on this shelf id.")
    @click.option("--output", "-o", default=None, type=click.Path(), help="Write to file instead of stdout.")
    def export_bibtex(home: str, shelf: Optional[str], output: Optional[str]):
        """Export articles as a BibTeX bibliography."""
        from ..export import generate_bibtex

        articles = [
            a for a in open_store(home).load().articles
            if not a.is_dismissed and (shelf is None or shelf in a.shelf_ids)
        ]
        _write_or_echo(generate_bibtex(articles), output)

    @export.command("citations")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    def export_citations(home: str):
        """Print resolved citation links between library articles as JSON."""
        from ..citations import citation_links

        links = citation_links(open_store(home).load().articles)
        click.echo(json.dumps([link.model_dump() for link in links], indent=2))
