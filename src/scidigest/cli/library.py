"""Library commands: status, reset, article, shelf, note, feed."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from ..models import DEFAULT_QUEUE_ID, Article, Feed, FeedSourceType, Note, Shelf
from ..pdfs import PdfStore
from ..storage import StorageError
from ._common import APP_HOME, auto_push, console, open_store

_home_option = click.option(
    "--home", default=APP_HOME, type=click.Path(), help="Library home directory.",
)


def _rating_label(rating: int) -> str:
    if rating == -1:
        return "[red]dismissed[/]"
    if rating == 0:
        return "[dim]untriaged[/]"
    return f"[bold]{rating}[/]/10"


def register_library_commands(main: click.Group) -> None:
    """Register library management commands on the main CLI group."""

    @main.command()
    @_home_option
    def status(home: str):
        """Show library contents at a glance."""
        store = open_store(home)
        s = store.summary()
        console.print()
        console.print(Panel(
            f"Schema: v{s['version']}\n"
            f"Articles: [bold]{s['articles']}[/] "
            f"([cyan]{s['queued']}[/] queued, [red]{s['dismissed']}[/] dismissed)\n"
            f"Books: {s['books']}   Notes: {s['notes']}   Shelves: {s['shelves']}\n"
            f"Read time: {s['read_time_seconds'] // 60} min\n"
            f"Logs: {s['logs']}   AI calls: {s['usage_events']}\n"
            f"Storage: {s['storage_bytes'] / 1024:.1f} KiB\n"
            f"Last modified: [dim]{s['last_modified']}[/]",
            title="SciDigest Library",
            border_style="bright_blue",
        ))
        console.print()

    @main.command()
    @_home_option
    @click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
    def reset(home: str, yes: bool):
        """Erase the entire library, settings and sync key."""
        if not yes:
            click.confirm(
                "This permanently deletes every article, note, shelf, setting "
                "and the sync key. Continue?",
                abort=True,
            )
        store = open_store(home)
        store.factory_reset()
        console.print("[bold red]Library erased.[/]")

    # ── Articles ───────────────────────────────────────────────────────

    @main.group()
    def article():
        """Add, triage and queue papers."""

    @article.command("add")
    @click.argument("title")
    @click.option("--author", "-a", "authors", multiple=True, help="Author (repeatable).")
    @click.option("--abstract", default="", help="Abstract text.")
    @click.option("--date", "date_", default="", help="Publication date (YYYY-MM-DD).")
    @click.option("--tag", "-t", "tags", multiple=True, help="Tag (repeatable).")
    @click.option(
        "--source",
        type=click.Choice([s.value for s in FeedSourceType]),
        default=FeedSourceType.MANUAL.value,
        help="Where the paper came from.",
    )
    @click.option("--queue", is_flag=True, help="Also put it on the reading queue.")
    @_home_option
    def article_add(title, authors, abstract, date_, tags, source, queue, home):
        """Add a paper to the library."""
        store = open_store(home)
        new = Article(
            title=title,
            authors=list(authors),
            abstract=abstract,
            date=date_,
            year=date_.split("-")[0] if date_ else "",
            source=FeedSourceType(source),
            tags=list(tags),
            shelf_ids=[DEFAULT_QUEUE_ID] if queue else [],
        )
        try:
            store.add_article(new)
        except StorageError as exc:
            console.print(f"[red]{exc}[/]")
            raise SystemExit(1)
        console.print(f"[green]Added[/] {new.title} [dim]({new.id})[/]")
        auto_push(store, home)

    @article.command("list")
    @click.option("--shelf", default=None, help="Only articles on this shelf id.")
    @click.option("--all", "show_all", is_flag=True, help="Include dismissed articles.")
    @_home_option
    def article_list(shelf: Optional[str], show_all: bool, home: str):
        """List papers, newest first."""
        document = open_store(home).load()
        articles = [
            a for a in document.articles
            if (show_all or not a.is_dismissed) and (shelf is None or shelf in a.shelf_ids)
        ]
        if not articles:
            console.print("[dim]No articles.[/]")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("ID", style="dim")
        table.add_column("Title", style="cyan")
        table.add_column("Year")
        table.add_column("Rating")
        table.add_column("Shelves", style="dim")
        for a in articles:
            table.add_row(a.id, a.title, a.year, _rating_label(a.rating), ", ".join(a.shelf_ids))
        console.print(table)

    @article.command("rate")
    @click.argument("article_id")
    @click.argument("rating", type=click.IntRange(-1, 10))
    @_home_option
    def article_rate(article_id: str, rating: int, home: str):
        """Rate a paper from 1 to 10 (0 resets, -1 dismisses)."""
        store = open_store(home)
        document = store.rate_article(article_id, rating)
        if document.find_article(article_id) is None:
            console.print(f"[red]No article {article_id}[/]")
            raise SystemExit(1)
        console.print(f"Rated {article_id}: {_rating_label(rating)}")
        auto_push(store, home)

    @article.command("dismiss")
    @click.argument("article_id")
    @_home_option
    def article_dismiss(article_id: str, home: str):
        """Dismiss a paper; it stays in the library, hidden."""
        store = open_store(home)
        store.dismiss_article(article_id)
        console.print(f"Dismissed {article_id}")
        auto_push(store, home)

    @article.command("queue")
    @click.argument("article_id")
    @click.option("--shelf", default=DEFAULT_QUEUE_ID, help="Target shelf id.")
    @click.option("--remove", is_flag=True, help="Take it off the shelf instead.")
    @_home_option
    def article_queue(article_id: str, shelf: str, remove: bool, home: str):
        """Put a paper on a shelf (the reading queue by default)."""
        store = open_store(home)
        try:
            if remove:
                store.remove_from_shelf(article_id, shelf)
            else:
                store.add_to_shelf(article_id, shelf)
        except ValueError as exc:
            console.print(f"[red]{exc}[/]")
            raise SystemExit(1)
        console.print(f"{'Removed' if remove else 'Shelved'} {article_id} {'from' if remove else 'on'} {shelf}")
        auto_push(store, home)

    @article.command("attach")
    @click.argument("article_id")
    @click.argument("pdf_file", type=click.Path(exists=True, dir_okay=False))
    @_home_option
    def article_attach(article_id: str, pdf_file: str, home: str):
        """Keep a local copy of a paper's PDF."""
        if open_store(home).load().find_article(article_id) is None:
            console.print(f"[red]No article {article_id}[/]")
            raise SystemExit(1)
        path = Path(pdf_file)
        try:
            record = PdfStore.open(Path(home)).put_pdf(article_id, path.read_bytes(), name=path.name)
        except (OSError, StorageError, ValueError) as exc:
            console.print(f"[red]{exc}[/]")
            raise SystemExit(1)
        console.print(f"[green]Attached[/] {path.name} to {article_id} [dim]({record.size} bytes)[/]")

    @article.command("pdf")
    @click.argument("article_id")
    @click.option("--output", "-o", type=click.Path(dir_okay=False), help="Where to write the PDF.")
    @_home_option
    def article_pdf(article_id: str, output: Optional[str], home: str):
        """Write out the stored PDF of a paper."""
        pdfs = PdfStore.open(Path(home))
        try:
            record = pdfs.get_record(article_id)
            data = pdfs.get_pdf(article_id)
        except ValueError as exc:
            console.print(f"[red]{exc}[/]")
            raise SystemExit(1)
        if record is None or data is None:
            console.print(f"[red]No PDF stored for {article_id}[/]")
            raise SystemExit(1)
        target = Path(output or record.name or f"{article_id}.pdf")
        target.write_bytes(data)
        console.print(f"Wrote {target} [dim]({len(data)} bytes)[/]")

    # ── Shelves ────────────────────────────────────────────────────────

    @main.group()
    def shelf():
        """Manage shelves."""

    @shelf.command("add")
    @click.argument("name")
    @click.option("--color", default="#6366f1", help="Display colour.")
    @_home_option
    def shelf_add(name: str, color: str, home: str):
        """Create a shelf."""
        store = open_store(home)
        new = Shelf(name=name, color=color)
        store.add_shelf(new)
        console.print(f"[green]Created shelf[/] {name} [dim]({new.id})[/]")

    @shelf.command("list")
    @_home_option
    def shelf_list(home: str):
        """List shelves with their item counts."""
        document = open_store(home).load()
        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Items", justify="right")
        for s in document.shelves:
            count = sum(1 for item in [*document.articles, *document.books] if s.id in item.shelf_ids)
            table.add_row(s.id, f"[{s.color}]{s.name}[/]", str(count))
        console.print(table)

    @shelf.command("delete")
    @click.argument("shelf_id")
    @_home_option
    def shelf_delete(shelf_id: str, home: str):
        """Delete a shelf; its items stay in the library."""
        store = open_store(home)
        if store.load().find_shelf(shelf_id) is None:
            console.print(f"[red]No shelf {shelf_id}[/]")
            raise SystemExit(1)
        document = store.delete_shelf(shelf_id)
        if document.find_shelf(shelf_id) is not None:
            console.print(f"[yellow]Shelf {shelf_id} cannot be deleted.[/]")
            return
        console.print(f"Deleted shelf {shelf_id}")

    # ── Notes ──────────────────────────────────────────────────────────

    @main.group()
    def note():
        """Write notes and link them to papers."""

    @note.command("add")
    @click.argument("title")
    @click.option("--content", "-c", default="", help="Note body.")
    @click.option("--link", "links", multiple=True, help="Article id to link (repeatable).")
    @_home_option
    def note_add(title: str, content: str, links: tuple[str, ...], home: str):
        """Create a note."""
        store = open_store(home)
        new = Note(title=title, content=content)
        store.add_note(new)
        for article_id in links:
            store.link_note_to_article(new.id, article_id)
        console.print(f"[green]Created note[/] {title} [dim]({new.id})[/]")

    @note.command("list")
    @_home_option
    def note_list(home: str):
        """List notes."""
        document = open_store(home).load()
        if not document.notes:
            console.print("[dim]No notes.[/]")
            return
        for n in document.notes:
            console.print(
                f"  [cyan]{n.title}[/] [dim]{n.id}[/] "
                f"({len(n.article_ids)} linked, edited {n.last_edited:%Y-%m-%d})"
            )

    @note.command("link")
    @click.argument("note_id")
    @click.argument("article_id")
    @_home_option
    def note_link(note_id: str, article_id: str, home: str):
        """Link a note to a paper."""
        open_store(home).link_note_to_article(note_id, article_id)
        console.print(f"Linked {note_id} <-> {article_id}")

    @note.command("unlink")
    @click.argument("note_id")
    @click.argument("article_id")
    @_home_option
    def note_unlink(note_id: str, article_id: str, home: str):
        """Unlink a note from a paper."""
        open_store(home).unlink_note_from_article(note_id, article_id)
        console.print(f"Unlinked {note_id} <-> {article_id}")

    # ── Feeds ──────────────────────────────────────────────────────────

    @main.group()
    def feed():
        """Manage monitored sources."""

    @feed.command("list")
    @_home_option
    def feed_list(home: str):
        """List monitored feeds."""
        for f in open_store(home).get_feeds():
            mark = "[green]on [/]" if f.active else "[dim]off[/]"
            console.print(f"  {mark} [cyan]{f.name}[/] [dim]{f.url} ({f.id})[/]")

    @feed.command("add")
    @click.argument("name")
    @click.argument("url")
    @_home_option
    def feed_add(name: str, url: str, home: str):
        """Monitor a new source url."""
        feeds = open_store(home).add_feed(Feed(name=name, url=url))
        console.print(f"{len(feeds)} feed(s) monitored")

    @feed.command("remove")
    @click.argument("feed_id")
    @_home_option
    def feed_remove(feed_id: str, home: str):
        """Stop monitoring a feed."""
        feeds = open_store(home).remove_feed(feed_id)
        console.print(f"{len(feeds)} feed(s) monitored")
