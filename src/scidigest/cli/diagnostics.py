"""Diagnostics commands: log, usage."""

from __future__ import annotations

import json

import click
from rich.panel import Panel
from rich.table import Table

from ..models import LogSeverity
from ..usage import token_budget_percent
from ._common import APP_HOME, console, open_store

_LEVEL_STYLE = {
    LogSeverity.INFO: "cyan",
    LogSeverity.WARNING: "yellow",
    LogSeverity.ERROR: "red",
    LogSeverity.DEBUG: "dim",
}


def register_diagnostics_commands(main: click.Group) -> None:
    """Register the log and usage commands."""

    @main.group()
    def log():
        """In-app diagnostic log (newest first, last 100 kept)."""

    @log.command("list")
    @click.option("--level", type=click.Choice([s.value for s in LogSeverity]), default=None)
    @click.option("--limit", "-n", default=20, show_default=True, help="Entries to show.")
    @click.option("--json-out", is_flag=True, help="Output as JSON.")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    def log_list(level, limit: int, json_out: bool, home: str):
        """Show recent diagnostic entries."""
        entries = open_store(home).load().logs
        if level:
            entries = [e for e in entries if e.level.value == level]
        entries = entries[:limit]

        if json_out:
            click.echo(json.dumps([e.to_json_dict() for e in entries], indent=2))
            return
        if not entries:
            console.print("[dim]No log entries.[/]")
            return
        for e in entries:
            style = _LEVEL_STYLE.get(e.level, "white")
            console.print(
                f"  [dim]{e.timestamp:%Y-%m-%d %H:%M:%S}[/] "
                f"[{style}]{e.level.value:<7}[/] {e.message} [dim]v{e.version}[/]"
            )

    @log.command("add")
    @click.argument("message")
    @click.option("--level", type=click.Choice([s.value for s in LogSeverity]), default="info")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    def log_add(message: str, level: str, home: str):
        """Record a manual entry (debug entries need debug mode)."""
        open_store(home).add_log(level, message)

    @log.command("clear")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    def log_clear(home: str):
        """Empty the diagnostic log."""
        open_store(home).clear_logs()
        console.print("Log cleared.")

    @log.command("debug")
    @click.option("--on/--off", "enabled", default=True, help="Enable or disable debug entries.")
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    def log_debug(enabled: bool, home: str):
        """Toggle recording of debug entries."""
        store = open_store(home)
        config = store.get_ai_config()
        config.debug_mode = enabled
        store.save_ai_config(config)
        console.print(f"Debug logging {'[green]on[/]' if enabled else '[dim]off[/]'}")

    @main.command()
    @click.option("--home", default=APP_HOME, type=click.Path(), help="Library home directory.")
    def usage(home: str):
        """Summarize generative-AI token usage."""
        store = open_store(home)
        stats = store.get_usage_stats()
        limit = store.get_ai_config().monthly_token_limit
        pct = token_budget_percent(stats, limit)
        color = "red" if pct >= 90 else "yellow" if pct >= 70 else "green"

        console.print()
        console.print(Panel(
            f"Calls: [bold]{stats.total_calls}[/]   "
            f"Success: {stats.success_rate * 100:.0f}%   "
            f"Avg latency: {stats.avg_latency_ms:.0f} ms\n"
            f"Tokens: [bold]{stats.total_tokens:,}[/] / {limit:,} "
            f"([{color}]{pct:.1f}%[/])",
            title="AI Usage",
            border_style="bright_blue",
        ))
        if stats.by_feature:
            table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
            table.add_column("Feature", style="cyan")
            table.add_column("Tokens", justify="right")
            for feature, tokens in stats.by_feature.items():
                table.add_row(feature, f"{tokens:,}")
            console.print(table)
        console.print()
