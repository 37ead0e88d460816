"""CLI command to show per-version probe progress."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from querydrift.config.settings import settings
from querydrift.errors import QuerydriftError
from querydrift.repos.catalog_repo import CatalogRepository
from querydrift.repos.version_store import VersionStore
from querydrift.services.backoff import required_wait_days
from querydrift.services.planning import load_meta_or_empty
from querydrift.services.state import build_state
from querydrift.services.versions import VersionRegistry

console = Console()


def status_cmd(
    automation_dir: Optional[str] = typer.Option(None, help="Automation directory."),
) -> None:
    """List every known version with its completed, pending and failing work."""
    root = Path(automation_dir or settings.automation_dir)
    store = VersionStore(root)
    now = datetime.now(timezone.utc)

    try:
        items = CatalogRepository.in_automation(root).list_items()
    except QuerydriftError as e:
        console.print(f"[red]✗[/red] Error: {e}", highlight=False)
        raise typer.Exit(1)

    registry = VersionRegistry(store.list_versions())

    table = Table(title="Versions")
    table.add_column("Version", style="cyan")
    table.add_column("Completed", style="green", justify="right")
    table.add_column("Pending", style="magenta", justify="right")
    table.add_column("Failing", style="yellow")
    table.add_column("State", style="red")

    for version in registry.ordered:
        meta, broken = load_meta_or_empty(store, str(version))
        state = build_state(meta, items)
        if broken:
            label = "meta.json unreadable"
        elif state.retracted:
            label = "retracted"
        elif state.failing and not state.backoff.eligible(now):
            label = f"backoff ({required_wait_days(state.backoff.failure_count)}d)"
        else:
            label = ""
        failing = f"x{state.backoff.failure_count}" if state.failing else ""
        table.add_row(state.name, str(len(state.completed)), str(len(state.pending)), failing, label)

    console.print(table)


if __name__ == "__main__":
    typer.run(status_cmd)
