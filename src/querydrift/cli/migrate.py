"""CLI command to convert legacy meta.json files."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from querydrift.config.settings import settings
from querydrift.repos.version_store import VersionStore
from querydrift.services.migration import migrate_store

console = Console()


def migrate_cmd(
    automation_dir: Optional[str] = typer.Option(None, help="Automation directory."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report what would change without writing."),
) -> None:
    """Convert every legacy catalog-array meta.json into history records."""
    store = VersionStore(Path(automation_dir or settings.automation_dir))
    report = migrate_store(store, dry_run=dry_run)

    prefix = "[DRY-RUN] " if dry_run else ""
    typer.echo(f"{prefix}Migrated: {len(report.migrated)}")
    typer.echo(f"{prefix}Already current: {len(report.skipped)}")

    if report.errors:
        for name, error in sorted(report.errors.items()):
            console.print(f"[red]✗[/red] {name}: {error}", highlight=False)
        raise typer.Exit(1)


if __name__ == "__main__":
    typer.run(migrate_cmd)
