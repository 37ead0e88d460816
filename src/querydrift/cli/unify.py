"""CLI command to build the cross-version report."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from querydrift.config.settings import settings
from querydrift.repos.version_store import VersionStore
from querydrift.services.unify import UNIFIED_FILE, unify, write_unified

console = Console()


def unify_cmd(
    automation_dir: Optional[str] = typer.Option(None, help="Automation directory."),
    output: Optional[str] = typer.Option(None, "--output", help="Output path (default: <automation>/unified.json)."),
) -> None:
    """Group every recorded outcome by operation and write unified.json."""
    root = Path(automation_dir or settings.automation_dir)
    store = VersionStore(root)

    entries = unify(store)
    path = write_unified(entries, output or root / UNIFIED_FILE)

    divergent = sum(1 for e in entries if len(e.results) > 1)
    typer.echo(f"✅ Wrote {len(entries)} operation(s) to {path}")
    if divergent:
        console.print(f"[yellow]![/yellow] {divergent} operation(s) differ across versions", highlight=False)


if __name__ == "__main__":
    typer.run(unify_cmd)
