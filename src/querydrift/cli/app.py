from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import httpx
import typer
from rich.console import Console
from rich.table import Table

from querydrift.clients.docker_hub import fetch_tags
from querydrift.config.logger_config import setup_logger
from querydrift.config.settings import settings
from querydrift.errors import QuerydriftError
from querydrift.repos.catalog_repo import CatalogRepository
from querydrift.repos.version_store import VersionStore
from querydrift.services.catalog_source import JsonCatalogSource
from querydrift.services.collector import collect_batch
from querydrift.services.discovery import build_release_bundles, sync_releases
from querydrift.services.driver import load_driver_factory
from querydrift.services.planning import run_planning_pass, write_workload
from querydrift.services.scheduler import MODE_RETRY_SKIPPED
from querydrift.cli.migrate import migrate_cmd
from querydrift.cli.status import status_cmd
from querydrift.cli.unify import unify_cmd

app = typer.Typer(help="querydrift CLI (discover versions, plan probes, collect, unify).")
console = Console()


def automation_root(automation_dir: Optional[str]) -> Path:
    return Path(automation_dir or settings.automation_dir)


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    setup_logger("querydrift", log_dir=settings.log_dir, debug_mode=verbose, level=settings.log_level)


@app.command("discover")
def discover_cmd(
    automation_dir: Optional[str] = typer.Option(None, help="Automation directory."),
    repository: Optional[str] = typer.Option(None, help="Docker Hub repository (default from settings)."),
    retract_unlisted: bool = typer.Option(True, help="Retract versions the registry no longer lists."),
) -> None:
    """
    Sync released versions from Docker Hub into the store.
    """
    store = VersionStore(automation_root(automation_dir))
    try:
        tags = fetch_tags(repository or settings.docker_repository)
    except httpx.HTTPError as e:
        console.print(f"[red]✗[/red] Error fetching tags: {e}")
        raise typer.Exit(1)

    bundles = build_release_bundles(tags, os=settings.docker_platform_os, arch=settings.docker_platform_arch)
    result = sync_releases(store, bundles, retract_unlisted=retract_unlisted)

    typer.echo(f"✅ Versions known: {len(bundles)}")
    typer.echo(f"✅ New versions: {len(result.created)}")
    typer.echo(f"✅ Releases discovered={result.discovered} retracted={result.retracted}")


@app.command("plan")
def plan_cmd(
    automation_dir: Optional[str] = typer.Option(None, help="Automation directory."),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", min=0, help="Versions per batch."),
    write: bool = typer.Option(True, "--write-workload/--no-write-workload", help="Persist workload.json."),
) -> None:
    """
    Refresh per-version plans and print the next batch (comma separated).
    """
    root = automation_root(automation_dir)
    store = VersionStore(root)
    now = datetime.now(timezone.utc)

    try:
        items = CatalogRepository.in_automation(root).list_items()
    except QuerydriftError as e:
        console.print(f"[red]✗[/red] Error: {e}", highlight=False)
        raise typer.Exit(1)

    report = run_planning_pass(store, items, batch_size if batch_size is not None else settings.batch_size, now=now)
    if write:
        write_workload(root, report, now=now)

    if report.corrupt:
        console.print(f"[yellow]![/yellow] Unreadable meta.json: {', '.join(report.corrupt)}", highlight=False)
    if report.selection.mode == MODE_RETRY_SKIPPED:
        console.print("[yellow]![/yellow] Only retries of known failures remain (retry-skipped)")

    table = Table(title=f"Next batch (mode={report.selection.mode})")
    table.add_column("Version", style="cyan")
    table.add_column("Priority", style="magenta", justify="right")
    table.add_column("Pending", style="green", justify="right")
    table.add_column("Failing", style="yellow")
    for e in report.selection.entries:
        table.add_row(e.name, str(e.priority), str(e.pending), "yes" if e.failing else "")
    console.print(table)

    typer.echo(",".join(report.selection.versions))


@app.command("collect")
def collect_cmd(
    driver: str = typer.Option(..., "--driver", help="Driver factory as 'package.module:callable'."),
    fixtures: str = typer.Option(..., "--fixtures", help="Directory of catalog fixtures (<name>.json)."),
    version: list[str] = typer.Option([], "--version", help="Version(s) to collect; default: workload batch."),
    automation_dir: Optional[str] = typer.Option(None, help="Automation directory."),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", min=0, help="Versions per batch."),
) -> None:
    """
    Probe versions through an external driver and record the outcomes.
    """
    root = automation_root(automation_dir)
    store = VersionStore(root)

    try:
        factory = load_driver_factory(driver)
        items = CatalogRepository.in_automation(root).list_items()
    except QuerydriftError as e:
        console.print(f"[red]✗[/red] Error: {e}", highlight=False)
        raise typer.Exit(1)

    names = list(version)
    if not names:
        report = run_planning_pass(store, items, batch_size if batch_size is not None else settings.batch_size)
        names = report.selection.versions
        console.print(f"[bold blue]Collecting batch (mode={report.selection.mode})[/bold blue]")

    if not names:
        typer.echo("Nothing to collect.")
        return

    summaries = collect_batch(store, names, items, JsonCatalogSource(fixtures), factory)

    table = Table(title="Collection")
    table.add_column("Version", style="cyan")
    table.add_column("Completed", style="green", justify="right")
    table.add_column("Halted", style="yellow", justify="right")
    table.add_column("Reason", style="red")
    for s in summaries:
        table.add_row(s.name, str(len(s.completed)), str(len(s.halted)), s.reason or "")
    console.print(table)


app.command("unify")(unify_cmd)
app.command("status")(status_cmd)
app.command("migrate-meta")(migrate_cmd)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
