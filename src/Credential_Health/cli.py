"""CLI entry point for Credential Health.

Provides the ``credential-health`` command with subcommands for live checks,
testing a candidate key, probing which credentials exist, and printing the
security dashboard summary.

This is the ONLY module where console output is allowed. All other modules
use ``logging``. Async internals are bridged to typer's synchronous
interface via ``asyncio.run()``.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from Credential_Health.config import EngineSettings, load_settings
from Credential_Health.data.database import Database
from Credential_Health.data.repository import SqliteCredentialStore
from Credential_Health.logging_config import configure_logging
from Credential_Health.models.enums import IntegrationStatus
from Credential_Health.models.health import HealthResult
from Credential_Health.models.security import AttentionEntry, SecurityHealthSummary
from Credential_Health.services.engine import CredentialHealthEngine

app = typer.Typer(name="credential-health", help="Integration credential health monitoring")

console = Console()

_STATUS_STYLES: dict[IntegrationStatus, str] = {
    IntegrationStatus.OPERATIONAL: "green",
    IntegrationStatus.CONFIGURED: "cyan",
    IntegrationStatus.ERROR: "red",
    IntegrationStatus.NOT_CONFIGURED: "dim",
    IntegrationStatus.CHECKING: "yellow",
}

SettingsOption = Annotated[
    Path | None, typer.Option("--settings", help="Path to a JSON settings file")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")]
QuietOption = Annotated[bool, typer.Option("--quiet", "-q", help="Suppress info logging")]


def _styled(status: IntegrationStatus) -> str:
    style = _STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def _format_latency(result: HealthResult) -> str:
    if result.latency is None:
        return "-"
    return f"{result.latency.total_seconds() * 1000:.0f}ms"


def _results_table(title: str, results: list[HealthResult]) -> Table:
    table = Table(title=title)
    table.add_column("Service", style="bold")
    table.add_column("Status", width=16)
    table.add_column("Latency", justify="right")
    table.add_column("Details")
    for result in results:
        table.add_row(
            result.display_name,
            _styled(result.status),
            _format_latency(result),
            result.message or "",
        )
    return table


# ---------------------------------------------------------------------------
# check command
# ---------------------------------------------------------------------------


@app.command()
def check(
    services: Annotated[list[str], typer.Argument(help="Services to verify")],
    skip_cache: Annotated[
        bool, typer.Option("--skip-cache", help="Ignore cached results")
    ] = False,
    concurrency: Annotated[
        int | None, typer.Option(min=1, help="Checks to run at once (default from settings)")
    ] = None,
    settings_path: SettingsOption = None,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """Verify stored credentials against the verification endpoint."""
    configure_logging(verbose=verbose, quiet=quiet)
    settings = load_settings(settings_path)
    results = asyncio.run(_check_async(settings, services, skip_cache, concurrency))

    console.print(_results_table("Credential Health", results))
    if any(r.is_error for r in results):
        raise typer.Exit(code=1)


async def _check_async(
    settings: EngineSettings,
    services: list[str],
    skip_cache: bool,
    concurrency: int | None,
) -> list[HealthResult]:
    async with Database(settings.db_path) as db:
        store = SqliteCredentialStore(db)
        engine = CredentialHealthEngine.from_settings(settings, store)
        try:
            with Progress(
                TextColumn("[bold]Checking credentials"),
                BarColumn(),
                TextColumn("{task.completed}/{task.total}"),
                console=console,
                transient=True,
            ) as progress:
                task_id = progress.add_task("check", total=len(services))
                results = await engine.check_all(
                    services,
                    concurrency=concurrency,
                    skip_cache=skip_cache,
                    on_progress=lambda done, _total: progress.update(task_id, completed=done),
                )
            for result in results:
                await store.record_check(result.service, result.status, result.checked_at)
            return results
        finally:
            await engine.aclose()


# ---------------------------------------------------------------------------
# test-key command
# ---------------------------------------------------------------------------


@app.command("test-key")
def test_key(
    service: Annotated[str, typer.Argument(help="Service the key belongs to")],
    key: Annotated[str, typer.Option(prompt=True, hide_input=True, help="Candidate key")],
    settings_path: SettingsOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Verify a candidate key without saving it or touching cached results."""
    configure_logging(verbose=verbose)
    settings = load_settings(settings_path)
    result = asyncio.run(_test_key_async(settings, service, key))

    console.print(_results_table("Candidate Key Test", [result]))
    if result.is_error:
        raise typer.Exit(code=1)


async def _test_key_async(settings: EngineSettings, service: str, key: str) -> HealthResult:
    async with Database(settings.db_path) as db:
        engine = CredentialHealthEngine.from_settings(settings, SqliteCredentialStore(db))
        try:
            return await engine.test_without_saving(service, key)
        finally:
            await engine.aclose()


# ---------------------------------------------------------------------------
# probe command
# ---------------------------------------------------------------------------


@app.command()
def probe(
    services: Annotated[list[str], typer.Argument(help="Services to look up")],
    settings_path: SettingsOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Show which services have a stored credential (no network calls)."""
    configure_logging(verbose=verbose)
    settings = load_settings(settings_path)

    async def _probe() -> dict[str, tuple[bool, str]]:
        async with Database(settings.db_path) as db:
            store = SqliteCredentialStore(db)
            engine = CredentialHealthEngine.from_settings(settings, store)
            try:
                found = await engine.probe_existence(services)
            finally:
                await engine.aclose()
        return {
            name: (info.exists, info.updated_at.isoformat() if info.updated_at else "")
            for name, info in found.items()
        }

    rows = asyncio.run(_probe())

    table = Table(title="Stored Credentials")
    table.add_column("Service", style="bold")
    table.add_column("Status", width=16)
    table.add_column("Last Rotated")
    for name in services:
        if name not in rows:
            table.add_row(name, "[yellow]unknown[/yellow]", "")
            continue
        exists, updated = rows[name]
        status = IntegrationStatus.CONFIGURED if exists else IntegrationStatus.NOT_CONFIGURED
        table.add_row(name, _styled(status), updated)
    console.print(table)


# ---------------------------------------------------------------------------
# register command
# ---------------------------------------------------------------------------


@app.command()
def register(
    service: Annotated[str, typer.Argument(help="Service whose credential was stored/rotated")],
    settings_path: SettingsOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Record that a credential was stored or rotated (metadata only)."""
    configure_logging(verbose=verbose)
    settings = load_settings(settings_path)

    async def _register() -> None:
        async with Database(settings.db_path) as db:
            await SqliteCredentialStore(db).upsert_record(service)

    asyncio.run(_register())
    console.print(f"[green]Recorded credential metadata for {service}[/green]")


# ---------------------------------------------------------------------------
# summary command
# ---------------------------------------------------------------------------


@app.command()
def summary(
    settings_path: SettingsOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Print the security health score and credentials needing attention."""
    configure_logging(verbose=verbose)
    settings = load_settings(settings_path)
    health_summary, attention = asyncio.run(_summary_async(settings))

    console.print(f"\n[bold]Security score:[/bold] {health_summary.score}/100")
    counts = Table(show_header=True)
    for column in ("Total", "Fresh", "Aging", "Stale", "Errors"):
        counts.add_column(column, justify="right")
    counts.add_row(
        str(health_summary.total_keys),
        str(health_summary.fresh_keys),
        str(health_summary.aging_keys),
        str(health_summary.stale_keys),
        str(health_summary.error_keys),
    )
    console.print(counts)

    if not attention:
        console.print("[green]All keys are current[/green]")
        return

    table = Table(title="Needs Attention")
    table.add_column("Service", style="bold")
    table.add_column("Age")
    table.add_column("Problem")
    for entry in attention:
        age = "age unknown" if entry.age_days is None else f"{entry.age_days} days"
        if entry.is_error:
            problem = f"error: {entry.message}" if entry.message else "error"
        else:
            problem = str(entry.age_status)
        table.add_row(entry.service, age, problem)
    console.print(table)


async def _summary_async(
    settings: EngineSettings,
) -> tuple[SecurityHealthSummary, list[AttentionEntry]]:
    async with Database(settings.db_path) as db:
        store = SqliteCredentialStore(db)
        engine = CredentialHealthEngine.from_settings(settings, store)
        try:
            records = await store.fetch_all_records()
        finally:
            await engine.aclose()
    return engine.summarize_health(records), engine.attention_list(records)
