"""Rewarder CLI - operator access to epoch rewarding reports.

The epoch run itself is driven by the service embedding EpochScheduler; this
CLI is the read path used for manual review and reconciliation of
possibly-unrewarded participants.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

import typer
from pydantic import ValidationError
from sqlalchemy.engine.url import make_url

from rewarder import __version__
from rewarder.contracts import ParticipantKind, ReportNotFoundError, RewardingReport
from rewarder.core.config import load_settings
from rewarder.core.logging import configure_from_settings
from rewarder.core.store import ReportDB, ReportStore

__all__ = ["app"]

DEFAULT_DATABASE_URL = "sqlite:///./rewarder.db"

app = typer.Typer(
    name="rewarder",
    help="Rewarder: epoch rewarding reports and reconciliation.",
    no_args_is_help=True,
)

reports_app = typer.Typer(help="Inspect stored rewarding reports.", no_args_is_help=True)
app.add_typer(reports_app, name="reports")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"rewarder version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)  # Don't override existing env vars


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """Rewarder: epoch rewarding reports and reconciliation."""
    from rewarder.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )


def _resolve_database_url(database: str | None, settings: str | None) -> str:
    """Pick the store URL: --database wins, then --settings, then the default."""
    if database is not None:
        return database
    if settings is None:
        return DEFAULT_DATABASE_URL

    try:
        config = load_settings(Path(settings).expanduser())
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    # An explicit settings file carries its own logging section
    configure_from_settings(config.logging)
    return config.database.url


def _open_store(database: str | None, settings: str | None) -> ReportStore:
    url = _resolve_database_url(database, settings)

    # Reading must not conjure an empty SQLite file out of a typo'd path
    parsed = make_url(url)
    if parsed.drivername.startswith("sqlite") and parsed.database not in (None, "", ":memory:"):
        if not Path(parsed.database).exists():
            typer.echo(f"Error: Database not found: {parsed.database}", err=True)
            raise typer.Exit(1)

    return ReportStore(ReportDB.from_url(url, create_tables=False))


def _report_dict(report: RewardingReport) -> dict[str, object]:
    return {
        "id": report.report_id,
        "timestamp": report.timestamp.isoformat(),
        "eligible_mixnodes": report.eligible_mixnode_count,
        "eligible_gateways": report.eligible_gateway_count,
        "possibly_unrewarded_mixnodes": report.possibly_unrewarded_mixnode_count,
        "possibly_unrewarded_gateways": report.possibly_unrewarded_gateway_count,
    }


_DATABASE_OPTION = typer.Option(None, "--database", "-d", help="SQLAlchemy URL of the report store.")
_SETTINGS_OPTION = typer.Option(None, "--settings", "-s", help="Settings YAML to read the store URL from.")
_FORMAT_OPTION = typer.Option(
    "console",
    "--format",
    "-f",
    help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
)


@reports_app.command("list")
def reports_list(
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Maximum reports to show, newest first."),
    database: str | None = _DATABASE_OPTION,
    settings: str | None = _SETTINGS_OPTION,
    output_format: Literal["console", "json"] = _FORMAT_OPTION,
) -> None:
    """List recent rewarding reports."""
    store = _open_store(database, settings)
    reports = store.list_reports(limit=limit)

    if output_format == "json":
        typer.echo(json.dumps([_report_dict(r) for r in reports]))
        return

    if not reports:
        typer.echo("No rewarding reports recorded.")
        return
    for report in reports:
        flag = "" if report.possibly_unrewarded_mixnode_count + report.possibly_unrewarded_gateway_count == 0 else "  [needs reconciliation]"
        typer.echo(
            f"#{report.report_id}  {report.timestamp.isoformat()}  "
            f"mixnodes {report.possibly_unrewarded_mixnode_count}/{report.eligible_mixnode_count} unconfirmed  "
            f"gateways {report.possibly_unrewarded_gateway_count}/{report.eligible_gateway_count} unconfirmed{flag}"
        )


@reports_app.command("show")
def reports_show(
    report_id: int = typer.Argument(..., help="Report id."),
    database: str | None = _DATABASE_OPTION,
    settings: str | None = _SETTINGS_OPTION,
    output_format: Literal["console", "json"] = _FORMAT_OPTION,
) -> None:
    """Show one report with its failed chunks."""
    store = _open_store(database, settings)
    try:
        report = store.get_report(report_id)
    except ReportNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    chunks = {kind: store.get_failed_chunks(report_id, kind) for kind in ParticipantKind}

    if output_format == "json":
        payload = _report_dict(report)
        payload["failed_chunks"] = {
            kind.value: [{"id": c.chunk_id, "error_message": c.error_message} for c in kind_chunks]
            for kind, kind_chunks in chunks.items()
        }
        typer.echo(json.dumps(payload))
        return

    typer.echo(f"Report #{report.report_id} at {report.timestamp.isoformat()}")
    for kind in ParticipantKind:
        typer.echo(
            f"  {kind.value}s: {report.eligible_count(kind)} eligible, "
            f"{report.possibly_unrewarded_count(kind)} possibly unrewarded, "
            f"{len(chunks[kind])} failed chunk(s)"
        )
        for failed in chunks[kind]:
            typer.echo(f"    chunk {failed.chunk_id}: {failed.error_message}")


@reports_app.command("unrewarded")
def reports_unrewarded(
    report_id: int = typer.Argument(..., help="Report id."),
    kind: ParticipantKind = typer.Option(..., "--kind", "-k", help="Participant kind."),
    database: str | None = _DATABASE_OPTION,
    settings: str | None = _SETTINGS_OPTION,
    output_format: Literal["console", "json"] = _FORMAT_OPTION,
) -> None:
    """List possibly-unrewarded participants (identity, uptime) for reconciliation."""
    store = _open_store(database, settings)
    try:
        entries = store.list_possibly_unrewarded(report_id, kind)
    except ReportNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if output_format == "json":
        typer.echo(json.dumps([{"identity": identity, "uptime": uptime} for identity, uptime in entries]))
        return

    for identity, uptime in entries:
        typer.echo(f"{identity}\t{uptime}")
