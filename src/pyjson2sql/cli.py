from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional

import typer

import pyjson2sql
from pyjson2sql._errors import CommitError, ConfigurationError, Json2SqlError
from pyjson2sql.discovery import DiscoveryComplete, DiscoveryEvent
from pyjson2sql.loader import ImportConfig
from pyjson2sql.progress import ProgressRecord
from pyjson2sql.updater import UpdateConfig

app = typer.Typer(help="pyjson2sql: load and reconcile JSON documents into SQLite tables")

logger = logging.getLogger(__name__)


@app.callback()
def main(
    log_level: str = typer.Option(
        "WARNING", "--log-level", envvar="PYJSON2SQL_LOG_LEVEL", help="Logging level"
    ),
):
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---- config file helpers ----

def _read_json_file(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"{what} file could not be loaded",
            f"{what} file {str(path)!r}: {e}",
            wrapped=e,
        ) from e


def load_mapping(path: Path) -> Dict[str, str]:
    """Read a ``{"json.path": "column"}`` mapping file."""
    data = _read_json_file(path, "mapping")
    if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
        raise ConfigurationError(
            "mapping file must be an object of path -> column name",
            f"mapping file {str(path)!r} holds {type(data).__name__}",
        )
    return data


def load_overrides(path: Optional[Path]) -> Dict[str, Dict[str, Any]]:
    """Read a ``{"defaults": ..., "forced": ..., "dynamic": ...}`` file."""
    if path is None:
        return {"defaults": {}, "forced": {}, "dynamic": {}}
    data = _read_json_file(path, "overrides")
    if not isinstance(data, dict):
        raise ConfigurationError(
            "overrides file must be an object",
            f"overrides file {str(path)!r} holds {type(data).__name__}",
        )
    out: Dict[str, Dict[str, Any]] = {}
    for section in ("defaults", "forced", "dynamic"):
        value = data.get(section) or {}
        if not isinstance(value, dict):
            raise ConfigurationError(
                f"overrides section {section!r} must be an object",
                f"overrides file {str(path)!r} section {section!r} holds {type(value).__name__}",
            )
        out[section] = value
    unknown = sorted(set(data) - {"defaults", "forced", "dynamic"})
    if unknown:
        logger.warning("ignoring unknown overrides sections: %s", ", ".join(unknown))
    return out


def _print_progress(record: ProgressRecord) -> None:
    typer.echo(
        f"[{record.phase}] {record.processed}/{record.total} "
        f"ok={record.succeeded} failed={record.failed} {record.status}",
        err=True,
    )


def _fail(e: Json2SqlError) -> NoReturn:
    logger.debug("command failed: %s", e.internal())
    typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


# ---- commands ----

@app.command("tables")
def tables(db: Path = typer.Argument(..., help="SQLite database file")):
    """List the tables of a database."""
    try:
        for name in pyjson2sql.list_tables(db):
            typer.echo(name)
    except Json2SqlError as e:
        _fail(e)


@app.command("describe")
def describe(
    db: Path = typer.Argument(..., help="SQLite database file"),
    table: str = typer.Argument(..., help="Table name"),
):
    """Show columns and unique constraints of a table as JSON."""
    try:
        info = pyjson2sql.describe_table(db, table)
    except Json2SqlError as e:
        _fail(e)
    typer.echo(json.dumps(info.as_dict(), indent=2))


@app.command("discover")
def discover(
    json_path: Path = typer.Argument(..., help="JSON document"),
    stream: bool = typer.Option(False, "--stream", help="Print paths as they are discovered"),
):
    """List the distinct paths of a JSON document with type and sample."""
    try:
        if not stream:
            for info in pyjson2sql.discover_paths(json_path):
                typer.echo(json.dumps(info.as_dict(), ensure_ascii=False))
            return

        def sink(event: DiscoveryEvent) -> None:
            if isinstance(event, DiscoveryComplete):
                typer.secho(f"Discovery complete: {event.count} path(s)", fg=typer.colors.GREEN, err=True)
            else:
                typer.echo(json.dumps(event.info.as_dict(), ensure_ascii=False))

        pyjson2sql.stream_discovery(json_path, sink).join()
    except Json2SqlError as e:
        _fail(e)


@app.command("sample")
def sample(
    json_path: Path = typer.Argument(..., help="JSON document"),
    root: str = typer.Option("", "--root", "-r", help="Root path expression, e.g. data.users[]"),
    limit: Optional[int] = typer.Option(5, "--limit", "-n", help="Max records (0 = no limit)"),
):
    """Print the records found at a root path."""
    try:
        records = pyjson2sql.sample_records(json_path, root, limit)
    except Json2SqlError as e:
        _fail(e)
    typer.echo(json.dumps(records, indent=2, ensure_ascii=False))


@app.command("import")
def import_cmd(
    json_path: Path = typer.Argument(..., help="JSON document"),
    db: Path = typer.Argument(..., help="SQLite database file"),
    table: str = typer.Option(..., "--table", "-t", help="Target table"),
    mapping: Path = typer.Option(..., "--mapping", "-m", help="Mapping file: {json.path: column}"),
    root: str = typer.Option("", "--root", "-r", help="Root path expression"),
    overrides: Optional[Path] = typer.Option(
        None, "--overrides", "-o", help="Overrides file: {defaults, forced, dynamic}"
    ),
    limit: Optional[int] = typer.Option(None, "--limit", help="Max records (0 = no limit)"),
    offset: Optional[int] = typer.Option(None, "--offset", help="Records to skip"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report what would be inserted"),
):
    """Insert the records of a JSON document into a table."""
    try:
        ov = load_overrides(overrides)
        config = ImportConfig(
            json_path=str(json_path),
            db_path=str(db),
            root_expression=root,
            table=table,
            mapping=load_mapping(mapping),
            defaults=ov["defaults"],
            forced=ov["forced"],
            dynamic_templates=ov["dynamic"],
            limit=limit,
            offset=offset,
            dry_run=dry_run,
        )
        result = pyjson2sql.import_records(config, _print_progress)
    except CommitError as e:
        typer.secho("Commit failed: no changes were applied.", fg=typer.colors.RED, err=True)
        _fail(e)
    except Json2SqlError as e:
        _fail(e)
    typer.secho(
        f"Done. {result.succeeded} inserted, {result.failed} failed of {result.total}",
        fg=typer.colors.GREEN,
    )


@app.command("update")
def update_cmd(
    json_path: Path = typer.Argument(..., help="JSON document"),
    db: Path = typer.Argument(..., help="SQLite database file"),
    table: str = typer.Option(..., "--table", "-t", help="Target table"),
    mapping: Path = typer.Option(..., "--mapping", "-m", help="Mapping file: {json.path: column}"),
    key: str = typer.Option(..., "--key", "-k", help="Key column matched against mapped values"),
    column: List[str] = typer.Option(..., "--column", "-c", help="Column to update (repeatable)"),
    root: str = typer.Option("", "--root", "-r", help="Root path expression"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report what would be updated"),
):
    """Update existing rows of a table from a JSON document."""
    try:
        config = UpdateConfig(
            json_path=str(json_path),
            db_path=str(db),
            root_expression=root,
            table=table,
            key_column=key,
            update_columns=list(column),
            mapping=load_mapping(mapping),
            dry_run=dry_run,
        )
        result = pyjson2sql.update_records(config, _print_progress)
    except CommitError as e:
        typer.secho("Commit failed: no changes were applied.", fg=typer.colors.RED, err=True)
        _fail(e)
    except Json2SqlError as e:
        _fail(e)
    typer.secho(
        f"Done. {result.succeeded} updated, {result.failed} failed "
        f"({result.not_found} not found) of {result.total}",
        fg=typer.colors.GREEN,
    )
