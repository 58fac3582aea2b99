"""
Sack CLI entry point.

Commands:
    sack version            — Show version
    sack put ID k=v ...     — Insert (or --update) a record
    sack get ID             — Show one record
    sack find [k=v ...]     — List records matching a filter
    sack delete ID          — Remove a record
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="sack",
    help="Sack — observable storage for domain entries.",
    add_completion=False,
)

console = Console()

_db_override: Path | None = None
_verbose = False


@app.callback()
def main(
    db: Optional[Path] = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
) -> None:
    """Sack — observable storage for domain entries."""
    global _db_override, _verbose
    _db_override = db
    _verbose = verbose


@app.command()
def version() -> None:
    """Show the Sack version."""
    from sack import __version__

    console.print(f"sack {__version__}")


@app.command()
def put(
    id: str = typer.Argument(..., help="Entry id"),
    fields: Optional[list[str]] = typer.Argument(None, help="key=value pairs"),
    update: bool = typer.Option(False, "--update", "-u", help="Merge into the stored entry"),
) -> None:
    """Insert a record, or merge into an existing one with --update."""
    record = {**_parse_pairs(fields or []), "id": id}
    asyncio.run(_put(record, update))
    console.print(f"[green]Stored[/green] {id}")


@app.command()
def get(id: str = typer.Argument(..., help="Entry id")) -> None:
    """Show one record."""
    from sack.core.errors import EntryNotFoundError

    try:
        record = asyncio.run(_get(id))
    except EntryNotFoundError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    console.print_json(json.dumps(record))


@app.command()
def find(
    filters: Optional[list[str]] = typer.Argument(None, help="key=value filter pairs"),
) -> None:
    """List records matching every key=value pair."""
    records = asyncio.run(_find(_parse_pairs(filters or [])))
    if not records:
        console.print("[dim]No entries[/dim]")
        return

    keys = sorted({k for r in records for k in r if k != "id"})
    table = Table(title=f"{len(records)} entries")
    table.add_column("id", style="bold")
    for key in keys:
        table.add_column(key)
    for record in records:
        table.add_row(record["id"], *(_show(record.get(k, "")) for k in keys))
    console.print(table)


@app.command()
def delete(id: str = typer.Argument(..., help="Entry id")) -> None:
    """Remove a record."""
    asyncio.run(_delete(id))
    console.print(f"[yellow]Deleted[/yellow] {id}")


# ━━━ Internals ━━━


def _open():
    from sack.core.config import SackConfig
    from sack.middleware.logging import ChangeLogger, setup_logging
    from sack.sack import Sack
    from sack.store.factory import create_driver

    overrides = {"storage": {"path": str(_db_override)}} if _db_override else None
    config = SackConfig.load(overrides=overrides)

    console_level = logging.DEBUG if _verbose else _level(config.logging.level)
    setup_logging(log_dir=config.get_log_dir(), console_level=console_level)

    driver = create_driver(config)
    if config.logging.log_events:
        driver.use(ChangeLogger(log_dir=config.get_log_dir()).middleware)
    return Sack(driver)


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.WARNING


async def _put(record: dict[str, Any], update: bool) -> None:
    from sack.sack import StoreMode

    sack = _open()
    try:
        await sack.store(record, mode=StoreMode.UPDATE if update else StoreMode.REPLACE)
    finally:
        await sack.close()


async def _get(id: str) -> dict[str, Any]:
    sack = _open()
    try:
        return await sack.fetch(id)
    finally:
        await sack.close()


async def _find(filter: dict[str, Any]) -> list[dict[str, Any]]:
    sack = _open()
    try:
        return await sack.find(filter or None)
    finally:
        await sack.close()


async def _delete(id: str) -> None:
    sack = _open()
    try:
        await sack.delete(id)
    finally:
        await sack.close()


def _parse_pairs(pairs: list[str]) -> dict[str, Any]:
    """Parse key=value pairs. Values are JSON when they parse, strings otherwise."""
    result: dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'")
        key, raw = pair.split("=", 1)
        try:
            result[key] = json.loads(raw)
        except json.JSONDecodeError:
            result[key] = raw
    return result


def _show(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


if __name__ == "__main__":
    app()
