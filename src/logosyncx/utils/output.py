"""Output formatting utilities: text vs JSON, rich tables."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()
error_console = Console(stderr=True)


def output(data: Any, fmt: str | None = None) -> None:
    """Print data as JSON (``fmt="json"``) or as plain text."""
    if fmt == "json":
        if hasattr(data, "model_dump_json"):
            print(data.model_dump_json(indent=2))
        elif isinstance(data, list) and data and hasattr(data[0], "model_dump"):
            print(json.dumps([d.model_dump(mode="json") for d in data], indent=2))
        else:
            print(json.dumps(data, indent=2, default=str))
    else:
        # Document text goes out verbatim, no rich markup processing
        text = data if isinstance(data, str) else str(data)
        print(text, end="" if text.endswith("\n") else "\n")


def output_table(rows: list[dict[str, str]], columns: list[str]) -> None:
    table = Table()
    for col in columns:
        table.add_column(col.title())
    for row in rows:
        table.add_row(*[str(row.get(col, "")) for col in columns])
    console.print(table)


def error(msg: str) -> None:
    error_console.print(f"[red]Error:[/red] {escape(msg)}", highlight=False)


def warn(msg: str) -> None:
    error_console.print(f"[yellow]warning:[/yellow] {escape(msg)}", highlight=False)


def success(msg: str) -> None:
    console.print(f"[green]{escape(msg)}[/green]", highlight=False)


def info(msg: str) -> None:
    console.print(f"[dim]{escape(msg)}[/dim]", highlight=False)
