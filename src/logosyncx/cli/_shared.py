"""Shared CLI utilities to avoid circular imports."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from logosyncx.core.errors import Ambiguous, StoreError
from logosyncx.core.sessions import SessionStore
from logosyncx.core.tasks import TaskStore
from logosyncx.sync.git_sync import hook_for
from logosyncx.utils.config import Settings, load_settings
from logosyncx.utils.output import error, error_console
from logosyncx.utils.paths import find_project_root

FORMAT_OPTION = typer.Option(None, "--format", "-F", help="Output format: json or text")


def fail(e: StoreError) -> NoReturn:
    """Report a store error and exit 1; ambiguity lists the numbered candidates."""
    if isinstance(e, Ambiguous):
        error(f"{e.query!r} is ambiguous, be more specific:")
        for i, candidate in enumerate(e.candidates, 1):
            error_console.print(f"  {i}. {candidate}", highlight=False, markup=False)
    else:
        error(str(e))
    raise typer.Exit(1)


def get_root() -> Path:
    try:
        return find_project_root()
    except StoreError as e:
        fail(e)


def get_settings(root: Path) -> Settings:
    try:
        return load_settings(root)
    except StoreError as e:
        fail(e)


def get_stores() -> tuple[SessionStore, TaskStore]:
    """Resolve the project root and return its session and task stores."""
    root = get_root()
    settings = get_settings(root)
    hook = hook_for(root, settings)
    return SessionStore(root, settings, hook), TaskStore(root, settings, hook)


def split_csv(values: list[str] | None) -> list[str]:
    """Flatten repeatable options that may also carry comma-separated values."""
    items: list[str] = []
    for value in values or []:
        items.extend(v.strip() for v in value.split(",") if v.strip())
    return items
