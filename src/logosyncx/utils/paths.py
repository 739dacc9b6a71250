"""Path utilities for the .logosyncx/ store."""

from __future__ import annotations

from pathlib import Path

from logosyncx.core.errors import NotInitialized

STORE_DIR = ".logosyncx"
SESSIONS_DIR = "sessions"
ARCHIVE_DIR = "archive"
TASKS_DIR = "tasks"
SESSION_INDEX = "index.jsonl"
TASK_INDEX = "task-index.jsonl"
CONFIG_FILE = "config.json"


def find_project_root(start: Path | None = None) -> Path:
    """Walk up from start to find a directory containing .logosyncx/."""
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        if (parent / STORE_DIR).is_dir():
            return parent
    raise NotInitialized()


def store_path(project_root: Path) -> Path:
    return project_root / STORE_DIR


def sessions_dir(project_root: Path) -> Path:
    return store_path(project_root) / SESSIONS_DIR


def archive_dir(project_root: Path) -> Path:
    return sessions_dir(project_root) / ARCHIVE_DIR


def tasks_dir(project_root: Path) -> Path:
    return store_path(project_root) / TASKS_DIR


def session_index_path(project_root: Path) -> Path:
    return store_path(project_root) / SESSION_INDEX


def task_index_path(project_root: Path) -> Path:
    return store_path(project_root) / TASK_INDEX


def config_path(project_root: Path) -> Path:
    return store_path(project_root) / CONFIG_FILE


def list_markdown(directory: Path) -> list[Path]:
    """Sorted ``*.md`` files directly inside directory; missing dir yields []."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.glob("*.md") if p.is_file())
