"""Shared fixtures: temp projects, stores, temp git repos."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import git
import pytest

from logosyncx.core.schema import Session, Task, TaskStatus
from logosyncx.core.sessions import SessionStore
from logosyncx.core.tasks import TaskStore
from logosyncx.utils.config import Settings, default_settings, save_settings
from logosyncx.utils.paths import archive_dir, sessions_dir, tasks_dir

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """A directory with an initialized .logosyncx/ layout."""
    sessions_dir(tmp_path).mkdir(parents=True)
    archive_dir(tmp_path).mkdir()
    for status in TaskStatus:
        (tasks_dir(tmp_path) / status.value).mkdir(parents=True)
    save_settings(tmp_path, default_settings("test-project"))
    return tmp_path


@pytest.fixture
def settings() -> Settings:
    return default_settings("test-project")


@pytest.fixture
def session_store(project_root: Path, settings: Settings) -> SessionStore:
    return SessionStore(project_root, settings)


@pytest.fixture
def task_store(project_root: Path, settings: Settings) -> TaskStore:
    return TaskStore(project_root, settings)


@pytest.fixture
def make_session(session_store: SessionStore):
    """Save a session with a fixed date; returns the reloaded Session."""

    def _make(topic: str, date: datetime | None = None, tasks: list[str] | None = None, body: str = "") -> Session:
        session = Session(topic=topic, date=date or NOW, tasks=tasks or [])
        path = session_store.save(session, body or f"## Summary\n\n{topic} summary\n")
        return session_store.load_file(path)

    return _make


@pytest.fixture
def make_task(task_store: TaskStore):
    """Save a task with a fixed date; returns the reloaded Task."""

    def _make(
        title: str,
        status: TaskStatus = TaskStatus.open,
        date: datetime | None = None,
        completed_at: datetime | None = None,
        body: str = "",
    ) -> Task:
        task = Task(title=title, status=status, date=date or NOW, completed_at=completed_at)
        path = task_store.save(task, body or f"## What\n\n{title}\n")
        return task_store.load_file(path)

    return _make


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository."""
    repo = git.Repo.init(tmp_path)
    with repo.config_writer() as cw:
        cw.set_value("user", "name", "Test")
        cw.set_value("user", "email", "test@example.com")
    # Need at least one commit for HEAD to be valid
    readme = tmp_path / "README.md"
    readme.write_text("# Test\n")
    repo.index.add(["README.md"])
    repo.index.commit("initial")
    return tmp_path


class RecordingHook:
    """Stands in for git: records staged and unstaged paths."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.staged: list[Path] = []
        self.unstaged: list[Path] = []

    def stage(self, path: Path) -> None:
        if self.fail:
            raise RuntimeError("git add failed")
        self.staged.append(path)

    def unstage(self, path: Path) -> None:
        if self.fail:
            raise RuntimeError("git rm failed")
        self.unstaged.append(path)


@pytest.fixture
def hook() -> RecordingHook:
    return RecordingHook()


@pytest.fixture
def failing_hook() -> RecordingHook:
    return RecordingHook(fail=True)
