"""Task documents under .logosyncx/tasks/<status>/.

A task's directory always equals its ``status`` field. Every mutation that
can move a task goes through ``_relocate``, which writes the new file
before removing the old one, then forces a full task-index rebuild.
"""

from __future__ import annotations

import logging
from pathlib import Path

from logosyncx.core.errors import (
    Ambiguous,
    ConfigError,
    MalformedDocument,
    NotFound,
    StoreError,
    UnknownField,
)
from logosyncx.core.filters import TaskFilter
from logosyncx.core.hooks import VcsHook, notify_stage, notify_unstage
from logosyncx.core.index import JsonlIndex
from logosyncx.core.resolve import document_names, resolve_one
from logosyncx.core.schema import (
    LoadResult,
    Task,
    TaskEntry,
    TaskPriority,
    TaskStatus,
    _now,
    new_task_id,
)
from logosyncx.core.sections import extract_excerpt
from logosyncx.utils.config import Settings, default_settings
from logosyncx.utils.paths import list_markdown, sessions_dir, task_index_path, tasks_dir

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("status", "priority", "assignee", "session")


def _parse_status(value: str) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in TaskStatus)
        raise StoreError(f"invalid status {value!r} (valid: {valid})") from None


def _parse_priority(value: str) -> TaskPriority:
    try:
        return TaskPriority(value)
    except ValueError:
        valid = ", ".join(p.value for p in TaskPriority)
        raise StoreError(f"invalid priority {value!r} (valid: {valid})") from None


def set_status(task: Task, status: TaskStatus) -> None:
    """Change status, stamping completed_at on entry into done/cancelled and clearing it on exit."""
    if status.terminal:
        if not (task.status is not None and task.status.terminal and task.completed_at):
            task.completed_at = _now()
    else:
        task.completed_at = None
    task.status = status


class TaskStore:
    """Reads, writes and moves task markdown files and keeps the task index."""

    def __init__(
        self,
        project_root: Path,
        settings: Settings | None = None,
        hook: VcsHook | None = None,
    ) -> None:
        self.root = project_root
        self.settings = settings or default_settings(project_root.name)
        self.hook = hook
        self.dir = tasks_dir(project_root)
        self.index: JsonlIndex[TaskEntry] = JsonlIndex(task_index_path(project_root), TaskEntry)

    @property
    def excerpt_section(self) -> str:
        return self.settings.tasks.excerpt_section

    def status_dir(self, status: TaskStatus) -> Path:
        return self.dir / status.value

    def path_of(self, task: Task) -> Path:
        return self.status_dir(task.status or TaskStatus.open) / task.filename

    def _scan(self) -> list[Path]:
        paths: list[Path] = []
        for status in TaskStatus:
            paths.extend(list_markdown(self.status_dir(status)))
        return paths

    # -- Writing --

    def save(self, task: Task, body: str | None = None) -> Path:
        """Write a new task into the directory for its status.

        Unset id, date, status and priority are filled from settings.
        """
        if not task.id:
            task.id = new_task_id()
        if task.date is None:
            task.date = _now()
        if task.status is None:
            try:
                task.status = TaskStatus(self.settings.tasks.default_status)
            except ValueError:
                raise ConfigError(
                    f"invalid tasks.default_status {self.settings.tasks.default_status!r}"
                ) from None
        if task.priority is None:
            try:
                task.priority = TaskPriority(self.settings.tasks.default_priority)
            except ValueError:
                raise ConfigError(
                    f"invalid tasks.default_priority {self.settings.tasks.default_priority!r}"
                ) from None
        if task.status.terminal and task.completed_at is None:
            task.completed_at = _now()
        if body is not None:
            task.body = body

        task.filename = task.canonical_filename()
        path = self.path_of(task)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(task.to_document(), encoding="utf-8")

        task.excerpt = extract_excerpt(task.body, self.excerpt_section)
        try:
            self.index.append(task.to_entry())
        except OSError as e:
            logger.warning("task index update failed (%s) -- run `logos sync` to rebuild", e)
        notify_stage(self.hook, path)
        return path

    def _relocate(self, task: Task, old_path: Path) -> Path:
        new_path = self.path_of(task)
        new_path.parent.mkdir(parents=True, exist_ok=True)
        new_path.write_text(task.to_document(), encoding="utf-8")
        if new_path != old_path:
            old_path.unlink(missing_ok=True)
            notify_unstage(self.hook, old_path)
        notify_stage(self.hook, new_path)
        self._refresh_index()
        return new_path

    def update_fields(self, partial: str, fields: dict[str, str]) -> Task:
        """Apply field updates to the task matching partial.

        Only status, priority, assignee and session can be updated. A
        status change moves the file into the new status directory.
        """
        task = self.get(partial)
        old_path = self.path_of(task)

        for key, value in fields.items():
            if key == "status":
                set_status(task, _parse_status(value))
            elif key == "priority":
                task.priority = _parse_priority(value)
            elif key == "assignee":
                task.assignee = value
            elif key == "session":
                task.session = value
                if value and task.sessions and value not in task.sessions:
                    task.sessions.append(value)
            else:
                raise UnknownField(
                    f"unknown field {key!r} (updatable: {', '.join(UPDATABLE_FIELDS)})"
                )

        self._relocate(task, old_path)
        return task

    def append_session(self, partial: str, session_filename: str) -> Task:
        """Link another session to the task without touching its other fields."""
        task = self.get(partial)
        linked = task.linked_sessions()
        if session_filename not in linked:
            task.sessions = [*linked, session_filename]
        if not task.session:
            task.session = session_filename
        self._relocate(task, self.path_of(task))
        return task

    def delete(self, partial: str) -> Path:
        task = self.get(partial)
        path = self.path_of(task)
        path.unlink()
        notify_unstage(self.hook, path)
        self._refresh_index()
        return path

    def purge(self, status: TaskStatus) -> int:
        """Delete every task in one status directory. Returns how many were removed."""
        removed = 0
        for path in list_markdown(self.status_dir(status)):
            try:
                path.unlink()
            except OSError as e:
                logger.warning("could not delete %s: %s", path.name, e)
                continue
            notify_unstage(self.hook, path)
            removed += 1
        if removed:
            self._refresh_index()
        return removed

    # -- Reading --

    def load_file(self, path: Path) -> Task:
        task = Task.from_document(path.name, path.read_text(encoding="utf-8"), self.excerpt_section)
        # The directory is authoritative for status
        if path.parent.parent == self.dir and path.parent.name in TaskStatus.__members__:
            task.status = TaskStatus(path.parent.name)
        return task

    def load_all(self) -> LoadResult:
        result = LoadResult()
        for path in self._scan():
            try:
                result.items.append(self.load_file(path))
            except (MalformedDocument, OSError, UnicodeDecodeError) as e:
                result.errors.append(f"{path.parent.name}/{path.name}: {e}")
        return result

    def list(self, task_filter: TaskFilter | None = None) -> LoadResult:
        """Tasks matching task_filter, newest first."""
        loaded = self.load_all()
        loaded.items = (task_filter or TaskFilter()).apply(loaded.items)
        return loaded

    def get(self, partial: str) -> Task:
        """The single task whose filename contains partial, from any status directory."""
        needle = partial.lower()
        matches = [p for p in self._scan() if needle in p.name.lower()]
        if not matches:
            raise NotFound(partial, "tasks/")
        if len(matches) > 1:
            raise Ambiguous(partial, [f"{p.parent.name}/{p.name}" for p in matches])
        return self.load_file(matches[0])

    def resolve(self, query: str) -> Task:
        """Resolve by filename, title or id with exact matches taking precedence."""
        return resolve_one(
            query,
            self.load_all().items,
            document_names,
            lambda t: f"{t.status.value if t.status else '?'}/{t.filename}",
            where="tasks/",
        )

    def resolve_session(self, partial: str) -> str:
        """Filename of the single active session containing partial."""
        needle = partial.lower()
        matches = [p.name for p in list_markdown(sessions_dir(self.root)) if needle in p.name.lower()]
        if not matches:
            raise NotFound(partial, "sessions/")
        if len(matches) > 1:
            raise Ambiguous(partial, matches)
        return matches[0]

    # -- Index --

    def rebuild_index(self) -> LoadResult:
        result = self.index.rebuild(self.load_all)
        if result.errors:
            logger.warning(result.warning("task"))
        return result

    def _refresh_index(self) -> None:
        try:
            self.rebuild_index()
        except OSError as e:
            logger.warning("task index rebuild failed (%s) -- run `logos sync`", e)

    def read_index(self) -> list[TaskEntry]:
        if not self.index.exists():
            return self.rebuild_index().items
        return self.index.read_all()
