"""Session documents under .logosyncx/sessions/."""

from __future__ import annotations

import logging
from pathlib import Path

from logosyncx.core.errors import MalformedDocument, NotFound
from logosyncx.core.hooks import VcsHook, notify_stage, notify_unstage
from logosyncx.core.index import JsonlIndex
from logosyncx.core.resolve import document_names, resolve_one
from logosyncx.core.schema import LoadResult, Session, SessionEntry, _now, new_session_id
from logosyncx.core.sections import extract_excerpt
from logosyncx.utils.config import Settings, default_settings
from logosyncx.utils.paths import archive_dir, list_markdown, session_index_path, sessions_dir

logger = logging.getLogger(__name__)


class SessionStore:
    """Reads and writes session markdown files and keeps the session index."""

    def __init__(
        self,
        project_root: Path,
        settings: Settings | None = None,
        hook: VcsHook | None = None,
    ) -> None:
        self.root = project_root
        self.settings = settings or default_settings(project_root.name)
        self.hook = hook
        self.dir = sessions_dir(project_root)
        self.archive_dir = archive_dir(project_root)
        self.index: JsonlIndex[SessionEntry] = JsonlIndex(
            session_index_path(project_root), SessionEntry
        )

    @property
    def excerpt_section(self) -> str:
        return self.settings.sessions.excerpt_section

    # -- Writing --

    def save(self, session: Session, body: str | None = None) -> Path:
        """Write session under its canonical filename, filling id and date if unset.

        A session with the same date and topic is overwritten. The index
        append and git staging afterwards are best-effort.
        """
        if not session.id:
            session.id = new_session_id()
        if session.date is None:
            session.date = _now()
        if body is not None:
            session.body = body

        self.dir.mkdir(parents=True, exist_ok=True)
        path = self.dir / session.canonical_filename()
        path.write_text(session.to_document(), encoding="utf-8")

        session.filename = path.name
        session.excerpt = extract_excerpt(session.body, self.excerpt_section)
        try:
            self.index.append(session.to_entry())
        except OSError as e:
            logger.warning("index update failed (%s) -- run `logos sync` to rebuild", e)
        notify_stage(self.hook, path)
        return path

    def link_task(self, filename: str, task_filename: str) -> bool:
        """Record task_filename in the session's ``tasks`` list. Returns False if already linked."""
        path = self.dir / filename
        session = self.load_file(path)
        if task_filename in session.tasks:
            return False
        session.tasks.append(task_filename)
        path.write_text(session.to_document(), encoding="utf-8")
        notify_stage(self.hook, path)
        self._refresh_index()
        return True

    # -- Reading --

    def load_file(self, path: Path) -> Session:
        return Session.from_document(
            path.name, path.read_text(encoding="utf-8"), self.excerpt_section
        )

    def _load_dir(self, directory: Path) -> LoadResult:
        result = LoadResult()
        for path in list_markdown(directory):
            try:
                result.items.append(self.load_file(path))
            except (MalformedDocument, OSError, UnicodeDecodeError) as e:
                result.errors.append(f"{path.name}: {e}")
        return result

    def load_all(self) -> LoadResult:
        """Every active session; archived sessions are not included."""
        return self._load_dir(self.dir)

    def load_archived(self) -> LoadResult:
        return self._load_dir(self.archive_dir)

    def get(self, query: str) -> Session:
        return resolve_one(
            query,
            self.load_all().items,
            document_names,
            lambda s: s.filename,
            where="sessions/",
        )

    # -- Lifecycle --

    def archive(self, filename: str) -> Path:
        """Move an active session into sessions/archive/ and return its new path."""
        src = self.dir / filename
        if not src.is_file():
            raise NotFound(filename, "sessions/")
        self.archive_dir.mkdir(parents=True, exist_ok=True)
        dst = self.archive_dir / filename
        src.replace(dst)
        logger.debug("archived %s", filename)
        return dst

    def delete(self, query: str) -> Path:
        session = self.get(query)
        path = self.dir / session.filename
        path.unlink()
        notify_unstage(self.hook, path)
        self._refresh_index()
        return path

    def purge_archived(self) -> int:
        """Permanently delete every archived session. Returns how many were removed."""
        removed = 0
        for path in list_markdown(self.archive_dir):
            try:
                path.unlink()
            except OSError as e:
                logger.warning("could not delete %s: %s", path.name, e)
                continue
            notify_unstage(self.hook, path)
            removed += 1
        return removed

    # -- Index --

    def rebuild_index(self) -> LoadResult:
        result = self.index.rebuild(self.load_all)
        if result.errors:
            logger.warning(result.warning("session"))
        return result

    def _refresh_index(self) -> None:
        try:
            self.rebuild_index()
        except OSError as e:
            logger.warning("session index rebuild failed (%s) -- run `logos sync`", e)

    def read_index(self) -> list[SessionEntry]:
        """Index entries, rebuilding the index first if it was never built."""
        if not self.index.exists():
            return self.rebuild_index().items
        return self.index.read_all()
