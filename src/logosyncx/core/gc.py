"""Retention policy: decide which sessions to archive.

Two tiers of candidates:

* strong: every linked task is done or cancelled (or no longer exists) and
  the most recent completion is older than ``linked_task_done_days``.
* weak: the session has no linked tasks and is older than
  ``orphan_session_days``.

Any linked task that is still open or in progress protects the session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from logosyncx.core.errors import StoreError
from logosyncx.core.hooks import notify_stage, notify_unstage
from logosyncx.core.schema import LoadResult, Session
from logosyncx.core.sessions import SessionStore
from logosyncx.core.tasks import TaskStore

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    strong = "strong"
    weak = "weak"


@dataclass
class GcCandidate:
    session: Session
    tier: Tier
    age_days: int
    reason: str


@dataclass
class GcReport:
    archived: list[tuple[str, Path]] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)
    indexed: int = 0


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed, truncated toward zero."""
    return int((later - earlier).total_seconds() / 86400)


class RetentionPolicy:
    def __init__(
        self,
        sessions: SessionStore,
        tasks: TaskStore,
        linked_days: int | None = None,
        orphan_days: int | None = None,
        now: datetime | None = None,
    ) -> None:
        gc = sessions.settings.gc
        self.sessions = sessions
        self.tasks = tasks
        self.linked_days = gc.linked_task_done_days if linked_days is None else linked_days
        self.orphan_days = gc.orphan_session_days if orphan_days is None else orphan_days
        self.now = now or datetime.now(timezone.utc)

    def classify(self, session: Session) -> GcCandidate | None:
        """Return a candidate for session, or None when it should be kept."""
        if not session.tasks:
            if session.date is None:
                return None
            age = days_between(session.date, self.now)
            if age < self.orphan_days:
                return None
            return GcCandidate(session, Tier.weak, age, f"no linked tasks, {age} days old")

        latest: datetime | None = None
        for name in session.tasks:
            if not name:
                continue
            try:
                task = self.tasks.get(name)
            except (StoreError, OSError):
                # Missing or unreadable tasks count as finished
                continue
            if task.status is None or not task.status.terminal:
                return None
            if task.completed_at and (latest is None or task.completed_at > latest):
                latest = task.completed_at

        if latest is not None:
            age = days_between(latest, self.now)
            reason = f"all linked tasks done/cancelled, {age} days since last task completed"
        elif session.date is not None:
            age = days_between(session.date, self.now)
            reason = f"all linked tasks done/cancelled, {age} days old (no completed_at recorded)"
        else:
            return None
        if age < self.linked_days:
            return None
        return GcCandidate(session, Tier.strong, age, reason)

    def candidates(self) -> tuple[list[GcCandidate], LoadResult]:
        """All archivable sessions, strong tier first, plus the load diagnostics."""
        loaded = self.sessions.load_all()
        found = [c for c in (self.classify(s) for s in loaded.items) if c is not None]
        found.sort(key=lambda c: (c.tier != Tier.strong, -c.age_days, c.session.filename))
        return found, loaded

    def apply(self, candidates: list[GcCandidate]) -> GcReport:
        """Archive every candidate, continuing past individual failures.

        Raises StoreError only when candidates were given and none could be
        archived. The session index is rebuilt afterwards.
        """
        report = GcReport()
        hook = self.sessions.hook
        for candidate in candidates:
            filename = candidate.session.filename
            src = self.sessions.dir / filename
            try:
                dst = self.sessions.archive(filename)
            except (StoreError, OSError) as e:
                logger.warning("could not archive %s: %s", filename, e)
                report.failures.append(f"{filename}: {e}")
                continue
            notify_unstage(hook, src)
            notify_stage(hook, dst)
            report.archived.append((filename, dst))

        if candidates and not report.archived:
            raise StoreError("all archive operations failed:\n  " + "\n  ".join(report.failures))

        try:
            report.indexed = len(self.sessions.rebuild_index().items)
        except OSError as e:
            logger.warning("session index rebuild failed (%s) -- run `logos sync`", e)
        else:
            notify_stage(hook, self.sessions.index.path)
        return report
