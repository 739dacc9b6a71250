"""Tests for the retention policy."""

from datetime import datetime, timedelta, timezone

import pytest

from logosyncx.core.errors import StoreError
from logosyncx.core.gc import GcCandidate, RetentionPolicy, Tier, days_between
from logosyncx.core.schema import Session, TaskStatus
from logosyncx.core.sessions import SessionStore

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def ago(days: int) -> datetime:
    return NOW - timedelta(days=days)


def policy(sessions, tasks, linked=30, orphan=90) -> RetentionPolicy:
    return RetentionPolicy(sessions, tasks, linked, orphan, now=NOW)


class TestDaysBetween:
    def test_truncates(self):
        assert days_between(ago(40), NOW) == 40
        assert days_between(NOW - timedelta(days=2, hours=23), NOW) == 2


class TestOrphans:
    def test_weak_candidate_past_threshold(self, session_store, task_store, make_session):
        session = make_session("old", date=ago(40))
        candidate = policy(session_store, task_store, orphan=30).classify(session)
        assert candidate.tier == Tier.weak
        assert candidate.age_days == 40
        assert "40 days old" in candidate.reason

    def test_retained_below_threshold(self, session_store, task_store, make_session):
        session = make_session("old", date=ago(40))
        assert policy(session_store, task_store, orphan=90).classify(session) is None

    def test_undated_session_skipped(self, session_store, task_store):
        assert policy(session_store, task_store, orphan=0).classify(Session(topic="x")) is None


class TestLinked:
    def test_open_task_protects_session(self, session_store, task_store, make_session, make_task):
        names = [make_task("open-one", TaskStatus.open).filename]
        for i in range(9):
            names.append(make_task(f"done-{i}", TaskStatus.done, completed_at=ago(400)).filename)
        session = make_session("busy", date=ago(500), tasks=names)
        assert policy(session_store, task_store, linked=0, orphan=0).classify(session) is None

    def test_in_progress_task_protects_session(self, session_store, task_store, make_session, make_task):
        name = make_task("wip", TaskStatus.in_progress).filename
        session = make_session("s", date=ago(500), tasks=[name])
        assert policy(session_store, task_store, linked=0).classify(session) is None

    def test_strong_uses_latest_completion(self, session_store, task_store, make_session, make_task):
        names = [
            make_task("a", TaskStatus.done, completed_at=ago(60)).filename,
            make_task("b", TaskStatus.cancelled, completed_at=ago(10)).filename,
        ]
        session = make_session("s", date=ago(100), tasks=names)
        assert policy(session_store, task_store, linked=30).classify(session) is None

        candidate = policy(session_store, task_store, linked=5).classify(session)
        assert candidate.tier == Tier.strong
        assert candidate.age_days == 10
        assert "10 days since last task completed" in candidate.reason

    def test_dangling_reference_is_terminal(self, session_store, task_store, make_session):
        session = make_session("s", date=ago(45), tasks=["2024-01-01_deleted.md"])
        candidate = policy(session_store, task_store, linked=30).classify(session)
        assert candidate.tier == Tier.strong
        assert "45 days old (no completed_at recorded)" in candidate.reason

    def test_ambiguous_reference_is_terminal(self, session_store, task_store, make_session, make_task):
        make_task("fix a", TaskStatus.open)
        make_task("fix b", TaskStatus.open)
        session = make_session("s", date=ago(45), tasks=["fix"])
        assert policy(session_store, task_store, linked=30).classify(session).tier == Tier.strong


class TestCandidates:
    def test_strong_listed_first(self, session_store, task_store, make_session):
        make_session("orphan", date=ago(200))
        make_session("linked", date=ago(50), tasks=["gone.md"])
        make_session("fresh", date=ago(1))
        found, loaded = policy(session_store, task_store).candidates()
        assert loaded.ok
        assert [(c.session.topic, c.tier) for c in found] == [
            ("linked", Tier.strong),
            ("orphan", Tier.weak),
        ]


class TestApply:
    def test_archives_and_rebuilds(self, project_root, settings, hook, task_store):
        sessions = SessionStore(project_root, settings, hook)
        sessions.save(Session(topic="old", date=ago(100)), "")
        sessions.save(Session(topic="new", date=ago(1)), "")
        hook.staged.clear()

        gc = policy(sessions, task_store)
        found, _ = gc.candidates()
        report = gc.apply(found)

        archived = sessions.archive_dir / found[0].session.filename
        assert [name for name, _ in report.archived] == [found[0].session.filename]
        assert archived.is_file()
        assert [e.topic for e in sessions.index.read_all()] == ["new"]
        assert report.indexed == 1
        assert hook.unstaged == [sessions.dir / found[0].session.filename]
        assert hook.staged == [archived, sessions.index.path]

    def test_partial_failure_continues(self, session_store, task_store, make_session):
        make_session("old", date=ago(100))
        gc = policy(session_store, task_store)
        found, _ = gc.candidates()
        missing = Session(topic="ghost", date=ago(100), filename="2020-01-01_ghost.md")
        found.append(GcCandidate(missing, Tier.weak, 100, "ghost"))

        report = gc.apply(found)
        assert len(report.archived) == 1
        assert report.failures[0].startswith("2020-01-01_ghost.md")

    def test_all_failed_raises(self, session_store, task_store):
        missing = Session(topic="ghost", date=ago(100), filename="2020-01-01_ghost.md")
        with pytest.raises(StoreError, match="all archive operations failed"):
            policy(session_store, task_store).apply([GcCandidate(missing, Tier.weak, 100, "x")])

    def test_nothing_to_do(self, session_store, task_store):
        report = policy(session_store, task_store).apply([])
        assert report.archived == []
        assert session_store.index.exists()

    def test_index_write_failure_is_not_fatal(self, session_store, task_store, make_session, monkeypatch):
        make_session("old", date=ago(100))
        gc = policy(session_store, task_store)
        found, _ = gc.candidates()

        def broken(load):
            raise OSError("disk full")

        monkeypatch.setattr(session_store.index, "rebuild", broken)
        report = gc.apply(found)
        assert len(report.archived) == 1
        assert report.indexed == 0
