"""Tests for TaskStore: saving, lookup, status moves and bulk operations."""

import re
from datetime import datetime, timezone

import pytest

from logosyncx.core.errors import Ambiguous, ConfigError, NotFound, StoreError, UnknownField
from logosyncx.core.filters import TaskFilter
from logosyncx.core.schema import Task, TaskPriority, TaskStatus
from logosyncx.core.tasks import TaskStore

FEB20 = datetime(2025, 2, 20, 9, 0, tzinfo=timezone.utc)


def _all_paths(store: TaskStore) -> list:
    return sorted(p.relative_to(store.dir).as_posix() for p in store.dir.rglob("*.md"))


class TestSave:
    def test_defaults_from_settings(self, task_store):
        task = Task(title="Fix login")
        path = task_store.save(task, "## What\n\nfix\n")
        assert re.fullmatch(r"t-[0-9a-f]{6}", task.id)
        assert task.status == TaskStatus.open
        assert task.priority == TaskPriority.medium
        assert path.parent.name == "open"

    def test_explicit_status_directory(self, task_store):
        path = task_store.save(Task(title="x", date=FEB20, status=TaskStatus.in_progress), "")
        assert path == task_store.dir / "in_progress" / "2025-02-20_x.md"

    def test_terminal_save_stamps_completed_at(self, task_store):
        task = Task(title="x", status=TaskStatus.done)
        task_store.save(task, "")
        assert task.completed_at is not None

    def test_invalid_default_status(self, project_root, settings):
        settings.tasks.default_status = "blocked"
        with pytest.raises(ConfigError):
            TaskStore(project_root, settings).save(Task(title="x"), "")

    def test_appends_index(self, task_store):
        task_store.save(Task(title="x", date=FEB20), "## What\n\nthing\n")
        entries = task_store.index.read_all()
        assert [(e.title, e.status, e.excerpt) for e in entries] == [("x", TaskStatus.open, "thing")]


class TestGet:
    def test_searches_every_status(self, make_task, task_store):
        make_task("alpha", TaskStatus.open)
        make_task("beta", TaskStatus.done)
        assert task_store.get("beta").status == TaskStatus.done

    def test_ambiguous_across_directories(self, make_task, task_store):
        make_task("fix one", TaskStatus.open)
        make_task("fix two", TaskStatus.cancelled)
        with pytest.raises(Ambiguous) as exc:
            task_store.get("fix")
        assert sorted(exc.value.candidates) == [
            "cancelled/2025-03-01_fix-two.md",
            "open/2025-03-01_fix-one.md",
        ]

    def test_not_found(self, task_store):
        with pytest.raises(NotFound):
            task_store.get("nothing")

    def test_case_insensitive(self, make_task, task_store):
        make_task("alpha")
        assert task_store.get("ALPHA").title == "alpha"

    def test_copy_left_by_interrupted_move(self, make_task, task_store):
        task = make_task("x")
        src = task_store.status_dir(TaskStatus.open) / task.filename
        dup = task_store.status_dir(TaskStatus.done) / task.filename
        dup.write_text(src.read_text())

        with pytest.raises(Ambiguous) as exc:
            task_store.get("x")
        assert sorted(exc.value.candidates) == [f"done/{task.filename}", f"open/{task.filename}"]

        result = task_store.rebuild_index()
        assert result.ok
        entries = task_store.index.read_all()
        assert sorted(e.status.value for e in entries) == ["done", "open"]
        assert {e.filename for e in entries} == {task.filename}

    def test_directory_wins_over_stale_status(self, task_store):
        path = task_store.status_dir(TaskStatus.done) / "2025-02-20_x.md"
        path.write_text("---\nid: t-1\ntitle: x\nstatus: open\n---\n")
        assert task_store.get("x").status == TaskStatus.done


class TestResolve:
    def test_exact_title_precedence(self, make_task, task_store):
        make_task("auth")
        make_task("auth-v2")
        assert task_store.resolve("auth").title == "auth"

    def test_by_id(self, make_task, task_store):
        task = make_task("something")
        assert task_store.resolve(task.id).filename == task.filename


class TestUpdateFields:
    def test_open_to_done_moves_file(self, task_store):
        body = "## What\n\nShip it.\n"
        task_store.save(Task(title="x", date=FEB20), body)
        old = task_store.dir / "open" / "2025-02-20_x.md"
        assert old.is_file()

        task_store.update_fields("x", {"status": "done"})

        new = task_store.dir / "done" / "2025-02-20_x.md"
        assert not old.exists()
        assert new.is_file()
        moved = task_store.load_file(new)
        assert moved.body == "\n" + body
        assert moved.status == TaskStatus.done

    def test_file_exists_at_exactly_one_path(self, make_task, task_store):
        make_task("x")
        for status in ("in_progress", "done", "cancelled", "open"):
            task = task_store.update_fields("x", {"status": status})
            paths = _all_paths(task_store)
            assert paths == [f"{status}/{task.filename}"]

    def test_completed_at_stamped_and_cleared(self, make_task, task_store):
        make_task("x")
        done = task_store.update_fields("x", {"status": "done"})
        assert done.completed_at is not None
        stamp = done.completed_at
        cancelled = task_store.update_fields("x", {"status": "cancelled"})
        assert cancelled.completed_at == stamp
        reopened = task_store.update_fields("x", {"status": "open"})
        assert reopened.completed_at is None
        assert task_store.get("x").completed_at is None

    def test_other_fields_stay_in_place(self, make_task, task_store):
        task = make_task("x")
        task_store.update_fields("x", {"priority": "high", "assignee": "alice"})
        loaded = task_store.get("x")
        assert loaded.priority == TaskPriority.high
        assert loaded.assignee == "alice"
        assert _all_paths(task_store) == [f"open/{task.filename}"]

    def test_session_link(self, make_task, task_store):
        make_task("x")
        assert task_store.update_fields("x", {"session": "2025-03-01_s.md"}).session == "2025-03-01_s.md"

    def test_unknown_field(self, make_task, task_store):
        make_task("x")
        with pytest.raises(UnknownField):
            task_store.update_fields("x", {"title": "y"})

    def test_invalid_status_writes_nothing(self, make_task, task_store):
        task = make_task("x")
        with pytest.raises(StoreError, match="invalid status"):
            task_store.update_fields("x", {"status": "blocked"})
        assert _all_paths(task_store) == [f"open/{task.filename}"]

    def test_rebuilds_index(self, make_task, task_store):
        make_task("x")
        task_store.update_fields("x", {"status": "done"})
        entries = task_store.index.read_all()
        assert [e.status for e in entries] == [TaskStatus.done]

    def test_hook_notified(self, project_root, settings, hook):
        store = TaskStore(project_root, settings, hook)
        old = store.save(Task(title="x", date=FEB20), "")
        store.update_fields("x", {"status": "done"})
        new = store.dir / "done" / "2025-02-20_x.md"
        assert hook.unstaged == [old]
        assert hook.staged == [old, new]


class TestSessions:
    def test_append_session_dedups(self, make_task, task_store):
        make_task("x")
        task_store.append_session("x", "a.md")
        task = task_store.append_session("x", "a.md")
        assert task.sessions == ["a.md"]
        assert task.session == "a.md"

    def test_append_keeps_legacy_link(self, task_store):
        task_store.save(Task(title="x", date=FEB20, session="a.md"), "")
        task = task_store.append_session("x", "b.md")
        assert task.sessions == ["a.md", "b.md"]
        assert task.session == "a.md"

    def test_resolve_session(self, task_store, make_session):
        make_session("auth refactor")
        make_session("billing")
        assert task_store.resolve_session("auth") == "2025-03-01_auth-refactor.md"
        with pytest.raises(Ambiguous):
            task_store.resolve_session("2025")
        with pytest.raises(NotFound):
            task_store.resolve_session("zzz")


class TestBulk:
    def test_load_all_collects_errors(self, make_task, task_store):
        make_task("good")
        (task_store.status_dir(TaskStatus.open) / "bad.md").write_text("---\nno close\n")
        result = task_store.load_all()
        assert [t.title for t in result.items] == ["good"]
        assert result.errors[0].startswith("open/bad.md:")

    def test_list_newest_first_with_filter(self, make_task, task_store):
        make_task("old", date=datetime(2025, 1, 1, tzinfo=timezone.utc))
        make_task("new", date=datetime(2025, 2, 1, tzinfo=timezone.utc))
        make_task("closed", TaskStatus.done)
        assert [t.title for t in task_store.list().items] == ["closed", "new", "old"]
        open_only = task_store.list(TaskFilter(status=TaskStatus.open)).items
        assert [t.title for t in open_only] == ["new", "old"]

    def test_delete(self, make_task, task_store):
        make_task("keep")
        make_task("drop")
        path = task_store.delete("drop")
        assert not path.exists()
        assert [e.title for e in task_store.index.read_all()] == ["keep"]

    def test_purge_status(self, make_task, task_store):
        make_task("a", TaskStatus.done)
        make_task("b", TaskStatus.done)
        make_task("c", TaskStatus.open)
        assert task_store.purge(TaskStatus.done) == 2
        assert _all_paths(task_store) == ["open/2025-03-01_c.md"]
        assert [e.title for e in task_store.index.read_all()] == ["c"]
        assert task_store.purge(TaskStatus.done) == 0
