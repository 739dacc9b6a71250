"""Task subcommands: create, ls, refer, update, delete, purge, search."""

from __future__ import annotations

from typing import Optional

import typer

from logosyncx.cli._shared import FORMAT_OPTION, fail, get_stores, split_csv
from logosyncx.core.errors import StoreError
from logosyncx.core.filters import TaskFilter
from logosyncx.core.schema import Task, TaskPriority, TaskStatus
from logosyncx.core.sections import build_body, extract_sections, missing_required
from logosyncx.utils.output import error, info, output, output_table, success, warn
from logosyncx.utils.paths import list_markdown

task_app = typer.Typer(no_args_is_help=True)


def _status(value: Optional[str]) -> Optional[TaskStatus]:
    if not value:
        return None
    try:
        return TaskStatus(value)
    except ValueError:
        error(f"invalid status {value!r}: must be one of open, in_progress, done, cancelled")
        raise typer.Exit(1)


def _priority(value: Optional[str]) -> Optional[TaskPriority]:
    if not value:
        return None
    try:
        return TaskPriority(value)
    except ValueError:
        error(f"invalid priority {value!r}: must be one of high, medium, low")
        raise typer.Exit(1)


def _task_rows(tasks: list[Task]) -> list[dict[str, str]]:
    return [
        {
            "date": t.date.strftime("%Y-%m-%d") if t.date else "",
            "status": t.status.value if t.status else "",
            "priority": t.priority.value if t.priority else "",
            "title": t.title,
            "file": t.filename,
        }
        for t in tasks
    ]


_COLUMNS = ["date", "status", "priority", "title", "file"]


@task_app.command("create")
def task_create(
    title: str = typer.Option(..., "--title", "-T", help="Task title"),
    session: Optional[str] = typer.Option(None, "--session", "-s", help="Partial name of the session to link"),
    priority: Optional[str] = typer.Option(None, "--priority", "-p", help="high, medium or low"),
    tags: Optional[list[str]] = typer.Option(None, "--tag", help="Tag (repeatable)"),
    sections: Optional[list[str]] = typer.Option(
        None, "--section", help="Section content as 'Name=content' (repeatable)"
    ),
) -> None:
    """Create a task in tasks/<status>/."""
    if not title.strip():
        error("provide --title <title>")
        raise typer.Exit(1)
    sessions, tasks = get_stores()
    try:
        body = build_body(sections or [], tasks.settings.tasks.sections)
        task = Task(title=title, priority=_priority(priority), tags=split_csv(tags))
        linked = ""
        if session:
            linked = tasks.resolve_session(session)
            task.session = linked
            task.sessions = [linked]
        path = tasks.save(task, body)
    except StoreError as e:
        fail(e)

    success(f"Created task: {path}")
    for name in missing_required(sections or [], tasks.settings.tasks.sections):
        warn(f"required section '{name}' is missing")
    if linked:
        try:
            sessions.link_task(linked, task.filename)
        except (StoreError, OSError) as e:
            warn(f"could not record the task in session {linked!r}: {e}")


@task_app.command("ls")
def task_ls(
    session: Optional[str] = typer.Option(None, "--session", "-s", help="Filter by linked session (substring)"),
    status: Optional[str] = typer.Option(None, "--status", help="Filter by status"),
    priority: Optional[str] = typer.Option(None, "--priority", help="Filter by priority"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Filter by tag"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """List tasks, newest first."""
    _sessions, tasks = get_stores()
    task_filter = TaskFilter(
        status=_status(status),
        priority=_priority(priority),
        tags=[tag] if tag else (),
        session=session or "",
    )
    result = tasks.list(task_filter)
    if result.errors:
        warn(result.warning("task"))

    if fmt == "json":
        output([t.to_entry() for t in result.items], fmt="json")
        return
    if not result.items:
        info("No tasks found.")
        return
    output_table(_task_rows(result.items), columns=_COLUMNS)


@task_app.command("refer")
def task_refer(
    name: str = typer.Argument(..., help="Filename, title or id (exact or partial)"),
    summary: bool = typer.Option(False, "--summary", help="Print only the summary sections"),
    with_session: bool = typer.Option(False, "--with-session", help="Append the summary of linked sessions"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Print a task document."""
    sessions, tasks = get_stores()
    try:
        task = tasks.resolve(name)
    except StoreError as e:
        fail(e)

    if fmt == "json":
        data = task.to_entry().model_dump(mode="json")
        data["body"] = task.body
        output(data, fmt="json")
        return

    if summary:
        text = extract_sections(task.body, tasks.settings.tasks.summary_sections)
        if not text:
            warn("no matching summary sections found in this task")
        output(text)
    else:
        output(task.to_document())

    if with_session:
        wanted = sessions.settings.sessions.summary_sections
        for filename in task.linked_sessions():
            try:
                linked = sessions.load_file(sessions.dir / filename)
            except (StoreError, OSError) as e:
                warn(f"could not load linked session {filename!r}: {e}")
                continue
            output(f"\n---\n## Session: {filename}\n")
            output(extract_sections(linked.body, wanted) or linked.excerpt)


@task_app.command("update")
def task_update(
    name: str = typer.Argument(..., help="Partial task filename"),
    status: Optional[str] = typer.Option(None, "--status", help="New status"),
    priority: Optional[str] = typer.Option(None, "--priority", help="New priority"),
    assignee: Optional[str] = typer.Option(None, "--assignee", help="New assignee"),
    add_session: Optional[str] = typer.Option(None, "--add-session", help="Partial name of a session to link"),
) -> None:
    """Update task fields; a status change moves the file."""
    if not (status or priority or assignee or add_session):
        error("provide at least one of --status, --priority, --assignee or --add-session")
        raise typer.Exit(1)
    _status(status)
    _priority(priority)

    sessions, tasks = get_stores()
    fields = {
        key: value
        for key, value in (("status", status), ("priority", priority), ("assignee", assignee))
        if value
    }
    try:
        task = tasks.update_fields(name, fields) if fields else tasks.get(name)
        if add_session:
            resolved = tasks.resolve_session(add_session)
            task = tasks.append_session(task.filename, resolved)
            success(f"Linked session {resolved!r} to task {task.filename!r}")
            try:
                sessions.link_task(resolved, task.filename)
            except (StoreError, OSError) as e:
                warn(f"could not record the task in session {resolved!r}: {e}")
    except StoreError as e:
        fail(e)

    if fields:
        success(f"Updated {task.status.value}/{task.filename}")
        if task.status == TaskStatus.done:
            info("Tip: run `logos task purge --status done --force` to delete all done tasks.")


@task_app.command("delete")
def task_delete(
    name: str = typer.Argument(..., help="Partial task filename"),
    force: bool = typer.Option(False, "--force", help="Skip confirmation prompt"),
) -> None:
    """Delete one task."""
    _sessions, tasks = get_stores()
    try:
        task = tasks.get(name)
        if not force and not typer.confirm(f"Delete {task.status.value}/{task.filename}?"):
            info("Aborted.")
            return
        path = tasks.delete(task.filename)
    except StoreError as e:
        fail(e)
    success(f"Deleted {path}")


@task_app.command("purge")
def task_purge(
    status: str = typer.Option(..., "--status", help="Status bucket to purge"),
    force: bool = typer.Option(False, "--force", help="Skip confirmation prompt"),
) -> None:
    """Delete every task with the given status."""
    bucket = _status(status)
    _sessions, tasks = get_stores()
    paths = list_markdown(tasks.status_dir(bucket))
    if not paths:
        info(f"No {bucket.value} tasks to purge.")
        return

    for path in paths:
        output(f"  {path.name}")
    if not force and not typer.confirm(f"Delete {len(paths)} {bucket.value} task(s)? This cannot be undone."):
        info("Aborted.")
        return
    removed = tasks.purge(bucket)
    success(f"Deleted {removed} {bucket.value} task(s)")


@task_app.command("search")
def task_search(
    keyword: str = typer.Argument(..., help="Keyword matched against title, tags and excerpt"),
    status: Optional[str] = typer.Option(None, "--status", help="Filter by status"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Filter by tag"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Search tasks by keyword."""
    _sessions, tasks = get_stores()
    result = tasks.list(TaskFilter(status=_status(status), tags=[tag] if tag else (), keyword=keyword))
    if result.errors:
        warn(result.warning("task"))

    if fmt == "json":
        output([t.to_entry() for t in result.items], fmt="json")
        return
    if not result.items:
        info(f"No tasks match {keyword!r}.")
        return
    output_table(_task_rows(result.items), columns=_COLUMNS)
