"""Typer app: root commands (init, save, ls, refer, search, sync, status) and groups."""

from __future__ import annotations

import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from logosyncx import __version__
from logosyncx.cli._shared import FORMAT_OPTION, fail, get_root, get_stores, split_csv
from logosyncx.core.errors import StoreError
from logosyncx.core.filters import filter_keyword, filter_since, filter_tag, sort_newest_first
from logosyncx.core.index import CorruptIndex
from logosyncx.core.schema import Session, TaskStatus
from logosyncx.core.sections import extract_sections
from logosyncx.sync.git_sync import GitHook, GitSyncError
from logosyncx.utils.config import default_settings, migrate_settings, save_settings
from logosyncx.utils.output import error, info, output, output_table, success, warn
from logosyncx.utils.paths import STORE_DIR, archive_dir, sessions_dir, store_path, tasks_dir

app = typer.Typer(
    name="logos",
    help="logosyncx: shared session and task memory for AI coding agents, stored as markdown in git.",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        output(f"logos {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    pass


@app.command()
def init(
    force: bool = typer.Option(False, "--force", help="On an existing project, add missing config keys"),
) -> None:
    """Create .logosyncx/ in the current directory."""
    root = Path.cwd()
    store = store_path(root)
    if store.is_dir():
        if not force:
            error(f"{STORE_DIR}/ already exists (use --force to migrate its config)")
            raise typer.Exit(1)
        if migrate_settings(root):
            success("Updated config.json with missing default keys")
        else:
            info("config.json is up to date")
        return

    sessions_dir(root).mkdir(parents=True)
    archive_dir(root).mkdir()
    for status in TaskStatus:
        (tasks_dir(root) / status.value).mkdir(parents=True)
    save_settings(root, default_settings(root.name))
    success(f"Initialized {STORE_DIR}/ for '{root.name}'")


def _privacy_warnings(text: str, patterns: list[str]) -> None:
    for pattern in patterns:
        try:
            matched = re.search(pattern, text)
        except re.error as e:
            warn(f"invalid privacy filter pattern {pattern!r}: {e}")
            continue
        if matched:
            warn(f"session content matches privacy filter pattern {pattern!r}, review before committing")


@app.command()
def save(
    topic: str = typer.Option(..., "--topic", "-t", help="Session topic"),
    tags: Optional[list[str]] = typer.Option(None, "--tag", help="Tag (repeatable)"),
    agent: str = typer.Option("", "--agent", "-a", help="Agent name (e.g. claude-code)"),
    related: Optional[list[str]] = typer.Option(None, "--related", help="Related session filename (repeatable)"),
    linked_tasks: Optional[list[str]] = typer.Option(None, "--task", help="Linked task filename (repeatable)"),
    body: str = typer.Option("", "--body", "-b", help="Session body text"),
    body_stdin: bool = typer.Option(False, "--body-stdin", help="Read the session body from stdin"),
) -> None:
    """Save a session document."""
    if not topic.strip():
        error("provide --topic <topic>")
        raise typer.Exit(1)
    if body and body_stdin:
        error("--body and --body-stdin are mutually exclusive")
        raise typer.Exit(1)
    text = sys.stdin.read() if body_stdin else body

    sessions, _tasks = get_stores()
    _privacy_warnings(text, sessions.settings.privacy.filter_patterns)

    session = Session(
        topic=topic,
        tags=split_csv(tags),
        agent=agent,
        related=split_csv(related),
        tasks=split_csv(linked_tasks),
    )
    path = sessions.save(session, text)
    success(f"Saved session to {path}")

    if sessions.hook is not None:
        _auto_push(sessions.hook, sessions.index.path, f"logos: save session {topic!r}")
    else:
        info("Next: commit and push to share context with your team.")


def _auto_push(hook: GitHook, index_path: Path, message: str) -> None:
    try:
        hook.stage(index_path)
        result = hook.push(message)
    except (GitSyncError, OSError) as e:
        warn(f"git commit/push failed ({e}), commit and push manually")
        return
    if "push_error" in result:
        warn(f"git push failed ({result['push_error']}), push manually")
    elif result["status"] == "pushed":
        success("Committed and pushed")
    elif result["status"] == "committed":
        success("Committed (no remote configured)")


@app.command("ls")
def list_sessions(
    tag: Optional[str] = typer.Option(None, "--tag", help="Only sessions with this tag"),
    since: Optional[str] = typer.Option(None, "--since", help="Only sessions on or after YYYY-MM-DD"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """List sessions from the index (built on first use)."""
    sessions, _tasks = get_stores()
    try:
        entries = sessions.read_index()
    except CorruptIndex as e:
        warn(f"{e} -- run `logos sync` to rebuild")
        entries = e.entries
    except StoreError as e:
        fail(e)

    if tag:
        entries = filter_tag(entries, tag)
    if since:
        try:
            cutoff = datetime.strptime(since, "%Y-%m-%d").astimezone()
        except ValueError:
            error(f"invalid --since {since!r}: expected YYYY-MM-DD")
            raise typer.Exit(1)
        entries = filter_since(entries, cutoff)
    entries = sort_newest_first(entries)

    if fmt == "json":
        output(entries, fmt="json")
        return
    if not entries:
        info("No sessions found.")
        return
    output_table(
        [
            {
                "date": e.date.strftime("%Y-%m-%d %H:%M") if e.date else "",
                "topic": e.topic,
                "tags": ", ".join(e.tags),
                "agent": e.agent,
                "file": e.filename,
            }
            for e in entries
        ],
        columns=["date", "topic", "tags", "agent", "file"],
    )


@app.command()
def refer(
    name: str = typer.Argument(..., help="Filename, topic or id (exact or partial)"),
    summary: bool = typer.Option(False, "--summary", help="Print only the summary sections"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Print a session document."""
    sessions, _tasks = get_stores()
    try:
        session = sessions.get(name)
    except StoreError as e:
        fail(e)

    if fmt == "json":
        data = session.to_entry().model_dump(mode="json")
        data["body"] = session.body
        output(data, fmt="json")
        return
    if summary:
        text = extract_sections(session.body, sessions.settings.sessions.summary_sections)
        if not text:
            warn("no matching summary sections found in this session")
        output(text)
    else:
        output(session.to_document())


@app.command()
def search(
    keyword: str = typer.Argument(..., help="Keyword matched against topic, tags and excerpt"),
    tag: Optional[str] = typer.Option(None, "--tag", help="Only sessions with this tag"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Search active sessions."""
    sessions, _tasks = get_stores()
    loaded = sessions.load_all()
    if loaded.errors:
        warn(loaded.warning("session"))
    found = filter_keyword(loaded.items, keyword)
    if tag:
        found = filter_tag(found, tag)
    found = sort_newest_first(found)

    if fmt == "json":
        output([s.to_entry() for s in found], fmt="json")
        return
    if not found:
        info(f"No sessions match {keyword!r}.")
        return
    output_table(
        [{"file": s.filename, "topic": s.topic, "excerpt": s.excerpt.replace("\n", " ")[:80]} for s in found],
        columns=["file", "topic", "excerpt"],
    )


@app.command()
def sync() -> None:
    """Rebuild the session and task indexes from the files on disk."""
    sessions, tasks = get_stores()
    try:
        session_result = sessions.rebuild_index()
        task_result = tasks.rebuild_index()
    except OSError as e:
        error(f"rebuild failed: {e}")
        raise typer.Exit(1)
    success(
        f"Rebuilt indexes: {len(session_result.items)} sessions, {len(task_result.items)} tasks"
    )


@app.command()
def status(fmt: Optional[str] = FORMAT_OPTION) -> None:
    """Show git status of .logosyncx/."""
    root = get_root()
    try:
        state = GitHook(root).status()
    except GitSyncError as e:
        error(str(e))
        raise typer.Exit(1)

    if fmt == "json":
        output(state, fmt="json")
        return
    if state["branch"]:
        info(f"On branch {state['branch']}")
    if not (state["staged"] or state["unstaged"] or state["untracked"]):
        success(f"{STORE_DIR}/ is clean")
        return
    for label, key in (("Staged", "staged"), ("Not staged", "unstaged")):
        if state[key]:
            output(f"{label}:")
            for entry in state[key]:
                output(f"  {entry['change']}: {entry['path']}")
    if state["untracked"]:
        output("Untracked:")
        for path in state["untracked"]:
            output(f"  {path}")


# Register subcommand groups
from logosyncx.cli.gc_cmd import gc_app
from logosyncx.cli.task_cmd import task_app

app.add_typer(gc_app, name="gc", help="Archive stale sessions")
app.add_typer(task_app, name="task", help="Manage tasks")
