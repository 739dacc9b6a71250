"""gc: archive stale sessions; gc purge: delete archived sessions."""

from __future__ import annotations

from typing import Optional

import typer

from logosyncx.cli._shared import FORMAT_OPTION, fail, get_stores
from logosyncx.core.errors import StoreError
from logosyncx.core.gc import RetentionPolicy
from logosyncx.utils.output import info, output, output_table, success, warn
from logosyncx.utils.paths import list_markdown

gc_app = typer.Typer(invoke_without_command=True)


@gc_app.callback()
def gc(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview candidates without moving any files"),
    linked_days: Optional[int] = typer.Option(
        None, "--linked-days", help="Days since task completion before a linked session is archived"
    ),
    orphan_days: Optional[int] = typer.Option(
        None, "--orphan-days", help="Days since creation before a session with no tasks is archived"
    ),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Archive stale sessions to sessions/archive/."""
    if ctx.invoked_subcommand is not None:
        return

    sessions, tasks = get_stores()
    policy = RetentionPolicy(sessions, tasks, linked_days, orphan_days)
    candidates, loaded = policy.candidates()
    if loaded.errors:
        warn(loaded.warning("session"))

    if fmt == "json" and dry_run:
        output(
            [
                {"filename": c.session.filename, "tier": c.tier.value, "age_days": c.age_days, "reason": c.reason}
                for c in candidates
            ],
            fmt="json",
        )
        return
    if not candidates:
        info("No sessions to archive.")
        return

    if fmt != "json":
        output_table(
            [{"file": c.session.filename, "tier": c.tier.value, "reason": c.reason} for c in candidates],
            columns=["file", "tier", "reason"],
        )
    if dry_run:
        info(f"{len(candidates)} session(s) would be archived (dry run).")
        return

    try:
        report = policy.apply(candidates)
    except StoreError as e:
        fail(e)
    for failure in report.failures:
        warn(f"could not archive {failure}")
    if fmt == "json":
        output(
            {"archived": [name for name, _ in report.archived], "failures": report.failures},
            fmt="json",
        )
        return
    success(f"Archived {len(report.archived)} session(s) to sessions/archive/")


@gc_app.command("purge")
def gc_purge(
    force: bool = typer.Option(False, "--force", help="Skip confirmation prompt"),
) -> None:
    """Permanently delete every session in sessions/archive/."""
    sessions, _tasks = get_stores()
    archived = list_markdown(sessions.archive_dir)
    if not archived:
        info("No archived sessions to purge.")
        return

    for path in archived:
        output(f"  {path.name}")
    if not force and not typer.confirm(
        f"Permanently delete {len(archived)} archived session(s)? This cannot be undone."
    ):
        info("Aborted.")
        return

    removed = sessions.purge_archived()
    success(f"Deleted {removed} archived session(s)")
