"""Git integration for the .logosyncx/ store: stage, unstage, commit, push, status."""

from __future__ import annotations

import logging
from pathlib import Path

import git

from logosyncx.utils.config import Settings
from logosyncx.utils.paths import STORE_DIR

logger = logging.getLogger(__name__)

_CHANGE_LABELS = {
    "A": "added",
    "D": "deleted",
    "M": "modified",
    "T": "typechange",
}


class GitSyncError(Exception):
    pass


class GitHook:
    """Git operations scoped to the .logosyncx/ directory."""

    def __init__(self, project_root: Path) -> None:
        self.root = project_root.resolve()
        try:
            self.repo = git.Repo(self.root)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError):
            raise GitSyncError(f"Not a git repository: {self.root}")

    def _rel(self, path: Path) -> str:
        path = Path(path)
        if not path.is_absolute():
            path = self.root / path
        try:
            return path.resolve().relative_to(self.root).as_posix()
        except ValueError:
            raise GitSyncError(f"{path} is outside the repository")

    def _in_store(self, rel: str | None) -> bool:
        return bool(rel) and rel.startswith(STORE_DIR + "/")

    # -- Hook protocol --

    def stage(self, path: Path) -> None:
        """git add <path>"""
        try:
            self.repo.index.add([self._rel(path)])
        except (git.GitCommandError, OSError) as e:
            raise GitSyncError(f"git add {path}: {e}") from e

    def unstage(self, path: Path) -> None:
        """Stage the removal of a file that no longer exists on disk."""
        try:
            self.repo.git.rm("--cached", "--ignore-unmatch", "--quiet", "--", self._rel(path))
        except git.GitCommandError as e:
            raise GitSyncError(f"git rm {path}: {e}") from e

    # -- Commit / push --

    def _changed_paths(self) -> list[str]:
        diffs = list(self.repo.index.diff(None))
        if self.repo.head.is_valid():
            diffs += self.repo.index.diff("HEAD")
        paths = [p for d in diffs for p in (d.a_path, d.b_path) if p]
        paths += self.repo.untracked_files
        if not self.repo.head.is_valid():
            paths += [p for (p, _stage) in self.repo.index.entries]
        return sorted({p for p in paths if self._in_store(p)})

    def has_changes(self) -> bool:
        return bool(self._changed_paths())

    def auto_message(self) -> str:
        """Commit message naming the sessions and tasks that changed."""
        sessions: set[str] = set()
        tasks: set[str] = set()
        for path in self._changed_paths():
            parts = path.split("/")[1:]
            if parts[0] == "sessions" and path.endswith(".md"):
                sessions.add(parts[-1][:-3])
            elif parts[0] == "tasks" and path.endswith(".md"):
                tasks.add(parts[-1][:-3])

        pieces = []
        if sessions:
            pieces.append(f"sessions {', '.join(sorted(sessions))}")
        if tasks:
            pieces.append(f"tasks {', '.join(sorted(tasks))}")
        if pieces:
            return "logos: update " + "; ".join(pieces)
        return "logos: update context"

    def commit(self, message: str | None = None) -> str | None:
        """Stage everything under .logosyncx/ and commit. Returns the message, or None if clean."""
        if not self.has_changes():
            return None
        untracked = [f for f in self.repo.untracked_files if self._in_store(f)]
        if untracked:
            self.repo.index.add(untracked)
        modified, deleted = [], []
        for d in self.repo.index.diff(None):
            if self._in_store(d.a_path):
                (deleted if d.deleted_file else modified).append(d.a_path)
        if modified:
            self.repo.index.add(modified)
        if deleted:
            self.repo.index.remove(deleted)
        msg = message or self.auto_message()
        self.repo.index.commit(msg)
        return msg

    def push(self, message: str | None = None) -> dict:
        """Commit pending store changes and push to origin when a remote exists."""
        msg = self.commit(message)
        if msg is None:
            return {"status": "nothing_to_push"}
        if not self.repo.remotes:
            return {"status": "committed", "commit_message": msg}
        try:
            results = self.repo.remotes.origin.push()
        except Exception as e:
            return {"status": "committed", "commit_message": msg, "push_error": str(e)}
        # A rejected ref is reported through its flags, not raised
        rejected = [r.summary.strip() for r in results if r.flags & git.PushInfo.ERROR]
        if rejected or not results:
            reason = "; ".join(rejected) or "no refs were pushed"
            return {"status": "committed", "commit_message": msg, "push_error": reason}
        return {"status": "pushed", "commit_message": msg}

    # -- Status --

    def status(self) -> dict:
        """Staged, unstaged and untracked files under .logosyncx/."""
        staged: list[dict] = []
        if self.repo.head.is_valid():
            # Commit.diff() with no argument compares HEAD against the index
            for d in self.repo.head.commit.diff():
                if d.change_type == "R":
                    # A task move shows up as a rename; report both ends
                    changes = [("deleted", d.a_path), ("added", d.b_path)]
                else:
                    label = _CHANGE_LABELS.get(d.change_type, d.change_type)
                    changes = [(label, d.b_path or d.a_path)]
                for change, path in changes:
                    if self._in_store(path):
                        staged.append({"change": change, "path": path})
        else:
            for p, _stage in self.repo.index.entries:
                if self._in_store(p):
                    staged.append({"change": "added", "path": p})

        unstaged = []
        for d in self.repo.index.diff(None):
            path = d.a_path or d.b_path
            if self._in_store(path):
                change = "deleted" if d.deleted_file else _CHANGE_LABELS.get(d.change_type, d.change_type)
                unstaged.append({"change": change, "path": path})

        untracked = [f for f in self.repo.untracked_files if self._in_store(f)]
        branch = None if self.repo.head.is_detached else self.repo.active_branch.name
        return {
            "branch": branch,
            "staged": sorted(staged, key=lambda e: e["path"]),
            "unstaged": sorted(unstaged, key=lambda e: e["path"]),
            "untracked": sorted(untracked),
        }


def hook_for(project_root: Path, settings: Settings) -> GitHook | None:
    """The git hook when auto_push is enabled and the project is a git repository."""
    if not settings.git.auto_push:
        return None
    try:
        return GitHook(project_root)
    except GitSyncError as e:
        logger.warning("git.auto_push is set but %s", e)
        return None
