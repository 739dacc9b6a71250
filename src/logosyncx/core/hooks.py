"""Advisory version-control notifications used by the stores.

Stores never depend on git directly: they receive an optional object with
``stage(path)`` and ``unstage(path)``. Failures are logged, never raised.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class VcsHook(Protocol):
    def stage(self, path: Path) -> None: ...

    def unstage(self, path: Path) -> None: ...


def notify_stage(hook: VcsHook | None, path: Path) -> None:
    if hook is None:
        return
    try:
        hook.stage(path)
    except Exception as e:
        logger.warning("git add failed for %s (%s) -- stage the file manually", path, e)


def notify_unstage(hook: VcsHook | None, path: Path) -> None:
    if hook is None:
        return
    try:
        hook.unstage(path)
    except Exception as e:
        logger.warning("git rm failed for %s (%s) -- stage the removal manually", path, e)
