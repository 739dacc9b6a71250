"""Filtering and ordering for session and task listings."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TypeVar

from logosyncx.core.schema import TaskPriority, TaskStatus

T = TypeVar("T")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(item) -> datetime:
    return item.date or _EPOCH


def sort_newest_first(items: Iterable[T]) -> list[T]:
    """Order by date descending; undated items sink to the end."""
    return sorted(items, key=_sort_key, reverse=True)


def filter_since(items: Iterable[T], since: datetime) -> list[T]:
    return [i for i in items if i.date is not None and i.date >= since]


def filter_tag(items: Iterable[T], tag: str) -> list[T]:
    wanted = tag.lower()
    return [i for i in items if any(t.lower() == wanted for t in i.tags)]


def filter_keyword(items: Iterable[T], keyword: str) -> list[T]:
    """Case-insensitive match against topic/title, tags and excerpt."""
    needle = keyword.lower()
    matched = []
    for item in items:
        title = getattr(item, "topic", None) or getattr(item, "title", "") or ""
        haystack = [title, item.excerpt, *item.tags]
        if any(needle in h.lower() for h in haystack):
            matched.append(item)
    return matched


@dataclass
class TaskFilter:
    """Criteria for task listings; unset fields match everything."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    tags: Sequence[str] = ()
    session: str = ""
    keyword: str = ""

    def matches(self, task) -> bool:
        if self.status is not None and task.status != self.status:
            return False
        if self.priority is not None and task.priority != self.priority:
            return False
        if self.tags:
            have = {t.lower() for t in task.tags}
            if not all(t.lower() in have for t in self.tags):
                return False
        if self.session:
            needle = self.session.lower()
            linked = task.sessions or ([task.session] if task.session else [])
            if not any(needle in s.lower() for s in linked):
                return False
        if self.keyword and not filter_keyword([task], self.keyword):
            return False
        return True

    def apply(self, tasks: Iterable[T]) -> list[T]:
        return sort_newest_first(t for t in tasks if self.matches(t))
