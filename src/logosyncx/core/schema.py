"""Pydantic v2 models for sessions, tasks and their index entries."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from logosyncx.core.errors import MalformedDocument
from logosyncx.core.frontmatter import build_document, parse_document
from logosyncx.core.sections import extract_excerpt

TASK_ID_PREFIX = "t-"


def _now() -> datetime:
    # Local time: filename dates follow the local calendar day
    return datetime.now().astimezone()


def new_session_id() -> str:
    return secrets.token_hex(3)


def new_task_id() -> str:
    return TASK_ID_PREFIX + secrets.token_hex(3)


def slugify(title: str) -> str:
    """Lower-case, spaces to hyphens, drop everything but [a-z0-9_-]."""
    chars = []
    for ch in title.strip().lower():
        if ch == " ":
            chars.append("-")
        elif ("a" <= ch <= "z") or ("0" <= ch <= "9") or ch in "-_":
            chars.append(ch)
    return "".join(chars) or "untitled"


def derive_filename(when: datetime | None, title: str) -> str:
    """Canonical ``YYYY-MM-DD_<slug>.md`` name; an unset date means now."""
    stamp = (when or _now()).strftime("%Y-%m-%d")
    return f"{stamp}_{slugify(title)}.md"


def _as_list(value: Any) -> Any:
    if value is None or value == "":
        return []
    if isinstance(value, str):
        return [value]
    return value


def _as_str(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def _as_datetime(value: Any) -> Any:
    if value == "":
        return None
    if isinstance(value, str) and len(value) == 10:
        try:
            value = date.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return value


def _aware(value: datetime | None) -> datetime | None:
    # Naive timestamps are taken as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# -- Enums --


class TaskStatus(str, Enum):
    open = "open"
    in_progress = "in_progress"
    done = "done"
    cancelled = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (TaskStatus.done, TaskStatus.cancelled)


class TaskPriority(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


# -- Bulk loading --


@dataclass
class LoadResult:
    """Every document that parsed, plus one diagnostic per document that did not."""

    items: list = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def warning(self, kind: str = "document") -> str:
        if not self.errors:
            return ""
        return f"some {kind} files could not be parsed:\n  " + "\n  ".join(self.errors)


# -- Documents --


class _Document(BaseModel):
    """Frontmatter fields plus the derived filename, excerpt and body."""

    DEFAULT_EXCERPT_SECTION: ClassVar[str] = "Summary"

    filename: str = Field(default="", exclude=True)
    excerpt: str = Field(default="", exclude=True)
    body: str = Field(default="", exclude=True)

    @property
    def stem(self) -> str:
        return self.filename[:-3] if self.filename.endswith(".md") else self.filename

    def frontmatter(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    def to_document(self) -> str:
        return build_document(self.frontmatter(), self.body)

    @classmethod
    def from_document(cls, filename: str, text: str, excerpt_section: str | None = None):
        try:
            metadata, body = parse_document(text)
        except MalformedDocument as e:
            raise MalformedDocument(f"parse {filename}: {e}") from e
        try:
            doc = cls.model_validate(metadata)
        except ValidationError as e:
            raise MalformedDocument(f"parse frontmatter in {filename}: {e}") from e
        doc.filename = filename
        doc.body = body
        doc.excerpt = extract_excerpt(body, excerpt_section or cls.DEFAULT_EXCERPT_SECTION)
        return doc


class Session(_Document):
    id: str = ""
    date: datetime | None = None
    topic: str = ""
    tags: list[str] = Field(default_factory=list)
    agent: str = ""
    related: list[str] = Field(default_factory=list)
    tasks: list[str] = Field(default_factory=list)

    @field_validator("tags", "related", "tasks", mode="before")
    @classmethod
    def coerce_lists(cls, v: Any) -> Any:
        return _as_list(v)

    @field_validator("id", "topic", "agent", mode="before")
    @classmethod
    def coerce_strings(cls, v: Any) -> Any:
        return _as_str(v)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> Any:
        return _as_datetime(v)

    @field_validator("date")
    @classmethod
    def date_aware(cls, v: datetime | None) -> datetime | None:
        return _aware(v)

    def canonical_filename(self) -> str:
        return derive_filename(self.date, self.topic)

    def to_entry(self) -> SessionEntry:
        return SessionEntry(**self.model_dump(), filename=self.filename, excerpt=self.excerpt)


class Task(_Document):
    DEFAULT_EXCERPT_SECTION: ClassVar[str] = "What"

    id: str = ""
    date: datetime | None = None
    title: str = ""
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    session: str = ""
    sessions: list[str] = Field(default_factory=list)
    related: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    assignee: str = ""
    completed_at: datetime | None = None

    @field_validator("sessions", "related", "tags", mode="before")
    @classmethod
    def coerce_lists(cls, v: Any) -> Any:
        return _as_list(v)

    @field_validator("id", "title", "session", "assignee", mode="before")
    @classmethod
    def coerce_strings(cls, v: Any) -> Any:
        return _as_str(v)

    @field_validator("date", "completed_at", mode="before")
    @classmethod
    def coerce_dates(cls, v: Any) -> Any:
        return _as_datetime(v)

    @field_validator("date", "completed_at")
    @classmethod
    def dates_aware(cls, v: datetime | None) -> datetime | None:
        return _aware(v)

    def canonical_filename(self) -> str:
        return derive_filename(self.date, self.title)

    def linked_sessions(self) -> list[str]:
        """All linked session filenames; the legacy ``session`` field is the fallback."""
        if self.sessions:
            return list(self.sessions)
        return [self.session] if self.session else []

    def to_entry(self) -> TaskEntry:
        return TaskEntry(**self.model_dump(), filename=self.filename, excerpt=self.excerpt)


# -- Index entries --


class SessionEntry(BaseModel):
    id: str = ""
    filename: str = ""
    date: datetime | None = None
    topic: str = ""
    tags: list[str] = Field(default_factory=list)
    agent: str = ""
    related: list[str] = Field(default_factory=list)
    tasks: list[str] = Field(default_factory=list)
    excerpt: str = ""

    @field_validator("tags", "related", "tasks", mode="before")
    @classmethod
    def coerce_lists(cls, v: Any) -> Any:
        return _as_list(v)


class TaskEntry(BaseModel):
    id: str = ""
    filename: str = ""
    date: datetime | None = None
    title: str = ""
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    session: str = ""
    sessions: list[str] = Field(default_factory=list)
    related: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    assignee: str = ""
    completed_at: datetime | None = None
    excerpt: str = ""

    @field_validator("sessions", "related", "tags", mode="before")
    @classmethod
    def coerce_lists(cls, v: Any) -> Any:
        return _as_list(v)
