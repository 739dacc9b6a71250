"""Project settings stored in .logosyncx/config.json."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from logosyncx.core.errors import ConfigError
from logosyncx.utils.paths import config_path, store_path

DEFAULT_LINKED_TASK_DONE_DAYS = 30
DEFAULT_ORPHAN_SESSION_DAYS = 90


class SectionConfig(BaseModel):
    name: str
    level: int = 2
    required: bool = False


def _session_sections() -> list[SectionConfig]:
    return [
        SectionConfig(name="Summary", required=True),
        SectionConfig(name="Key Decisions"),
        SectionConfig(name="Context Used"),
        SectionConfig(name="Notes"),
        SectionConfig(name="Raw Conversation"),
    ]


def _task_sections() -> list[SectionConfig]:
    return [
        SectionConfig(name="What", required=True),
        SectionConfig(name="Why"),
        SectionConfig(name="Scope"),
        SectionConfig(name="Checklist"),
        SectionConfig(name="Notes"),
    ]


class SessionsConfig(BaseModel):
    summary_sections: list[str] = Field(default_factory=lambda: ["Summary", "Key Decisions"])
    # Renaming after sessions exist leaves stale excerpts until `logos sync`
    excerpt_section: str = "Summary"
    sections: list[SectionConfig] = Field(default_factory=_session_sections)


class TasksConfig(BaseModel):
    default_status: str = "open"
    default_priority: str = "medium"
    summary_sections: list[str] = Field(default_factory=lambda: ["What", "Checklist"])
    excerpt_section: str = "What"
    sections: list[SectionConfig] = Field(default_factory=_task_sections)


class PrivacyConfig(BaseModel):
    filter_patterns: list[str] = Field(default_factory=list)


class GitConfig(BaseModel):
    auto_push: bool = False


class GcConfig(BaseModel):
    linked_task_done_days: int = DEFAULT_LINKED_TASK_DONE_DAYS
    orphan_session_days: int = DEFAULT_ORPHAN_SESSION_DAYS


class Settings(BaseModel):
    version: str = "1"
    project: str = ""
    agents_file: str = "AGENTS.md"
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    tasks: TasksConfig = Field(default_factory=TasksConfig)
    privacy: PrivacyConfig = Field(default_factory=PrivacyConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    gc: GcConfig = Field(default_factory=GcConfig)


_REQUIRED_KEYS: dict[str, list[str]] = {
    "sessions": ["summary_sections", "excerpt_section", "sections"],
    "tasks": ["default_status", "default_priority", "summary_sections", "excerpt_section", "sections"],
    "gc": ["linked_task_done_days", "orphan_session_days"],
}


def default_settings(project: str = "") -> Settings:
    return Settings(project=project)


def load_settings(project_root: Path) -> Settings:
    """Load config.json, falling back to defaults for a missing file or empty fields."""
    path = config_path(project_root)
    if not path.is_file():
        return default_settings(project_root.name)
    try:
        settings = Settings.model_validate_json(path.read_text())
    except ValidationError as e:
        raise ConfigError(f"invalid {path.name}: {e}") from e
    _apply_defaults(settings, project_root)
    return settings


def save_settings(project_root: Path, settings: Settings) -> None:
    store_path(project_root).mkdir(parents=True, exist_ok=True)
    config_path(project_root).write_text(
        json.dumps(settings.model_dump(mode="json"), indent="\t") + "\n"
    )


def migrate_settings(project_root: Path) -> bool:
    """Rewrite config.json with defaults when expected keys are absent.

    Never removes or overrides keys that are present. Returns True when the
    file was rewritten; a missing or malformed file is left alone.
    """
    path = config_path(project_root)
    if not path.is_file():
        return False
    try:
        raw = json.loads(path.read_text())
    except json.JSONDecodeError:
        return False
    if not isinstance(raw, dict) or not _migration_needed(raw):
        return False
    save_settings(project_root, load_settings(project_root))
    return True


def _migration_needed(raw: dict) -> bool:
    for key in ("version", "agents_file"):
        if key not in raw:
            return True
    for group, keys in _REQUIRED_KEYS.items():
        sub = raw.get(group)
        if not isinstance(sub, dict):
            return True
        if any(k not in sub for k in keys):
            return True
    return False


def _apply_defaults(settings: Settings, project_root: Path) -> None:
    """Fill zero-value fields that a hand-edited config may carry."""
    defaults = Settings()
    if not settings.version:
        settings.version = defaults.version
    if not settings.project:
        settings.project = project_root.name
    if not settings.agents_file:
        settings.agents_file = defaults.agents_file

    s, ds = settings.sessions, defaults.sessions
    if not s.summary_sections:
        s.summary_sections = ds.summary_sections
    if not s.excerpt_section:
        s.excerpt_section = ds.excerpt_section
    if not s.sections:
        s.sections = ds.sections

    t, dt = settings.tasks, defaults.tasks
    if not t.default_status:
        t.default_status = dt.default_status
    if not t.default_priority:
        t.default_priority = dt.default_priority
    if not t.summary_sections:
        t.summary_sections = dt.summary_sections
    if not t.excerpt_section:
        t.excerpt_section = dt.excerpt_section
    if not t.sections:
        t.sections = dt.sections

    if settings.gc.linked_task_done_days == 0:
        settings.gc.linked_task_done_days = DEFAULT_LINKED_TASK_DONE_DAYS
    if settings.gc.orphan_session_days == 0:
        settings.gc.orphan_session_days = DEFAULT_ORPHAN_SESSION_DAYS
