"""Markdown heading parsing, excerpt derivation and section slicing."""

from __future__ import annotations

from logosyncx.core.errors import StoreError
from logosyncx.utils.config import SectionConfig

ELLIPSIS = "…"
EXCERPT_MAX_CHARS = 300


def parse_heading(line: str) -> tuple[str, int] | None:
    """Return (title, level) for an ATX heading line, or None.

    A heading is 1-6 ``#`` characters followed by a space; ``#tag`` and
    ``####### x`` are not headings.
    """
    trimmed = line.rstrip(" \t")
    level = len(trimmed) - len(trimmed.lstrip("#"))
    if level == 0 or level > 6:
        return None
    if len(trimmed) <= level or trimmed[level] != " ":
        return None
    return trimmed[level + 1 :].strip(), level


def truncate(text: str, limit: int) -> str:
    """Truncate to ``limit`` code points, appending an ellipsis when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def extract_excerpt(body: str, section: str, limit: int = EXCERPT_MAX_CHARS) -> str:
    """Derive a bounded snippet from the named section of ``body``.

    The section is matched case-insensitively at any heading level and ends
    at the next heading of the same or a shallower level. When the section
    is missing or empty the whole trimmed body is used instead.
    """
    wanted = section.strip().lower()
    in_section = False
    current_level = 0
    collected: list[str] = []

    for line in body.split("\n"):
        heading = parse_heading(line)
        if heading is not None:
            title, level = heading
            if in_section and level <= current_level:
                break
            if title.lower() == wanted:
                in_section = True
                current_level = level
                continue
        if in_section:
            collected.append(line)

    excerpt = "\n".join(collected).strip()
    if not excerpt:
        excerpt = body.strip()
    return truncate(excerpt, limit)


def extract_sections(body: str, names: list[str]) -> str:
    """Return the sections whose headings are in ``names``, in document order.

    Heading lines are kept. An empty ``names`` list returns ``body``
    unchanged; names that match nothing contribute nothing.
    """
    if not names:
        return body

    wanted = {name.strip().lower() for name in names}
    in_wanted = False
    current_level = 0
    kept: list[str] = []

    for line in body.split("\n"):
        heading = parse_heading(line)
        if heading is not None:
            title, level = heading
            if in_wanted and level <= current_level:
                in_wanted = False
            if title.lower() in wanted:
                in_wanted = True
                current_level = level
        if in_wanted:
            kept.append(line)

    return "\n".join(kept).rstrip("\n")


def parse_section_arg(value: str) -> tuple[str, str]:
    """Split a ``Name=content`` argument on its first ``=``."""
    name, sep, content = value.partition("=")
    if not sep:
        raise StoreError(
            f"invalid section {value!r}: expected 'Name=content' (e.g. \"What=fix login\")"
        )
    name = name.strip()
    if not name:
        raise StoreError(f"invalid section {value!r}: section name must not be empty")
    return name, content


def build_body(values: list[str], sections: list[SectionConfig]) -> str:
    """Markdown body from ``Name=content`` arguments, in configured section order.

    ``sections`` is the list of SectionConfig for the entity kind; names are
    matched case-insensitively and an unconfigured name is an error.
    """
    if not values:
        return ""
    known = {s.name.strip().lower(): s for s in sections}
    contents: dict[str, str] = {}
    for value in values:
        name, content = parse_section_arg(value)
        if name.lower() not in known:
            allowed = ", ".join(s.name for s in sections)
            raise StoreError(f"unknown section {name!r} (allowed: {allowed})")
        contents[name.lower()] = content

    parts = []
    for section in sections:
        key = section.name.strip().lower()
        if key in contents:
            hashes = "#" * (section.level or 2)
            parts.append(f"{hashes} {section.name}\n\n{contents[key]}\n")
    return "\n".join(parts)


def missing_required(values: list[str], sections: list[SectionConfig]) -> list[str]:
    """Names of required sections that no ``Name=content`` argument supplies."""
    given = {parse_section_arg(v)[0].lower() for v in values}
    return [s.name for s in sections if s.required and s.name.strip().lower() not in given]
