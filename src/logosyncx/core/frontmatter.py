"""Frontmatter codec for session and task documents.

A document is a ``---``-delimited metadata block followed by a free-form
markdown body::

    ---
    id: 3fa2c1
    topic: auth refactor
    tags: ["go", "cli"]
    ---

    ## Summary
    ...

The metadata block is a flat ``key: value`` record. Lists are written as
JSON-style flow arrays; YAML block lists (``- item`` lines) and unquoted
flow arrays (``[a, b]``) are accepted on read so hand-edited files still
parse. Simple key: value parsing -- no PyYAML dependency needed.
"""

from __future__ import annotations

import json
from typing import Any

from logosyncx.core.errors import MalformedDocument

DELIMITER = "---"

_RESERVED_WORDS = {"true", "false", "null", "~"}


def split_frontmatter(text: str) -> tuple[str, str]:
    """Split a raw document into (metadata_text, body).

    The body is returned verbatim apart from the single newline that
    terminates the closing delimiter line. Raises MalformedDocument when
    either delimiter is missing.
    """
    if not text.startswith(DELIMITER):
        raise MalformedDocument("missing frontmatter: file must begin with '---'")

    rest = text[len(DELIMITER) :]
    if rest.startswith("\r\n"):
        rest = rest[2:]
    elif rest.startswith("\n"):
        rest = rest[1:]

    if rest.startswith(DELIMITER):
        # Empty metadata block
        metadata_text = ""
        remainder = rest[len(DELIMITER) :]
    else:
        idx = rest.find("\n" + DELIMITER)
        if idx == -1:
            raise MalformedDocument("missing closing '---' for frontmatter")
        metadata_text = rest[:idx]
        remainder = rest[idx + 1 + len(DELIMITER) :]

    if remainder.startswith("\r\n"):
        remainder = remainder[2:]
    elif remainder.startswith("\n"):
        remainder = remainder[1:]
    return metadata_text, remainder


def parse_metadata(text: str) -> dict[str, Any]:
    """Parse a flat key/value metadata block into a dict."""
    metadata: dict[str, Any] = {}
    list_key: str | None = None

    for lineno, raw in enumerate(text.splitlines(), 1):
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            continue

        # YAML block list item belonging to the previous empty key
        if stripped == "-" or stripped.startswith("- "):
            if list_key is None:
                raise MalformedDocument(f"line {lineno}: list item without a key")
            if not isinstance(metadata[list_key], list):
                metadata[list_key] = []
            metadata[list_key].append(_parse_value(stripped[1:].strip()))
            continue

        key, sep, value = raw.partition(":")
        key = key.strip()
        if not sep or not key:
            hint = ""
            if "{{" in raw:
                hint = " (hint: replace template placeholders before saving)"
            raise MalformedDocument(f"line {lineno}: expected 'key: value', got {raw!r}{hint}")

        value = value.strip()
        metadata[key] = _parse_value(value)
        list_key = key if value == "" else None

    return metadata


def _parse_value(value: str) -> Any:
    if value.startswith("[") or value.startswith('"'):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            if value.startswith("[") and value.endswith("]"):
                # Unquoted flow array like [go, cli]
                return [v.strip().strip("\"'") for v in value[1:-1].split(",") if v.strip()]
            raise MalformedDocument(f"unparseable value: {value}") from None
    if len(value) >= 2 and value.startswith("'") and value.endswith("'"):
        return value[1:-1].replace("''", "'")
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered in ("null", "~"):
        return None
    return value


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value), ensure_ascii=False)
    text = str(value)
    if _needs_quoting(text):
        return json.dumps(text, ensure_ascii=False)
    return text


def _needs_quoting(text: str) -> bool:
    if text == "" or text != text.strip():
        return True
    if "\n" in text or "\r" in text:
        return True
    if text[0] in "[\"'#":
        return True
    return text.lower() in _RESERVED_WORDS


def parse_document(text: str) -> tuple[dict[str, Any], str]:
    """Parse a complete document into (metadata_dict, body)."""
    metadata_text, body = split_frontmatter(text)
    return parse_metadata(metadata_text), body


def build_document(metadata: dict[str, Any], body: str) -> str:
    """Serialize metadata and body back into a document.

    A body that does not already start with a newline gets one inserted
    after the closing delimiter, so parse(build(m, b)) returns either ``b``
    or ``"\\n" + b``.
    """
    lines = [DELIMITER]
    for key, value in metadata.items():
        lines.append(f"{key}: {_format_value(value)}")
    lines.append(DELIMITER)
    text = "\n".join(lines) + "\n"
    if body:
        if not body.startswith("\n"):
            text += "\n"
        text += body
    return text
