"""Line-oriented JSON caches of session and task metadata.

Each line of an index file is one entry serialized with
``model_dump_json()``. The index is advisory: ``append`` is the cheap
optimistic path after a save, ``rebuild`` is the authoritative repair
that re-derives every entry from the store. A missing file means "never
built"; a rebuild always leaves a file behind, even an empty one.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

from logosyncx.core.errors import StoreError
from logosyncx.core.schema import LoadResult

E = TypeVar("E", bound=BaseModel)


class CorruptIndex(StoreError):
    """A structurally invalid line; ``entries`` holds everything read before it."""

    def __init__(self, path: Path, line_number: int, entries: list, reason: str) -> None:
        self.path = path
        self.line_number = line_number
        self.entries = entries
        super().__init__(f"parse {path.name} line {line_number}: {reason}")


class JsonlIndex(Generic[E]):
    def __init__(self, path: Path, entry_type: type[E]) -> None:
        self.path = path
        self.entry_type = entry_type

    def exists(self) -> bool:
        return self.path.is_file()

    def read_all(self) -> list[E]:
        """Return every entry, skipping blank lines.

        Raises FileNotFoundError when the index has never been built and
        CorruptIndex at the first line that does not parse.
        """
        entries: list[E] = []
        with open(self.path, encoding="utf-8") as f:
            for line_number, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    entries.append(self.entry_type.model_validate_json(line))
                except ValidationError as e:
                    raise CorruptIndex(self.path, line_number, entries, str(e)) from e
        return entries

    def append(self, entry: E) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(entry.model_dump_json() + "\n")

    def rebuild(self, load: Callable[[], LoadResult]) -> LoadResult:
        """Truncate the index and append one entry per document ``load`` yields.

        The returned LoadResult holds the written entries and the parse
        diagnostics of documents that could not be indexed.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")

        loaded = load()
        result = LoadResult(errors=list(loaded.errors))
        for doc in loaded.items:
            entry = doc.to_entry()
            self.append(entry)
            result.items.append(entry)
        return result
