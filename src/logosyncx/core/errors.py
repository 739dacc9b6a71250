"""Exception taxonomy shared by the stores, the codec and the resolver."""

from __future__ import annotations


class StoreError(Exception):
    pass


class NotInitialized(StoreError):
    def __init__(self, message: str = "not a logosyncx project (run `logos init` first)") -> None:
        super().__init__(message)


class MalformedDocument(StoreError):
    """A document is missing its frontmatter delimiters or has unparseable metadata."""


class ConfigError(StoreError):
    pass


class UnknownField(StoreError):
    pass


class NotFound(StoreError):
    def __init__(self, query: str, where: str = "") -> None:
        self.query = query
        suffix = f" in {where}" if where else ""
        super().__init__(f"not found: {query!r}{suffix}")


class Ambiguous(StoreError):
    """More than one document matched a query that must select exactly one."""

    def __init__(self, query: str, candidates: list[str]) -> None:
        self.query = query
        self.candidates = candidates
        super().__init__(
            f"ambiguous: {query!r} matches {', '.join(candidates)}"
        )
