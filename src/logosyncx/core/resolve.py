"""Name resolution shared by sessions and tasks.

A query is compared against every name facet of each candidate (filename
stem, topic/title, id). Case-insensitive equality on any facet is an
*exact* match; substring containment is a *partial* match. A single exact
match wins outright, otherwise exact and partial matches are returned
together and the caller decides what 0, 1 or many results mean.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

from logosyncx.core.errors import Ambiguous, NotFound

T = TypeVar("T")


def locate(query: str, candidates: Iterable[T], names: Callable[[T], Iterable[str]]) -> list[T]:
    """Return the candidates matching query, exact matches first."""
    lowered = query.lower()
    exact: list[T] = []
    partial: list[T] = []

    for candidate in candidates:
        facets = [n.lower() for n in names(candidate) if n]
        if any(f == lowered for f in facets):
            exact.append(candidate)
        elif any(lowered in f for f in facets):
            partial.append(candidate)

    if len(exact) == 1:
        return exact
    return exact + partial


def resolve_one(
    query: str,
    candidates: Iterable[T],
    names: Callable[[T], Iterable[str]],
    label: Callable[[T], str],
    where: str = "",
) -> T:
    """Return the single candidate matching query.

    Raises NotFound for no match and Ambiguous (carrying the candidate
    labels in order) for more than one.
    """
    matches = locate(query, candidates, names)
    if not matches:
        raise NotFound(query, where)
    if len(matches) > 1:
        raise Ambiguous(query, [label(m) for m in matches])
    return matches[0]


def document_names(doc) -> list[str]:
    """Name facets of a session or task: filename stem, topic/title, id."""
    title = getattr(doc, "topic", None)
    if title is None:
        title = getattr(doc, "title", "")
    return [doc.stem, title, doc.id]
