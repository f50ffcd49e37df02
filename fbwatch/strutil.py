"""Small helpers for working with lists of strings."""

from __future__ import annotations

from collections.abc import Iterable


def contain_string(items: Iterable[str] | None, s: str) -> bool:
    """Return True if ``s`` is one of ``items``."""
    return s in (items or ())


def remove_string(items: Iterable[str] | None, s: str) -> list[str]:
    """Return ``items`` with every occurrence of ``s`` left out, order kept."""
    return [item for item in (items or ()) if item != s]


def concat_string(items: Iterable[str] | None, sep: str) -> str:
    """Join ``items`` with ``sep``; an empty or missing list gives ``""``."""
    return sep.join(items or ())