"""Lookup helpers between device enumeration values and list positions."""

from __future__ import annotations

from typing import Any, Callable, Iterable


def enum_to_index(
    value: Any,
    items: Iterable[Any],
    key: Callable[[Any], Any] | None = None,
) -> int:
    """Return the position of the first item whose key equals ``value``.

    Without ``key`` the items themselves are compared.
    Raises ValueError when no item matches.
    """
    for index, item in enumerate(items):
        candidate = item if key is None else key(item)
        if candidate == value:
            return index
    raise ValueError(f"{value!r} not found")