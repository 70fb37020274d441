"""JSON merge patch (RFC 7386) construction."""

from __future__ import annotations

from typing import Any


def merge_patch(original: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
    """Return the merge patch that turns ``original`` into ``desired``.

    Keys missing from ``desired`` are nulled out; nested dicts recurse;
    lists and scalars are replaced wholesale.
    """
    patch: dict[str, Any] = {}
    for key in original:
        if key not in desired:
            patch[key] = None
    for key, value in desired.items():
        old = original.get(key)
        if isinstance(value, dict) and isinstance(old, dict):
            inner = merge_patch(old, value)
            if inner:
                patch[key] = inner
        elif key not in original or old != value:
            patch[key] = value
    return patch
