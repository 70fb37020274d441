"""Compact rendering of HelmRelease values drift for log lines."""

from __future__ import annotations

import re

from deepdiff import DeepDiff

# Longest list of paths written to a single log line
MAX_PATHS = 10

_KEY = re.compile(r"\['([^']*)'\]")

_LABELS = {
    "values_changed": "changed",
    "type_changes": "retyped",
    "dictionary_item_added": "added",
    "dictionary_item_removed": "removed",
    "iterable_item_added": "added",
    "iterable_item_removed": "removed",
}


def _short(path: str) -> str:
    # root['statefulset']['replicas'] -> statefulset.replicas
    short = _KEY.sub(r".\1", path[len("root"):] if path.startswith("root") else path)
    return short.lstrip(".") or "<root>"


def format_diff(diff: DeepDiff) -> list[str]:
    """One "<action> <path>" entry per differing values path, capped at MAX_PATHS."""
    entries: list[str] = []
    for report, label in _LABELS.items():
        for path in diff.get(report, {}):
            entries.append(f"{label} {_short(path)}")
    if len(entries) > MAX_PATHS:
        hidden = len(entries) - MAX_PATHS
        entries = entries[:MAX_PATHS] + [f"... and {hidden} more"]
    return entries or ["values differ"]
