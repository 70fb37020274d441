"""Go-style duration strings ("30s", "1m", "1h30m") as used by Flux specs."""

from __future__ import annotations

import re

_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Return the duration in seconds; raise ValueError for malformed input."""
    if not isinstance(value, str) or not value:
        raise ValueError(f"invalid duration {value!r}")
    text = value
    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    for match in _PART.finditer(text):
        if match.start() != pos:
            raise ValueError(f"invalid duration {value!r}")
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ValueError(f"invalid duration {value!r}")
    return sign * total


def same_duration(a: str | None, b: str | None) -> bool:
    """Compare two duration strings by value; unparsable ones compare as text."""
    if a is None or b is None:
        return a == b
    try:
        return parse_duration(a) == parse_duration(b)
    except ValueError:
        return a == b
