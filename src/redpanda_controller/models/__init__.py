"""Data models for the Redpanda controller."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class TriState(enum.Enum):
    UNKNOWN = "Unknown"
    READY = "True"
    NOT_READY = "False"

    @classmethod
    def from_value(cls, value: Any) -> TriState:
        """Parse a stored readiness flag; booleans come from older status objects."""
        if value is True:
            return cls.READY
        if value is False:
            return cls.NOT_READY
        for member in cls:
            if member.value == value:
                return member
        return cls.UNKNOWN


class Severity(enum.Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def event_type(self) -> str:
        return "Normal" if self is Severity.INFO else "Warning"


@dataclass
class Notification:
    severity: Severity
    message: str


@dataclass
class ReconcileResult:
    """Outcome of one reconcile invocation; requeue_after is in seconds, 0 means none."""

    requeue_after: float = 0.0

    @property
    def requeue(self) -> bool:
        return self.requeue_after > 0
