"""Readiness and condition color maps."""

from redpanda_controller.models import TriState

READY_COLORS: dict[TriState, str] = {
    TriState.READY: "green",
    TriState.NOT_READY: "red bold",
    TriState.UNKNOWN: "yellow",
}

CONDITION_COLORS: dict[str, str] = {
    "True": "green",
    "False": "red bold",
    "Unknown": "yellow",
}

READY_LABELS: dict[TriState, str] = {
    TriState.READY: "ready",
    TriState.NOT_READY: "not ready",
    TriState.UNKNOWN: "unknown",
}


def styled_ready(state: TriState) -> str:
    color = READY_COLORS.get(state, "white")
    return f"[{color}]{READY_LABELS.get(state, state.value)}[/{color}]"


def styled_condition(status: str) -> str:
    color = CONDITION_COLORS.get(status, "white")
    return f"[{color}]{status}[/{color}]"
