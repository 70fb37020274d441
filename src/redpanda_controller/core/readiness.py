"""Hysteretic readiness latch for Flux dependents."""

from __future__ import annotations

from redpanda_controller.models import Notification, Severity, TriState

READY_FMT = "{} is ready"
NOT_READY_FMT = "{} is not ready"


def latch(
    prev: TriState,
    generation_fresh: bool,
    condition_ready: bool,
    subject: str = "resource",
) -> tuple[TriState, Notification | None]:
    """Fold one readiness observation into the stored tri-state.

    A notification is returned only on a transition. UNKNOWN counts as
    ready-adjacent: UNKNOWN -> READY is silent, UNKNOWN -> NOT_READY is not.
    """
    if not generation_fresh or not condition_ready:
        if prev is not TriState.NOT_READY:
            return TriState.NOT_READY, Notification(Severity.INFO, NOT_READY_FMT.format(subject))
        return TriState.NOT_READY, None

    if prev is TriState.NOT_READY:
        return TriState.READY, Notification(Severity.INFO, READY_FMT.format(subject))
    return TriState.READY, None
