"""Exceptions raised by the reconciliation engine."""

from __future__ import annotations


class ReconcileError(Exception):
    """Base class for reconcile failures that are not raw API errors."""


class TemplateError(ReconcileError):
    """The desired HelmRelease could not be built from the Redpanda spec."""


class DeletionPending(ReconcileError):
    """The HelmRelease delete was issued and its disappearance is awaited."""

    def __init__(self, message: str = "wait for helm release deletion", delay: float = 1.0):
        super().__init__(message)
        self.delay = delay


class MigrationError(ReconcileError):
    """One or more migration steps failed; the rest still ran."""

    def __init__(self, failures: list[tuple[str, Exception]]):
        self.failures = list(failures)
        super().__init__(self._render())

    @property
    def steps(self) -> list[str]:
        return [step for step, _ in self.failures]

    def _render(self) -> str:
        lines = [f"{len(self.failures)} migration step(s) failed:"]
        for step, err in self.failures:
            lines.append(f"  {step}: {err}")
        return "\n".join(lines)
