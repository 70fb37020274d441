"""Flux source and helm controller object views."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SOURCE_GROUP = "source.toolkit.fluxcd.io"
SOURCE_VERSION = "v1beta2"
HELM_REPOSITORY_KIND = "HelmRepository"
HELM_REPOSITORY_PLURAL = "helmrepositories"

HELM_GROUP = "helm.toolkit.fluxcd.io"
HELM_VERSION = "v2beta1"
HELM_RELEASE_KIND = "HelmRelease"
HELM_RELEASE_PLURAL = "helmreleases"


@dataclass
class FluxObjectState:
    """Readiness-relevant fields of a Flux object as reported by its controller."""

    kind: str
    name: str = ""
    namespace: str = ""
    generation: int = 0
    observed_generation: int | None = None
    conditions: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, kind: str, obj: dict) -> FluxObjectState:
        meta = obj.get("metadata", {}) or {}
        status = obj.get("status", {}) or {}
        return cls(
            kind=kind,
            name=meta.get("name", ""),
            namespace=meta.get("namespace", ""),
            generation=meta.get("generation", 0) or 0,
            observed_generation=status.get("observedGeneration"),
            conditions=list(status.get("conditions") or []),
        )

    @property
    def generation_fresh(self) -> bool:
        """True once the owning controller has observed the current generation."""
        return self.observed_generation is not None and self.observed_generation == self.generation

    @property
    def condition_ready(self) -> bool:
        for cond in self.conditions:
            if cond.get("type") == "Ready":
                return cond.get("status") == "True"
        return False

    @property
    def subject(self) -> str:
        return f"{self.kind} '{self.namespace}/{self.name}'"
