"""Redpanda custom resource model."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from redpanda_controller.models import TriState

GROUP = "cluster.redpanda.com"
VERSION = "v1alpha1"
KIND = "Redpanda"
PLURAL = "redpandas"

FINALIZER_KEY = "operator.redpanda.com/finalizer"
MANAGED_ANNOTATION = f"{GROUP}/managed"
REVISION_ANNOTATION = f"{GROUP}/revision"
NOT_MANAGED = "false"

READY_CONDITION = "Ready"
PROGRESSING_REASON = "Progressing"
ARTIFACT_FAILED_REASON = "ArtifactFailed"
DEPLOYED_REASON = "RedpandaClusterDeployed"


@dataclass
class Remediation:
    retries: int | None = None
    strategy: str | None = None
    remediate_last_failure: bool | None = None

    @classmethod
    def from_dict(cls, d: dict | None) -> Remediation | None:
        if d is None:
            return None
        return cls(
            retries=d.get("retries"),
            strategy=d.get("strategy"),
            remediate_last_failure=d.get("remediateLastFailure"),
        )


@dataclass
class UpgradePolicy:
    force: bool | None = None
    cleanup_on_fail: bool | None = None
    preserve_values: bool | None = None
    remediation: Remediation | None = None

    @classmethod
    def from_dict(cls, d: dict | None) -> UpgradePolicy | None:
        if d is None:
            return None
        return cls(
            force=d.get("force"),
            cleanup_on_fail=d.get("cleanupOnFail"),
            preserve_values=d.get("preserveValues"),
            remediation=Remediation.from_dict(d.get("remediation")),
        )


@dataclass
class ChartRef:
    chart_version: str = ""
    timeout: str | None = None
    interval: str | None = None
    helm_repository_name: str = ""
    upgrade: UpgradePolicy | None = None

    @classmethod
    def from_dict(cls, d: dict | None) -> ChartRef:
        if not d:
            return cls()
        return cls(
            chart_version=d.get("chartVersion", "") or "",
            timeout=d.get("timeout"),
            interval=d.get("interval"),
            helm_repository_name=d.get("helmRepositoryName", "") or "",
            upgrade=UpgradePolicy.from_dict(d.get("upgrade")),
        )


@dataclass
class ObjectRef:
    name: str = ""
    namespace: str = ""

    @classmethod
    def from_dict(cls, d: dict | None) -> ObjectRef:
        if not d:
            return cls()
        return cls(name=d.get("name", "") or "", namespace=d.get("namespace", "") or "")

    def resolve(self, default_name: str, default_namespace: str) -> tuple[str, str]:
        """Return (namespace, name), falling back to the given defaults."""
        return self.namespace or default_namespace, self.name or default_name


@dataclass
class MigrationSpec:
    enabled: bool = False
    cluster_ref: ObjectRef = field(default_factory=ObjectRef)
    console_ref: ObjectRef = field(default_factory=ObjectRef)

    @classmethod
    def from_dict(cls, d: dict | None) -> MigrationSpec | None:
        if d is None:
            return None
        return cls(
            enabled=bool(d.get("enabled", False)),
            cluster_ref=ObjectRef.from_dict(d.get("clusterRef")),
            console_ref=ObjectRef.from_dict(d.get("consoleRef")),
        )


@dataclass
class RedpandaStatus:
    conditions: list[dict[str, Any]] = field(default_factory=list)
    observed_generation: int = 0
    helm_repository: str = ""
    helm_repository_ready: TriState = TriState.UNKNOWN
    helm_release: str = ""
    helm_release_ready: TriState = TriState.UNKNOWN
    last_attempted_revision: str = ""

    @classmethod
    def from_dict(cls, d: dict | None) -> RedpandaStatus:
        if not d:
            return cls()
        return cls(
            conditions=[dict(c) for c in d.get("conditions") or []],
            observed_generation=d.get("observedGeneration", 0) or 0,
            helm_repository=d.get("helmRepository", "") or "",
            helm_repository_ready=TriState.from_value(d.get("helmRepositoryReady")),
            helm_release=d.get("helmRelease", "") or "",
            helm_release_ready=TriState.from_value(d.get("helmReleaseReady")),
            last_attempted_revision=d.get("lastAttemptedRevision", "") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "conditions": [dict(c) for c in self.conditions],
            "observedGeneration": self.observed_generation,
            "helmRepository": self.helm_repository,
            "helmRepositoryReady": self.helm_repository_ready.value,
            "helmRelease": self.helm_release,
            "helmReleaseReady": self.helm_release_ready.value,
            "lastAttemptedRevision": self.last_attempted_revision,
        }

    def get_condition(self, cond_type: str) -> dict[str, Any] | None:
        for cond in self.conditions:
            if cond.get("type") == cond_type:
                return cond
        return None

    def set_condition(
        self,
        cond_type: str,
        status: str,
        reason: str,
        message: str,
        observed_generation: int = 0,
    ) -> None:
        """Insert or update a condition; lastTransitionTime moves only on a status change."""
        existing = self.get_condition(cond_type)
        if existing is None:
            self.conditions.append({
                "type": cond_type,
                "status": status,
                "reason": reason,
                "message": message,
                "observedGeneration": observed_generation,
                "lastTransitionTime": _now(),
            })
            return
        if existing.get("status") != status:
            existing["lastTransitionTime"] = _now()
        existing["status"] = status
        existing["reason"] = reason
        existing["message"] = message
        existing["observedGeneration"] = observed_generation


@dataclass
class RedpandaCluster:
    name: str
    namespace: str
    uid: str = ""
    generation: int = 0
    resource_version: str = ""
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    deletion_timestamp: str | None = None
    chart_ref: ChartRef = field(default_factory=ChartRef)
    cluster_spec: dict[str, Any] = field(default_factory=dict)
    migration: MigrationSpec | None = None
    status: RedpandaStatus = field(default_factory=RedpandaStatus)
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, obj: dict) -> RedpandaCluster:
        """Build a model from an API object; the input dict is never mutated."""
        raw = copy.deepcopy(obj)
        meta = raw.get("metadata", {}) or {}
        spec = raw.get("spec", {}) or {}
        return cls(
            name=meta.get("name", ""),
            namespace=meta.get("namespace", ""),
            uid=meta.get("uid", "") or "",
            generation=meta.get("generation", 0) or 0,
            resource_version=meta.get("resourceVersion", "") or "",
            annotations=dict(meta.get("annotations") or {}),
            finalizers=list(meta.get("finalizers") or []),
            deletion_timestamp=meta.get("deletionTimestamp"),
            chart_ref=ChartRef.from_dict(spec.get("chartRef")),
            cluster_spec=spec.get("clusterSpec") or {},
            migration=MigrationSpec.from_dict(spec.get("migration")),
            status=RedpandaStatus.from_dict(raw.get("status")),
            raw=raw,
        )

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def deleting(self) -> bool:
        return bool(self.deletion_timestamp)

    @property
    def managed(self) -> bool:
        return self.annotations.get(MANAGED_ANNOTATION) != NOT_MANAGED

    @property
    def has_finalizer(self) -> bool:
        return FINALIZER_KEY in self.finalizers

    @property
    def migration_enabled(self) -> bool:
        return self.migration is not None and self.migration.enabled

    @property
    def helm_release_name(self) -> str:
        return self.name

    def helm_repository_name(self, default: str) -> str:
        return self.chart_ref.helm_repository_name or default

    @property
    def resources_name(self) -> str:
        """Name shared by the chart's StatefulSet, Services, ServiceAccount and PDB."""
        return self.cluster_spec.get("fullnameOverride") or self.name

    @property
    def console_enabled(self) -> bool:
        console = self.cluster_spec.get("console") or {}
        enabled = console.get("enabled")
        return True if enabled is None else bool(enabled)

    @property
    def console_resources_name(self) -> str:
        console = self.cluster_spec.get("console") or {}
        return console.get("fullnameOverride") or self.name

    def owner_reference(self) -> dict[str, Any]:
        return {
            "apiVersion": f"{GROUP}/{VERSION}",
            "kind": KIND,
            "name": self.name,
            "uid": self.uid,
            "controller": True,
            "blockOwnerDeletion": True,
        }

    def mark_progressing(self) -> None:
        self.status.set_condition(
            READY_CONDITION, "Unknown", PROGRESSING_REASON,
            "Reconciliation in progress", self.generation,
        )

    def mark_not_ready(self, reason: str, message: str) -> None:
        self.status.set_condition(READY_CONDITION, "False", reason, message, self.generation)

    def mark_ready(self) -> None:
        self.status.set_condition(
            READY_CONDITION, "True", DEPLOYED_REASON,
            "Redpanda reconciliation succeeded", self.generation,
        )


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
