"""One-shot hand-over of legacy Redpanda resources to the Flux/Helm release.

Resources created by the legacy (vectorized) controller are re-tagged so
that Helm can adopt them, and the legacy Cluster/Console objects are told to
stop reconciling. Every step re-checks its own precondition, so running the
migration again only touches what is still unmigrated.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any

from redpanda_controller.core.events import EventRecorder
from redpanda_controller.core.k8s_client import K8sClient
from redpanda_controller.core.registry import LEGACY_GROUP, ResourceRegistry
from redpanda_controller.errors import MigrationError
from redpanda_controller.models import Severity
from redpanda_controller.models.cluster import (
    FINALIZER_KEY,
    NOT_MANAGED,
    MigrationSpec,
    ObjectRef,
    RedpandaCluster,
)
from redpanda_controller.utils import meta

logger = logging.getLogger(__name__)

LEGACY_MANAGED_ANNOTATION = f"{LEGACY_GROUP}/managed"
CONSOLE_SA_FINALIZER = "consoles.redpanda.vectorized.io/service-account"
CONSOLE_ACL_FINALIZER = "consoles.redpanda.vectorized.io/acl"

INSTANCE_LABEL = "app.kubernetes.io/instance"
NAME_LABEL = "app.kubernetes.io/name"
COMPONENT_LABEL = "app.kubernetes.io/component"
REDPANDA_APP = "redpanda"
CONSOLE_APP = "console"
STATEFULSET_COMPONENT = "redpanda-statefulset"

ORPHAN = "Orphan"


@dataclass
class MigrationContext:
    cluster: RedpandaCluster
    k8s: K8sClient
    registry: ResourceRegistry
    recorder: EventRecorder

    def fetch(self, kind: str, name: str, namespace: str | None = None) -> dict[str, Any] | None:
        obj = self.k8s.get(self.registry.get(kind), name, namespace or self.cluster.namespace)
        if obj is None:
            logger.debug("%s %s not found, nothing to migrate", kind, name)
        return obj

    def update(self, kind: str, obj: dict[str, Any]) -> dict[str, Any]:
        return self.k8s.replace(self.registry.get(kind), obj)

    def announce(self, obj: dict[str, Any], message: str) -> None:
        self.recorder.event(
            obj, Severity.INFO, message, self.cluster.status.last_attempted_revision,
        )

    def owned_by_release(self, obj: dict[str, Any]) -> bool:
        return meta.has_helm_ownership(obj, self.cluster.name, self.cluster.namespace)

    def stamp(self, obj: dict[str, Any]) -> None:
        meta.set_helm_ownership(obj, self.cluster.name, self.cluster.namespace)


class MigrationStep:
    """A single independent unit of migration work."""

    kind: str

    @property
    def name(self) -> str:
        raise NotImplementedError

    def ensure_migrated(self, ctx: MigrationContext) -> None:
        raise NotImplementedError


def _legacy_managed(obj: dict[str, Any]) -> bool:
    return meta.annotations_of(obj).get(LEGACY_MANAGED_ANNOTATION) != NOT_MANAGED


@dataclass
class DisableLegacyCluster(MigrationStep):
    ref: ObjectRef
    kind: str = "Cluster"

    @property
    def name(self) -> str:
        return "legacy cluster"

    def ensure_migrated(self, ctx: MigrationContext) -> None:
        namespace, name = self.ref.resolve(ctx.cluster.name, ctx.cluster.namespace)
        legacy = ctx.fetch(self.kind, name, namespace)
        if legacy is None or not _legacy_managed(legacy):
            return
        annotated = copy.deepcopy(legacy)
        meta.set_annotation(annotated, LEGACY_MANAGED_ANNOTATION, NOT_MANAGED)
        ctx.update(self.kind, annotated)
        logger.debug("disabled Cluster reconciliation for %s/%s", namespace, name)
        ctx.announce(annotated, "update Cluster custom resource")


@dataclass
class DisableLegacyConsole(MigrationStep):
    ref: ObjectRef
    kind: str = "Console"

    @property
    def name(self) -> str:
        return "legacy console"

    def ensure_migrated(self, ctx: MigrationContext) -> None:
        namespace, name = self.ref.resolve(ctx.cluster.name, ctx.cluster.namespace)
        console = ctx.fetch(self.kind, name, namespace)
        if console is None:
            return
        if not (
            _legacy_managed(console)
            or meta.has_finalizer(console, CONSOLE_SA_FINALIZER)
            or meta.has_finalizer(console, CONSOLE_ACL_FINALIZER)
        ):
            return
        annotated = copy.deepcopy(console)
        meta.set_annotation(annotated, LEGACY_MANAGED_ANNOTATION, NOT_MANAGED)
        meta.remove_finalizer(annotated, CONSOLE_SA_FINALIZER)
        meta.remove_finalizer(annotated, CONSOLE_ACL_FINALIZER)
        ctx.update(self.kind, annotated)
        logger.debug(
            "disabled Console reconciliation for %s/%s, finalizers now %s",
            namespace, name, annotated["metadata"].get("finalizers"),
        )
        ctx.announce(annotated, "update Console custom resource")


@dataclass
class RelabelPods(MigrationStep):
    kind: str = "Pod"

    @property
    def name(self) -> str:
        return "pods"

    def ensure_migrated(self, ctx: MigrationContext) -> None:
        pods = ctx.k8s.list(
            ctx.registry.get(self.kind),
            ctx.cluster.namespace,
            {INSTANCE_LABEL: ctx.cluster.name, NAME_LABEL: REDPANDA_APP},
        )
        failures: list[tuple[str, Exception]] = []
        for pod in pods:
            labelled = meta.labels_of(pod).get(COMPONENT_LABEL) == STATEFULSET_COMPONENT
            if labelled and not meta.has_finalizer(pod, FINALIZER_KEY):
                continue
            relabelled = copy.deepcopy(pod)
            meta.set_label(relabelled, COMPONENT_LABEL, STATEFULSET_COMPONENT)
            meta.remove_finalizer(relabelled, FINALIZER_KEY)
            pod_name = relabelled["metadata"].get("name", "")
            try:
                ctx.update(self.kind, relabelled)
            except Exception as e:
                failures.append((f"pod {pod_name}", e))
                continue
            logger.debug("relabelled pod %s", pod_name)
            ctx.announce(relabelled, "update Redpanda Pod")
        if failures:
            raise MigrationError(failures)


@dataclass
class AdoptMetadata(MigrationStep):
    """Stamp Helm ownership markers, optionally pinning a Service selector."""

    kind: str
    resource_name: str
    label: str
    selector: dict[str, str] | None = None

    @property
    def name(self) -> str:
        return f"{self.label} ({self.resource_name})"

    def _selector_matches(self, obj: dict[str, Any]) -> bool:
        if self.selector is None:
            return True
        return ((obj.get("spec") or {}).get("selector") or {}) == self.selector

    def ensure_migrated(self, ctx: MigrationContext) -> None:
        obj = ctx.fetch(self.kind, self.resource_name)
        if obj is None:
            return
        if ctx.owned_by_release(obj) and self._selector_matches(obj):
            return
        adopted = copy.deepcopy(obj)
        ctx.stamp(adopted)
        if self.selector is not None:
            adopted.setdefault("spec", {})["selector"] = dict(self.selector)
        ctx.update(self.kind, adopted)
        logger.debug("stamped helm ownership on %s %s", self.kind, self.resource_name)
        ctx.announce(adopted, f"update {self.label}")


@dataclass
class RecreateWorkload(MigrationStep):
    """Delete a workload whose immutable fields prevent in-place adoption.

    Flux recreates it from the chart; Orphan propagation keeps the pods
    and volumes of the old object running.
    """

    kind: str
    resource_name: str
    label: str
    propagation: str | None = None

    @property
    def name(self) -> str:
        return f"{self.label} ({self.resource_name})"

    def ensure_migrated(self, ctx: MigrationContext) -> None:
        obj = ctx.fetch(self.kind, self.resource_name)
        if obj is None or ctx.owned_by_release(obj):
            return
        ctx.k8s.delete(
            ctx.registry.get(self.kind), self.resource_name, ctx.cluster.namespace,
            propagation=self.propagation,
        )
        mode = f" with {self.propagation.lower()} propagation mode" if self.propagation else ""
        logger.debug("deleted %s %s%s", self.kind, self.resource_name, mode)
        ctx.announce(obj, f"delete {self.label}{mode}")


def plan(cluster: RedpandaCluster) -> list[MigrationStep]:
    """The fixed, ordered set of steps for a Redpanda's migration."""
    migration = cluster.migration or MigrationSpec()
    name = cluster.resources_name
    steps: list[MigrationStep] = [
        DisableLegacyCluster(migration.cluster_ref),
        DisableLegacyConsole(migration.console_ref),
        RelabelPods(),
        AdoptMetadata(
            "Service", name, "internal Service",
            selector={INSTANCE_LABEL: cluster.name, NAME_LABEL: REDPANDA_APP},
        ),
        AdoptMetadata("Service", f"{name}-external", "external Service"),
        AdoptMetadata("ServiceAccount", name, "ServiceAccount"),
        AdoptMetadata("PodDisruptionBudget", name, "PodDisruptionBudget"),
        RecreateWorkload("StatefulSet", name, "StatefulSet", propagation=ORPHAN),
    ]
    if cluster.console_enabled:
        console = cluster.console_resources_name
        steps.extend([
            AdoptMetadata("ServiceAccount", console, "console ServiceAccount"),
            AdoptMetadata(
                "Service", console, "console Service",
                selector={INSTANCE_LABEL: cluster.name, NAME_LABEL: CONSOLE_APP},
            ),
            RecreateWorkload("Deployment", console, "console Deployment"),
            AdoptMetadata("Ingress", console, "console Ingress"),
        ])
    return steps


class Migrator:
    """Runs every migration step, collecting failures instead of stopping."""

    def __init__(self, k8s: K8sClient, registry: ResourceRegistry, recorder: EventRecorder):
        self.k8s = k8s
        self.registry = registry
        self.recorder = recorder

    def migrate(self, cluster: RedpandaCluster) -> None:
        """Raise MigrationError listing each failed step once all steps ran."""
        ctx = MigrationContext(cluster, self.k8s, self.registry, self.recorder)
        failures: list[tuple[str, Exception]] = []
        for step in plan(cluster):
            try:
                step.ensure_migrated(ctx)
            except MigrationError as e:
                failures.extend((f"{step.name}: {sub}", err) for sub, err in e.failures)
            except Exception as e:
                failures.append((step.name, e))
        if failures:
            raise MigrationError(failures)
