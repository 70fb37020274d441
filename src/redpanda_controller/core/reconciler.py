"""Top-level reconcile loop for Redpanda resources."""

from __future__ import annotations

import copy
import logging
import time

from kubernetes.client import ApiException

from redpanda_controller.config.settings import Settings, settings as default_settings
from redpanda_controller.core.deletion import DeletionHandler
from redpanda_controller.core.dependencies import DependencyResolver
from redpanda_controller.core.events import EventRecorder
from redpanda_controller.core.k8s_client import K8sClient
from redpanda_controller.core.migration import Migrator
from redpanda_controller.core.readiness import NOT_READY_FMT, latch
from redpanda_controller.core.registry import ResourceRegistry, default_registry
from redpanda_controller.errors import MigrationError
from redpanda_controller.models import ReconcileResult, TriState
from redpanda_controller.models.cluster import (
    ARTIFACT_FAILED_REASON,
    FINALIZER_KEY,
    KIND,
    MANAGED_ANNOTATION,
    RedpandaCluster,
)
from redpanda_controller.models.flux import HELM_RELEASE_KIND, HELM_REPOSITORY_KIND, FluxObjectState
from redpanda_controller.utils import meta
from redpanda_controller.utils.patch import merge_patch

logger = logging.getLogger(__name__)

# Status attribute holding each dependent's latched readiness
_READY_FIELDS = {
    HELM_REPOSITORY_KIND: "helm_repository_ready",
    HELM_RELEASE_KIND: "helm_release_ready",
}


class Reconciler:
    """Drives one Redpanda towards its HelmRepository + HelmRelease.

    Every call handles a single object key and keeps no state between calls;
    everything it needs lives on the Redpanda status.
    """

    def __init__(
        self,
        k8s: K8sClient,
        registry: ResourceRegistry | None = None,
        settings: Settings | None = None,
        recorder: EventRecorder | None = None,
    ):
        self.k8s = k8s
        self.registry = registry or default_registry()
        self.settings = settings or default_settings
        self.recorder = recorder or EventRecorder(k8s, self.settings)
        self.resolver = DependencyResolver(k8s, self.registry, self.recorder, self.settings)
        self.migrator = Migrator(k8s, self.registry, self.recorder)
        self.deleter = DeletionHandler(k8s, self.registry, self.settings)

    def fetch(self, namespace: str, name: str) -> RedpandaCluster | None:
        obj = self.k8s.get(self.registry.get(KIND), name, namespace)
        return RedpandaCluster.from_dict(obj) if obj is not None else None

    def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        start = time.monotonic()
        logger.info("Starting reconcile loop for %s/%s", namespace, name)

        cluster = self.fetch(namespace, name)
        if cluster is None:
            return ReconcileResult()

        if cluster.deleting:
            recorded = (cluster.status.helm_release, cluster.status.helm_repository)
            result = self.deleter.reconcile_delete(cluster)
            # Other finalizers may keep the object around; drop the stale names
            if (cluster.status.helm_release, cluster.status.helm_repository) != recorded:
                self.patch_status(cluster)
            return result

        if not cluster.managed:
            logger.info(
                "management is disabled; to enable it, change the '%s' annotation to true or remove it",
                MANAGED_ANNOTATION,
            )
            if cluster.has_finalizer:
                body = copy.deepcopy(cluster.raw)
                meta.remove_finalizer(body, FINALIZER_KEY)
                self.k8s.replace(self.registry.get(KIND), body)
            return ReconcileResult()

        if not cluster.has_finalizer:
            self._add_finalizer(cluster)

        if cluster.migration_enabled:
            try:
                self.migrator.migrate(cluster)
            except MigrationError as e:
                logger.error("migration of %s: %s", cluster.key, e)

        try:
            result = self._reconcile(cluster)
        finally:
            try:
                self.patch_status(cluster)
            except ApiException:
                logger.error("unable to update status of %s after reconciliation", cluster.key)
                raise

        msg = f"reconciliation finished in {time.monotonic() - start:.3f}s"
        if result.requeue:
            msg += f", next run in {result.requeue_after:g}s"
        logger.info(msg)
        return result

    def migrate(self, namespace: str, name: str) -> None:
        """Run a single migration pass regardless of spec.migration.enabled."""
        cluster = self.fetch(namespace, name)
        if cluster is None:
            raise LookupError(f"Redpanda {namespace}/{name} not found")
        self.migrator.migrate(cluster)

    def _add_finalizer(self, cluster: RedpandaCluster) -> None:
        finalizers = cluster.finalizers + [FINALIZER_KEY]
        patch = {"metadata": {"finalizers": finalizers, "resourceVersion": cluster.resource_version}}
        try:
            updated = self.k8s.patch(self.registry.get(KIND), cluster.name, cluster.namespace, patch)
        except ApiException:
            logger.error("unable to register finalizer on %s", cluster.key)
            raise
        cluster.finalizers = finalizers
        cluster.resource_version = (updated.get("metadata") or {}).get("resourceVersion", "")
        cluster.raw.setdefault("metadata", {})["finalizers"] = list(finalizers)

    def _reconcile(self, cluster: RedpandaCluster) -> ReconcileResult:
        if cluster.status.observed_generation != cluster.generation:
            cluster.status.observed_generation = cluster.generation
            cluster.mark_progressing()
            self.patch_status(cluster)

        repo = self.resolver.reconcile_helm_repository(cluster)
        if not self._check_ready(cluster, HELM_REPOSITORY_KIND, repo):
            return ReconcileResult(requeue_after=self.settings.requeue_helm_deps)

        release = self.resolver.reconcile_helm_release(cluster)
        if not self._check_ready(cluster, HELM_RELEASE_KIND, release):
            return ReconcileResult(requeue_after=self.settings.requeue_helm_deps)

        cluster.mark_ready()
        return ReconcileResult()

    def _check_ready(self, cluster: RedpandaCluster, kind: str, obj: dict) -> bool:
        state = FluxObjectState.from_dict(kind, obj)
        field = _READY_FIELDS[kind]
        nxt, notification = latch(
            getattr(cluster.status, field),
            state.generation_fresh,
            state.condition_ready,
            state.subject,
        )
        setattr(cluster.status, field, nxt)
        if notification is not None:
            self.recorder.notify(cluster.raw, notification, cluster.status.last_attempted_revision)

        if nxt is TriState.NOT_READY:
            msg = NOT_READY_FMT.format(state.subject)
            logger.info(msg)
            cluster.mark_not_ready(ARTIFACT_FAILED_REASON, msg)
            return False
        return True

    def patch_status(self, cluster: RedpandaCluster) -> None:
        """Merge-patch the status against the latest stored copy of the object."""
        kind = self.registry.get(KIND)
        latest = self.k8s.get(kind, cluster.name, cluster.namespace)
        if latest is None:
            return
        desired = cluster.status.to_dict()
        current = {k: v for k, v in (latest.get("status") or {}).items() if k in desired}
        status_patch = merge_patch(current, desired)
        if not status_patch:
            return
        body = {
            "metadata": {"resourceVersion": (latest.get("metadata") or {}).get("resourceVersion", "")},
            "status": status_patch,
        }
        self.k8s.patch_status(kind, cluster.name, cluster.namespace, body)
