"""Finalizer-gated teardown of a Redpanda's HelmRelease."""

from __future__ import annotations

import copy
import logging

from redpanda_controller.config.settings import Settings, settings as default_settings
from redpanda_controller.core.k8s_client import K8sClient
from redpanda_controller.core.registry import ResourceRegistry
from redpanda_controller.errors import DeletionPending
from redpanda_controller.models import ReconcileResult
from redpanda_controller.models.cluster import FINALIZER_KEY, KIND, RedpandaCluster
from redpanda_controller.models.flux import HELM_RELEASE_KIND
from redpanda_controller.utils import meta

logger = logging.getLogger(__name__)

FOREGROUND = "Foreground"


class DeletionHandler:
    """Keeps the finalizer on a deleted Redpanda until its HelmRelease is gone."""

    def __init__(
        self,
        k8s: K8sClient,
        registry: ResourceRegistry,
        settings: Settings | None = None,
    ):
        self.k8s = k8s
        self.registry = registry
        self.settings = settings or default_settings

    def reconcile_delete(self, cluster: RedpandaCluster) -> ReconcileResult:
        self.delete_helm_release(cluster)

        if cluster.has_finalizer:
            body = copy.deepcopy(cluster.raw)
            meta.remove_finalizer(body, FINALIZER_KEY)
            self.k8s.replace(self.registry.get(KIND), body)
            logger.info("Removed finalizer from %s", cluster.key)
        return ReconcileResult()

    def delete_helm_release(self, cluster: RedpandaCluster) -> None:
        """Return once the recorded HelmRelease is absent; raise DeletionPending before that."""
        if not cluster.status.helm_release:
            self._forget(cluster)
            return

        kind = self.registry.get(HELM_RELEASE_KIND)
        name = cluster.status.helm_release
        live = self.k8s.get(kind, name, cluster.namespace)
        if live is None:
            self._forget(cluster)
            return

        # One delete per teardown: a release already terminating is only waited on
        if not (live.get("metadata") or {}).get("deletionTimestamp"):
            self.k8s.delete(kind, name, cluster.namespace, propagation=FOREGROUND)
            logger.info("Deleting HelmRelease %s/%s connected with %s", cluster.namespace, name, cluster.key)

        raise DeletionPending(
            f"wait for helm release {cluster.namespace}/{name} deletion",
            delay=self.settings.deletion_requeue,
        )

    @staticmethod
    def _forget(cluster: RedpandaCluster) -> None:
        cluster.status.helm_release = ""
        cluster.status.helm_repository = ""
