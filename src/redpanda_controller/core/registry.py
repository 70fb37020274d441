"""Kinds the controller reads and writes, and how to reach them through the API."""

from __future__ import annotations

from dataclasses import dataclass

from redpanda_controller.models import cluster, flux

LEGACY_GROUP = "redpanda.vectorized.io"
LEGACY_VERSION = "v1alpha1"


@dataclass(frozen=True)
class ResourceKind:
    kind: str
    plural: str
    group: str = ""
    version: str = "v1"
    # Typed API attribute on K8sClient and the method suffix it uses,
    # e.g. ("apps_v1", "stateful_set") -> read_namespaced_stateful_set.
    # Custom resources leave these empty and go through CustomObjectsApi.
    typed_api: str = ""
    typed_suffix: str = ""

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def is_custom(self) -> bool:
        return not self.typed_api


class ResourceRegistry:
    """Lookup table of ResourceKind by kind name, built once at startup."""

    def __init__(self, kinds: list[ResourceKind] | None = None):
        self._kinds: dict[str, ResourceKind] = {}
        for kind in kinds or []:
            self.register(kind)

    def register(self, kind: ResourceKind) -> None:
        if kind.kind in self._kinds:
            raise ValueError(f"kind {kind.kind!r} already registered")
        self._kinds[kind.kind] = kind

    def get(self, kind: str) -> ResourceKind:
        try:
            return self._kinds[kind]
        except KeyError:
            raise KeyError(f"kind {kind!r} is not registered") from None


def default_registry() -> ResourceRegistry:
    return ResourceRegistry([
        ResourceKind(cluster.KIND, cluster.PLURAL, cluster.GROUP, cluster.VERSION),
        ResourceKind(
            flux.HELM_REPOSITORY_KIND, flux.HELM_REPOSITORY_PLURAL,
            flux.SOURCE_GROUP, flux.SOURCE_VERSION,
        ),
        ResourceKind(
            flux.HELM_RELEASE_KIND, flux.HELM_RELEASE_PLURAL,
            flux.HELM_GROUP, flux.HELM_VERSION,
        ),
        ResourceKind("Cluster", "clusters", LEGACY_GROUP, LEGACY_VERSION),
        ResourceKind("Console", "consoles", LEGACY_GROUP, LEGACY_VERSION),
        ResourceKind("Pod", "pods", typed_api="core_v1", typed_suffix="pod"),
        ResourceKind("Service", "services", typed_api="core_v1", typed_suffix="service"),
        ResourceKind(
            "ServiceAccount", "serviceaccounts",
            typed_api="core_v1", typed_suffix="service_account",
        ),
        ResourceKind(
            "StatefulSet", "statefulsets", "apps", "v1",
            typed_api="apps_v1", typed_suffix="stateful_set",
        ),
        ResourceKind(
            "Deployment", "deployments", "apps", "v1",
            typed_api="apps_v1", typed_suffix="deployment",
        ),
        ResourceKind(
            "PodDisruptionBudget", "poddisruptionbudgets", "policy", "v1",
            typed_api="policy_v1", typed_suffix="pod_disruption_budget",
        ),
        ResourceKind(
            "Ingress", "ingresses", "networking.k8s.io", "v1",
            typed_api="networking_v1", typed_suffix="ingress",
        ),
    ])
