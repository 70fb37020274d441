"""Get-or-create/update of the Flux HelmRepository and HelmRelease for a Redpanda."""

from __future__ import annotations

import base64
import copy
import hashlib
import json
import logging
from typing import Any

from deepdiff import DeepDiff
from kubernetes.client import ApiException

from redpanda_controller.config.settings import Settings, settings as default_settings
from redpanda_controller.core.events import EventRecorder
from redpanda_controller.core.k8s_client import K8sClient
from redpanda_controller.core.registry import ResourceRegistry
from redpanda_controller.errors import TemplateError
from redpanda_controller.models import Severity
from redpanda_controller.models.cluster import RedpandaCluster, UpgradePolicy
from redpanda_controller.models.flux import HELM_RELEASE_KIND, HELM_REPOSITORY_KIND
from redpanda_controller.utils.diff import format_diff
from redpanda_controller.utils.duration import parse_duration, same_duration

logger = logging.getLogger(__name__)

DEFAULT_REMEDIATION = {"retries": 1, "strategy": "rollback"}


def values_fingerprint(payload: bytes) -> str:
    """URL-safe base64 SHA-256 of the serialized values, for log correlation."""
    return base64.urlsafe_b64encode(hashlib.sha256(payload).digest()).decode("ascii")


def _checked_duration(field_name: str, value: str) -> str:
    try:
        parse_duration(value)
    except ValueError as e:
        raise TemplateError(f"invalid {field_name}: {e}") from e
    return value


def build_upgrade(policy: UpgradePolicy | None) -> dict[str, Any]:
    """Defaults overlaid with only the fields the user set."""
    upgrade: dict[str, Any] = {"remediation": dict(DEFAULT_REMEDIATION)}
    if policy is None:
        return upgrade
    if policy.force is not None:
        upgrade["force"] = policy.force
    if policy.cleanup_on_fail is not None:
        upgrade["cleanupOnFail"] = policy.cleanup_on_fail
    if policy.preserve_values is not None:
        upgrade["preserveValues"] = policy.preserve_values
    if policy.remediation is not None:
        remediation = upgrade["remediation"]
        if policy.remediation.retries is not None:
            remediation["retries"] = policy.remediation.retries
        if policy.remediation.strategy is not None:
            remediation["strategy"] = policy.remediation.strategy
        if policy.remediation.remediate_last_failure is not None:
            remediation["remediateLastFailure"] = policy.remediation.remediate_last_failure
    return upgrade


def build_helm_repository(
    cluster: RedpandaCluster, registry: ResourceRegistry, settings: Settings,
) -> dict[str, Any]:
    kind = registry.get(HELM_REPOSITORY_KIND)
    return {
        "apiVersion": kind.api_version,
        "kind": kind.kind,
        "metadata": {
            "name": cluster.helm_repository_name(settings.default_repository_name),
            "namespace": cluster.namespace,
            "ownerReferences": [cluster.owner_reference()],
        },
        "spec": {
            "interval": settings.repository_interval,
            "url": settings.chart_repository,
        },
    }


def build_helm_release(
    cluster: RedpandaCluster, registry: ResourceRegistry, settings: Settings,
) -> dict[str, Any]:
    """Render the desired HelmRelease; raises TemplateError on invalid input."""
    kind = registry.get(HELM_RELEASE_KIND)
    try:
        payload = json.dumps(cluster.cluster_spec, sort_keys=True).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise TemplateError(f"could not parse clusterSpec to json: {e}") from e
    logger.info("SHA of values file to use: %s", values_fingerprint(payload))

    timeout = _checked_duration("timeout", cluster.chart_ref.timeout or settings.default_timeout)
    interval = _checked_duration("interval", cluster.chart_ref.interval or settings.release_interval)

    chart_spec: dict[str, Any] = {
        "chart": settings.chart_name,
        "interval": settings.chart_interval,
        "sourceRef": {
            "kind": HELM_REPOSITORY_KIND,
            "name": cluster.helm_repository_name(settings.default_repository_name),
            "namespace": cluster.namespace,
        },
    }
    if cluster.chart_ref.chart_version:
        chart_spec["version"] = cluster.chart_ref.chart_version

    return {
        "apiVersion": kind.api_version,
        "kind": kind.kind,
        "metadata": {
            "name": cluster.helm_release_name,
            "namespace": cluster.namespace,
            "ownerReferences": [cluster.owner_reference()],
        },
        "spec": {
            "chart": {"spec": chart_spec},
            "values": json.loads(payload),
            "interval": interval,
            "timeout": timeout,
            "upgrade": build_upgrade(cluster.chart_ref.upgrade),
        },
    }


def chart_requires_update(live_chart: dict[str, Any], desired_chart: dict[str, Any]) -> bool:
    live = (live_chart or {}).get("spec", {}) or {}
    desired = (desired_chart or {}).get("spec", {}) or {}
    if live.get("chart") != desired.get("chart"):
        logger.info("chart is different")
        return True
    if desired.get("version") and desired.get("version") != live.get("version"):
        logger.info("spec version is different")
        return True
    return False


def release_requires_update(live: dict[str, Any], desired: dict[str, Any]) -> bool:
    """Structural comparison of values, chart identity/version and interval."""
    live_spec = live.get("spec", {}) or {}
    desired_spec = desired.get("spec", {}) or {}

    diff = DeepDiff(
        live_spec.get("values") or {},
        desired_spec.get("values") or {},
        verbose_level=2,
    )
    if diff:
        logger.info("values found different: %s", "; ".join(format_diff(diff)))
        return True
    if chart_requires_update(live_spec.get("chart"), desired_spec.get("chart")):
        logger.info("chartTemplate found different")
        return True
    if not same_duration(live_spec.get("interval"), desired_spec.get("interval")):
        logger.info("interval found different")
        return True
    return False


class DependencyResolver:
    """Ensures the Flux objects a Redpanda depends on exist and match its spec."""

    def __init__(
        self,
        k8s: K8sClient,
        registry: ResourceRegistry,
        recorder: EventRecorder,
        settings: Settings | None = None,
    ):
        self.k8s = k8s
        self.registry = registry
        self.recorder = recorder
        self.settings = settings or default_settings

    def _event(self, cluster: RedpandaCluster, severity: Severity, message: str) -> None:
        self.recorder.event(cluster.raw, severity, message, cluster.status.last_attempted_revision)

    def reconcile_helm_repository(self, cluster: RedpandaCluster) -> dict[str, Any]:
        """Fetch the HelmRepository, creating it on first sight. Never updated."""
        kind = self.registry.get(HELM_REPOSITORY_KIND)
        name = cluster.helm_repository_name(self.settings.default_repository_name)
        try:
            repo = self.k8s.get(kind, name, cluster.namespace)
        except ApiException as e:
            self._event(cluster, Severity.ERROR, f"error getting HelmRepository: {e.reason}")
            raise

        if repo is None:
            try:
                repo = self.k8s.create(
                    kind, build_helm_repository(cluster, self.registry, self.settings),
                )
            except ApiException as e:
                if e.status != 409:
                    self._event(cluster, Severity.ERROR, f"error creating HelmRepository: {e.reason}")
                    raise
                repo = self.k8s.get(kind, name, cluster.namespace) or {}
            self._event(
                cluster, Severity.INFO, f"HelmRepository '{cluster.namespace}/{name}' created",
            )

        cluster.status.helm_repository = name
        return repo

    def reconcile_helm_release(self, cluster: RedpandaCluster) -> dict[str, Any]:
        """Create, recreate or update the HelmRelease recorded on the status."""
        kind = self.registry.get(HELM_RELEASE_KIND)

        # An empty recorded name means the release was never created
        if not cluster.status.helm_release:
            return self._create_helm_release(cluster)

        live = self.k8s.get(kind, cluster.status.helm_release, cluster.namespace)
        if live is None:
            logger.info(
                "HelmRelease %s/%s recorded but missing, recreating",
                cluster.namespace, cluster.status.helm_release,
            )
            cluster.status.helm_release = ""
            return self._create_helm_release(cluster)

        try:
            desired = build_helm_release(cluster, self.registry, self.settings)
        except TemplateError as e:
            self._event(cluster, Severity.ERROR, str(e))
            raise

        if release_requires_update(live, desired):
            updated = copy.deepcopy(live)
            updated["spec"] = desired["spec"]
            try:
                live = self.k8s.replace(kind, updated)
            except ApiException as e:
                self._event(cluster, Severity.ERROR, f"error updating HelmRelease: {e.reason}")
                raise
            self._event(
                cluster, Severity.INFO,
                f"HelmRelease '{cluster.namespace}/{cluster.helm_release_name}' updated",
            )
            cluster.status.helm_release = cluster.helm_release_name

        return live

    def _create_helm_release(self, cluster: RedpandaCluster) -> dict[str, Any]:
        kind = self.registry.get(HELM_RELEASE_KIND)
        try:
            desired = build_helm_release(cluster, self.registry, self.settings)
        except TemplateError as e:
            self._event(cluster, Severity.ERROR, f"could not create helm release template: {e}")
            raise

        try:
            created = self.k8s.create(kind, desired)
        except ApiException as e:
            if e.status != 409:
                self._event(cluster, Severity.ERROR, f"failed to create HelmRelease: {e.reason}")
                raise
            created = self.k8s.get(kind, cluster.helm_release_name, cluster.namespace) or desired

        self._event(
            cluster, Severity.INFO,
            f"HelmRelease '{cluster.namespace}/{cluster.helm_release_name}' created",
        )
        cluster.status.helm_release = cluster.helm_release_name
        return created
