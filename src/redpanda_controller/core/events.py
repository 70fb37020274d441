"""Kubernetes Event emission for reconcile notifications."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from kubernetes.client import ApiException

from redpanda_controller.config.settings import Settings, settings as default_settings
from redpanda_controller.core.k8s_client import K8sClient
from redpanda_controller.models import Notification, Severity
from redpanda_controller.models.cluster import REVISION_ANNOTATION

logger = logging.getLogger(__name__)


class EventRecorder:
    """Posts core/v1 Events attached to the object they describe.

    Events are best-effort: a failure to post one is logged and never fails
    the reconcile that produced it.
    """

    def __init__(self, k8s: K8sClient, settings: Settings | None = None):
        self.k8s = k8s
        self.settings = settings or default_settings

    def event(
        self,
        obj: dict[str, Any],
        severity: Severity,
        message: str,
        revision: str = "",
    ) -> None:
        meta = obj.get("metadata", {}) or {}
        namespace = meta.get("namespace", "")
        name = meta.get("name", "")
        now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        annotations = {REVISION_ANNOTATION: revision} if revision else {}

        body = {
            "apiVersion": "v1",
            "kind": "Event",
            "metadata": {
                "generateName": f"{name}.",
                "namespace": namespace,
                "annotations": annotations,
            },
            "involvedObject": {
                "apiVersion": obj.get("apiVersion", ""),
                "kind": obj.get("kind", ""),
                "name": name,
                "namespace": namespace,
                "uid": meta.get("uid", ""),
                "resourceVersion": meta.get("resourceVersion", ""),
            },
            "type": severity.event_type,
            "reason": severity.value,
            "message": message,
            "source": {"component": self.settings.event_component},
            "firstTimestamp": now,
            "lastTimestamp": now,
            "count": 1,
        }
        try:
            self.k8s.create_event(namespace, body)
        except ApiException:
            logger.debug("Could not post event for %s/%s: %s", namespace, name, message, exc_info=True)

    def notify(self, obj: dict[str, Any], notification: Notification, revision: str = "") -> None:
        self.event(obj, notification.severity, notification.message, revision)
