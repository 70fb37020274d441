"""Kubernetes API wrapper."""

from __future__ import annotations

from typing import Any, Callable

from kubernetes import client, config
from kubernetes.client import ApiException

from redpanda_controller.config.settings import settings
from redpanda_controller.core.registry import ResourceKind

MERGE_PATCH = "application/merge-patch+json"


def label_selector(labels: dict[str, str] | None) -> str:
    """Render an equality-based label selector."""
    if not labels:
        return ""
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))


class K8sClient:
    """Thin wrapper around the Kubernetes Python client.

    Every object crosses this boundary as a plain dict. Typed APIs are used
    for built-in kinds and CustomObjectsApi for custom resources, as
    described by each ResourceKind.
    """

    def __init__(self, context: str | None = None, request_timeout: float | None = None):
        self.context = context
        self.request_timeout = request_timeout or settings.request_timeout
        self._core_v1: client.CoreV1Api | None = None
        self._apps_v1: client.AppsV1Api | None = None
        self._policy_v1: client.PolicyV1Api | None = None
        self._networking_v1: client.NetworkingV1Api | None = None
        self._custom: client.CustomObjectsApi | None = None
        self._api_client: client.ApiClient | None = None

    def _load_config(self) -> client.ApiClient:
        if self._api_client is not None:
            return self._api_client
        try:
            cfg = client.Configuration()
            config.load_kube_config(
                context=self.context,
                client_configuration=cfg,
            )
            # Transient failures are retried by requeue, not inside the client
            cfg.retries = 1
            self._api_client = client.ApiClient(configuration=cfg)
        except config.ConfigException:
            config.load_incluster_config()
            self._api_client = client.ApiClient()
        return self._api_client

    @property
    def core_v1(self) -> client.CoreV1Api:
        if self._core_v1 is None:
            self._core_v1 = client.CoreV1Api(api_client=self._load_config())
        return self._core_v1

    @property
    def apps_v1(self) -> client.AppsV1Api:
        if self._apps_v1 is None:
            self._apps_v1 = client.AppsV1Api(api_client=self._load_config())
        return self._apps_v1

    @property
    def policy_v1(self) -> client.PolicyV1Api:
        if self._policy_v1 is None:
            self._policy_v1 = client.PolicyV1Api(api_client=self._load_config())
        return self._policy_v1

    @property
    def networking_v1(self) -> client.NetworkingV1Api:
        if self._networking_v1 is None:
            self._networking_v1 = client.NetworkingV1Api(api_client=self._load_config())
        return self._networking_v1

    @property
    def custom(self) -> client.CustomObjectsApi:
        if self._custom is None:
            self._custom = client.CustomObjectsApi(api_client=self._load_config())
        return self._custom

    def _typed(self, kind: ResourceKind, verb: str) -> Callable[..., Any]:
        api = getattr(self, kind.typed_api)
        return getattr(api, f"{verb}_namespaced_{kind.typed_suffix}")

    def _custom_args(self, kind: ResourceKind, namespace: str) -> dict[str, str]:
        return {
            "group": kind.group,
            "version": kind.version,
            "namespace": namespace,
            "plural": kind.plural,
        }

    def _to_dict(self, result: Any) -> dict:
        if isinstance(result, dict):
            return result
        return self._load_config().sanitize_for_serialization(result)

    def get(self, kind: ResourceKind, name: str, namespace: str) -> dict | None:
        """Get a single namespaced object, or None if it does not exist."""
        try:
            if kind.is_custom:
                result = self.custom.get_namespaced_custom_object(
                    name=name,
                    _request_timeout=self.request_timeout,
                    **self._custom_args(kind, namespace),
                )
            else:
                result = self._typed(kind, "read")(
                    name=name, namespace=namespace, _request_timeout=self.request_timeout,
                )
        except ApiException as e:
            if e.status == 404:
                return None
            raise
        return self._to_dict(result)

    def list(
        self, kind: ResourceKind, namespace: str, labels: dict[str, str] | None = None,
    ) -> list[dict]:
        selector = label_selector(labels)
        if kind.is_custom:
            result = self.custom.list_namespaced_custom_object(
                label_selector=selector,
                _request_timeout=self.request_timeout,
                **self._custom_args(kind, namespace),
            )
            return result.get("items", [])
        result = self._typed(kind, "list")(
            namespace=namespace, label_selector=selector, _request_timeout=self.request_timeout,
        )
        return [self._to_dict(item) for item in result.items]

    def create(self, kind: ResourceKind, body: dict) -> dict:
        namespace = body["metadata"]["namespace"]
        if kind.is_custom:
            result = self.custom.create_namespaced_custom_object(
                body=body,
                _request_timeout=self.request_timeout,
                **self._custom_args(kind, namespace),
            )
        else:
            result = self._typed(kind, "create")(
                namespace=namespace, body=body, _request_timeout=self.request_timeout,
            )
        return self._to_dict(result)

    def replace(self, kind: ResourceKind, body: dict) -> dict:
        """Full update; the body's resourceVersion makes it conflict-checked."""
        meta = body["metadata"]
        if kind.is_custom:
            result = self.custom.replace_namespaced_custom_object(
                name=meta["name"],
                body=body,
                _request_timeout=self.request_timeout,
                **self._custom_args(kind, meta["namespace"]),
            )
        else:
            result = self._typed(kind, "replace")(
                name=meta["name"], namespace=meta["namespace"], body=body,
                _request_timeout=self.request_timeout,
            )
        return self._to_dict(result)

    def patch(self, kind: ResourceKind, name: str, namespace: str, body: dict) -> dict:
        """JSON merge patch against the main resource."""
        if kind.is_custom:
            result = self.custom.patch_namespaced_custom_object(
                name=name,
                body=body,
                _content_type=MERGE_PATCH,
                _request_timeout=self.request_timeout,
                **self._custom_args(kind, namespace),
            )
        else:
            result = self._typed(kind, "patch")(
                name=name, namespace=namespace, body=body,
                _content_type=MERGE_PATCH, _request_timeout=self.request_timeout,
            )
        return self._to_dict(result)

    def patch_status(self, kind: ResourceKind, name: str, namespace: str, body: dict) -> dict:
        """JSON merge patch against the status sub-resource."""
        if kind.is_custom:
            result = self.custom.patch_namespaced_custom_object_status(
                name=name,
                body=body,
                _content_type=MERGE_PATCH,
                _request_timeout=self.request_timeout,
                **self._custom_args(kind, namespace),
            )
        else:
            api = getattr(self, kind.typed_api)
            result = getattr(api, f"patch_namespaced_{kind.typed_suffix}_status")(
                name=name, namespace=namespace, body=body,
                _content_type=MERGE_PATCH, _request_timeout=self.request_timeout,
            )
        return self._to_dict(result)

    def delete(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
        propagation: str | None = None,
    ) -> None:
        """Delete an object; propagation is Orphan, Foreground, Background or None."""
        kwargs: dict[str, Any] = {"_request_timeout": self.request_timeout}
        if propagation:
            kwargs["propagation_policy"] = propagation
        if kind.is_custom:
            self.custom.delete_namespaced_custom_object(
                name=name, **self._custom_args(kind, namespace), **kwargs,
            )
        else:
            self._typed(kind, "delete")(name=name, namespace=namespace, **kwargs)

    def create_event(self, namespace: str, body: dict) -> None:
        self.core_v1.create_namespaced_event(
            namespace=namespace, body=body, _request_timeout=self.request_timeout,
        )
