"""Shared fixtures: an in-memory stand-in for K8sClient."""

from __future__ import annotations

import copy
from typing import Any

import pytest
from kubernetes.client import ApiException

from redpanda_controller.config.settings import Settings
from redpanda_controller.core.events import EventRecorder
from redpanda_controller.core.reconciler import Reconciler
from redpanda_controller.core.registry import ResourceKind, default_registry

# Kinds whose status lives in a sub-resource and survives a full replace
STATUS_SUBRESOURCE = {"Redpanda", "HelmRepository", "HelmRelease"}
MUTATING_VERBS = {"create", "replace", "patch", "delete"}


def apply_merge_patch(target: Any, patch: Any) -> Any:
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    result = copy.deepcopy(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = apply_merge_patch(result.get(key), value)
    return result


class FakeK8sClient:
    """Dict-backed API server with resourceVersion conflicts and generations."""

    def __init__(self):
        self.objects: dict[tuple[str, str, str], dict] = {}
        self.calls: list[tuple[str, str, str, str, Any]] = []
        self.events: list[dict] = []
        self.failures: dict[tuple[str, str, str], ApiException] = {}
        self._rv = 0

    # -- test helpers ------------------------------------------------------

    def _next_rv(self) -> str:
        self._rv += 1
        return str(self._rv)

    def add(self, kind: str, obj: dict) -> dict:
        obj = copy.deepcopy(obj)
        meta = obj.setdefault("metadata", {})
        meta.setdefault("namespace", "default")
        meta.setdefault("generation", 1)
        meta.setdefault("uid", f"uid-{meta['name']}")
        meta["resourceVersion"] = self._next_rv()
        obj.setdefault("kind", kind)
        self.objects[(kind, meta["namespace"], meta["name"])] = obj
        return copy.deepcopy(obj)

    def stored(self, kind: str, name: str, namespace: str = "default") -> dict | None:
        return self.objects.get((kind, namespace, name))

    def fail(self, verb: str, kind: str, name: str, status: int = 500) -> None:
        self.failures[(verb, kind, name)] = ApiException(status=status, reason=f"injected {verb} failure")

    def mutations(self, kind: str | None = None) -> list[tuple]:
        return [
            c for c in self.calls
            if c[0] in MUTATING_VERBS and (kind is None or c[1] == kind)
        ]

    def clear_calls(self) -> None:
        self.calls.clear()
        self.events.clear()

    def event_messages(self) -> list[str]:
        return [e["message"] for e in self.events]

    def _check(self, verb: str, kind: ResourceKind, name: str) -> None:
        err = self.failures.get((verb, kind.kind, name))
        if err is not None:
            raise err

    # -- K8sClient surface -------------------------------------------------

    def get(self, kind: ResourceKind, name: str, namespace: str) -> dict | None:
        self.calls.append(("get", kind.kind, namespace, name, None))
        self._check("get", kind, name)
        obj = self.objects.get((kind.kind, namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    def list(self, kind: ResourceKind, namespace: str, labels: dict[str, str] | None = None) -> list[dict]:
        self.calls.append(("list", kind.kind, namespace, "", labels))
        self._check("list", kind, "")
        items = []
        for (k, ns, _), obj in sorted(self.objects.items()):
            if k != kind.kind or ns != namespace:
                continue
            obj_labels = obj["metadata"].get("labels") or {}
            if all(obj_labels.get(lk) == lv for lk, lv in (labels or {}).items()):
                items.append(copy.deepcopy(obj))
        return items

    def create(self, kind: ResourceKind, body: dict) -> dict:
        meta = body["metadata"]
        self.calls.append(("create", kind.kind, meta["namespace"], meta["name"], copy.deepcopy(body)))
        self._check("create", kind, meta["name"])
        if (kind.kind, meta["namespace"], meta["name"]) in self.objects:
            raise ApiException(status=409, reason="AlreadyExists")
        obj = copy.deepcopy(body)
        obj["metadata"].pop("resourceVersion", None)
        return self.add(kind.kind, obj)

    def replace(self, kind: ResourceKind, body: dict) -> dict:
        meta = body["metadata"]
        key = (kind.kind, meta["namespace"], meta["name"])
        self.calls.append(("replace", kind.kind, meta["namespace"], meta["name"], copy.deepcopy(body)))
        self._check("replace", kind, meta["name"])
        current = self.objects.get(key)
        if current is None:
            raise ApiException(status=404, reason="NotFound")
        if meta.get("resourceVersion") and meta["resourceVersion"] != current["metadata"]["resourceVersion"]:
            raise ApiException(status=409, reason="Conflict")
        new = copy.deepcopy(body)
        if kind.kind in STATUS_SUBRESOURCE:
            new.pop("status", None)
            if "status" in current:
                new["status"] = copy.deepcopy(current["status"])
        generation = current["metadata"].get("generation", 1)
        if new.get("spec") != current.get("spec"):
            generation += 1
        new["metadata"]["generation"] = generation
        new["metadata"]["resourceVersion"] = self._next_rv()
        self._store_or_finalize(key, new)
        return copy.deepcopy(new)

    def patch(self, kind: ResourceKind, name: str, namespace: str, body: dict) -> dict:
        self.calls.append(("patch", kind.kind, namespace, name, copy.deepcopy(body)))
        self._check("patch", kind, name)
        return self._apply_patch(kind, name, namespace, body)

    def patch_status(self, kind: ResourceKind, name: str, namespace: str, body: dict) -> dict:
        self.calls.append(("patch_status", kind.kind, namespace, name, copy.deepcopy(body)))
        self._check("patch_status", kind, name)
        return self._apply_patch(kind, name, namespace, {
            "metadata": body.get("metadata", {}), "status": body.get("status", {}),
        })

    def _apply_patch(self, kind: ResourceKind, name: str, namespace: str, body: dict) -> dict:
        key = (kind.kind, namespace, name)
        current = self.objects.get(key)
        if current is None:
            raise ApiException(status=404, reason="NotFound")
        rv = (body.get("metadata") or {}).get("resourceVersion")
        if rv and rv != current["metadata"]["resourceVersion"]:
            raise ApiException(status=409, reason="Conflict")
        new = apply_merge_patch(current, body)
        new["metadata"]["resourceVersion"] = self._next_rv()
        self.objects[key] = new
        return copy.deepcopy(new)

    def delete(self, kind: ResourceKind, name: str, namespace: str, propagation: str | None = None) -> None:
        self.calls.append(("delete", kind.kind, namespace, name, propagation))
        self._check("delete", kind, name)
        key = (kind.kind, namespace, name)
        current = self.objects.get(key)
        if current is None:
            raise ApiException(status=404, reason="NotFound")
        if current["metadata"].get("finalizers") or propagation == "Foreground":
            current["metadata"]["deletionTimestamp"] = "2024-01-01T00:00:00Z"
            current["metadata"]["resourceVersion"] = self._next_rv()
        else:
            del self.objects[key]

    def create_event(self, namespace: str, body: dict) -> None:
        self.events.append(copy.deepcopy(body))

    def _store_or_finalize(self, key: tuple[str, str, str], obj: dict) -> None:
        if obj["metadata"].get("deletionTimestamp") and not obj["metadata"].get("finalizers"):
            self.objects.pop(key, None)
        else:
            self.objects[key] = obj


def redpanda(
    name: str = "redpanda",
    namespace: str = "default",
    generation: int = 1,
    finalizers: list[str] | None = None,
    annotations: dict[str, str] | None = None,
    spec: dict | None = None,
    status: dict | None = None,
) -> dict:
    obj: dict[str, Any] = {
        "apiVersion": "cluster.redpanda.com/v1alpha1",
        "kind": "Redpanda",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "generation": generation,
            "finalizers": list(finalizers or []),
            "annotations": dict(annotations or {}),
        },
        "spec": spec if spec is not None else {
            "chartRef": {"chartVersion": "5.6.46"},
            "clusterSpec": {"statefulset": {"replicas": 1}},
        },
    }
    if status is not None:
        obj["status"] = status
    return obj


def mark_ready(k8s: FakeK8sClient, kind: str, name: str, namespace: str = "default", ready: bool = True) -> None:
    """Play the Flux controller: observe the current generation and report Ready."""
    obj = k8s.objects[(kind, namespace, name)]
    obj["status"] = {
        "observedGeneration": obj["metadata"]["generation"],
        "conditions": [{"type": "Ready", "status": "True" if ready else "False"}],
    }


@pytest.fixture
def k8s() -> FakeK8sClient:
    return FakeK8sClient()


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        chart_repository="https://charts.redpanda.com/",
        requeue_helm_deps=10.0,
        deletion_requeue=1.0,
    )


@pytest.fixture
def recorder(k8s, test_settings) -> EventRecorder:
    return EventRecorder(k8s, test_settings)


@pytest.fixture
def reconciler(k8s, registry, test_settings) -> Reconciler:
    return Reconciler(k8s, registry=registry, settings=test_settings)
