"""Helpers for object metadata: finalizers and Helm ownership markers."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

HELM_MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
HELM_MANAGED_BY_VALUE = "Helm"
HELM_RELEASE_NAME_ANNOTATION = "meta.helm.sh/release-name"
HELM_RELEASE_NAMESPACE_ANNOTATION = "meta.helm.sh/release-namespace"


def labels_of(obj: dict[str, Any]) -> dict[str, str]:
    return (obj.get("metadata", {}) or {}).get("labels") or {}


def annotations_of(obj: dict[str, Any]) -> dict[str, str]:
    return (obj.get("metadata", {}) or {}).get("annotations") or {}


def has_finalizer(obj: dict[str, Any], key: str) -> bool:
    return key in ((obj.get("metadata", {}) or {}).get("finalizers") or [])


def remove_finalizer(obj: dict[str, Any], key: str) -> None:
    meta = obj.setdefault("metadata", {})
    meta["finalizers"] = [f for f in meta.get("finalizers") or [] if f != key]


def set_label(obj: dict[str, Any], key: str, value: str) -> None:
    meta = obj.setdefault("metadata", {})
    if meta.get("labels") is None:
        meta["labels"] = {}
    meta["labels"][key] = value


def set_annotation(obj: dict[str, Any], key: str, value: str) -> None:
    meta = obj.setdefault("metadata", {})
    if meta.get("annotations") is None:
        meta["annotations"] = {}
    meta["annotations"][key] = value


def has_helm_ownership(obj: dict[str, Any], release_name: str, release_namespace: str) -> bool:
    """True if the object already carries the markers Helm needs to adopt it."""
    labels = labels_of(obj)
    annotations = annotations_of(obj)
    return (
        labels.get(HELM_MANAGED_BY_LABEL) == HELM_MANAGED_BY_VALUE
        and annotations.get(HELM_RELEASE_NAME_ANNOTATION) == release_name
        and annotations.get(HELM_RELEASE_NAMESPACE_ANNOTATION) == release_namespace
    )


def set_helm_ownership(obj: dict[str, Any], release_name: str, release_namespace: str) -> None:
    set_label(obj, HELM_MANAGED_BY_LABEL, HELM_MANAGED_BY_VALUE)
    set_annotation(obj, HELM_RELEASE_NAME_ANNOTATION, release_name)
    set_annotation(obj, HELM_RELEASE_NAMESPACE_ANNOTATION, release_namespace)


def controller_owner(obj: Mapping[str, Any], api_version: str, kind: str) -> str | None:
    """Name of the controlling owner of the given kind, if there is one."""
    for ref in (obj.get("metadata") or {}).get("ownerReferences") or []:
        if ref.get("controller") and ref.get("kind") == kind and ref.get("apiVersion") == api_version:
            return ref.get("name")
    return None
