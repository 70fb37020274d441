"""kopf wiring: the work queue that invokes the reconciler."""

from __future__ import annotations

import logging
from typing import Any

import kopf
from kubernetes.client import ApiException

from redpanda_controller.config.settings import settings as controller_settings
from redpanda_controller.core.k8s_client import K8sClient
from redpanda_controller.core.reconciler import Reconciler
from redpanda_controller.core.registry import default_registry
from redpanda_controller.errors import DeletionPending, ReconcileError, TemplateError
from redpanda_controller.models import flux
from redpanda_controller.models.cluster import GROUP, KIND, PLURAL, VERSION
from redpanda_controller.utils import meta

logger = logging.getLogger(__name__)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, memo: kopf.Memo, **_: Any) -> None:
    """Build the reconciler once and share it through the memo."""
    settings.posting.level = logging.WARNING
    settings.networking.request_timeout = controller_settings.request_timeout
    # The Redpanda finalizer is managed by the reconciler itself
    settings.persistence.finalizer = "operator.redpanda.com/kopf-finalizer"

    registry = default_registry()
    memo.reconciler = Reconciler(K8sClient(), registry=registry)


def _run(memo: kopf.Memo, namespace: str, name: str) -> None:
    try:
        result = memo.reconciler.reconcile(namespace, name)
    except DeletionPending as e:
        raise kopf.TemporaryError(str(e), delay=e.delay) from e
    except TemplateError as e:
        raise kopf.PermanentError(str(e)) from e
    if result.requeue:
        raise kopf.TemporaryError("dependencies not ready", delay=result.requeue_after)


@kopf.on.create(GROUP, VERSION, PLURAL)
@kopf.on.update(GROUP, VERSION, PLURAL)
@kopf.on.resume(GROUP, VERSION, PLURAL)
def reconcile_redpanda(name: str, namespace: str, memo: kopf.Memo, **_: Any) -> None:
    _run(memo, namespace, name)


@kopf.on.delete(GROUP, VERSION, PLURAL)
def delete_redpanda(name: str, namespace: str, memo: kopf.Memo, **_: Any) -> None:
    _run(memo, namespace, name)


@kopf.timer(
    GROUP, VERSION, PLURAL,
    interval=controller_settings.resync_interval,
    idle=controller_settings.resync_interval,
)
def resync_redpanda(name: str, namespace: str, memo: kopf.Memo, **_: Any) -> None:
    """Periodic pass so readiness changes of the Flux objects reach the status."""
    _run(memo, namespace, name)


@kopf.on.event(flux.HELM_GROUP, flux.HELM_VERSION, flux.HELM_RELEASE_PLURAL)
def helm_release_changed(
    type: str | None, body: kopf.Body, namespace: str, memo: kopf.Memo, **_: Any,
) -> None:
    """Re-run the owning Redpanda when the helm controller reports on its release."""
    # None is the initial listing; resume handlers cover it
    if type is None:
        return
    owner = meta.controller_owner(body, f"{GROUP}/{VERSION}", KIND)
    if owner is None:
        return
    try:
        memo.reconciler.reconcile(namespace, owner)
    except (ReconcileError, ApiException) as e:
        # Event handlers are not retried; the regular handlers and timer pick this up
        logger.warning("reconcile of %s/%s after HelmRelease %s event: %s", namespace, owner, type, e)
