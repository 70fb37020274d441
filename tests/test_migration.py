"""Tests for handing legacy resources over to the Helm release."""

import pytest

from conftest import redpanda
from redpanda_controller.core.migration import (
    CONSOLE_ACL_FINALIZER,
    CONSOLE_SA_FINALIZER,
    LEGACY_MANAGED_ANNOTATION,
    Migrator,
    plan,
)
from redpanda_controller.errors import MigrationError
from redpanda_controller.models.cluster import FINALIZER_KEY, RedpandaCluster
from redpanda_controller.utils import meta

HELM_LABELS = {"app.kubernetes.io/managed-by": "Helm"}
HELM_ANNOTATIONS = {
    "meta.helm.sh/release-name": "redpanda",
    "meta.helm.sh/release-namespace": "default",
}


def obj(name, labels=None, annotations=None, finalizers=None, spec=None):
    body = {
        "metadata": {
            "name": name,
            "namespace": "default",
            "labels": dict(labels or {}),
            "annotations": dict(annotations or {}),
            "finalizers": list(finalizers or []),
        },
    }
    if spec is not None:
        body["spec"] = spec
    return body


def migrating_cluster(console=True):
    return redpanda(spec={
        "chartRef": {},
        "clusterSpec": {"console": {"enabled": console, "fullnameOverride": "redpanda-console"}},
        "migration": {"enabled": True},
    })


@pytest.fixture
def legacy(k8s):
    """A namespace as the legacy controller left it."""
    k8s.add("Cluster", obj("redpanda"))
    k8s.add("Console", obj("redpanda", finalizers=[CONSOLE_SA_FINALIZER, CONSOLE_ACL_FINALIZER]))
    for i in range(2):
        k8s.add("Pod", obj(
            f"redpanda-{i}",
            labels={"app.kubernetes.io/instance": "redpanda", "app.kubernetes.io/name": "redpanda"},
            finalizers=[FINALIZER_KEY],
        ))
    k8s.add("Service", obj("redpanda", spec={"selector": {"app": "redpanda"}}))
    k8s.add("Service", obj("redpanda-external", labels={"team": "data"}))
    k8s.add("ServiceAccount", obj("redpanda"))
    k8s.add("PodDisruptionBudget", obj("redpanda"))
    k8s.add("StatefulSet", obj("redpanda"))
    k8s.add("ServiceAccount", obj("redpanda-console"))
    k8s.add("Service", obj("redpanda-console", spec={"selector": {"app": "console"}}))
    k8s.add("Deployment", obj("redpanda-console"))
    k8s.add("Ingress", obj("redpanda-console"))
    return k8s


@pytest.fixture
def migrator(k8s, registry, recorder):
    return Migrator(k8s, registry, recorder)


def test_plan_skips_console_steps_when_disabled():
    with_console = plan(RedpandaCluster.from_dict(migrating_cluster(console=True)))
    without = plan(RedpandaCluster.from_dict(migrating_cluster(console=False)))
    assert len(with_console) - len(without) == 4
    assert not any("console" in step.name for step in without[3:])


def test_full_migration(legacy, migrator):
    cluster = RedpandaCluster.from_dict(migrating_cluster())
    migrator.migrate(cluster)

    cluster_cr = legacy.stored("Cluster", "redpanda")
    assert meta.annotations_of(cluster_cr)[LEGACY_MANAGED_ANNOTATION] == "false"

    console_cr = legacy.stored("Console", "redpanda")
    assert meta.annotations_of(console_cr)[LEGACY_MANAGED_ANNOTATION] == "false"
    assert console_cr["metadata"]["finalizers"] == []

    for i in range(2):
        pod = legacy.stored("Pod", f"redpanda-{i}")
        assert meta.labels_of(pod)["app.kubernetes.io/component"] == "redpanda-statefulset"
        assert FINALIZER_KEY not in pod["metadata"]["finalizers"]

    internal = legacy.stored("Service", "redpanda")
    assert meta.has_helm_ownership(internal, "redpanda", "default")
    assert internal["spec"]["selector"] == {
        "app.kubernetes.io/instance": "redpanda",
        "app.kubernetes.io/name": "redpanda",
    }

    external = legacy.stored("Service", "redpanda-external")
    assert meta.has_helm_ownership(external, "redpanda", "default")
    assert meta.labels_of(external)["team"] == "data"

    console_svc = legacy.stored("Service", "redpanda-console")
    assert console_svc["spec"]["selector"]["app.kubernetes.io/name"] == "console"

    for kind, name in [
        ("ServiceAccount", "redpanda"),
        ("PodDisruptionBudget", "redpanda"),
        ("ServiceAccount", "redpanda-console"),
        ("Ingress", "redpanda-console"),
    ]:
        assert meta.has_helm_ownership(legacy.stored(kind, name), "redpanda", "default"), kind

    assert legacy.stored("StatefulSet", "redpanda") is None
    assert legacy.stored("Deployment", "redpanda-console") is None
    deletes = {c[1]: c[4] for c in legacy.mutations() if c[0] == "delete"}
    assert deletes == {"StatefulSet": "Orphan", "Deployment": None}

    messages = legacy.event_messages()
    assert "update Cluster custom resource" in messages
    assert "update Console custom resource" in messages
    assert messages.count("update Redpanda Pod") == 2
    assert "delete StatefulSet with orphan propagation mode" in messages
    assert "delete console Deployment" in messages


def test_second_run_is_a_no_op(legacy, migrator):
    cluster = RedpandaCluster.from_dict(migrating_cluster())
    migrator.migrate(cluster)
    legacy.clear_calls()

    migrator.migrate(cluster)
    assert legacy.mutations() == []
    assert legacy.events == []


def test_missing_resources_are_skipped(k8s, migrator):
    cluster = RedpandaCluster.from_dict(migrating_cluster())
    migrator.migrate(cluster)
    assert k8s.mutations() == []


def test_failed_step_does_not_stop_the_others(legacy, migrator):
    legacy.fail("get", "Console", "redpanda")
    cluster = RedpandaCluster.from_dict(migrating_cluster())

    with pytest.raises(MigrationError) as excinfo:
        migrator.migrate(cluster)

    assert excinfo.value.steps == ["legacy console"]
    assert "1 migration step(s) failed" in str(excinfo.value)
    assert legacy.stored("StatefulSet", "redpanda") is None
    assert meta.has_helm_ownership(legacy.stored("Ingress", "redpanda-console"), "redpanda", "default")


def test_pod_failures_are_reported_per_pod(legacy, migrator):
    legacy.fail("replace", "Pod", "redpanda-1")
    cluster = RedpandaCluster.from_dict(migrating_cluster())

    with pytest.raises(MigrationError) as excinfo:
        migrator.migrate(cluster)

    assert excinfo.value.steps == ["pods: pod redpanda-1"]
    relabelled = legacy.stored("Pod", "redpanda-0")
    assert meta.labels_of(relabelled)["app.kubernetes.io/component"] == "redpanda-statefulset"


def test_owned_statefulset_is_not_deleted(legacy, migrator):
    sts = legacy.stored("StatefulSet", "redpanda")
    sts["metadata"]["labels"].update(HELM_LABELS)
    sts["metadata"]["annotations"].update(HELM_ANNOTATIONS)

    migrator.migrate(RedpandaCluster.from_dict(migrating_cluster()))
    assert legacy.stored("StatefulSet", "redpanda") is not None


def test_console_deployment_checked_on_its_own_labels(k8s, migrator):
    # The console ServiceAccount is already owned; the Deployment is not
    k8s.add("ServiceAccount", obj("redpanda-console", labels=HELM_LABELS, annotations=HELM_ANNOTATIONS))
    k8s.add("Deployment", obj("redpanda-console"))

    migrator.migrate(RedpandaCluster.from_dict(migrating_cluster()))
    assert k8s.stored("Deployment", "redpanda-console") is None


def test_owned_console_deployment_is_kept(k8s, migrator):
    k8s.add("ServiceAccount", obj("redpanda-console"))
    k8s.add("Deployment", obj("redpanda-console", labels=HELM_LABELS, annotations=HELM_ANNOTATIONS))

    migrator.migrate(RedpandaCluster.from_dict(migrating_cluster()))
    assert k8s.stored("Deployment", "redpanda-console") is not None
    assert not [c for c in k8s.mutations() if c[0] == "delete"]


def test_plan_builds_every_step_family():
    from redpanda_controller.core.migration import AdoptMetadata, RecreateWorkload

    steps = plan(RedpandaCluster.from_dict(migrating_cluster()))
    assert [type(s).__name__ for s in steps] == [
        "DisableLegacyCluster", "DisableLegacyConsole", "RelabelPods",
        "AdoptMetadata", "AdoptMetadata", "AdoptMetadata", "AdoptMetadata", "RecreateWorkload",
        "AdoptMetadata", "AdoptMetadata", "RecreateWorkload", "AdoptMetadata",
    ]
    sts = steps[7]
    assert isinstance(sts, RecreateWorkload)
    assert (sts.kind, sts.resource_name, sts.propagation) == ("StatefulSet", "redpanda", "Orphan")
    internal = steps[3]
    assert isinstance(internal, AdoptMetadata)
    assert (internal.kind, internal.resource_name) == ("Service", "redpanda")


def test_events_carry_the_revision(legacy, migrator):
    obj = migrating_cluster()
    obj["status"] = {"lastAttemptedRevision": "rev-7"}
    migrator.migrate(RedpandaCluster.from_dict(obj))

    assert legacy.events
    for event in legacy.events:
        assert event["metadata"]["annotations"] == {"cluster.redpanda.com/revision": "rev-7"}


def test_events_without_revision_have_no_annotation(legacy, migrator):
    migrator.migrate(RedpandaCluster.from_dict(migrating_cluster()))
    assert all(e["metadata"]["annotations"] == {} for e in legacy.events)
