import pytest

from fbwatch.daemonset import (
    FluentBit,
    make_daemon_set,
    make_rbac_objects,
    make_scoped_rbac_objects,
)

LOG_PATH = "/var/lib/docker/containers"


@pytest.fixture
def fb():
    return FluentBit(
        name="fluent-bit",
        namespace="logging",
        labels={"app": "fluent-bit"},
        image="fluent/fluent-bit:latest",
        fluent_bit_config_name="fluent-bit-config",
    )


def _pod_spec(ds):
    return ds["spec"]["template"]["spec"]


def test_cluster_rbac_names_and_binding():
    role, sa, binding = make_rbac_objects("fb", "ns")
    assert role["kind"] == "ClusterRole"
    assert role["metadata"] == {"name": "kubesphere:fluent-bit"}
    assert role["rules"] == [{"verbs": ["get"], "apiGroups": [""], "resources": ["pods"]}]
    assert sa["metadata"] == {"name": "fb", "namespace": "ns"}
    assert binding["subjects"] == [{"kind": "ServiceAccount", "name": "fb", "namespace": "ns"}]
    assert binding["roleRef"]["kind"] == "ClusterRole"
    assert binding["roleRef"]["name"] == role["metadata"]["name"]
    assert binding["roleRef"]["apiGroup"] == "rbac.authorization.k8s.io"


def test_scoped_rbac_is_namespaced():
    role, sa, binding = make_scoped_rbac_objects("fb", "ns")
    assert role["kind"] == "Role"
    assert role["metadata"]["namespace"] == "ns"
    assert binding["metadata"]["namespace"] == "ns"
    assert binding["roleRef"]["kind"] == "Role"
    assert sa["metadata"]["name"] == "fb"


def test_daemon_set_metadata_and_selector(fb):
    ds = make_daemon_set(fb, LOG_PATH)
    assert ds["metadata"] == {"name": "fluent-bit", "namespace": "logging", "labels": {"app": "fluent-bit"}}
    assert ds["spec"]["selector"]["matchLabels"] == fb.labels
    assert ds["spec"]["template"]["metadata"] == ds["metadata"]
    assert _pod_spec(ds)["serviceAccountName"] == fb.name


def test_default_volumes_and_mounts(fb):
    spec = _pod_spec(make_daemon_set(fb, LOG_PATH))
    names = [v["name"] for v in spec["volumes"]]
    assert names == ["varlibcontainers", "config", "varlogs", "systemd"]
    assert spec["volumes"][0]["hostPath"]["path"] == LOG_PATH
    assert spec["volumes"][1]["secret"]["secretName"] == fb.fluent_bit_config_name
    mounts = spec["containers"][0]["volumeMounts"]
    assert [m["name"] for m in mounts] == names
    assert mounts[0]["mountPath"] == LOG_PATH
    assert mounts[1]["mountPath"] == "/fluent-bit/config"
    assert all(m["readOnly"] for m in mounts)


def test_container_ports_and_env(fb):
    container = _pod_spec(make_daemon_set(fb, LOG_PATH))["containers"][0]
    assert container["name"] == "fluent-bit"
    assert container["image"] == fb.image
    assert container["ports"] == [{"name": "metrics", "containerPort": 2020, "protocol": "TCP"}]
    assert container["env"][0]["valueFrom"]["fieldRef"]["fieldPath"] == "spec.nodeName"


def test_optional_class_names(fb):
    spec = _pod_spec(make_daemon_set(fb, LOG_PATH))
    assert "runtimeClassName" not in spec
    assert "priorityClassName" not in spec
    fb.runtime_class_name = "runc"
    fb.priority_class_name = "high"
    spec = _pod_spec(make_daemon_set(fb, LOG_PATH))
    assert spec["runtimeClassName"] == "runc"
    assert spec["priorityClassName"] == "high"


def test_position_db_volume(fb):
    spec = _pod_spec(make_daemon_set(fb, LOG_PATH))
    assert "positions" not in [v["name"] for v in spec["volumes"]]
    fb.position_db = {"emptyDir": {}}
    spec = _pod_spec(make_daemon_set(fb, LOG_PATH))
    assert spec["volumes"][-1] == {"name": "positions", "emptyDir": {}}
    assert spec["containers"][0]["volumeMounts"][-1] == {
        "name": "positions",
        "mountPath": "/fluent-bit/tail",
    }


def test_secrets_are_mounted_in_order(fb):
    fb.secrets = ["secret", "token"]
    spec = _pod_spec(make_daemon_set(fb, LOG_PATH))
    volumes = spec["volumes"][-2:]
    assert [v["name"] for v in volumes] == fb.secrets
    assert [v["secret"]["secretName"] for v in volumes] == fb.secrets
    mounts = spec["containers"][0]["volumeMounts"][-2:]
    assert [m["name"] for m in mounts] == fb.secrets
    assert [m["mountPath"] for m in mounts] == [
        "/fluent-bit/secrets/secret",
        "/fluent-bit/secrets/token",
    ]
    assert all(m["readOnly"] for m in mounts)


def test_result_does_not_alias_input(fb):
    ds = make_daemon_set(fb, LOG_PATH)
    ds["metadata"]["labels"]["extra"] = "x"
    ds["spec"]["selector"]["matchLabels"]["other"] = "y"
    assert fb.labels == {"app": "fluent-bit"}
    assert "extra" not in ds["spec"]["template"]["metadata"]["labels"]


def test_scheduling_fields_passed_through(fb):
    fb.node_selector = {"role": "log"}
    fb.tolerations = [{"operator": "Exists"}]
    fb.args = ["--verbose"]
    spec = _pod_spec(make_daemon_set(fb, LOG_PATH))
    assert spec["nodeSelector"] == {"role": "log"}
    assert spec["tolerations"] == [{"operator": "Exists"}]
    assert spec["containers"][0]["args"] == ["--verbose"]
    assert "affinity" not in spec