"""Build the Kubernetes objects that run Fluent Bit as a DaemonSet.

Objects are plain dictionaries in the shape of Kubernetes manifests, ready to
be serialised to JSON or YAML. Empty optional fields are left out.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

RBAC_GROUP = "rbac.authorization.k8s.io"
ROLE_NAME = "kubesphere:fluent-bit"
METRICS_PORT = 2020
CONFIG_MOUNT_PATH = "/fluent-bit/config"
POSITIONS_MOUNT_PATH = "/fluent-bit/tail"
SECRETS_MOUNT_DIR = "/fluent-bit/secrets"

Manifest = dict[str, Any]


@dataclass
class FluentBit:
    """Desired state of a Fluent Bit deployment."""

    name: str
    namespace: str
    labels: dict[str, str] = field(default_factory=dict)
    image: str = ""
    args: list[str] = field(default_factory=list)
    image_pull_policy: str = ""
    image_pull_secrets: list[dict[str, Any]] = field(default_factory=list)
    fluent_bit_config_name: str = ""
    resources: dict[str, Any] = field(default_factory=dict)
    node_selector: dict[str, str] = field(default_factory=dict)
    tolerations: list[dict[str, Any]] = field(default_factory=list)
    affinity: dict[str, Any] | None = None
    runtime_class_name: str = ""
    priority_class_name: str = ""
    position_db: dict[str, Any] = field(default_factory=dict)
    secrets: list[str] = field(default_factory=list)


def _put(target: Manifest, key: str, value: Any) -> None:
    """Set ``key`` to a copy of ``value`` unless the value is empty."""
    if value:
        target[key] = copy.deepcopy(value)


def _rules() -> list[Manifest]:
    return [{"verbs": ["get"], "apiGroups": [""], "resources": ["pods"]}]


def _service_account(fb_name: str, fb_namespace: str) -> Manifest:
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": {"name": fb_name, "namespace": fb_namespace},
    }


def _subjects(fb_name: str, fb_namespace: str) -> list[Manifest]:
    return [{"kind": "ServiceAccount", "name": fb_name, "namespace": fb_namespace}]


def make_rbac_objects(fb_name: str, fb_namespace: str) -> tuple[Manifest, Manifest, Manifest]:
    """Return the cluster-wide role, service account and role binding for Fluent Bit."""
    role = {
        "apiVersion": f"{RBAC_GROUP}/v1",
        "kind": "ClusterRole",
        "metadata": {"name": ROLE_NAME},
        "rules": _rules(),
    }
    binding = {
        "apiVersion": f"{RBAC_GROUP}/v1",
        "kind": "ClusterRoleBinding",
        "metadata": {"name": ROLE_NAME},
        "subjects": _subjects(fb_name, fb_namespace),
        "roleRef": {"apiGroup": RBAC_GROUP, "kind": "ClusterRole", "name": ROLE_NAME},
    }
    return role, _service_account(fb_name, fb_namespace), binding


def make_scoped_rbac_objects(
    fb_name: str, fb_namespace: str
) -> tuple[Manifest, Manifest, Manifest]:
    """Return the namespaced role, service account and role binding for Fluent Bit."""
    role = {
        "apiVersion": f"{RBAC_GROUP}/v1",
        "kind": "Role",
        "metadata": {"name": ROLE_NAME, "namespace": fb_namespace},
        "rules": _rules(),
    }
    binding = {
        "apiVersion": f"{RBAC_GROUP}/v1",
        "kind": "RoleBinding",
        "metadata": {"name": ROLE_NAME, "namespace": fb_namespace},
        "subjects": _subjects(fb_name, fb_namespace),
        "roleRef": {"apiGroup": RBAC_GROUP, "kind": "Role", "name": ROLE_NAME},
    }
    return role, _service_account(fb_name, fb_namespace), binding


def _metadata(fb: FluentBit) -> Manifest:
    meta: Manifest = {"name": fb.name, "namespace": fb.namespace}
    _put(meta, "labels", fb.labels)
    return meta


def _host_path(name: str, path: str) -> Manifest:
    return {"name": name, "hostPath": {"path": path}}


def _secret_volume(name: str, secret_name: str) -> Manifest:
    volume: Manifest = {"name": name, "secret": {}}
    _put(volume["secret"], "secretName", secret_name)
    return volume


def _mount(name: str, path: str, read_only: bool = True) -> Manifest:
    mount: Manifest = {"name": name, "mountPath": path}
    if read_only:
        mount["readOnly"] = True
    return mount


def make_daemon_set(fb: FluentBit, log_path: str) -> Manifest:
    """Return the DaemonSet that runs ``fb`` on every node, reading logs from ``log_path``."""
    volumes = [
        _host_path("varlibcontainers", log_path),
        _secret_volume("config", fb.fluent_bit_config_name),
        _host_path("varlogs", "/var/log"),
        _host_path("systemd", "/var/log/journal"),
    ]
    mounts = [
        _mount("varlibcontainers", log_path),
        _mount("config", CONFIG_MOUNT_PATH),
        _mount("varlogs", "/var/log/"),
        _mount("systemd", "/var/log/journal"),
    ]

    if fb.position_db:
        volumes.append({"name": "positions", **copy.deepcopy(fb.position_db)})
        mounts.append(_mount("positions", POSITIONS_MOUNT_PATH, read_only=False))

    for secret in fb.secrets:
        volumes.append(_secret_volume(secret, secret))
        mounts.append(_mount(secret, f"{SECRETS_MOUNT_DIR}/{secret}"))

    container: Manifest = {"name": "fluent-bit"}
    _put(container, "image", fb.image)
    _put(container, "args", fb.args)
    container["ports"] = [
        {"name": "metrics", "containerPort": METRICS_PORT, "protocol": "TCP"}
    ]
    container["env"] = [
        {"name": "NODE_NAME", "valueFrom": {"fieldRef": {"fieldPath": "spec.nodeName"}}}
    ]
    container["resources"] = copy.deepcopy(fb.resources)
    container["volumeMounts"] = mounts
    _put(container, "imagePullPolicy", fb.image_pull_policy)

    pod_spec: Manifest = {"volumes": volumes, "containers": [container]}
    _put(pod_spec, "nodeSelector", fb.node_selector)
    pod_spec["serviceAccountName"] = fb.name
    _put(pod_spec, "imagePullSecrets", fb.image_pull_secrets)
    _put(pod_spec, "affinity", fb.affinity)
    _put(pod_spec, "tolerations", fb.tolerations)
    _put(pod_spec, "priorityClassName", fb.priority_class_name)
    _put(pod_spec, "runtimeClassName", fb.runtime_class_name)

    selector: Manifest = {}
    _put(selector, "matchLabels", fb.labels)

    return {
        "apiVersion": "apps/v1",
        "kind": "DaemonSet",
        "metadata": _metadata(fb),
        "spec": {
            "selector": selector,
            "template": {"metadata": _metadata(fb), "spec": pod_spec},
        },
    }