# /*
# Copyright 2026 The offline-kube Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Constants, bundle dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_dependencies() -> dict:
    """Load the bundle contents and required host settings from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = Path(__file__).resolve().parent / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


KUBERNETES_VERSION: str = dep_value("kubernetes", "version", default="unknown")

# -- Fixed host settings (ordered) --
SYSTEM_PACKAGES: tuple[str, ...] = tuple(dep_value("system_packages", default=[]))
SERVICES: tuple[str, ...] = tuple(dep_value("services", default=[]))
KERNEL_MODULES: tuple[str, ...] = tuple(dep_value("kernel", "modules", default=[]))
SYSCTL_SETTINGS: tuple[tuple[str, str], ...] = tuple(
    (entry["key"], str(entry["value"])) for entry in dep_value("kernel", "sysctl", default=[])
)
FIREWALL_PORTS: tuple[str, ...] = tuple(dep_value("firewall", "ports", default=[]))
IMAGE_ARCHIVES: tuple[str, ...] = tuple(dep_value("images", "archives", default=[]))

# -- Flannel --
DEFAULT_FLANNEL_NAMESPACE: str = dep_value("flannel", "namespace", default="kube-flannel")
DEFAULT_FLANNEL_DAEMONSET: str = dep_value("flannel", "daemonset", default="kube-flannel-ds")
DEFAULT_FLANNEL_MANIFEST: str = dep_value("flannel", "manifest", default="kube-flannel.yml")

# -- OS detection: release file marker -> RPM subdirectory --
OS_RELEASE_MARKERS = (
    ("Linux release 9", "rh9"),
    ("Stream release 9", "rh9"),
    ("Linux release 8", "rh8"),
    ("Stream release 8", "rh8"),
)
SUPPORTED_OS_HINT = "Rocky/RHEL/CentOS Stream 8 and 9"

# -- Bundle layout (relative to the bundle directory) --
REL_RPMS_DIR = "rpms"
REL_IMAGES_DIR = "images"
REL_YAML_DIR = "yaml"
REL_GPG_DIR = "gpgkey"
GPG_KEY_SUFFIXES = ("gpg", "key")

# -- Host paths --
DEFAULT_RELEASE_FILE = "/etc/redhat-release"
DEFAULT_CONTAINERD_CONFIG = "/etc/containerd/config.toml"
DEFAULT_CONTAINERD_SOCKET = "/run/containerd/containerd.sock"
DEFAULT_FSTAB = "/etc/fstab"
DEFAULT_MODULES_FILE = "/etc/modules-load.d/k8s.conf"
DEFAULT_SYSCTL_FILE = "/etc/sysctl.d/k8s.conf"
DEFAULT_ADMIN_KUBECONFIG = "/etc/kubernetes/admin.conf"

# -- containerd --
CONTAINERD_SERVICE = "containerd"
SYSTEMD_CGROUP_KEY = "SystemdCgroup"
SYSTEMD_CGROUP_DISABLED = "SystemdCgroup = false"
SYSTEMD_CGROUP_ENABLED = "SystemdCgroup = true"
SYSTEMD_CGROUP_BLOCK = (
    "\n"
    '[plugins."io.containerd.grpc.v1.cri".containerd.runtimes.runc.options]\n'
    "  SystemdCgroup = true\n"
)
IMAGE_NAME_ANNOTATION = "io.containerd.image.name"
OCI_INDEX_MEMBER = "index.json"
DEFAULT_IMAGE_NAMESPACE = "k8s.io"

# -- Cluster --
DEFAULT_POD_NETWORK_CIDR = "10.244.0.0/16"
FSTAB_SWAP_MARKER = "swap"
FIREWALL_SERVICE = "firewalld"
SYSCTL_UNSET = "unset"

# -- Readiness polls --
RUNTIME_SOCKET_POLL_INTERVAL_SECONDS = 2
RUNTIME_SOCKET_TIMEOUT_SECONDS = 120
API_HEALTH_POLL_INTERVAL_SECONDS = 5
API_HEALTH_TIMEOUT_SECONDS = 180

# -- Exit codes --
EXIT_GENERAL_ERROR = 1
EXIT_NOT_READY = 2

PROBE_TIMEOUT_SECONDS = 60

# -- Prerequisite CLI tools --
# Tools each phase shells out to. firewall-cmd is only used while firewalld is active.
PHASE_TOOLS = {
    "packages": ("rpm", "yum", "dnf", "gpg"),
    "services": ("systemctl",),
    "runtime": ("containerd", "systemctl"),
    "host": ("swapon", "swapoff", "lsmod", "modprobe", "sysctl", "systemctl"),
    "cluster": ("ctr", "kubeadm", "kubectl"),
}
