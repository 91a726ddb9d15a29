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

"""Configuration classes and config display."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.table import Table

from offline_kube import console
from offline_kube.constants import (
    API_HEALTH_POLL_INTERVAL_SECONDS,
    API_HEALTH_TIMEOUT_SECONDS,
    DEFAULT_ADMIN_KUBECONFIG,
    DEFAULT_CONTAINERD_CONFIG,
    DEFAULT_CONTAINERD_SOCKET,
    DEFAULT_FLANNEL_DAEMONSET,
    DEFAULT_FLANNEL_MANIFEST,
    DEFAULT_FLANNEL_NAMESPACE,
    DEFAULT_FSTAB,
    DEFAULT_IMAGE_NAMESPACE,
    DEFAULT_MODULES_FILE,
    DEFAULT_POD_NETWORK_CIDR,
    DEFAULT_RELEASE_FILE,
    DEFAULT_SYSCTL_FILE,
    KUBERNETES_VERSION,
    REL_GPG_DIR,
    REL_IMAGES_DIR,
    REL_RPMS_DIR,
    REL_YAML_DIR,
    RUNTIME_SOCKET_POLL_INTERVAL_SECONDS,
    RUNTIME_SOCKET_TIMEOUT_SECONDS,
)


class BootstrapConfig(BaseSettings):
    """Bootstrap configuration, auto-loaded from OFFLINE_KUBE_* env vars.

    Attributes:
        bundle_dir: Directory holding the offline bundle (rpms/, images/, yaml/, gpgkey/).
        release_file: Distribution release file used for OS detection.
        containerd_config: containerd configuration file managed by the runtime phase.
        containerd_socket: containerd control socket polled for readiness.
        fstab: Filesystem table swap entries are removed from.
        modules_file: File persisting kernel modules across reboots.
        sysctl_file: File persisting sysctl settings.
        admin_kubeconfig: Admin kubeconfig written by ``kubeadm init``.
        pod_network_cidr: Pod network range handed to ``kubeadm init``.
        image_namespace: containerd namespace images are imported into.
        flannel_namespace: Namespace of the Flannel DaemonSet.
        flannel_daemonset: Name of the Flannel DaemonSet.
        flannel_manifest: Flannel manifest file name under ``yaml/``.
        socket_poll_interval: Seconds between containerd socket checks.
        socket_timeout: Maximum seconds to wait for the containerd socket.
        api_poll_interval: Seconds between API server health checks.
        api_timeout: Maximum seconds to wait for the API server.
    """

    model_config = SettingsConfigDict(env_prefix="OFFLINE_KUBE_", extra="ignore")

    bundle_dir: Path = Field(default_factory=Path.cwd)
    release_file: Path = Path(DEFAULT_RELEASE_FILE)
    containerd_config: Path = Path(DEFAULT_CONTAINERD_CONFIG)
    containerd_socket: Path = Path(DEFAULT_CONTAINERD_SOCKET)
    fstab: Path = Path(DEFAULT_FSTAB)
    modules_file: Path = Path(DEFAULT_MODULES_FILE)
    sysctl_file: Path = Path(DEFAULT_SYSCTL_FILE)
    admin_kubeconfig: Path = Path(DEFAULT_ADMIN_KUBECONFIG)
    pod_network_cidr: str = Field(default=DEFAULT_POD_NETWORK_CIDR, pattern=r"^[\d.]+/\d{1,2}$")
    image_namespace: str = DEFAULT_IMAGE_NAMESPACE
    flannel_namespace: str = DEFAULT_FLANNEL_NAMESPACE
    flannel_daemonset: str = DEFAULT_FLANNEL_DAEMONSET
    flannel_manifest: str = DEFAULT_FLANNEL_MANIFEST
    socket_poll_interval: int = Field(default=RUNTIME_SOCKET_POLL_INTERVAL_SECONDS, ge=1)
    socket_timeout: int = Field(default=RUNTIME_SOCKET_TIMEOUT_SECONDS, ge=1)
    api_poll_interval: int = Field(default=API_HEALTH_POLL_INTERVAL_SECONDS, ge=1)
    api_timeout: int = Field(default=API_HEALTH_TIMEOUT_SECONDS, ge=1)

    @property
    def rpms_dir(self) -> Path:
        return self.bundle_dir / REL_RPMS_DIR

    @property
    def images_dir(self) -> Path:
        return self.bundle_dir / REL_IMAGES_DIR

    @property
    def yaml_dir(self) -> Path:
        return self.bundle_dir / REL_YAML_DIR

    @property
    def gpg_dir(self) -> Path:
        return self.bundle_dir / REL_GPG_DIR

    @property
    def flannel_manifest_path(self) -> Path:
        return self.yaml_dir / self.flannel_manifest

    @property
    def cri_socket_url(self) -> str:
        return f"unix://{self.containerd_socket}"


def display_config(cfg: BootstrapConfig) -> None:
    """Print the resolved configuration as a table.

    Args:
        cfg: Resolved bootstrap configuration.
    """
    table = Table(title=f"Kubernetes {KUBERNETES_VERSION} offline bootstrap", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Bundle directory", str(cfg.bundle_dir))
    table.add_row("containerd config", str(cfg.containerd_config))
    table.add_row("CRI socket", cfg.cri_socket_url)
    table.add_row("Pod network CIDR", cfg.pod_network_cidr)
    table.add_row("Image namespace", cfg.image_namespace)
    table.add_row("Flannel manifest", str(cfg.flannel_manifest_path))
    table.add_row("Socket wait", f"{cfg.socket_timeout}s (every {cfg.socket_poll_interval}s)")
    table.add_row("API wait", f"{cfg.api_timeout}s (every {cfg.api_poll_interval}s)")
    console.print(table)
