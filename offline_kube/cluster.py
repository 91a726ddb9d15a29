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

"""Control-plane initialization, kubeconfig hand-off, Flannel, and status."""

from __future__ import annotations

import json
import os
import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass

import sh
from rich.panel import Panel

from offline_kube import console, logger
from offline_kube.config import BootstrapConfig
from offline_kube.errors import BootstrapError
from offline_kube.images import import_archives, plan_image_imports
from offline_kube.polling import ReadinessPolicy, wait_until
from offline_kube.utils import InvokingUser, resolve_invoking_user, run_command


@dataclass(frozen=True)
class ClusterInitPlan:
    """Whether ``kubeadm init`` should run.

    Attributes:
        initialized: The admin kubeconfig already exists.
        imports_ok: Every image archive is present in the runtime.
    """

    initialized: bool
    imports_ok: bool

    @property
    def should_init(self) -> bool:
        return self.imports_ok and not self.initialized

    @property
    def actions(self) -> list[str]:
        return ["kubeadm init"] if self.should_init else []


def kubectl_args(cfg: BootstrapConfig, *args: str) -> list[str]:
    return ["kubectl", f"--kubeconfig={cfg.admin_kubeconfig}", *args]


# ============================================================================
# kubeadm init
# ============================================================================

def plan_cluster_init(cfg: BootstrapConfig, imports_ok: bool) -> ClusterInitPlan:
    return ClusterInitPlan(initialized=cfg.admin_kubeconfig.exists(), imports_ok=imports_ok)


def initialize_control_plane(plan: ClusterInitPlan, cfg: BootstrapConfig) -> None:
    """Run ``kubeadm init`` unless gated by failed imports or a prior init.

    Raises:
        BootstrapError: If kubeadm init fails.
    """
    console.print(Panel.fit("Initializing Kubernetes cluster", style="bold blue"))
    if not plan.imports_ok:
        console.print("[red]One or more images failed to import. Cluster initialization skipped.[/red]")
        return
    if plan.initialized:
        console.print("[yellow]   Kubernetes cluster is already initialized. Skipping 'kubeadm init'.[/yellow]")
        return

    console.print("[yellow]\u2139\ufe0f  Initializing Kubernetes cluster...[/yellow]")
    try:
        sh.kubeadm(
            "init",
            f"--pod-network-cidr={cfg.pod_network_cidr}",
            f"--cri-socket={cfg.cri_socket_url}",
            _fg=True,
        )
    except sh.ErrorReturnCode as err:
        raise BootstrapError("kubeadm init failed") from err
    console.print("[green]\u2705 Kubernetes cluster initialized successfully[/green]")


def install_user_kubeconfig(cfg: BootstrapConfig, user: InvokingUser | None = None) -> None:
    """Copy the admin kubeconfig to the invoking user and hand them ownership.

    Skipped when no admin kubeconfig exists yet or the user's copy is current.

    Raises:
        BootstrapError: If any part of the copy fails.
    """
    if not cfg.admin_kubeconfig.exists():
        return
    try:
        user = user or resolve_invoking_user()
        target = user.kubeconfig
        admin = cfg.admin_kubeconfig.read_bytes()
        if target.exists() and target.read_bytes() == admin:
            logger.debug("%s is up to date", target)
            return

        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(cfg.admin_kubeconfig, target)
        target.chmod(0o600)
        os.chown(target.parent, user.uid, user.gid)
        os.chown(target, user.uid, user.gid)
    except (OSError, KeyError) as err:
        # KeyError: SUDO_USER has no passwd entry.
        owner = user.name if user else os.environ.get("SUDO_USER", "the invoking user")
        raise BootstrapError(f"Failed to install kubeconfig for {owner}: {err}") from err
    console.print(f"[green]  \u2713 Kubeconfig installed for {user.name} at {target}[/green]")


# ============================================================================
# API server and Flannel
# ============================================================================

def api_healthy(cfg: BootstrapConfig) -> bool:
    return run_command(kubectl_args(cfg, "get", "--raw=/healthz")).ok


def wait_for_api(cfg: BootstrapConfig, *, sleep: Callable[[float], None] = time.sleep) -> None:
    """Wait for the API server health endpoint.

    Raises:
        ReadinessTimeoutError: If the API server is not healthy within the timeout.
    """
    policy = ReadinessPolicy("API server", cfg.api_poll_interval, cfg.api_timeout)
    wait_until(lambda: api_healthy(cfg), policy, sleep=sleep)


def overlay_present(cfg: BootstrapConfig) -> bool:
    return run_command(kubectl_args(
        cfg, "get", "daemonset", "-n", cfg.flannel_namespace, cfg.flannel_daemonset,
    )).ok


def apply_network_overlay(cfg: BootstrapConfig) -> None:
    """Apply the Flannel manifest unless its DaemonSet already exists.

    Raises:
        BootstrapError: If kubectl apply fails.
    """
    console.print(Panel.fit("Applying Flannel network plugin", style="bold blue"))
    manifest = cfg.flannel_manifest_path
    if overlay_present(cfg):
        console.print(
            f"[yellow]   Flannel is already applied in namespace {cfg.flannel_namespace}. "
            f"Skipping {manifest}.[/yellow]"
        )
        return

    console.print(f"[yellow]\u2139\ufe0f  Applying {manifest}...[/yellow]")
    try:
        sh.kubectl(f"--kubeconfig={cfg.admin_kubeconfig}", "apply", "-f", str(manifest))
    except sh.ErrorReturnCode as err:
        raise BootstrapError(f"Failed to apply {manifest}") from err
    console.print("[green]\u2705 Flannel applied successfully[/green]")


def report_status(cfg: BootstrapConfig) -> None:
    """Print the control plane's readiness and version."""
    readyz = run_command(kubectl_args(cfg, "get", "--raw=/readyz"))
    status = readyz.stdout.strip() if readyz.ok else f"not ready ({readyz.stderr.strip()})"
    console.print(Panel.fit(f"Kubernetes master status: {status}", style="bold green"))

    version = run_command(kubectl_args(cfg, "get", "--raw=/version"))
    try:
        console.print_json(data=json.loads(version.stdout))
    except json.JSONDecodeError:
        console.print(version.stdout.strip() or version.stderr.strip())


# ============================================================================
# Phase
# ============================================================================

def run_cluster(cfg: BootstrapConfig, *, sleep: Callable[[float], None] = time.sleep) -> None:
    """Import images, initialize the control plane, and install Flannel."""
    report = import_archives(plan_image_imports(cfg), cfg.image_namespace)
    initialize_control_plane(plan_cluster_init(cfg, report.all_succeeded), cfg)
    install_user_kubeconfig(cfg)
    wait_for_api(cfg, sleep=sleep)
    apply_network_overlay(cfg)
    report_status(cfg)
