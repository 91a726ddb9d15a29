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

"""Orchestration functions that compose the phases into workflows."""

from __future__ import annotations

from collections.abc import Callable

import sh
from rich.panel import Panel
from rich.table import Table

from offline_kube import console, logger
from offline_kube.cluster import overlay_present, plan_cluster_init, run_cluster
from offline_kube.config import BootstrapConfig
from offline_kube.constants import KERNEL_MODULES, PHASE_TOOLS, SYSCTL_SETTINGS
from offline_kube.host import (
    loaded_modules,
    persisted_modules,
    plan_firewall,
    plan_modules,
    plan_swap,
    plan_sysctl,
    read_sysctl,
    run_host,
)
from offline_kube.images import plan_image_imports
from offline_kube.packages import plan_key_imports, plan_offline_packages, plan_system_packages, run_packages
from offline_kube.preflight import detect_os, read_release, run_preflight
from offline_kube.runtime import plan_runtime_config, run_runtime
from offline_kube.services import plan_services, run_services
from offline_kube.utils import require_command

PHASES = ("packages", "services", "runtime", "host", "cluster")


def phase_tools(*phases: str) -> tuple[str, ...]:
    """Return the tools the given phases shell out to, in first-seen order."""
    return tuple(dict.fromkeys(tool for phase in phases for tool in PHASE_TOOLS[phase]))


def check_prerequisites(tools: tuple[str, ...]) -> None:
    """Fail fast when a CLI tool a phase shells out to is missing.

    Raises:
        BootstrapError: If any of the tools is not on PATH.
    """
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    for cmd in tools:
        require_command(cmd)
    console.print("[green]\u2705 All required tools are available[/green]")


def run_bootstrap(cfg: BootstrapConfig, *, assume_yes: bool = False) -> None:
    """Run every phase in order: preflight, packages, services, runtime, host, cluster.

    Args:
        cfg: Resolved bootstrap configuration.
        assume_yes: Skip the interactive confirmation.

    Raises:
        BootstrapError: If any phase fails; ``exit_code`` tells which kind.
    """
    os_release = run_preflight(cfg, assume_yes)
    check_prerequisites(phase_tools("packages", "services", "host"))
    run_packages(cfg, os_release)
    # runtime and cluster tools come from the offline RPMs.
    check_prerequisites(phase_tools("runtime", "cluster"))
    run_services()
    run_runtime(cfg)
    run_host(cfg)
    run_cluster(cfg)
    logger.info("Bootstrap finished")


def run_phase(name: str, cfg: BootstrapConfig) -> None:
    """Run a single phase on its own.

    Raises:
        ValueError: If the phase name is unknown.
    """
    runners: dict[str, Callable[[], None]] = {
        "packages": lambda: run_packages(cfg, detect_os(read_release(cfg.release_file))),
        "services": run_services,
        "runtime": lambda: run_runtime(cfg),
        "host": lambda: run_host(cfg),
        "cluster": lambda: run_cluster(cfg),
    }
    if name not in runners:
        raise ValueError(f"Unknown phase '{name}', expected one of: {', '.join(PHASES)}")
    check_prerequisites(PHASE_TOOLS[name])
    runners[name]()


# ============================================================================
# Read-only plan
# ============================================================================

def _runtime_actions(cfg: BootstrapConfig) -> list[str]:
    try:
        return plan_runtime_config(cfg).actions
    except sh.CommandNotFound:
        return ["containerd not installed yet; config will be generated after install"]


def collect_plan(cfg: BootstrapConfig) -> dict[str, list[str]]:
    """Inspect the host and return the pending actions of every phase.

    Nothing on the host is changed.

    Raises:
        UnsupportedOSError: If the OS is not supported.
    """
    os_release = detect_os(read_release(cfg.release_file))

    packages = plan_system_packages().actions
    packages += plan_key_imports(cfg.gpg_dir).actions
    packages += plan_offline_packages(cfg, os_release).actions

    services = [action for plan in plan_services() for action in plan.actions]

    host = plan_swap(cfg).actions
    host += plan_modules(KERNEL_MODULES, loaded_modules(), persisted_modules(cfg.modules_file)).actions
    host += plan_sysctl(SYSCTL_SETTINGS, {key: read_sysctl(key) for key, _ in SYSCTL_SETTINGS}).actions
    host += plan_firewall().actions

    archives = plan_image_imports(cfg)
    cluster = [action for plan in archives for action in plan.actions]
    cluster += plan_cluster_init(cfg, all(plan.error is None for plan in archives)).actions
    if not overlay_present(cfg):
        cluster.append(f"kubectl apply -f {cfg.flannel_manifest_path}")

    return {
        "packages": packages,
        "services": services,
        "runtime": _runtime_actions(cfg),
        "host": host,
        "cluster": cluster,
    }


def display_plan(plan: dict[str, list[str]]) -> None:
    console.print(Panel.fit("Pending actions", style="bold blue"))
    table = Table(show_lines=True)
    table.add_column("Phase", style="cyan")
    table.add_column("Actions")
    for phase, actions in plan.items():
        table.add_row(phase, "\n".join(actions) if actions else "[green]up to date[/green]")
    console.print(table)
