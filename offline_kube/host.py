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

"""Swap, kernel modules, sysctl, and firewall configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import sh
from rich.panel import Panel

from offline_kube import console, logger
from offline_kube.config import BootstrapConfig
from offline_kube.constants import (
    FIREWALL_PORTS,
    FIREWALL_SERVICE,
    FSTAB_SWAP_MARKER,
    KERNEL_MODULES,
    SYSCTL_SETTINGS,
    SYSCTL_UNSET,
)
from offline_kube.services import is_active
from offline_kube.utils import append_lines, first_column, pending_settings, run_command

PRESENT = "present"


# ============================================================================
# Swap
# ============================================================================

@dataclass(frozen=True)
class SwapPlan:
    """Whether live swap must be disabled and which fstab lines to drop."""

    swapoff: bool
    fstab_lines: tuple[str, ...] = ()

    @property
    def actions(self) -> list[str]:
        actions = ["swapoff -a"] if self.swapoff else []
        actions += [f"remove fstab entry: {line}" for line in self.fstab_lines]
        return actions


def swap_active() -> bool:
    return bool(run_command(["swapon", "--summary"]).stdout.strip())


def fstab_swap_lines(fstab_text: str) -> list[str]:
    return [line for line in fstab_text.splitlines() if FSTAB_SWAP_MARKER in line]


def plan_swap(cfg: BootstrapConfig) -> SwapPlan:
    fstab_text = cfg.fstab.read_text(encoding="utf-8") if cfg.fstab.exists() else ""
    return SwapPlan(swapoff=swap_active(), fstab_lines=tuple(fstab_swap_lines(fstab_text)))


def apply_swap(plan: SwapPlan, fstab: Path) -> None:
    if plan.swapoff:
        console.print("[yellow]\u2139\ufe0f  Disabling swap...[/yellow]")
        sh.swapoff("-a")
    else:
        console.print("   Swap is already off. Skipping.")

    if plan.fstab_lines:
        console.print(f"[yellow]\u2139\ufe0f  Removing swap entries from {fstab}...[/yellow]")
        kept = [line for line in fstab.read_text(encoding="utf-8").splitlines() if FSTAB_SWAP_MARKER not in line]
        fstab.write_text("".join(f"{line}\n" for line in kept), encoding="utf-8")
    else:
        console.print(f"   No swap entries in {fstab}. Skipping.")


# ============================================================================
# Kernel modules
# ============================================================================

@dataclass(frozen=True)
class ModulePlan:
    """Modules to load now and modules to persist; decided independently."""

    load: tuple[str, ...] = ()
    persist: tuple[str, ...] = ()

    @property
    def actions(self) -> list[str]:
        return [f"modprobe {m}" for m in self.load] + [f"persist module {m}" for m in self.persist]


def loaded_modules() -> set[str]:
    return set(first_column(run_command(["lsmod"]).stdout))


def persisted_modules(modules_file: Path) -> set[str]:
    if not modules_file.exists():
        return set()
    return {line.strip() for line in modules_file.read_text(encoding="utf-8").splitlines()}


def plan_modules(
    modules: tuple[str, ...],
    loaded: set[str],
    persisted: set[str],
) -> ModulePlan:
    desired = [(module, PRESENT) for module in modules]
    return ModulePlan(
        load=tuple(m for m, _ in pending_settings(desired, dict.fromkeys(loaded, PRESENT))),
        persist=tuple(m for m, _ in pending_settings(desired, dict.fromkeys(persisted, PRESENT))),
    )


def apply_modules(plan: ModulePlan, modules_file: Path) -> None:
    for module in plan.load:
        console.print(f"[yellow]   Loading kernel module: {module}[/yellow]")
        sh.modprobe(module)
    if not plan.load:
        console.print("   Kernel modules already loaded. Skipping.")

    append_lines(modules_file, plan.persist)
    for module in plan.persist:
        console.print(f"[yellow]   Added {module} to {modules_file}[/yellow]")


# ============================================================================
# Sysctl
# ============================================================================

@dataclass(frozen=True)
class SysctlPlan:
    """Keys whose live value differs from the desired one."""

    changes: tuple[tuple[str, str], ...] = ()

    @property
    def actions(self) -> list[str]:
        if not self.changes:
            return []
        return [f"set {key} = {value}" for key, value in self.changes] + ["sysctl --system"]


def read_sysctl(key: str) -> str:
    result = run_command(["sysctl", "-n", key])
    return result.stdout.strip() if result.ok else SYSCTL_UNSET


def plan_sysctl(
    settings: tuple[tuple[str, str], ...],
    current: dict[str, str],
) -> SysctlPlan:
    return SysctlPlan(tuple(pending_settings(settings, current)))


def apply_sysctl(plan: SysctlPlan, sysctl_file: Path) -> None:
    """Persist differing keys, then apply the persisted files once."""
    if not plan.changes:
        console.print("   Sysctl configuration is already set. Skipping.")
        return

    persisted = sysctl_file.read_text(encoding="utf-8").splitlines() if sysctl_file.exists() else []
    lines = []
    for key, value in plan.changes:
        line = f"{key} = {value}"
        console.print(f"[yellow]   Setting {line} in {sysctl_file}[/yellow]")
        if line not in persisted:
            lines.append(line)
    append_lines(sysctl_file, lines)

    console.print("[yellow]\u2139\ufe0f  Applying sysctl settings...[/yellow]")
    sh.sysctl("--system")


# ============================================================================
# Firewall
# ============================================================================

@dataclass(frozen=True)
class FirewallPlan:
    """Ports to open; only meaningful while firewalld is active."""

    active: bool
    add: tuple[str, ...] = ()

    @property
    def actions(self) -> list[str]:
        if not self.add:
            return []
        return [f"firewall-cmd --permanent --add-port={port}" for port in self.add] + ["firewall-cmd --reload"]


def listed_ports() -> set[str]:
    return set(run_command(["firewall-cmd", "--list-ports"]).stdout.split())


def plan_firewall(ports: tuple[str, ...] = FIREWALL_PORTS) -> FirewallPlan:
    if not is_active(FIREWALL_SERVICE):
        return FirewallPlan(active=False)
    desired = [(port, PRESENT) for port in ports]
    current = dict.fromkeys(listed_ports(), PRESENT)
    return FirewallPlan(active=True, add=tuple(port for port, _ in pending_settings(desired, current)))


def apply_firewall(plan: FirewallPlan, ports: tuple[str, ...] = FIREWALL_PORTS) -> None:
    if not plan.active:
        console.print(
            f"[yellow]\u26a0\ufe0f  {FIREWALL_SERVICE} is not active. Skipping configuration; "
            f"open {', '.join(ports)} if it is enabled later.[/yellow]"
        )
        return
    if not plan.add:
        console.print("   Firewall ports already configured. Skipping.")
        return

    for port in plan.add:
        console.print(f"[yellow]   Adding firewall port {port}[/yellow]")
        sh.firewall_cmd("--permanent", f"--add-port={port}")
    console.print(f"[yellow]\u2139\ufe0f  Reloading {FIREWALL_SERVICE} to apply changes...[/yellow]")
    sh.firewall_cmd("--reload")


# ============================================================================
# Phase
# ============================================================================

def run_host(cfg: BootstrapConfig) -> None:
    """Disable swap, load kernel modules, apply sysctl, and open firewall ports."""
    console.print(Panel.fit("Disable swap, kernel settings & firewalld", style="bold blue"))
    apply_swap(plan_swap(cfg), cfg.fstab)

    modules = plan_modules(KERNEL_MODULES, loaded_modules(), persisted_modules(cfg.modules_file))
    apply_modules(modules, cfg.modules_file)

    current = {key: read_sysctl(key) for key, _ in SYSCTL_SETTINGS}
    apply_sysctl(plan_sysctl(SYSCTL_SETTINGS, current), cfg.sysctl_file)

    apply_firewall(plan_firewall())
    logger.info("Host configuration complete")
    console.print("[green]\u2705 Host network and kernel configured[/green]")
