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

"""System dependency and offline RPM installation, signing key import."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import sh
from rich.panel import Panel

from offline_kube import console, logger
from offline_kube.config import BootstrapConfig
from offline_kube.constants import GPG_KEY_SUFFIXES, SYSTEM_PACKAGES
from offline_kube.errors import BootstrapError
from offline_kube.preflight import OSRelease
from offline_kube.utils import run_command


@dataclass(frozen=True)
class PackagePlan:
    """Packages still to install.

    Attributes:
        label: What the packages are, for messages.
        pending: Package name -> argument handed to the package manager
            (the name itself, or the path of its RPM archive).
    """

    label: str
    pending: dict[str, str] = field(default_factory=dict)

    @property
    def actions(self) -> list[str]:
        return [f"install {arg}" for arg in self.pending.values()]


@dataclass(frozen=True)
class KeyImportPlan:
    """Signing keys whose fingerprint is not yet registered with rpm."""

    pending: tuple[Path, ...] = ()

    @property
    def actions(self) -> list[str]:
        return [f"rpm --import {key}" for key in self.pending]


# ============================================================================
# Package database queries
# ============================================================================

def is_installed(package: str) -> bool:
    return run_command(["rpm", "-q", package]).ok


def missing_packages(targets: dict[str, str], installed: set[str]) -> dict[str, str]:
    """Return the targets whose package name is not installed.

    Args:
        targets: Package name -> package manager argument.
        installed: Names already satisfied by the package database.
    """
    return {name: arg for name, arg in targets.items() if name not in installed}


def _query_installed(names: list[str]) -> set[str]:
    return {name for name in names if is_installed(name)}


def _install(plan: PackagePlan, manager: str) -> None:
    """Install exactly the pending subset, reporting what is left on failure.

    Raises:
        BootstrapError: If the package manager fails.
    """
    if not plan.pending:
        console.print(f"[yellow]   All {plan.label} already installed. Skipping.[/yellow]")
        return

    console.print(f"[yellow]\u2139\ufe0f  Installing {len(plan.pending)} {plan.label}...[/yellow]")
    try:
        getattr(sh, manager)("install", "-y", *plan.pending.values(), _fg=True)
    except sh.ErrorReturnCode as err:
        unsatisfied = [name for name in plan.pending if not is_installed(name)]
        for name in unsatisfied:
            console.print(f"[red]   package {name} is not installed[/red]")
        raise BootstrapError(
            f"{plan.label.capitalize()} installation failed, aborting "
            f"(unsatisfied: {', '.join(unsatisfied) or 'unknown'})"
        ) from err
    console.print(f"[green]\u2705 {plan.label.capitalize()} installed successfully[/green]")


# ============================================================================
# System dependencies
# ============================================================================

def plan_system_packages(packages: tuple[str, ...] = SYSTEM_PACKAGES) -> PackagePlan:
    targets = {name: name for name in packages}
    return PackagePlan("system packages", missing_packages(targets, _query_installed(list(targets))))


def install_system_packages(plan: PackagePlan) -> None:
    console.print(Panel.fit("Installing the dependency packages", style="bold blue"))
    _install(plan, "yum")


# ============================================================================
# Signing keys
# ============================================================================

def list_signing_keys(gpg_dir: Path) -> list[Path]:
    if not gpg_dir.is_dir():
        return []
    return sorted(p for p in gpg_dir.iterdir() if p.is_file() and p.name.endswith(GPG_KEY_SUFFIXES))


def key_fingerprint(key: Path) -> str | None:
    """Read the primary fingerprint of a key file without importing it."""
    result = run_command(["gpg", "--with-colons", "--import-options", "show-only", "--import", str(key)])
    for line in result.stdout.splitlines():
        fields = line.split(":")
        if fields[0] == "fpr" and len(fields) > 9 and fields[9]:
            return fields[9]
    return None


def rpm_pubkey_name(fingerprint: str) -> str:
    """rpm registers imported keys as ``gpg-pubkey-<short key id>``."""
    return f"gpg-pubkey-{fingerprint[-8:].lower()}"


def plan_key_imports(gpg_dir: Path) -> KeyImportPlan:
    pending = []
    for key in list_signing_keys(gpg_dir):
        fingerprint = key_fingerprint(key)
        if fingerprint and is_installed(rpm_pubkey_name(fingerprint)):
            logger.debug("Signing key %s already registered", key.name)
            continue
        pending.append(key)
    return KeyImportPlan(tuple(pending))


def import_signing_keys(plan: KeyImportPlan) -> None:
    if not plan.pending:
        console.print("[yellow]   Signing keys already imported. Skipping.[/yellow]")
        return
    for key in plan.pending:
        try:
            sh.rpm("--import", str(key))
        except sh.ErrorReturnCode as err:
            raise BootstrapError(f"Failed to import signing key {key}") from err
        console.print(f"[green]  \u2713 Imported signing key {key.name}[/green]")


# ============================================================================
# Offline RPM archives
# ============================================================================

def list_rpm_archives(rpms_dir: Path, rpm_subdir: str) -> list[Path]:
    """Common archives under ``rpms/`` followed by the OS-specific subdirectory."""
    return sorted(rpms_dir.glob("*.rpm")) + sorted((rpms_dir / rpm_subdir).glob("*.rpm"))


def rpm_archive_name(archive: Path) -> str:
    """Return the package name contained in an RPM archive.

    Raises:
        BootstrapError: If rpm cannot read the archive.
    """
    result = run_command(["rpm", "-qp", "--queryformat", "%{NAME}", str(archive)])
    name = result.stdout.strip()
    if not result.ok or not name:
        raise BootstrapError(f"Cannot read package name from {archive}: {result.stderr.strip()}")
    return name


def plan_offline_packages(cfg: BootstrapConfig, os_release: OSRelease) -> PackagePlan:
    targets: dict[str, str] = {}
    for archive in list_rpm_archives(cfg.rpms_dir, os_release.rpm_subdir):
        targets.setdefault(rpm_archive_name(archive), str(archive))
    return PackagePlan("offline packages", missing_packages(targets, _query_installed(list(targets))))


def install_offline_packages(keys: KeyImportPlan, plan: PackagePlan) -> None:
    console.print(Panel.fit("Installing Kubernetes and containerd packages", style="bold blue"))
    import_signing_keys(keys)
    _install(plan, "dnf")


def run_packages(cfg: BootstrapConfig, os_release: OSRelease) -> None:
    """Install system dependencies, then the offline RPMs."""
    install_system_packages(plan_system_packages())
    install_offline_packages(plan_key_imports(cfg.gpg_dir), plan_offline_packages(cfg, os_release))
