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

"""containerd configuration and runtime readiness."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import sh
from rich.panel import Panel

from offline_kube import console, logger
from offline_kube.config import BootstrapConfig
from offline_kube.constants import (
    CONTAINERD_SERVICE,
    SYSTEMD_CGROUP_BLOCK,
    SYSTEMD_CGROUP_DISABLED,
    SYSTEMD_CGROUP_ENABLED,
    SYSTEMD_CGROUP_KEY,
)
from offline_kube.polling import ReadinessPolicy, wait_until


class ConfigState(str, Enum):
    ABSENT = "absent"
    CURRENT = "current"
    STALE = "stale"


@dataclass(frozen=True)
class RuntimeConfigPlan:
    """The rendered containerd config and how it compares to the one on disk."""

    path: Path
    rendered: str
    state: ConfigState

    @property
    def changed(self) -> bool:
        return self.state is not ConfigState.CURRENT

    @property
    def actions(self) -> list[str]:
        if not self.changed:
            return []
        return [f"write {self.path} ({self.state.value})", f"systemctl restart {CONTAINERD_SERVICE}"]


def render_runtime_config(default_config: str) -> str:
    """Force the systemd cgroup driver on containerd's default config.

    Args:
        default_config: Output of ``containerd config default``.

    Returns:
        The config text with ``SystemdCgroup = true``.
    """
    if SYSTEMD_CGROUP_KEY in default_config:
        return default_config.replace(SYSTEMD_CGROUP_DISABLED, SYSTEMD_CGROUP_ENABLED)
    return default_config + SYSTEMD_CGROUP_BLOCK


def compare_config(existing: bytes | None, rendered: str) -> ConfigState:
    if existing is None:
        return ConfigState.ABSENT
    return ConfigState.CURRENT if existing == rendered.encode() else ConfigState.STALE


def generate_default_config() -> str:
    return str(sh.containerd("config", "default"))


def read_existing_config(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


def plan_runtime_config(cfg: BootstrapConfig) -> RuntimeConfigPlan:
    rendered = render_runtime_config(generate_default_config())
    state = compare_config(read_existing_config(cfg.containerd_config), rendered)
    return RuntimeConfigPlan(path=cfg.containerd_config, rendered=rendered, state=state)


def apply_runtime_config(plan: RuntimeConfigPlan) -> None:
    """Replace the config and restart containerd only if it changed."""
    if not plan.changed:
        console.print("[yellow]   containerd config is already up-to-date. Skipping update and restart.[/yellow]")
        return

    console.print(f"[yellow]\u2139\ufe0f  Updating containerd config at {plan.path} ({plan.state.value})...[/yellow]")
    plan.path.parent.mkdir(parents=True, exist_ok=True)
    staged = plan.path.with_name(plan.path.name + ".new")
    staged.write_text(plan.rendered, encoding="utf-8")
    staged.replace(plan.path)

    console.print("[yellow]\u2139\ufe0f  Restarting containerd service to apply changes...[/yellow]")
    sh.systemctl("restart", CONTAINERD_SERVICE)
    logger.info("containerd config replaced and service restarted")


def socket_ready(path: Path) -> bool:
    return path.is_socket()


def wait_for_runtime(cfg: BootstrapConfig, *, sleep: Callable[[float], None] = time.sleep) -> None:
    """Wait for the containerd socket.

    Raises:
        ReadinessTimeoutError: If the socket does not appear within the timeout.
    """
    policy = ReadinessPolicy("containerd", cfg.socket_poll_interval, cfg.socket_timeout)
    wait_until(lambda: socket_ready(cfg.containerd_socket), policy, sleep=sleep)


def run_runtime(cfg: BootstrapConfig) -> None:
    console.print(Panel.fit("Configuring containerd", style="bold blue"))
    apply_runtime_config(plan_runtime_config(cfg))
    wait_for_runtime(cfg)
