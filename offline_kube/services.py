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

"""Enable and start the runtime and kubelet services."""

from __future__ import annotations

from dataclasses import dataclass

import sh
from rich.panel import Panel

from offline_kube import console
from offline_kube.constants import SERVICES
from offline_kube.utils import run_command


@dataclass(frozen=True)
class ServicePlan:
    """Enable/start decisions for one systemd unit; each is independent."""

    service: str
    enable: bool
    start: bool

    @property
    def actions(self) -> list[str]:
        actions = []
        if self.enable:
            actions.append(f"systemctl enable {self.service}")
        if self.start:
            actions.append(f"systemctl start {self.service}")
        return actions


def is_enabled(service: str) -> bool:
    return run_command(["systemctl", "is-enabled", service]).ok


def is_active(service: str) -> bool:
    return run_command(["systemctl", "is-active", service]).ok


def plan_services(services: tuple[str, ...] = SERVICES) -> list[ServicePlan]:
    return [
        ServicePlan(service=svc, enable=not is_enabled(svc), start=not is_active(svc))
        for svc in services
    ]


def activate_services(plans: list[ServicePlan]) -> None:
    console.print(Panel.fit("Starting the services", style="bold blue"))
    for plan in plans:
        if plan.enable:
            console.print(f"[yellow]   Enabling service '{plan.service}'...[/yellow]")
            sh.systemctl("enable", plan.service)
        else:
            console.print(f"   Service '{plan.service}' is already enabled.")

        if plan.start:
            console.print(f"[yellow]   Starting service '{plan.service}'...[/yellow]")
            sh.systemctl("start", plan.service)
        else:
            console.print(f"   Service '{plan.service}' is already running.")
    console.print("[green]\u2705 Services enabled and running[/green]")


def run_services() -> None:
    activate_services(plan_services())
