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

"""Single-phase subcommands (packages, services, runtime, host, cluster)."""

from __future__ import annotations

import typer

from offline_kube.commands import exit_on_error
from offline_kube.config import BootstrapConfig
from offline_kube.orchestrator import run_phase

app = typer.Typer(help="Run a single bootstrap phase.")


@app.command()
def packages() -> None:
    """Install system dependencies and the offline RPMs."""
    with exit_on_error():
        run_phase("packages", BootstrapConfig())


@app.command()
def services() -> None:
    """Enable and start containerd and kubelet."""
    with exit_on_error():
        run_phase("services", BootstrapConfig())


@app.command()
def runtime() -> None:
    """Configure containerd and wait for its socket."""
    with exit_on_error():
        run_phase("runtime", BootstrapConfig())


@app.command()
def host() -> None:
    """Disable swap, load kernel modules, apply sysctl, open firewall ports."""
    with exit_on_error():
        run_phase("host", BootstrapConfig())


@app.command()
def cluster() -> None:
    """Import images, run kubeadm init, and apply Flannel."""
    with exit_on_error():
        run_phase("cluster", BootstrapConfig())
