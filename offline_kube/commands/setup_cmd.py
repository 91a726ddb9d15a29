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

"""Full bootstrap and read-only plan commands."""

from __future__ import annotations

import typer

from offline_kube.commands import exit_on_error
from offline_kube.config import BootstrapConfig
from offline_kube.orchestrator import collect_plan, display_plan, run_bootstrap


def setup(
    yes: bool = typer.Option(False, "-y", "--yes", help="Proceed without the confirmation prompt"),
) -> None:
    """Bootstrap the control plane: packages, services, containerd, host, cluster.

    Every step checks the host first, so the command can be re-run safely.
    """
    with exit_on_error():
        run_bootstrap(BootstrapConfig(), assume_yes=yes)


def plan() -> None:
    """Show what ``setup`` would change on this host, without changing it."""
    with exit_on_error():
        display_plan(collect_plan(BootstrapConfig()))
