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

"""
cli.py - Offline Kubernetes control-plane bootstrap.

Subcommands:
    setup      Full bootstrap (packages, services, containerd, host, cluster)
    plan       Show pending actions without changing the host
    phase      Run a single phase

Examples:
    # Full bootstrap from the bundle directory, no prompt
    offline-kube setup -y

    # What would change on this host?
    offline-kube plan

    # Re-apply only the kernel and firewall settings
    offline-kube phase host

Environment Variables:
    All paths and timeouts can be overridden via OFFLINE_KUBE_* variables
    (e.g. OFFLINE_KUBE_BUNDLE_DIR, OFFLINE_KUBE_API_TIMEOUT).

Exit codes: 0 success, 1 general error, 2 a dependency never became ready.
"""

from __future__ import annotations

import logging

import typer

from offline_kube.commands import phase_cmd, setup_cmd

app = typer.Typer(
    help="Offline single-node Kubernetes control-plane bootstrap.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every probe and command"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.command("setup")(setup_cmd.setup)
app.command("plan")(setup_cmd.plan)
app.add_typer(phase_cmd.app, name="phase")


if __name__ == "__main__":
    app()
