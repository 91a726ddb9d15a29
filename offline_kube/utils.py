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

"""Utility functions for read-only probes, command checks, and user resolution."""

from __future__ import annotations

import os
import pwd
import shlex
import subprocess
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

import sh

from offline_kube import logger
from offline_kube.constants import PROBE_TIMEOUT_SECONDS
from offline_kube.errors import BootstrapError


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a read-only probe command."""

    ok: bool
    stdout: str = ""
    stderr: str = ""


@dataclass(frozen=True)
class InvokingUser:
    """The user the admin kubeconfig is handed to.

    Attributes:
        name: Login name.
        uid: Numeric user id.
        gid: Numeric primary group id.
        home: Home directory.
    """

    name: str
    uid: int
    gid: int
    home: Path

    @property
    def kubeconfig(self) -> Path:
        return self.home / ".kube" / "config"


def run_command(args: list[str], timeout: int = PROBE_TIMEOUT_SECONDS) -> CommandResult:
    """Run a probe command via subprocess and return its outcome without raising.

    Probes only inspect host state; a non-zero exit is an answer ("not
    installed", "not active"), not an error. Mutating commands go through
    ``sh`` so that failures raise.

    Args:
        args: Full command line (e.g. ``["systemctl", "is-active", "kubelet"]``).
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        CommandResult with success flag and captured output.
    """
    logger.debug("probe: %s", shlex.join(args))
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return CommandResult(result.returncode == 0, result.stdout, result.stderr)
    except (subprocess.SubprocessError, OSError) as exc:
        return CommandResult(False, "", str(exc))


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        BootstrapError: If the command is not found.
    """
    try:
        found = sh.which(cmd)
    except sh.ErrorReturnCode:
        found = None
    if not found:
        raise BootstrapError(f"Required command '{cmd}' not found. Please install it first.")


def resolve_invoking_user() -> InvokingUser:
    """Resolve the user who launched the bootstrap.

    Under sudo this is ``SUDO_USER``; otherwise the current process user.

    Returns:
        The resolved InvokingUser.
    """
    sudo_user = os.environ.get("SUDO_USER")
    if sudo_user and sudo_user != "root":
        entry = pwd.getpwnam(sudo_user)
    else:
        entry = pwd.getpwuid(os.getuid())
    return InvokingUser(
        name=entry.pw_name,
        uid=entry.pw_uid,
        gid=entry.pw_gid,
        home=Path(entry.pw_dir),
    )


def first_column(output: str) -> list[str]:
    """Return the first whitespace-separated field of every non-blank line."""
    return [line.split()[0] for line in output.splitlines() if line.strip()]


def pending_settings(
    desired: Iterable[tuple[str, str]],
    current: Mapping[str, str],
) -> list[tuple[str, str]]:
    """Return the ``(key, desired_value)`` pairs whose current value differs.

    Args:
        desired: Ordered ``(key, desired_value)`` pairs.
        current: Observed values; a missing key never matches.

    Returns:
        The pairs still to apply, in their original order.
    """
    return [(key, value) for key, value in desired if current.get(key) != value]


def append_lines(path: Path, lines: Iterable[str]) -> None:
    """Append lines to a file, creating it and its parent directory if needed."""
    lines = list(lines)
    if not lines:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    existing = path.read_text(encoding="utf-8") if path.exists() else ""
    prefix = "\n" if existing and not existing.endswith("\n") else ""
    with open(path, "a", encoding="utf-8") as f:
        f.write(prefix + "".join(f"{line}\n" for line in lines))
