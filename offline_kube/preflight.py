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

"""Host banner, OS detection, and the confirmation gate."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from rich.panel import Panel

from offline_kube import console, logger
from offline_kube.config import BootstrapConfig, display_config
from offline_kube.constants import KUBERNETES_VERSION, OS_RELEASE_MARKERS, SUPPORTED_OS_HINT
from offline_kube.errors import BootstrapError, UnsupportedOSError
from offline_kube.utils import run_command

CONFIRM_PROMPT = "Press Y to proceed, N to exit: "
AFFIRMATIVE_ANSWERS = frozenset({"y", "yes"})


@dataclass(frozen=True)
class OSRelease:
    """Detected distribution and the RPM subdirectory it selects."""

    text: str
    rpm_subdir: str


def read_release(path: Path) -> str | None:
    """Return the stripped release file contents, or None if it is absent."""
    try:
        return path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None


def detect_os(release_text: str | None) -> OSRelease:
    """Map a release identifier to the RPM subdirectory of the bundle.

    Args:
        release_text: Contents of the release file, or None if missing.

    Returns:
        The matching OSRelease.

    Raises:
        UnsupportedOSError: If the release is missing or not recognized.
    """
    if release_text:
        for marker, subdir in OS_RELEASE_MARKERS:
            if marker in release_text:
                return OSRelease(text=release_text, rpm_subdir=subdir)
    raise UnsupportedOSError(
        f"The OS version is not supported ({release_text or 'no release file'}). "
        f"Supported OS versions are {SUPPORTED_OS_HINT}."
    )


def is_affirmative(answer: str | None) -> bool:
    return (answer or "").strip().lower() in AFFIRMATIVE_ANSWERS


def print_banner(cfg: BootstrapConfig) -> None:
    console.print(Panel.fit(f"Installation of Kubernetes {KUBERNETES_VERSION}", style="bold blue"))
    hostname = run_command(["hostname", "-f"])
    console.print(f"Current hostname  : {hostname.stdout.strip() if hostname.ok else 'unknown'}")
    release = read_release(cfg.release_file)
    if release:
        console.print(f"OS version running: {release}")


def confirm(assume_yes: bool, read_answer: Callable[[str], str] = console.input) -> None:
    """Proceed only on an affirmative answer.

    Args:
        assume_yes: Skip the prompt (``-y``).
        read_answer: Reads one line of input for the given prompt.

    Raises:
        BootstrapError: If the answer is not affirmative.
    """
    if assume_yes:
        answer = "y"
    else:
        try:
            answer = read_answer(CONFIRM_PROMPT)
        except EOFError:
            answer = ""
    if not is_affirmative(answer):
        raise BootstrapError("Installation aborted!")
    console.print("[green]Installation begins...[/green]")


def run_preflight(cfg: BootstrapConfig, assume_yes: bool) -> OSRelease:
    """Show the host banner, confirm, and detect the OS.

    Returns:
        The detected OSRelease.
    """
    print_banner(cfg)
    display_config(cfg)
    confirm(assume_yes)
    os_release = detect_os(read_release(cfg.release_file))
    logger.info("Detected %s -> rpms/%s", os_release.text, os_release.rpm_subdir)
    return os_release
