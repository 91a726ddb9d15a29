from __future__ import annotations

import io
import json
import os
import tarfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import sh as real_sh

from offline_kube import cluster, host, images, orchestrator, packages, preflight, runtime, services
from offline_kube.config import BootstrapConfig
from offline_kube.utils import CommandResult, InvokingUser

PROBING_MODULES = (preflight, packages, services, host, images, cluster)
MUTATING_MODULES = (packages, services, runtime, host, images, cluster, orchestrator)


class FakeHost:
    """Scripted answers for read-only probes, keyed by the full command line.

    Unscripted commands fail, which reads as "not installed" / "not active".
    """

    def __init__(self) -> None:
        self.responses: dict[tuple[str, ...], CommandResult] = {}
        self.calls: list[tuple[str, ...]] = []

    def answer(self, *args: str, ok: bool = True, stdout: str = "", stderr: str = "") -> None:
        self.responses[tuple(args)] = CommandResult(ok, stdout, stderr)

    def __call__(self, args: list[str], timeout: int = 60) -> CommandResult:
        key = tuple(args)
        self.calls.append(key)
        return self.responses.get(key, CommandResult(False))


def command_failure(cmd: str = "cmd") -> Exception:
    return real_sh.ErrorReturnCode_1(cmd, b"", b"failed")


def make_image_archive(path: Path, names: list[str]) -> Path:
    """Write a minimal OCI archive whose index.json lists ``names``."""
    index = {
        "schemaVersion": 2,
        "manifests": [
            {"mediaType": "application/vnd.oci.image.manifest.v1+json",
             "annotations": {"io.containerd.image.name": name}}
            for name in names
        ],
    }
    return write_index_archive(path, json.dumps(index).encode())


def write_index_archive(path: Path, payload: bytes) -> Path:
    """Write an archive whose index.json holds exactly ``payload``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w") as tar:
        info = tarfile.TarInfo("index.json")
        info.size = len(payload)
        tar.addfile(info, io.BytesIO(payload))
    return path


@pytest.fixture
def fake_host(monkeypatch: pytest.MonkeyPatch) -> FakeHost:
    fake = FakeHost()
    for module in PROBING_MODULES:
        monkeypatch.setattr(module, "run_command", fake)
    return fake


@pytest.fixture
def fake_sh(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    fake = MagicMock()
    fake.ErrorReturnCode = real_sh.ErrorReturnCode
    fake.CommandNotFound = real_sh.CommandNotFound
    for module in MUTATING_MODULES:
        monkeypatch.setattr(module, "sh", fake)
    return fake


@pytest.fixture
def cfg(tmp_path: Path) -> BootstrapConfig:
    return BootstrapConfig(
        bundle_dir=tmp_path / "bundle",
        release_file=tmp_path / "redhat-release",
        containerd_config=tmp_path / "etc" / "containerd" / "config.toml",
        containerd_socket=tmp_path / "run" / "containerd.sock",
        fstab=tmp_path / "etc" / "fstab",
        modules_file=tmp_path / "etc" / "modules-load.d" / "k8s.conf",
        sysctl_file=tmp_path / "etc" / "sysctl.d" / "k8s.conf",
        admin_kubeconfig=tmp_path / "etc" / "kubernetes" / "admin.conf",
        socket_poll_interval=2,
        socket_timeout=10,
        api_poll_interval=5,
        api_timeout=15,
    )


@pytest.fixture
def user(tmp_path: Path) -> InvokingUser:
    return InvokingUser(name="ops", uid=os.getuid(), gid=os.getgid(), home=tmp_path / "home" / "ops")
