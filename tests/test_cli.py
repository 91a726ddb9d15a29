from __future__ import annotations

import pytest
from typer.testing import CliRunner

from offline_kube.cli import app
from offline_kube.commands import setup_cmd
from offline_kube.errors import BootstrapError, ReadinessTimeoutError, UnsupportedOSError

runner = CliRunner()


@pytest.mark.parametrize(
    ("error", "exit_code"),
    [
        (BootstrapError("Installation aborted!"), 1),
        (UnsupportedOSError("The OS version is not supported"), 1),
        (ReadinessTimeoutError("API server did not become ready within 180s"), 2),
        (RuntimeError("systemctl start kubelet failed"), 1),
    ],
)
def test_setup_exit_codes(monkeypatch: pytest.MonkeyPatch, error: Exception, exit_code: int) -> None:
    def _fail(cfg, *, assume_yes: bool) -> None:
        raise error

    monkeypatch.setattr(setup_cmd, "run_bootstrap", _fail)

    result = runner.invoke(app, ["setup", "-y"])

    assert result.exit_code == exit_code


def test_setup_passes_yes_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}
    monkeypatch.setattr(setup_cmd, "run_bootstrap", lambda cfg, *, assume_yes: seen.update(yes=assume_yes))

    result = runner.invoke(app, ["setup", "--yes"])

    assert result.exit_code == 0
    assert seen == {"yes": True}


def test_setup_declined_prompt_exits_1(cfg, fake_host, fake_sh, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(setup_cmd, "BootstrapConfig", lambda: cfg)
    cfg.release_file.write_text("Rocky Linux release 9.3\n")

    result = runner.invoke(app, ["setup"], input="n\n")

    assert result.exit_code == 1
    assert fake_sh.method_calls == []
