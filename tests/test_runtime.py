from __future__ import annotations

import pytest

from offline_kube import runtime
from offline_kube.errors import ReadinessTimeoutError
from offline_kube.runtime import (
    ConfigState,
    apply_runtime_config,
    compare_config,
    plan_runtime_config,
    render_runtime_config,
    wait_for_runtime,
)

DEFAULT_WITH_KEY = (
    '[plugins."io.containerd.grpc.v1.cri".containerd.runtimes.runc.options]\n'
    "  SystemdCgroup = false\n"
)


def test_render_flips_existing_setting() -> None:
    assert render_runtime_config(DEFAULT_WITH_KEY).endswith("  SystemdCgroup = true\n")
    assert "SystemdCgroup = false" not in render_runtime_config(DEFAULT_WITH_KEY)


def test_render_appends_block_when_key_missing() -> None:
    rendered = render_runtime_config("version = 2\n")
    assert rendered.startswith("version = 2\n")
    assert rendered.endswith(
        '[plugins."io.containerd.grpc.v1.cri".containerd.runtimes.runc.options]\n'
        "  SystemdCgroup = true\n"
    )


@pytest.mark.parametrize(
    ("existing", "state"),
    [(None, ConfigState.ABSENT), (b"a = 1\n", ConfigState.CURRENT), (b"a = 2\n", ConfigState.STALE)],
)
def test_compare_config(existing: bytes | None, state: ConfigState) -> None:
    assert compare_config(existing, "a = 1\n") is state


def test_identical_config_is_not_rewritten_or_restarted(cfg, fake_sh) -> None:
    fake_sh.containerd.return_value = DEFAULT_WITH_KEY
    cfg.containerd_config.parent.mkdir(parents=True)
    cfg.containerd_config.write_text(render_runtime_config(DEFAULT_WITH_KEY))
    mtime = cfg.containerd_config.stat().st_mtime_ns

    plan = plan_runtime_config(cfg)
    apply_runtime_config(plan)

    assert plan.state is ConfigState.CURRENT
    assert plan.actions == []
    assert cfg.containerd_config.stat().st_mtime_ns == mtime
    fake_sh.systemctl.assert_not_called()


@pytest.mark.parametrize("existing", [None, "SystemdCgroup = false\n"])
def test_missing_or_stale_config_is_replaced_and_restarted(cfg, fake_sh, existing: str | None) -> None:
    fake_sh.containerd.return_value = DEFAULT_WITH_KEY
    if existing is not None:
        cfg.containerd_config.parent.mkdir(parents=True)
        cfg.containerd_config.write_text(existing)

    apply_runtime_config(plan_runtime_config(cfg))

    assert cfg.containerd_config.read_text() == render_runtime_config(DEFAULT_WITH_KEY)
    fake_sh.systemctl.assert_called_once_with("restart", "containerd")


def test_socket_wait_times_out_with_not_ready_exit(cfg, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(runtime, "socket_ready", lambda path: False)
    sleeps: list[float] = []

    with pytest.raises(ReadinessTimeoutError) as exc_info:
        wait_for_runtime(cfg, sleep=sleeps.append)

    assert exc_info.value.exit_code == 2
    assert sum(sleeps) == cfg.socket_timeout
    assert all(s == cfg.socket_poll_interval for s in sleeps)
