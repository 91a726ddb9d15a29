from __future__ import annotations

from offline_kube.host import (
    FirewallPlan,
    ModulePlan,
    apply_firewall,
    apply_modules,
    apply_swap,
    apply_sysctl,
    plan_firewall,
    plan_modules,
    plan_swap,
    plan_sysctl,
)

SETTINGS = (
    ("net.bridge.bridge-nf-call-iptables", "1"),
    ("net.bridge.bridge-nf-call-ip6tables", "1"),
    ("net.ipv4.ip_forward", "1"),
)
FSTAB = (
    "/dev/mapper/rl-root  /      xfs   defaults  0 0\n"
    "/dev/mapper/rl-swap  none   swap  defaults  0 0\n"
)


def test_swap_off_but_fstab_entries_present_only_edits_fstab(cfg, fake_host, fake_sh) -> None:
    cfg.fstab.parent.mkdir(parents=True)
    cfg.fstab.write_text(FSTAB)
    fake_host.answer("swapon", "--summary", stdout="")

    plan = plan_swap(cfg)
    apply_swap(plan, cfg.fstab)

    assert not plan.swapoff
    fake_sh.swapoff.assert_not_called()
    assert cfg.fstab.read_text() == "/dev/mapper/rl-root  /      xfs   defaults  0 0\n"


def test_active_swap_is_disabled(cfg, fake_host, fake_sh) -> None:
    cfg.fstab.parent.mkdir(parents=True)
    cfg.fstab.write_text("/dev/sda1 / xfs defaults 0 0\n")
    fake_host.answer(
        "swapon", "--summary",
        stdout="Filename    Type       Size     Used  Priority\n/dev/dm-1   partition  2097148  0     -2\n",
    )

    apply_swap(plan_swap(cfg), cfg.fstab)

    fake_sh.swapoff.assert_called_once_with("-a")
    assert cfg.fstab.read_text() == "/dev/sda1 / xfs defaults 0 0\n"


def test_module_load_and_persist_are_independent() -> None:
    plan = plan_modules(("overlay", "br_netfilter"), loaded={"Module", "overlay"}, persisted={"br_netfilter"})
    assert plan == ModulePlan(load=("br_netfilter",), persist=("overlay",))


def test_apply_modules_appends_without_duplicates(cfg, fake_sh) -> None:
    cfg.modules_file.parent.mkdir(parents=True)
    cfg.modules_file.write_text("br_netfilter")

    apply_modules(ModulePlan(load=("overlay",), persist=("overlay",)), cfg.modules_file)

    fake_sh.modprobe.assert_called_once_with("overlay")
    assert cfg.modules_file.read_text().splitlines() == ["br_netfilter", "overlay"]


def test_sysctl_no_difference_skips_batch_apply(cfg, fake_sh) -> None:
    plan = plan_sysctl(SETTINGS, {key: "1" for key, _ in SETTINGS})
    apply_sysctl(plan, cfg.sysctl_file)

    assert plan.changes == ()
    fake_sh.sysctl.assert_not_called()
    assert not cfg.sysctl_file.exists()


def test_sysctl_one_difference_writes_one_line_and_applies_once(cfg, fake_sh) -> None:
    current = {key: "1" for key, _ in SETTINGS}
    current["net.ipv4.ip_forward"] = "0"

    apply_sysctl(plan_sysctl(SETTINGS, current), cfg.sysctl_file)

    assert cfg.sysctl_file.read_text() == "net.ipv4.ip_forward = 1\n"
    fake_sh.sysctl.assert_called_once_with("--system")


def test_sysctl_persisted_line_not_duplicated_but_still_applied(cfg, fake_sh) -> None:
    cfg.sysctl_file.parent.mkdir(parents=True)
    cfg.sysctl_file.write_text("net.ipv4.ip_forward = 1\n")
    current = {key: "1" for key, _ in SETTINGS}
    current["net.ipv4.ip_forward"] = "0"

    apply_sysctl(plan_sysctl(SETTINGS, current), cfg.sysctl_file)

    assert cfg.sysctl_file.read_text() == "net.ipv4.ip_forward = 1\n"
    fake_sh.sysctl.assert_called_once_with("--system")


def test_sysctl_unset_key_counts_as_different() -> None:
    plan = plan_sysctl(SETTINGS, {"net.ipv4.ip_forward": "1"})
    assert [key for key, _ in plan.changes] == [
        "net.bridge.bridge-nf-call-iptables",
        "net.bridge.bridge-nf-call-ip6tables",
    ]


def test_inactive_firewall_is_left_alone(fake_host, fake_sh) -> None:
    plan = plan_firewall(("6443/tcp", "10250/tcp"))
    apply_firewall(plan, ("6443/tcp", "10250/tcp"))

    assert plan == FirewallPlan(active=False)
    assert ("firewall-cmd", "--list-ports") not in fake_host.calls
    fake_sh.firewall_cmd.assert_not_called()


def test_missing_port_added_then_reloaded(fake_host, fake_sh) -> None:
    fake_host.answer("systemctl", "is-active", "firewalld")
    fake_host.answer("firewall-cmd", "--list-ports", stdout="10250/tcp 30000-32767/tcp\n")

    plan = plan_firewall(("6443/tcp", "10250/tcp"))
    apply_firewall(plan)

    assert plan.add == ("6443/tcp",)
    assert [c.args for c in fake_sh.firewall_cmd.call_args_list] == [
        ("--permanent", "--add-port=6443/tcp"),
        ("--reload",),
    ]


def test_configured_firewall_is_not_reloaded(fake_host, fake_sh) -> None:
    fake_host.answer("systemctl", "is-active", "firewalld")
    fake_host.answer("firewall-cmd", "--list-ports", stdout="6443/tcp 10250/tcp\n")

    apply_firewall(plan_firewall(("6443/tcp", "10250/tcp")))

    fake_sh.firewall_cmd.assert_not_called()
