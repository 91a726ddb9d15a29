from __future__ import annotations

from pathlib import Path

import pytest

from offline_kube.images import import_archives, plan_archive, plan_image_imports
from tests.conftest import command_failure, make_image_archive, write_index_archive

CTR_LIST = (
    "REF                                      TYPE                                    DIGEST\n"
    "registry.k8s.io/kube-apiserver:v1.29.15  application/vnd.oci.image.index.v1+json sha256:aa\n"
)


def test_archive_with_one_missing_image_is_imported_whole(cfg, fake_host, fake_sh) -> None:
    archive = make_image_archive(
        cfg.images_dir / "k8s-control-plane.tar",
        ["registry.k8s.io/kube-apiserver:v1.29.15", "registry.k8s.io/etcd:3.5.16-0"],
    )
    fake_host.answer("ctr", "-n", "k8s.io", "images", "list", stdout=CTR_LIST)

    plans = plan_image_imports(cfg, ("k8s-control-plane.tar",))
    report = import_archives(plans, cfg.image_namespace)

    assert plans[0].missing == ("registry.k8s.io/etcd:3.5.16-0",)
    fake_sh.ctr.assert_called_once_with("-n", "k8s.io", "images", "import", str(archive))
    assert report.imported == [archive]
    assert report.all_succeeded


def test_archive_fully_present_is_skipped(tmp_path: Path, fake_sh) -> None:
    archive = make_image_archive(tmp_path / "flannel.tar", ["docker.io/flannel/flannel:v0.26.4"])

    plan = plan_archive(archive, {"docker.io/flannel/flannel:v0.26.4"})
    report = import_archives([plan], "k8s.io")

    assert not plan.needs_import
    assert report.skipped == [archive]
    fake_sh.ctr.assert_not_called()


def test_failed_import_is_recorded_and_next_archive_still_processed(tmp_path: Path, fake_sh) -> None:
    first = make_image_archive(tmp_path / "k8s-control-plane.tar", ["registry.k8s.io/pause:3.9"])
    second = make_image_archive(tmp_path / "flannel.tar", ["docker.io/flannel/flannel:v0.26.4"])
    fake_sh.ctr.side_effect = [command_failure("ctr images import"), ""]

    report = import_archives([plan_archive(first, set()), plan_archive(second, set())], "k8s.io")

    assert report.failed == [first]
    assert report.imported == [second]
    assert not report.all_succeeded
    assert fake_sh.ctr.call_count == 2


def test_missing_archive_counts_as_failure(tmp_path: Path, fake_sh) -> None:
    plan = plan_archive(tmp_path / "absent.tar", set())
    report = import_archives([plan], "k8s.io")

    assert plan.error
    assert report.failed == [tmp_path / "absent.tar"]
    fake_sh.ctr.assert_not_called()


@pytest.mark.parametrize(
    "payload",
    [b"[]", b'{"manifests": null}', b'{"manifests": ["\xff"]}'],
    ids=["not-an-object", "null-manifests", "invalid-utf8"],
)
def test_malformed_index_is_recorded_and_next_archive_still_processed(
    tmp_path: Path, fake_sh, payload: bytes,
) -> None:
    broken = write_index_archive(tmp_path / "k8s-control-plane.tar", payload)
    good = make_image_archive(tmp_path / "flannel.tar", ["docker.io/flannel/flannel:v0.26.4"])

    plans = [plan_archive(broken, set()), plan_archive(good, set())]
    report = import_archives(plans, "k8s.io")

    assert plans[0].error
    assert report.failed == [broken]
    assert report.imported == [good]
    fake_sh.ctr.assert_called_once_with("-n", "k8s.io", "images", "import", str(good))


def test_manifest_entries_without_names_are_ignored(tmp_path: Path) -> None:
    archive = write_index_archive(
        tmp_path / "flannel.tar",
        b'{"manifests": ["x", {"annotations": null},'
        b' {"annotations": {"io.containerd.image.name": "docker.io/flannel/flannel:v0.26.4"}}]}',
    )

    plan = plan_archive(archive, set())

    assert plan.error is None
    assert plan.images == ("docker.io/flannel/flannel:v0.26.4",)
