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

"""Offline container image archives: inspection and import into containerd."""

from __future__ import annotations

import json
import tarfile
from dataclasses import dataclass, field
from pathlib import Path

import sh
from rich.panel import Panel

from offline_kube import console, logger
from offline_kube.config import BootstrapConfig
from offline_kube.constants import IMAGE_ARCHIVES, IMAGE_NAME_ANNOTATION, OCI_INDEX_MEMBER
from offline_kube.utils import first_column, run_command


@dataclass(frozen=True)
class ArchivePlan:
    """One image archive and the images it carries that the runtime lacks.

    Attributes:
        archive: Path of the OCI archive.
        images: Image names listed in the archive index.
        missing: Images absent from the runtime's image store.
        error: Why the archive could not be inspected, if it could not.
    """

    archive: Path
    images: tuple[str, ...] = ()
    missing: tuple[str, ...] = ()
    error: str | None = None

    @property
    def needs_import(self) -> bool:
        # An index without image names cannot be verified, so import it.
        return self.error is None and (bool(self.missing) or not self.images)

    @property
    def actions(self) -> list[str]:
        if self.error:
            return [f"cannot inspect {self.archive.name}: {self.error}"]
        return [f"import {self.archive.name}"] if self.needs_import else []


@dataclass
class ImportReport:
    """Per-archive outcome of the import step."""

    imported: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


def read_archive_index(archive: Path) -> object:
    """Read the OCI ``index.json`` from an image archive without extracting it."""
    with tarfile.open(archive) as tar:
        for name in (OCI_INDEX_MEMBER, f"./{OCI_INDEX_MEMBER}"):
            try:
                member = tar.extractfile(name)
            except KeyError:
                continue
            if member is not None:
                return json.load(member)
    raise KeyError(f"{OCI_INDEX_MEMBER} not found in {archive}")


def image_names(index: object) -> list[str]:
    """Return the fully-qualified image names annotated in an OCI index.

    Raises:
        ValueError: If the index is not shaped like an OCI image index.
    """
    if not isinstance(index, dict):
        raise ValueError(f"{OCI_INDEX_MEMBER} is not a JSON object")
    manifests = index.get("manifests", [])
    if not isinstance(manifests, list):
        raise ValueError(f"{OCI_INDEX_MEMBER} manifests is not a list")

    names = []
    for manifest in manifests:
        if not isinstance(manifest, dict):
            continue
        annotations = manifest.get("annotations")
        name = annotations.get(IMAGE_NAME_ANNOTATION) if isinstance(annotations, dict) else None
        if isinstance(name, str) and name:
            names.append(name)
    return names


def present_images(namespace: str) -> set[str]:
    return set(first_column(run_command(["ctr", "-n", namespace, "images", "list"]).stdout))


def plan_archive(archive: Path, present: set[str]) -> ArchivePlan:
    try:
        names = image_names(read_archive_index(archive))
    except (OSError, KeyError, ValueError, TypeError, tarfile.TarError) as e:
        return ArchivePlan(archive=archive, error=str(e))
    return ArchivePlan(
        archive=archive,
        images=tuple(names),
        missing=tuple(name for name in names if name not in present),
    )


def plan_image_imports(cfg: BootstrapConfig, archives: tuple[str, ...] = IMAGE_ARCHIVES) -> list[ArchivePlan]:
    present = present_images(cfg.image_namespace)
    return [plan_archive(cfg.images_dir / name, present) for name in archives]


def import_archives(plans: list[ArchivePlan], namespace: str) -> ImportReport:
    """Import every archive that has a missing image; keep going past failures.

    Archives are imported whole even when only some of their images are missing.
    """
    console.print(Panel.fit("Importing Kubernetes images", style="bold blue"))
    report = ImportReport()
    for plan in plans:
        console.print(f"   Checking images in {plan.archive}")
        if plan.error:
            console.print(f"[red]   Cannot read {plan.archive}: {plan.error}[/red]")
            report.failed.append(plan.archive)
            continue
        if not plan.needs_import:
            console.print(f"   All images in {plan.archive.name} already exist. Skipping import.")
            report.skipped.append(plan.archive)
            continue

        logger.info("Missing images in %s: %s", plan.archive.name, ", ".join(plan.missing) or "unknown")
        console.print(f"[yellow]   Importing {plan.archive} ...[/yellow]")
        try:
            sh.ctr("-n", namespace, "images", "import", str(plan.archive))
        except sh.ErrorReturnCode as e:
            logger.debug("ctr import failed: %s", e)
            console.print(f"[red]   Failed to import {plan.archive}[/red]")
            report.failed.append(plan.archive)
            continue
        console.print(f"[green]  \u2713 Imported {plan.archive.name}[/green]")
        report.imported.append(plan.archive)
    return report
