"""Typed dataclasses for Stage 00 layouts, collaborator configs and reports."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal, Self

from ralphos.distro import DistroSpec

ArtifactName = Literal["kernel", "vmlinuz", "modules", "rootfs", "overlay", "initramfs", "iso"]

WORK_SUFFIX = ".work"


@dataclass(frozen=True, slots=True)
class KernelArtifacts:
    release: str
    vmlinuz: Path
    modules_dir: Path


@dataclass(frozen=True, slots=True)
class BasePayload:
    rootfs: Path
    live_overlay: Path | None = None


@dataclass(frozen=True, slots=True)
class OutputLayout:
    """Canonical output paths under one output directory.

    The presence and validity of these paths is the pipeline's only persisted
    state.
    """

    root: Path
    distro: DistroSpec

    @property
    def kernel_release_file(self) -> Path:
        return self.root / "kernel-build" / "include" / "config" / "kernel.release"

    @property
    def vmlinuz(self) -> Path:
        return self.root / "staging" / "boot" / "vmlinuz"

    def module_dir_candidates(self, release: str) -> tuple[Path, Path]:
        return (
            self.root / "staging" / "usr" / "lib" / "modules" / release,
            self.root / "staging" / "lib" / "modules" / release,
        )

    @property
    def rootfs(self) -> Path:
        return self.root / self.distro.rootfs_name

    @property
    def live_overlay(self) -> Path:
        return self.root / "live-overlay"

    @property
    def initramfs(self) -> Path:
        return self.root / self.distro.initramfs_output

    @property
    def iso(self) -> Path:
        return self.root / self.distro.iso_filename

    @staticmethod
    def work_path(final: Path) -> Path:
        return final.with_name(final.name + WORK_SUFFIX)


@dataclass(frozen=True, slots=True)
class SourceLayout:
    """Inputs under the distro checkout: recipes, profile and download cache."""

    base_dir: Path
    distro: DistroSpec

    @property
    def deps_dir(self) -> Path:
        return self.base_dir / "deps"

    def recipe_path(self, filename: str) -> Path:
        return self.deps_dir / filename

    @property
    def downloads(self) -> Path:
        return self.base_dir / "downloads"

    @property
    def source_rootfs(self) -> Path:
        return self.downloads / "rootfs"

    @property
    def package_index(self) -> Path:
        return self.downloads / "iso-contents" / "BaseOS" / "Packages"

    @property
    def busybox(self) -> Path:
        return self.downloads / "busybox-static"

    @property
    def initramfs_template(self) -> Path:
        return self.base_dir / "profile" / "init_tiny.template"

    @property
    def monorepo_dir(self) -> Path:
        parent = self.base_dir.parent
        return parent if parent != self.base_dir else self.base_dir


@dataclass(frozen=True, slots=True)
class LiveOverlayConfig:
    os_name: str
    issue_message: str | None = None
    masked_units: tuple[str, ...] = ()
    write_serial_test_profile: bool = False
    machine_id: str | None = None
    enforce_utf8_locale_profile: bool = False


@dataclass(frozen=True, slots=True)
class InitramfsConfig:
    modules_dir: Path
    busybox_path: Path
    template_path: Path
    output: Path
    iso_label: str
    rootfs_path: str
    live_overlay_image_path: str | None
    live_overlay_path: str | None
    boot_devices: tuple[str, ...]
    modules: tuple[str, ...]
    gzip_level: int
    require_static_binaries: bool = True
    template_vars: Mapping[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "modules_dir": str(self.modules_dir),
            "busybox_path": str(self.busybox_path),
            "template_path": str(self.template_path),
            "output": str(self.output),
            "iso_label": self.iso_label,
            "rootfs_path": self.rootfs_path,
            "live_overlay_image_path": self.live_overlay_image_path,
            "live_overlay_path": self.live_overlay_path,
            "boot_devices": list(self.boot_devices),
            "modules": list(self.modules),
            "gzip_level": self.gzip_level,
            "check_builtin": self.require_static_binaries,
            "template_vars": dict(sorted(self.template_vars.items())),
        }


@dataclass(frozen=True, slots=True)
class OsRelease:
    name: str
    id: str
    version: str


@dataclass(frozen=True, slots=True)
class IsoConfig:
    kernel: Path
    initramfs: Path
    rootfs: Path
    label: str
    output: Path
    os_release: OsRelease | None = None
    overlay: Path | None = None

    def with_os_release(self, name: str, os_id: str, version: str) -> Self:
        return replace(self, os_release=OsRelease(name=name, id=os_id, version=version))

    def with_overlay(self, overlay: Path) -> Self:
        return replace(self, overlay=overlay)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "kernel": str(self.kernel),
            "initramfs": str(self.initramfs),
            "rootfs": str(self.rootfs),
            "label": self.label,
            "output": str(self.output),
            "overlay": str(self.overlay) if self.overlay is not None else None,
        }
        if self.os_release is not None:
            payload["os_release"] = {
                "name": self.os_release.name,
                "id": self.os_release.id,
                "version": self.os_release.version,
            }
        return payload


@dataclass(frozen=True, slots=True)
class ArtifactStatus:
    name: ArtifactName
    present: bool
    path: Path | None = None
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class StatusReport:
    title: str
    artifacts: tuple[ArtifactStatus, ...]

    def get(self, name: ArtifactName) -> ArtifactStatus | None:
        for artifact in self.artifacts:
            if artifact.name == name:
                return artifact
        return None

    @property
    def missing(self) -> tuple[ArtifactName, ...]:
        return tuple(artifact.name for artifact in self.artifacts if not artifact.present)

    @property
    def all_present(self) -> bool:
        return not self.missing

    def render(self) -> str:
        lines = [self.title]
        for artifact in self.artifacts:
            label = f"{artifact.name}:".ljust(11)
            if artifact.present:
                if artifact.name == "kernel":
                    lines.append(f"  {label} OK ({artifact.detail})")
                else:
                    lines.append(f"  {label} {artifact.path}")
            elif artifact.name == "overlay":
                lines.append(f"  {label} (not found; optional for Stage 00)")
            else:
                lines.append(f"  {label} MISSING ({_one_line(artifact.detail)})")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, object]:
        return {
            "title": self.title,
            "artifacts": [
                {
                    "name": artifact.name,
                    "present": artifact.present,
                    "path": str(artifact.path) if artifact.path is not None else None,
                    "detail": artifact.detail,
                }
                for artifact in self.artifacts
            ],
        }


@dataclass(frozen=True, slots=True)
class BuildSummary:
    kernel: KernelArtifacts
    payload: BasePayload
    initramfs: Path
    iso: Path
    rebuilt: tuple[str, ...] = ()

    @property
    def overlay_missing(self) -> bool:
        return self.payload.live_overlay is None


def _one_line(text: str | None) -> str:
    if not text:
        return "unknown"
    return " ".join(part.strip() for part in text.splitlines() if part.strip())


__all__ = [
    "ArtifactName",
    "ArtifactStatus",
    "BasePayload",
    "BuildSummary",
    "InitramfsConfig",
    "IsoConfig",
    "KernelArtifacts",
    "LiveOverlayConfig",
    "OsRelease",
    "OutputLayout",
    "SourceLayout",
    "StatusReport",
    "WORK_SUFFIX",
]
