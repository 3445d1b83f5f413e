"""In-process toolchain for testing and development.

Produces deterministic placeholder artifacts without invoking recipe, erofs,
initramfs or ISO tooling. Every tool records its calls so callers can assert
exactly which collaborators a pipeline run touched, and any tool can be told
to fail.
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ralphos.backends.base import ToolResult, Toolchain
from ralphos.backends.overlay import SystemdLiveOverlayGenerator
from ralphos.models import InitramfsConfig, IsoConfig, LiveOverlayConfig

# Directories (relative to the downloads dir) each recipe populates.
DEFAULT_RECIPE_OUTPUTS: dict[str, tuple[str, ...]] = {
    "rocky.rhai": ("rootfs/usr/bin", "iso-contents/BaseOS/Packages"),
    "packages.rhai": ("rootfs/usr/lib",),
    "epel.rhai": ("rootfs/usr/share",),
}


def _placeholder(kind: str, *parts: object) -> bytes:
    digest = hashlib.sha256(":".join(str(p) for p in parts).encode()).hexdigest()
    return f"ralphos-artifact: kind={kind}\ndigest={digest}\n".encode()


@dataclass(slots=True)
class RecordingTool:
    calls: list[tuple[Any, ...]] = field(default_factory=list)
    fail_with: str | None = None
    returncode: int = 1

    def _failure(self, operation: str) -> ToolResult | None:
        if self.fail_with is None:
            return None
        return ToolResult.failure(operation, detail=self.fail_with, returncode=self.returncode)


@dataclass(slots=True)
class InProcessRecipeEngine(RecordingTool):
    outputs: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_RECIPE_OUTPUTS)
    )

    def run(self, recipe_path: Path, downloads_dir: Path) -> ToolResult:
        self.calls.append((recipe_path, downloads_dir))
        failure = self._failure("run_recipe")
        if failure is not None:
            return failure
        for rel in self.outputs.get(recipe_path.name, ()):
            (downloads_dir / rel).mkdir(parents=True, exist_ok=True)
        return ToolResult.success("run_recipe")


@dataclass(slots=True)
class InProcessRootfsBuilder(RecordingTool):
    def build(self, source_dir: Path, output_path: Path) -> ToolResult:
        self.calls.append((source_dir, output_path))
        failure = self._failure("build_rootfs_image")
        if failure is not None:
            return failure
        output_path.write_bytes(_placeholder("rootfs", source_dir))
        return ToolResult.success("build_rootfs_image")


@dataclass(slots=True)
class InProcessPermissionNormalizer(RecordingTool):
    def normalize(self, root: Path) -> ToolResult:
        self.calls.append((root,))
        failure = self._failure("normalize_permissions")
        if failure is not None:
            return failure
        for dirpath, _dirnames, filenames in os.walk(root):
            for name in filenames:
                path = Path(dirpath) / name
                if path.is_symlink():
                    continue
                mode = path.stat().st_mode
                if mode & 0o111:
                    path.chmod(mode | 0o400)
        return ToolResult.success("normalize_permissions")


@dataclass(slots=True)
class InProcessInitramfsBuilder(RecordingTool):
    def build(self, config: InitramfsConfig) -> ToolResult:
        self.calls.append((config,))
        failure = self._failure("build_initramfs")
        if failure is not None:
            return failure
        config.output.write_bytes(
            _placeholder("initramfs", config.modules_dir, ",".join(config.modules))
        )
        return ToolResult.success("build_initramfs")


@dataclass(slots=True)
class InProcessIsoComposer(RecordingTool):
    def build(self, config: IsoConfig) -> ToolResult:
        self.calls.append((config,))
        failure = self._failure("create_iso")
        if failure is not None:
            return failure
        config.output.write_bytes(
            _placeholder("iso", config.kernel, config.initramfs, config.rootfs, config.overlay)
        )
        return ToolResult.success("create_iso")


@dataclass(slots=True)
class InProcessOverlayGenerator(RecordingTool):
    def create(self, out_dir: Path, config: LiveOverlayConfig) -> ToolResult:
        self.calls.append((out_dir, config))
        failure = self._failure("create_live_overlay")
        if failure is not None:
            return failure
        return SystemdLiveOverlayGenerator().create(out_dir, config)


@dataclass(slots=True)
class InProcessBusyboxFetcher(RecordingTool):
    def download(self, url: str, dest_path: Path) -> ToolResult:
        self.calls.append((url, dest_path))
        failure = self._failure("download_busybox")
        if failure is not None:
            return failure
        dest_path.write_bytes(_placeholder("busybox", url))
        dest_path.chmod(0o755)
        return ToolResult.success("download_busybox")


@dataclass(slots=True)
class InProcessTools:
    """Recording collaborators bundled as a ``Toolchain``."""

    recipe_engine: InProcessRecipeEngine = field(default_factory=InProcessRecipeEngine)
    rootfs_builder: InProcessRootfsBuilder = field(default_factory=InProcessRootfsBuilder)
    permission_normalizer: InProcessPermissionNormalizer = field(
        default_factory=InProcessPermissionNormalizer
    )
    initramfs_builder: InProcessInitramfsBuilder = field(default_factory=InProcessInitramfsBuilder)
    iso_composer: InProcessIsoComposer = field(default_factory=InProcessIsoComposer)
    overlay_generator: InProcessOverlayGenerator = field(default_factory=InProcessOverlayGenerator)
    busybox_fetcher: InProcessBusyboxFetcher = field(default_factory=InProcessBusyboxFetcher)

    def toolchain(self) -> Toolchain:
        return Toolchain(
            recipe_engine=self.recipe_engine,
            rootfs_builder=self.rootfs_builder,
            permission_normalizer=self.permission_normalizer,
            initramfs_builder=self.initramfs_builder,
            iso_composer=self.iso_composer,
            overlay_generator=self.overlay_generator,
            busybox_fetcher=self.busybox_fetcher,
        )

    def total_calls(self) -> int:
        return sum(
            len(tool.calls)
            for tool in (
                self.recipe_engine,
                self.rootfs_builder,
                self.permission_normalizer,
                self.initramfs_builder,
                self.iso_composer,
                self.overlay_generator,
                self.busybox_fetcher,
            )
        )
