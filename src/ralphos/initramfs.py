"""Initramfs module policy and delegation to the external builder."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from ralphos.backends.base import Toolchain
from ralphos.config import DEFAULT_BUSYBOX_URL
from ralphos.distro import RALPH, DistroSpec
from ralphos.errors import BuildError, PostconditionViolation, PreconditionError
from ralphos.models import InitramfsConfig, OutputLayout, SourceLayout
from ralphos.observability import StructuredLogger
from ralphos.promote import discard_stale, promote

STAGE = "initramfs"


def select_modules(baseline: Iterable[str], exclusions: Iterable[str]) -> tuple[str, ...]:
    """Drop excluded names from *baseline*, keeping order and first occurrence."""
    excluded = set(exclusions)
    selected: list[str] = []
    for name in baseline:
        if name in excluded or name in selected:
            continue
        selected.append(name)
    return tuple(selected)


@dataclass(slots=True)
class InitramfsBridge:
    toolchain: Toolchain
    out_dir: Path
    distro: DistroSpec = RALPH
    busybox_url: str = DEFAULT_BUSYBOX_URL
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    @property
    def output(self) -> Path:
        return OutputLayout(root=self.out_dir, distro=self.distro).initramfs

    def ensure_busybox(self, base_dir: Path) -> Path:
        source = SourceLayout(base_dir=Path(base_dir), distro=self.distro)
        busybox = source.busybox
        if busybox.is_file():
            return busybox

        source.downloads.mkdir(parents=True, exist_ok=True)
        self.logger.log(
            operation="ensure_busybox",
            stage=STAGE,
            message=f"Download busybox: {self.busybox_url}",
        )
        result = self.toolchain.busybox_fetcher.download(self.busybox_url, busybox)
        if not result.ok:
            raise BuildError(
                f"Downloading busybox from {self.busybox_url} failed.",
                hint="Set BUSYBOX_URL to a reachable static busybox binary.",
                context={**result.context(), "url": self.busybox_url},
            )
        if not busybox.is_file():
            raise PostconditionViolation(
                f"Busybox download reported success but {busybox} does not exist",
                context={"operation": "ensure_busybox", "path": str(busybox)},
            )
        return busybox

    def live_module_names(self) -> tuple[str, ...]:
        return select_modules(self.distro.live_modules, self.distro.excluded_modules)

    def configure(self, modules_dir: Path, busybox_path: Path, template_path: Path) -> InitramfsConfig:
        return InitramfsConfig(
            modules_dir=modules_dir,
            busybox_path=busybox_path,
            template_path=template_path,
            output=OutputLayout.work_path(self.output),
            iso_label=self.distro.iso_label,
            rootfs_path=self.distro.rootfs_iso_path,
            live_overlay_image_path=self.distro.live_overlay_iso_path,
            live_overlay_path=self.distro.live_overlay_iso_path,
            boot_devices=self.distro.boot_device_probe_order,
            modules=self.live_module_names(),
            gzip_level=self.distro.cpio_gzip_level,
            require_static_binaries=True,
        )

    def build(self, config: InitramfsConfig) -> Path:
        """Run the builder into ``config.output`` and publish the result."""
        discard_stale(config.output)
        result = self.toolchain.initramfs_builder.build(config)
        if not result.ok:
            raise BuildError(
                f"Building initramfs failed: {result.detail or 'builder reported failure'}",
                context={**result.context(), "output": str(config.output)},
            )
        if not config.output.is_file():
            raise PostconditionViolation(
                f"Initramfs builder reported success but {config.output} does not exist",
                context={"operation": "build_initramfs", "path": str(config.output)},
            )
        return promote(config.output, self.output)

    def assemble(self, base_dir: Path, modules_dir: Path) -> Path:
        template = SourceLayout(base_dir=Path(base_dir), distro=self.distro).initramfs_template
        if not template.is_file():
            raise PreconditionError(
                f"Missing initramfs template: {template}",
                context={"operation": "build_initramfs", "path": str(template)},
            )
        busybox = self.ensure_busybox(base_dir)
        return self.build(self.configure(modules_dir, busybox, template))
