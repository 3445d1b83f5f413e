"""Final bootable image composition."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ralphos.backends.base import IsoComposer
from ralphos.distro import RALPH, DistroSpec
from ralphos.errors import BuildError, PostconditionViolation
from ralphos.models import IsoConfig, OutputLayout
from ralphos.promote import discard_stale, promote


@dataclass(slots=True)
class IsoBridge:
    composer: IsoComposer
    out_dir: Path
    distro: DistroSpec = RALPH

    @property
    def output(self) -> Path:
        return OutputLayout(root=self.out_dir, distro=self.distro).iso

    def configure(
        self,
        kernel_image: Path,
        initramfs: Path,
        rootfs: Path,
        overlay: Path | None = None,
    ) -> IsoConfig:
        config = IsoConfig(
            kernel=kernel_image,
            initramfs=initramfs,
            rootfs=rootfs,
            label=self.distro.iso_label,
            output=OutputLayout.work_path(self.output),
        ).with_os_release(self.distro.os_name, self.distro.id, self.distro.os_version)
        if overlay is not None:
            config = config.with_overlay(overlay)
        return config

    def build(
        self,
        kernel_image: Path,
        initramfs: Path,
        rootfs: Path,
        overlay: Path | None = None,
    ) -> Path:
        config = self.configure(kernel_image, initramfs, rootfs, overlay)
        discard_stale(config.output)
        result = self.composer.build(config)
        if not result.ok:
            raise BuildError(
                f"Creating ISO failed: {result.detail or 'composer reported failure'}",
                context={**result.context(), "output": str(config.output)},
            )
        if not config.output.is_file():
            raise PostconditionViolation(
                f"ISO composer reported success but {config.output} does not exist",
                context={"operation": "create_iso", "path": str(config.output)},
            )
        return promote(config.output, self.output)
