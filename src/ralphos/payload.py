"""Root filesystem and live-overlay payload resolution.

The payload stage owns two outputs: the compressed rootfs image, built from
a recipe-extracted source tree, and the optional live-overlay scaffold.
Source extraction is expensive, so it only runs when the extracted tree and
its package index are missing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from ralphos.backends.base import Toolchain
from ralphos.distro import RALPH, DistroSpec
from ralphos.errors import (
    BuildError,
    ExternalToolError,
    MissingArtifactError,
    MissingRecipeError,
    PostconditionViolation,
    PreconditionError,
)
from ralphos.models import BasePayload, LiveOverlayConfig, OutputLayout, SourceLayout
from ralphos.observability import StructuredLogger
from ralphos.promote import discard_stale, promote
from ralphos.recipe import RecipeBridge

STAGE = "payload"


def default_overlay_config(distro: DistroSpec) -> LiveOverlayConfig:
    return LiveOverlayConfig(
        os_name=distro.os_name,
        issue_message=None,
        masked_units=(),
        write_serial_test_profile=True,
        machine_id=None,
        enforce_utf8_locale_profile=True,
    )


@dataclass(slots=True)
class PayloadResolver:
    toolchain: Toolchain
    distro: DistroSpec = RALPH
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    overlay_config: LiveOverlayConfig | None = None

    def ensure(self, base_dir: Path, out_dir: Path) -> BasePayload:
        """Build whatever part of the payload is missing and return it."""
        layout = self._output(out_dir)
        if not layout.rootfs.is_file():
            self.ensure_source_rootfs(base_dir)
            source = self._source(base_dir)
            self.build_rootfs_image(source.source_rootfs, out_dir)
            if not layout.rootfs.is_file():
                raise PostconditionViolation(
                    f"Rootfs build finished but {layout.rootfs} was not produced",
                    context={"operation": "ensure_payload", "path": str(layout.rootfs)},
                )

        self.ensure_live_overlay(out_dir)
        return self.inspect(out_dir)

    def ensure_source_rootfs(self, base_dir: Path) -> None:
        source = self._source(base_dir)
        self.check_recipes(source)

        if not self.source_ready(source):
            bridge = RecipeBridge(engine=self.toolchain.recipe_engine)
            for recipe in self.distro.recipes:
                self._log("ensure_source_rootfs", recipe.step)
                bridge.run(source, recipe)

            if not (source.source_rootfs / "usr").is_dir():
                raise PostconditionViolation(
                    f"Source rootfs missing after recipe resolve: {source.source_rootfs}",
                    hint="The recipes reported success but extracted nothing.",
                    context={
                        "operation": "ensure_source_rootfs",
                        "path": str(source.source_rootfs),
                    },
                )

        self.normalize_permissions(source.source_rootfs)

    def check_recipes(self, source: SourceLayout) -> None:
        for recipe in self.distro.recipes:
            path = source.recipe_path(recipe.filename)
            if not path.is_file():
                raise MissingRecipeError(
                    f"Missing required recipe file: {path}",
                    context={"operation": "ensure_source_rootfs", "path": str(path)},
                )

    @staticmethod
    def source_ready(source: SourceLayout) -> bool:
        return (source.source_rootfs / "usr").is_dir() and source.package_index.is_dir()

    def normalize_permissions(self, rootfs: Path) -> None:
        if not rootfs.is_dir():
            raise PreconditionError(
                f"rootfs not found for permission normalization: {rootfs}",
                context={"operation": "normalize_permissions", "path": str(rootfs)},
            )
        self._log("normalize_permissions", "Normalize source rootfs executable permissions")
        result = self.toolchain.permission_normalizer.normalize(rootfs)
        if not result.ok:
            raise ExternalToolError(
                f"Failed to normalize executable permissions in {rootfs} "
                f"(exit code {result.returncode if result.returncode is not None else -1})",
                context={**result.context(), "path": str(rootfs)},
            )

    def build_rootfs_image(self, source_rootfs: Path, out_dir: Path) -> Path:
        if not (source_rootfs / "usr").is_dir():
            raise PreconditionError(
                f"Source rootfs missing at {source_rootfs}",
                hint="Run the base rootfs recipe first.",
                context={"operation": "build_rootfs_image", "path": str(source_rootfs)},
            )

        layout = self._output(out_dir)
        final = layout.rootfs
        work = OutputLayout.work_path(final)

        self._log("build_rootfs_image", "Build rootfs EROFS from source rootfs")
        discard_stale(work)
        result = self.toolchain.rootfs_builder.build(source_rootfs, work)
        if not result.ok:
            raise BuildError(
                f"Building rootfs from source {source_rootfs} failed.",
                context={**result.context(), "output": str(work)},
            )
        if not work.is_file():
            raise PostconditionViolation(
                f"Rootfs builder reported success but {work} does not exist",
                context={"operation": "build_rootfs_image", "path": str(work)},
            )
        return promote(work, final)

    def ensure_live_overlay(self, out_dir: Path) -> Path | None:
        layout = self._output(out_dir)
        if layout.live_overlay.is_dir():
            return layout.live_overlay

        config = self.overlay_config or default_overlay_config(self.distro)
        self._log("ensure_live_overlay", "Generate live overlay")
        result = self.toolchain.overlay_generator.create(layout.root, config)
        if not result.ok:
            raise BuildError(
                "Creating live overlay failed.",
                context={**result.context(), "path": str(layout.live_overlay)},
            )
        return layout.live_overlay if layout.live_overlay.is_dir() else None

    def inspect(self, out_dir: Path) -> BasePayload:
        layout = self._output(out_dir)
        if not layout.rootfs.is_file():
            raise MissingArtifactError(
                f"Missing rootfs payload at {layout.rootfs}",
                hint="Build/generate a rootfs at this path first.",
                context={"operation": "inspect_payload", "path": str(layout.rootfs)},
            )
        overlay = layout.live_overlay if layout.live_overlay.is_dir() else None
        return BasePayload(rootfs=layout.rootfs, live_overlay=overlay)

    def _output(self, out_dir: Path) -> OutputLayout:
        return OutputLayout(root=Path(out_dir), distro=self.distro)

    def _source(self, base_dir: Path) -> SourceLayout:
        return SourceLayout(base_dir=Path(base_dir), distro=self.distro)

    def _log(self, operation: str, message: str) -> None:
        self.logger.log(operation=operation, stage=STAGE, message=message)
