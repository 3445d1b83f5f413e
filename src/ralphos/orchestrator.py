"""Stage 00 pipeline: kernel -> payload -> initramfs -> iso.

Pipeline state is not persisted anywhere; it is recomputed from the
canonical output paths. Each stage checks its "already done" predicate
before doing real work, so ``build`` can be rerun after any failure and
picks up at the first stage whose output does not validate.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from ralphos.backends.base import Toolchain
from ralphos.config import Stage00Config
from ralphos.distro import RALPH, DistroSpec
from ralphos.errors import BuildError, RalphOSError, StageError, format_error_chain
from ralphos.initramfs import InitramfsBridge
from ralphos.iso import IsoBridge
from ralphos.kernel import KernelVerifier
from ralphos.models import (
    ArtifactName,
    ArtifactStatus,
    BuildSummary,
    KernelArtifacts,
    OutputLayout,
    StatusReport,
)
from ralphos.observability import StructuredLogger
from ralphos.payload import PayloadResolver


class PipelineState(StrEnum):
    UNVERIFIED = "unverified"
    KERNEL_OK = "kernel_ok"
    PAYLOAD_OK = "payload_ok"
    INITRAMFS_OK = "initramfs_ok"
    ISO_OK = "iso_ok"


def payload_ready(layout: OutputLayout) -> bool:
    """The overlay is optional; a rootfs image alone completes the payload."""
    return layout.rootfs.is_file()


def initramfs_ready(layout: OutputLayout) -> bool:
    return layout.initramfs.is_file()


def iso_ready(layout: OutputLayout) -> bool:
    return layout.iso.is_file()


def pipeline_state(layout: OutputLayout, verifier: KernelVerifier) -> PipelineState:
    """Return the furthest state whose outputs (and all earlier ones) validate."""
    try:
        verifier.verify(layout.root)
    except RalphOSError:
        return PipelineState.UNVERIFIED
    if not payload_ready(layout):
        return PipelineState.KERNEL_OK
    if not initramfs_ready(layout):
        return PipelineState.PAYLOAD_OK
    if not iso_ready(layout):
        return PipelineState.INITRAMFS_OK
    return PipelineState.ISO_OK


@dataclass(slots=True)
class StageOrchestrator:
    config: Stage00Config
    toolchain: Toolchain
    distro: DistroSpec = RALPH
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    @property
    def layout(self) -> OutputLayout:
        return OutputLayout(root=self.config.output_dir, distro=self.distro)

    @property
    def verifier(self) -> KernelVerifier:
        return KernelVerifier(distro=self.distro)

    def resolver(self) -> PayloadResolver:
        return PayloadResolver(toolchain=self.toolchain, distro=self.distro, logger=self.logger)

    def state(self) -> PipelineState:
        return pipeline_state(self.layout, self.verifier)

    def build(self, *, force: bool = False) -> BuildSummary:
        """Run every stage in order; ``force`` rebuilds initramfs and iso."""
        layout = self.layout
        base_dir = self.config.base_dir
        rebuilt: list[str] = []

        try:
            layout.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise BuildError(
                f"Creating {layout.root} failed.",
                context={"operation": "build", "path": str(layout.root)},
            ) from exc

        with self._stage("kernel", "Verify kernel artifacts"):
            kernel = self.verifier.verify(layout.root)

        with self._stage("payload", "Ensure rootfs/overlay payload"):
            resolver = self.resolver()
            if payload_ready(layout):
                self._skip("payload", layout.rootfs)
                payload = resolver.inspect(layout.root)
            else:
                payload = resolver.ensure(base_dir, layout.root)
                rebuilt.append("payload")

        with self._stage("initramfs", "Build initramfs"):
            if not force and initramfs_ready(layout):
                self._skip("initramfs", layout.initramfs)
                initramfs = layout.initramfs
            else:
                initramfs = self._initramfs_bridge().assemble(base_dir, kernel.modules_dir)
                rebuilt.append("initramfs")

        with self._stage("iso", "Create ISO"):
            if not force and iso_ready(layout):
                self._skip("iso", layout.iso)
                iso = layout.iso
            else:
                iso = IsoBridge(
                    composer=self.toolchain.iso_composer,
                    out_dir=layout.root,
                    distro=self.distro,
                ).build(kernel.vmlinuz, initramfs, payload.rootfs, payload.live_overlay)
                rebuilt.append("iso")

        summary = BuildSummary(
            kernel=kernel,
            payload=payload,
            initramfs=initramfs,
            iso=iso,
            rebuilt=tuple(rebuilt),
        )
        self._report(summary)
        return summary

    def status(self) -> StatusReport:
        """Inspect every artifact without creating, changing or removing anything.

        Each row is judged on its own path, so one failing check never hides
        an artifact that is actually on disk.
        """
        layout = self.layout
        rows: list[ArtifactStatus] = []

        try:
            kernel = self.verifier.verify(layout.root)
        except RalphOSError as exc:
            cause = format_error_chain(exc)
            rows.append(ArtifactStatus("kernel", False, layout.kernel_release_file, cause))
            if layout.vmlinuz.is_file():
                rows.append(ArtifactStatus("vmlinuz", True, layout.vmlinuz))
            else:
                rows.append(ArtifactStatus("vmlinuz", False, layout.vmlinuz, cause))
            rows.append(ArtifactStatus("modules", False, None, cause))
        else:
            rows.extend(_kernel_rows(kernel, layout))

        try:
            payload = self.resolver().inspect(layout.root)
        except RalphOSError as exc:
            rows.append(ArtifactStatus("rootfs", False, layout.rootfs, format_error_chain(exc)))
        else:
            rows.append(ArtifactStatus("rootfs", True, payload.rootfs))

        rows.append(_overlay_row(layout))
        rows.append(_file_row("initramfs", layout.initramfs))
        rows.append(_file_row("iso", layout.iso))
        return StatusReport(title=f"{self.distro.os_name} Stage 00 status", artifacts=tuple(rows))

    def _initramfs_bridge(self) -> InitramfsBridge:
        return InitramfsBridge(
            toolchain=self.toolchain,
            out_dir=self.layout.root,
            distro=self.distro,
            busybox_url=self.config.busybox_url,
            logger=self.logger,
        )

    @contextmanager
    def _stage(self, stage: str, message: str) -> Iterator[None]:
        self.logger.log(operation="build", stage=stage, message=message)
        try:
            yield
        except (RalphOSError, OSError) as exc:
            raise StageError(
                f"Stage '{stage}' failed.",
                stage=stage,
                context={"output_dir": str(self.layout.root)},
            ) from exc

    def _skip(self, stage: str, path: Path) -> None:
        self.logger.log(
            operation="build",
            stage=stage,
            message=f"{stage} already present, reusing {path}",
            level="detail",
        )

    def _report(self, summary: BuildSummary) -> None:
        log = self.logger.log
        log(operation="build", stage=None, message=f"{self.distro.os_name} Stage 00 ready", level="ok")
        log(
            operation="build",
            stage=None,
            message=f"kernel.release: {summary.kernel.release}",
            level="detail",
        )
        log(operation="build", stage=None, message=f"initramfs: {summary.initramfs}", level="detail")
        log(operation="build", stage=None, message=f"iso: {summary.iso}", level="detail")
        if summary.overlay_missing:
            log(
                operation="build",
                stage=None,
                message=(
                    f"{self.distro.os_name} live overlay not found; "
                    "ISO was built without overlay."
                ),
                level="warning",
            )


def _kernel_rows(kernel: KernelArtifacts, layout: OutputLayout) -> list[ArtifactStatus]:
    return [
        ArtifactStatus("kernel", True, layout.kernel_release_file, kernel.release),
        ArtifactStatus("vmlinuz", True, kernel.vmlinuz),
        ArtifactStatus("modules", True, kernel.modules_dir),
    ]


def _overlay_row(layout: OutputLayout) -> ArtifactStatus:
    if layout.live_overlay.is_dir():
        return ArtifactStatus("overlay", True, layout.live_overlay)
    return ArtifactStatus("overlay", False, layout.live_overlay, "not found")


def _file_row(name: ArtifactName, path: Path) -> ArtifactStatus:
    if path.is_file():
        return ArtifactStatus(name, True, path)
    return ArtifactStatus(name, False, path, f"{path} not found")
