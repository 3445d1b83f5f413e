"""Protocols for the external tools the Stage 00 pipeline delegates to."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ralphos.models import InitramfsConfig, IsoConfig, LiveOverlayConfig


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Typed success/failure outcome of one collaborator invocation."""

    ok: bool
    operation: str
    returncode: int | None = None
    detail: str = ""
    command: tuple[str, ...] = ()

    @classmethod
    def success(cls, operation: str, *, command: tuple[str, ...] = ()) -> ToolResult:
        return cls(ok=True, operation=operation, returncode=0, command=command)

    @classmethod
    def failure(
        cls,
        operation: str,
        *,
        detail: str,
        returncode: int | None = None,
        command: tuple[str, ...] = (),
    ) -> ToolResult:
        return cls(
            ok=False,
            operation=operation,
            returncode=returncode,
            detail=detail,
            command=command,
        )

    def context(self) -> dict[str, str]:
        return {
            "operation": self.operation,
            "returncode": "" if self.returncode is None else str(self.returncode),
            "detail": self.detail,
            "command": " ".join(self.command),
        }


class RecipeEngine(Protocol):
    def run(self, recipe_path: Path, downloads_dir: Path) -> ToolResult:
        """Resolve and extract one recipe into the download cache."""


class RootfsImageBuilder(Protocol):
    def build(self, source_dir: Path, output_path: Path) -> ToolResult:
        """Pack *source_dir* into a compressed read-only image at *output_path*."""


class PermissionNormalizer(Protocol):
    def normalize(self, root: Path) -> ToolResult:
        """Grant owner-read on every regular file under *root* with an execute bit."""


class InitramfsBuilder(Protocol):
    def build(self, config: InitramfsConfig) -> ToolResult:
        """Assemble the initramfs described by *config* at ``config.output``."""


class IsoComposer(Protocol):
    def build(self, config: IsoConfig) -> ToolResult:
        """Compose the bootable image described by *config* at ``config.output``."""


class OverlayGenerator(Protocol):
    def create(self, out_dir: Path, config: LiveOverlayConfig) -> ToolResult:
        """Write the ``live-overlay`` scaffold under *out_dir*."""


class BusyboxFetcher(Protocol):
    def download(self, url: str, dest_path: Path) -> ToolResult:
        """Download a static busybox binary to *dest_path*."""


@dataclass(slots=True)
class Toolchain:
    recipe_engine: RecipeEngine
    rootfs_builder: RootfsImageBuilder
    permission_normalizer: PermissionNormalizer
    initramfs_builder: InitramfsBuilder
    iso_composer: IsoComposer
    overlay_generator: OverlayGenerator
    busybox_fetcher: BusyboxFetcher
