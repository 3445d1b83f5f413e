"""Host-tool implementations of the Stage 00 collaborators.

Each adapter shells out to one host command and reports a ``ToolResult``;
none of them raise for tool failures so the pipeline decides how a failure
is surfaced. The initramfs builder and ISO composer are the ``recinit`` and
``reciso`` command-line tools, fed a JSON description of the build.
"""

from __future__ import annotations

import json
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from urllib.error import URLError
from urllib.request import urlopen

from ralphos.backends.base import ToolResult, Toolchain
from ralphos.backends.overlay import SystemdLiveOverlayGenerator
from ralphos.config import Stage00Config
from ralphos.models import InitramfsConfig, IsoConfig

STDERR_LIMIT = 2000

RECIPE_BINARY_CANDIDATES = (
    Path("tools") / "recipe" / "target" / "release" / "recipe",
    Path("target") / "release" / "recipe",
)

EROFS_DEFAULT_ARGS = ("-zlz4hc,12", "-Eztailpacking,fragments,dedupe", "-T0", "--all-root")


def run_tool(cmd: list[str], *, operation: str, cwd: Path | None = None) -> ToolResult:
    """Run *cmd* and fold its outcome into a ``ToolResult``."""
    command = tuple(cmd)
    if shutil.which(cmd[0]) is None:
        return ToolResult.failure(
            operation,
            detail=f"`{cmd[0]}` not found in PATH",
            command=command,
        )
    result = subprocess.run(
        cmd,
        cwd=str(cwd) if cwd is not None else None,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        return ToolResult.failure(
            operation,
            detail=result.stderr[:STDERR_LIMIT] if result.stderr else "",
            returncode=result.returncode,
            command=command,
        )
    return ToolResult.success(operation, command=command)


def find_recipe_binary(monorepo_dir: Path) -> str | None:
    for candidate in RECIPE_BINARY_CANDIDATES:
        path = monorepo_dir / candidate
        if path.is_file() and os.access(path, os.X_OK):
            return str(path)
    return shutil.which("recipe")


@dataclass(slots=True)
class RecipeCliEngine:
    monorepo_dir: Path
    binary: str | None = None

    def run(self, recipe_path: Path, downloads_dir: Path) -> ToolResult:
        binary = self.binary or find_recipe_binary(self.monorepo_dir)
        if binary is None:
            return ToolResult.failure(
                "run_recipe",
                detail=(
                    "recipe binary not found under "
                    f"{self.monorepo_dir / RECIPE_BINARY_CANDIDATES[0]} or in PATH"
                ),
            )
        return run_tool(
            [binary, "install", "--build-dir", str(downloads_dir), str(recipe_path)],
            operation="run_recipe",
            cwd=self.monorepo_dir,
        )


@dataclass(slots=True)
class MkfsErofsBuilder:
    mkfs_args: tuple[str, ...] = EROFS_DEFAULT_ARGS

    def build(self, source_dir: Path, output_path: Path) -> ToolResult:
        return run_tool(
            ["mkfs.erofs", *self.mkfs_args, str(output_path), str(source_dir)],
            operation="build_rootfs_image",
        )


@dataclass(slots=True)
class FindChmodNormalizer:
    def normalize(self, root: Path) -> ToolResult:
        return run_tool(
            ["find", str(root), "-type", "f", "-perm", "/111", "-exec", "chmod", "u+r", "{}", "+"],
            operation="normalize_permissions",
        )


@dataclass(slots=True)
class RecinitCliBuilder:
    command: tuple[str, ...] = ("recinit", "build-tiny")

    def build(self, config: InitramfsConfig) -> ToolResult:
        return _run_with_config(list(self.command), config.to_dict(), operation="build_initramfs")


@dataclass(slots=True)
class RecisoCliComposer:
    command: tuple[str, ...] = ("reciso", "create")

    def build(self, config: IsoConfig) -> ToolResult:
        return _run_with_config(list(self.command), config.to_dict(), operation="create_iso")


@dataclass(slots=True)
class UrlBusyboxFetcher:
    mode: int = 0o755

    def download(self, url: str, dest_path: Path) -> ToolResult:
        temp_path = dest_path.with_name(dest_path.name + ".tmp")
        try:
            with urlopen(url) as response:  # noqa: S310 - URL comes from startup config
                payload = response.read()
            temp_path.write_bytes(payload)
            temp_path.chmod(self.mode)
            os.replace(temp_path, dest_path)
        except (URLError, OSError) as exc:
            temp_path.unlink(missing_ok=True)
            return ToolResult.failure("download_busybox", detail=f"{url}: {exc}")
        return ToolResult.success("download_busybox")


@dataclass(slots=True)
class LocalLinuxTools:
    """Factory for a host-tool ``Toolchain``."""

    recipe_binary: str | None = None
    mkfs_args: tuple[str, ...] = EROFS_DEFAULT_ARGS
    extra_initramfs_args: list[str] = field(default_factory=list)
    extra_iso_args: list[str] = field(default_factory=list)

    def toolchain(self, config: Stage00Config) -> Toolchain:
        return Toolchain(
            recipe_engine=RecipeCliEngine(
                monorepo_dir=config.base_dir.parent,
                binary=self.recipe_binary,
            ),
            rootfs_builder=MkfsErofsBuilder(mkfs_args=self.mkfs_args),
            permission_normalizer=FindChmodNormalizer(),
            initramfs_builder=RecinitCliBuilder(
                command=("recinit", "build-tiny", *self.extra_initramfs_args)
            ),
            iso_composer=RecisoCliComposer(command=("reciso", "create", *self.extra_iso_args)),
            overlay_generator=SystemdLiveOverlayGenerator(),
            busybox_fetcher=UrlBusyboxFetcher(),
        )


def _run_with_config(cmd: list[str], payload: dict[str, object], *, operation: str) -> ToolResult:
    with tempfile.TemporaryDirectory(prefix="ralphos-") as tmp:
        config_path = Path(tmp) / "config.json"
        config_path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        return run_tool([*cmd, "--config", str(config_path)], operation=operation)
