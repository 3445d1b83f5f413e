"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

import pytest

from ralphos.backends.inprocess import InProcessTools
from ralphos.config import Stage00Config
from ralphos.distro import RALPH, DistroSpec, KernelSource

TEST_DISTRO = replace(RALPH, kernel=KernelSource(version="5.14.0", localversion="-xyz"))
TEST_RELEASE = "5.14.0-xyz"

Snapshot = dict[str, tuple[bool, int, int, int]]


@pytest.fixture
def distro() -> DistroSpec:
    return TEST_DISTRO


@pytest.fixture
def tools() -> InProcessTools:
    """Provide a recording in-process toolchain."""
    return InProcessTools()


@pytest.fixture
def base_dir(tmp_path: Path) -> Path:
    """A distro checkout with every recipe and the initramfs template."""
    root = tmp_path / "distro"
    deps = root / "deps"
    deps.mkdir(parents=True)
    for recipe in TEST_DISTRO.recipes:
        (deps / recipe.filename).write_text(f"// {recipe.description}\n", encoding="utf-8")
    profile = root / "profile"
    profile.mkdir()
    (profile / "init_tiny.template").write_text("#!/bin/busybox sh\n", encoding="utf-8")
    return root


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def config(base_dir: Path, out_dir: Path) -> Stage00Config:
    return Stage00Config(
        base_dir=base_dir,
        output_dir=out_dir,
        busybox_url="https://example.invalid/busybox",
        allow_legacy_entrypoint=True,
    )


@pytest.fixture
def write_kernel(out_dir: Path) -> Callable[..., Path]:
    """Lay out kernel build output the way the kernel build stages it."""

    def _write(
        release: str = TEST_RELEASE + "\n",
        *,
        modules: tuple[str, ...] = ("usr",),
        vmlinuz: bool = True,
    ) -> Path:
        release_file = out_dir / "kernel-build" / "include" / "config" / "kernel.release"
        release_file.parent.mkdir(parents=True, exist_ok=True)
        release_file.write_text(release, encoding="utf-8")
        if vmlinuz:
            image = out_dir / "staging" / "boot" / "vmlinuz"
            image.parent.mkdir(parents=True, exist_ok=True)
            image.write_bytes(b"MZ kernel image")
        name = release.strip()
        if name:
            for convention in modules:
                prefix = ("usr", "lib") if convention == "usr" else ("lib",)
                (out_dir / "staging").joinpath(*prefix, "modules", name).mkdir(
                    parents=True, exist_ok=True
                )
        return out_dir

    return _write


@pytest.fixture
def snapshot_tree() -> Callable[[Path], Snapshot]:
    """Record type, size, mtime and mode of every entry under a root."""

    def _snapshot(root: Path) -> Snapshot:
        entries: Snapshot = {}
        for path in sorted(root.rglob("*")):
            st = path.lstat()
            entries[str(path.relative_to(root))] = (
                path.is_dir(),
                st.st_size,
                st.st_mtime_ns,
                st.st_mode,
            )
        return entries

    return _snapshot
