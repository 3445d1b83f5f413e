from pathlib import Path

import pytest

from ralphos.backends.inprocess import InProcessTools
from ralphos.distro import DistroSpec
from ralphos.errors import BuildError
from ralphos.iso import IsoBridge


def _inputs(out_dir: Path) -> tuple[Path, Path, Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    kernel = out_dir / "vmlinuz"
    initramfs = out_dir / "initramfs-live.cpio.gz"
    rootfs = out_dir / "filesystem.erofs"
    for path in (kernel, initramfs, rootfs):
        path.write_bytes(path.name.encode())
    return kernel, initramfs, rootfs


def test_configure_sets_label_os_release_and_work_output(
    tools: InProcessTools,
    distro: DistroSpec,
    out_dir: Path,
) -> None:
    kernel, initramfs, rootfs = _inputs(out_dir)

    config = IsoBridge(tools.iso_composer, out_dir, distro).configure(kernel, initramfs, rootfs)

    assert config.label == "RALPHOS"
    assert config.output == out_dir / "ralphos.iso.work"
    assert config.os_release is not None
    assert (config.os_release.name, config.os_release.id, config.os_release.version) == (
        "RalphOS",
        "ralph",
        "0.0",
    )
    assert config.overlay is None
    assert config.to_dict()["overlay"] is None


def test_configure_includes_overlay_when_present(
    tools: InProcessTools,
    distro: DistroSpec,
    out_dir: Path,
) -> None:
    kernel, initramfs, rootfs = _inputs(out_dir)
    overlay = out_dir / "live-overlay"

    config = IsoBridge(tools.iso_composer, out_dir, distro).configure(
        kernel, initramfs, rootfs, overlay
    )

    assert config.overlay == overlay


def test_build_promotes_iso(tools: InProcessTools, distro: DistroSpec, out_dir: Path) -> None:
    kernel, initramfs, rootfs = _inputs(out_dir)

    iso = IsoBridge(tools.iso_composer, out_dir, distro).build(kernel, initramfs, rootfs)

    assert iso == out_dir / "ralphos.iso"
    assert iso.is_file()
    assert not (out_dir / "ralphos.iso.work").exists()
    assert len(tools.iso_composer.calls) == 1


def test_composer_failure_leaves_no_iso(
    tools: InProcessTools,
    distro: DistroSpec,
    out_dir: Path,
) -> None:
    kernel, initramfs, rootfs = _inputs(out_dir)
    tools.iso_composer.fail_with = "xorriso: no space left on device"

    with pytest.raises(BuildError) as excinfo:
        IsoBridge(tools.iso_composer, out_dir, distro).build(kernel, initramfs, rootfs)

    assert excinfo.value.message == "Creating ISO failed: xorriso: no space left on device"
    assert not (out_dir / "ralphos.iso").exists()
    assert rootfs.read_bytes() == b"filesystem.erofs"
