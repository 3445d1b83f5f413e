"""Static build description for the RalphOS Stage 00 image."""

from __future__ import annotations

from dataclasses import dataclass

# Baseline module set for live boot media, in load order.
LIVE_MODULES = (
    "virtio",
    "virtio_ring",
    "virtio_pci",
    "virtio_blk",
    "virtio_scsi",
    "scsi_mod",
    "sd_mod",
    "cdrom",
    "sr_mod",
    "isofs",
    "loop",
    "erofs",
    "overlay",
    "nvme-core",
    "nvme",
    "libahci",
    "ahci",
    "usb-storage",
    "uas",
)

# Stage 00 targets QEMU boot parity; its kernel config may omit NVMe.
RALPH_EXCLUDED_MODULES = frozenset({"nvme-core", "nvme"})


@dataclass(frozen=True, slots=True)
class KernelSource:
    version: str
    localversion: str


@dataclass(frozen=True, slots=True)
class RecipeSpec:
    filename: str
    description: str
    step: str


@dataclass(frozen=True, slots=True)
class DistroSpec:
    id: str
    os_name: str
    os_version: str
    kernel: KernelSource
    iso_label: str
    iso_filename: str
    rootfs_name: str
    initramfs_output: str
    rootfs_iso_path: str
    live_overlay_iso_path: str
    boot_device_probe_order: tuple[str, ...]
    cpio_gzip_level: int
    live_modules: tuple[str, ...] = LIVE_MODULES
    excluded_modules: frozenset[str] = frozenset()
    recipes: tuple[RecipeSpec, ...] = ()


RALPH = DistroSpec(
    id="ralph",
    os_name="RalphOS",
    os_version="0.0",
    kernel=KernelSource(version="6.19.3", localversion="-ralph"),
    iso_label="RALPHOS",
    iso_filename="ralphos.iso",
    rootfs_name="filesystem.erofs",
    initramfs_output="initramfs-live.cpio.gz",
    rootfs_iso_path="/live/filesystem.erofs",
    live_overlay_iso_path="/live/overlay",
    boot_device_probe_order=("/dev/sr0", "/dev/sr1", "/dev/vda", "/dev/sda"),
    cpio_gzip_level=6,
    excluded_modules=RALPH_EXCLUDED_MODULES,
    recipes=(
        RecipeSpec(
            filename="rocky.rhai",
            description="Rocky base rootfs",
            step="Resolve Rocky base rootfs for RalphOS",
        ),
        RecipeSpec(
            filename="packages.rhai",
            description="supplementary packages",
            step="Extract supplementary packages for RalphOS",
        ),
        RecipeSpec(
            filename="epel.rhai",
            description="EPEL packages",
            step="Extract EPEL packages for RalphOS",
        ),
    ),
)


__all__ = [
    "LIVE_MODULES",
    "RALPH",
    "RALPH_EXCLUDED_MODULES",
    "DistroSpec",
    "KernelSource",
    "RecipeSpec",
]
