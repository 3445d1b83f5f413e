"""Read-only verification of a previously built kernel."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ralphos.distro import RALPH, DistroSpec
from ralphos.errors import (
    EmptyReleaseError,
    MissingArtifactError,
    ValidationError,
    VersionMismatchError,
)
from ralphos.models import KernelArtifacts, OutputLayout


@dataclass(frozen=True, slots=True)
class KernelVerifier:
    """Validates kernel build output under an output directory.

    Shared by ``build`` and ``status`` so both report the same result for the
    same tree. Never writes.
    """

    distro: DistroSpec = RALPH

    def verify(self, out_dir: Path) -> KernelArtifacts:
        layout = OutputLayout(root=Path(out_dir), distro=self.distro)
        release = self.read_release(layout.kernel_release_file)
        self.check_release(release, source=layout.kernel_release_file)

        vmlinuz = layout.vmlinuz
        if not vmlinuz.is_file():
            raise MissingArtifactError(
                f"Missing vmlinuz: {vmlinuz}",
                context={"operation": "verify_kernel", "path": str(vmlinuz)},
            )

        return KernelArtifacts(
            release=release,
            vmlinuz=vmlinuz,
            modules_dir=self.resolve_modules_dir(layout, release),
        )

    def read_release(self, path: Path) -> str:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise MissingArtifactError(
                f"Reading {path} failed.",
                hint="Build the kernel first so kernel.release exists.",
                context={"operation": "verify_kernel", "path": str(path)},
            ) from exc
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValidationError(
                f"kernel.release at {path} is not valid UTF-8",
                hint="Rebuild the kernel; the release file looks corrupt.",
                context={"operation": "verify_kernel", "path": str(path)},
            ) from exc
        return text.rstrip("\r\n")

    def check_release(self, release: str, *, source: Path | None = None) -> None:
        location = f" at {source}" if source is not None else ""
        if not release:
            raise EmptyReleaseError(
                f"kernel.release{location} is empty",
                context={"operation": "verify_kernel"},
            )

        version = self.distro.kernel.version
        if not release.startswith(version):
            raise VersionMismatchError(
                f"kernel.release '{release}' does not start with expected version '{version}'",
                field="version",
                actual=release[: len(version)],
                expected=version,
                context={"release": release},
            )

        localversion = self.distro.kernel.localversion
        if not release.endswith(localversion):
            actual = release[-len(localversion) :]
            raise VersionMismatchError(
                f"kernel.release '{release}' ends with '{actual}', "
                f"expected localversion '{localversion}'",
                field="localversion",
                actual=actual,
                expected=localversion,
                context={"release": release},
            )

    def resolve_modules_dir(self, layout: OutputLayout, release: str) -> Path:
        candidates = layout.module_dir_candidates(release)
        for candidate in candidates:
            if candidate.is_dir():
                return candidate
        raise MissingArtifactError(
            f"Missing modules directory for release '{release}' under "
            "staging/usr/lib/modules or staging/lib/modules",
            context={
                "operation": "verify_kernel",
                "searched_paths": ", ".join(str(c) for c in candidates),
            },
        )
