from collections.abc import Callable
from pathlib import Path

import pytest

from ralphos.distro import DistroSpec
from ralphos.errors import (
    EmptyReleaseError,
    ErrorCode,
    MissingArtifactError,
    ValidationError,
    VersionMismatchError,
)
from ralphos.kernel import KernelVerifier


def test_verify_accepts_release_with_expected_tokens(
    distro: DistroSpec,
    out_dir: Path,
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel("5.14.0-xyz\n")

    kernel = KernelVerifier(distro=distro).verify(out_dir)

    assert kernel.release == "5.14.0-xyz"
    assert kernel.vmlinuz == out_dir / "staging" / "boot" / "vmlinuz"
    assert kernel.modules_dir == out_dir / "staging" / "usr" / "lib" / "modules" / "5.14.0-xyz"


def test_verify_rejects_wrong_localversion_naming_actual_and_expected(
    distro: DistroSpec,
    out_dir: Path,
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel("5.14.0-abc\n")

    with pytest.raises(VersionMismatchError) as excinfo:
        KernelVerifier(distro=distro).verify(out_dir)

    error = excinfo.value
    assert error.field == "localversion"
    assert error.actual == "-abc"
    assert error.expected == "-xyz"
    assert "-abc" in str(error)
    assert "-xyz" in str(error)
    assert error.code == ErrorCode.VALIDATION.value


def test_verify_rejects_wrong_version_with_matching_localversion(
    distro: DistroSpec,
    out_dir: Path,
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel("5.15.2-xyz\n")

    with pytest.raises(VersionMismatchError) as excinfo:
        KernelVerifier(distro=distro).verify(out_dir)

    assert excinfo.value.field == "version"
    assert excinfo.value.actual == "5.15.2"
    assert excinfo.value.expected == "5.14.0"


@pytest.mark.parametrize("content", ["", "\n", "\r\n\n"])
def test_verify_rejects_empty_release(
    distro: DistroSpec,
    out_dir: Path,
    write_kernel: Callable[..., Path],
    content: str,
) -> None:
    write_kernel(content)

    with pytest.raises(EmptyReleaseError) as excinfo:
        KernelVerifier(distro=distro).verify(out_dir)

    assert isinstance(excinfo.value, ValidationError)
    assert "is empty" in str(excinfo.value)


@pytest.mark.parametrize(
    ("release", "accepted"),
    [
        ("5.14.0-xyz", True),
        ("5.14.0-rc1-xyz", True),
        ("5.14.0-abc", False),
        ("4.19.0-xyz", False),
        ("", False),
    ],
)
def test_check_release_matrix(distro: DistroSpec, release: str, accepted: bool) -> None:
    verifier = KernelVerifier(distro=distro)
    if accepted:
        verifier.check_release(release)
    else:
        with pytest.raises(ValidationError):
            verifier.check_release(release)


def test_verify_strips_only_trailing_line_endings(
    distro: DistroSpec,
    out_dir: Path,
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel("5.14.0-xyz\r\n")
    assert KernelVerifier(distro=distro).verify(out_dir).release == "5.14.0-xyz"

    write_kernel("5.14.0-xyz \n")
    with pytest.raises(VersionMismatchError):
        KernelVerifier(distro=distro).verify(out_dir)


def test_verify_fails_when_release_file_missing(distro: DistroSpec, out_dir: Path) -> None:
    with pytest.raises(MissingArtifactError) as excinfo:
        KernelVerifier(distro=distro).verify(out_dir)

    assert "kernel.release" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, OSError)


def test_verify_fails_when_vmlinuz_missing(
    distro: DistroSpec,
    out_dir: Path,
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel(vmlinuz=False)

    with pytest.raises(MissingArtifactError) as excinfo:
        KernelVerifier(distro=distro).verify(out_dir)

    assert "vmlinuz" in str(excinfo.value)


def test_modules_dir_prefers_usr_convention_when_both_exist(
    distro: DistroSpec,
    out_dir: Path,
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel(modules=("lib", "usr"))

    kernel = KernelVerifier(distro=distro).verify(out_dir)

    assert kernel.modules_dir == out_dir / "staging" / "usr" / "lib" / "modules" / "5.14.0-xyz"


def test_modules_dir_falls_back_to_lib_convention(
    distro: DistroSpec,
    out_dir: Path,
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel(modules=("lib",))

    kernel = KernelVerifier(distro=distro).verify(out_dir)

    assert kernel.modules_dir == out_dir / "staging" / "lib" / "modules" / "5.14.0-xyz"


def test_modules_dir_missing_in_both_conventions(
    distro: DistroSpec,
    out_dir: Path,
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel(modules=())

    with pytest.raises(MissingArtifactError) as excinfo:
        KernelVerifier(distro=distro).verify(out_dir)

    assert "5.14.0-xyz" in str(excinfo.value)
    assert "staging/usr/lib/modules" in excinfo.value.context["searched_paths"]


def test_modules_dir_for_other_release_does_not_count(
    distro: DistroSpec,
    out_dir: Path,
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel(modules=())
    (out_dir / "staging" / "usr" / "lib" / "modules" / "5.14.0-old-xyz").mkdir(parents=True)

    with pytest.raises(MissingArtifactError):
        KernelVerifier(distro=distro).verify(out_dir)


def test_verify_rejects_undecodable_release_file(
    distro: DistroSpec,
    out_dir: Path,
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel()
    release_file = out_dir / "kernel-build" / "include" / "config" / "kernel.release"
    release_file.write_bytes(b"\xff\xfe5.14.0-xyz\n")

    with pytest.raises(ValidationError) as excinfo:
        KernelVerifier(distro=distro).verify(out_dir)

    assert "not valid UTF-8" in excinfo.value.message
    assert excinfo.value.context["path"] == str(release_file)
    assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)
