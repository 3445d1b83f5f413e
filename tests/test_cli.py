import io
import json
from collections.abc import Callable
from pathlib import Path

import pytest

from ralphos.backends.inprocess import InProcessTools
from ralphos.cli import EXIT_FAILURE, EXIT_LEGACY_BLOCKED, EXIT_OK, main
from ralphos.config import LEGACY_ENTRYPOINT_ENV

RALPH_RELEASE = "6.19.3-ralph"
ALLOWED = {LEGACY_ENTRYPOINT_ENV: "1"}


def _run(
    argv: list[str],
    tools: InProcessTools,
    environ: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    stdout = io.StringIO()
    stderr = io.StringIO()
    code = main(
        argv,
        environ=ALLOWED if environ is None else environ,
        toolchain=tools.toolchain(),
        stdout=stdout,
        stderr=stderr,
    )
    return code, stdout.getvalue(), stderr.getvalue()


@pytest.fixture
def dirs(base_dir: Path, out_dir: Path) -> list[str]:
    return ["--base-dir", str(base_dir), "--output-dir", str(out_dir)]


def test_legacy_entrypoint_is_blocked_without_opt_in(
    tools: InProcessTools,
    dirs: list[str],
    out_dir: Path,
) -> None:
    code, stdout, stderr = _run([*dirs, "build"], tools, environ={})

    assert code == EXIT_LEGACY_BLOCKED
    assert stdout == ""
    assert "Deprecated entrypoint blocked: 'ralphos'." in stderr
    assert "just build ralph" in stderr
    assert tools.total_calls() == 0
    assert not out_dir.exists()


def test_opt_in_value_does_not_matter(tools: InProcessTools, dirs: list[str]) -> None:
    code, _, _ = _run([*dirs, "status"], tools, environ={LEGACY_ENTRYPOINT_ENV: ""})

    assert code == EXIT_OK


def test_status_prints_report(tools: InProcessTools, dirs: list[str], out_dir: Path) -> None:
    code, stdout, _ = _run([*dirs, "status"], tools)

    assert code == EXIT_OK
    assert stdout.startswith("RalphOS Stage 00 status")
    assert "MISSING" in stdout
    assert not out_dir.exists()


def test_status_json(tools: InProcessTools, dirs: list[str]) -> None:
    code, stdout, _ = _run([*dirs, "status", "--json"], tools)

    assert code == EXIT_OK
    report = json.loads(stdout)
    names = [artifact["name"] for artifact in report["artifacts"]]
    assert names == ["kernel", "vmlinuz", "modules", "rootfs", "overlay", "initramfs", "iso"]
    assert not any(artifact["present"] for artifact in report["artifacts"])


def test_default_command_builds(
    tools: InProcessTools,
    dirs: list[str],
    out_dir: Path,
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel(RALPH_RELEASE + "\n")

    code, _, stderr = _run(dirs, tools)

    assert code == EXIT_OK
    assert (out_dir / "ralphos.iso").is_file()
    assert "[ok] RalphOS Stage 00 ready" in stderr
    assert f"kernel.release: {RALPH_RELEASE}" in stderr


@pytest.mark.parametrize("command", ["build", "iso"])
def test_build_and_iso_are_the_same_operation(
    tools: InProcessTools,
    dirs: list[str],
    out_dir: Path,
    write_kernel: Callable[..., Path],
    command: str,
) -> None:
    write_kernel(RALPH_RELEASE + "\n")

    code, _, _ = _run([*dirs, command], tools)

    assert code == EXIT_OK
    assert (out_dir / "ralphos.iso").is_file()
    assert (out_dir / "initramfs-live.cpio.gz").is_file()


def test_force_flag_rebuilds(
    tools: InProcessTools,
    dirs: list[str],
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel(RALPH_RELEASE + "\n")
    _run([*dirs, "build"], tools)

    code, _, _ = _run([*dirs, "build", "--force"], tools)

    assert code == EXIT_OK
    assert len(tools.iso_composer.calls) == 2
    assert len(tools.rootfs_builder.calls) == 1


def test_failure_prints_cause_chain(
    tools: InProcessTools,
    dirs: list[str],
    write_kernel: Callable[..., Path],
) -> None:
    write_kernel("6.19.3-other\n")

    code, _, stderr = _run([*dirs, "build"], tools)

    assert code == EXIT_FAILURE
    assert "Error: [E_STAGE] Stage 'kernel' failed." in stderr
    assert "Caused by:" in stderr
    assert "expected localversion '-ralph'" in stderr


def test_log_json_written_even_on_failure(
    tools: InProcessTools,
    dirs: list[str],
    tmp_path: Path,
) -> None:
    log_path = tmp_path / "logs" / "build.jsonl"

    code, _, _ = _run([*dirs, "--log-json", str(log_path), "build"], tools)

    assert code == EXIT_FAILURE
    records = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert records[0]["stage"] == "kernel"
    assert records[0]["message"] == "Verify kernel artifacts"
