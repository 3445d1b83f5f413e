"""Command-line entrypoint for the RalphOS Stage 00 builder.

Usage:
    ralphos [build|iso] [--force]
    ralphos status [--json]
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TextIO

from ralphos.backends.base import Toolchain
from ralphos.backends.local_linux import LocalLinuxTools
from ralphos.config import Stage00Config, ensure_legacy_entrypoint_allowed
from ralphos.errors import PolicyError, RalphOSError, format_error_chain
from ralphos.observability import StructuredLogger
from ralphos.orchestrator import StageOrchestrator

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_LEGACY_BLOCKED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ralphos", description="RalphOS Stage 00 builder")
    parser.add_argument("--base-dir", type=Path, help="Distro checkout (deps/, profile/, downloads/)")
    parser.add_argument("--output-dir", type=Path, help="Central output directory")
    parser.add_argument("--log-json", type=Path, help="Write structured log records as JSON lines")

    sub = parser.add_subparsers(dest="command")
    build_p = sub.add_parser(
        "build",
        help="Build Stage 00 artifacts (kernel-verified initramfs + bootable ISO)",
    )
    build_p.add_argument("--force", action="store_true", help="Rebuild initramfs and ISO")
    iso_p = sub.add_parser("iso", help="Build only the ISO path (same as `build` for Stage 00)")
    iso_p.add_argument("--force", action="store_true", help="Rebuild initramfs and ISO")
    status_p = sub.add_parser("status", help="Show Stage 00 artifact status")
    status_p.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.set_defaults(command="build", force=False, json=False)
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    toolchain: Toolchain | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    env = os.environ if environ is None else environ
    out = sys.stdout if stdout is None else stdout
    err = sys.stderr if stderr is None else stderr

    try:
        ensure_legacy_entrypoint_allowed(Stage00Config.from_environ(env))
    except PolicyError as exc:
        print(exc.message, file=err)
        return EXIT_LEGACY_BLOCKED

    args = build_parser().parse_args(argv)
    config = Stage00Config.from_environ(env, base_dir=args.base_dir, output_dir=args.output_dir)
    logger = StructuredLogger(stream=err)
    orchestrator = StageOrchestrator(
        config=config,
        toolchain=toolchain if toolchain is not None else LocalLinuxTools().toolchain(config),
        logger=logger,
    )

    try:
        if args.command == "status":
            report = orchestrator.status()
            if args.json:
                print(json.dumps(report.to_dict(), indent=2), file=out)
            else:
                print(report.render(), file=out)
        else:
            orchestrator.build(force=args.force)
    except RalphOSError as exc:
        print(f"Error: {format_error_chain(exc)}", file=err)
        return EXIT_FAILURE
    finally:
        if args.log_json is not None:
            logger.to_json_lines(args.log_json)
    return EXIT_OK


def run() -> None:
    raise SystemExit(main())
