"""Startup configuration resolved once from the process environment."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ralphos.distro import RALPH, DistroSpec
from ralphos.errors import PolicyError

LEGACY_ENTRYPOINT_ENV = "RALPHOS_ALLOW_LEGACY_ENTRYPOINT"
BUSYBOX_URL_ENV = "BUSYBOX_URL"
BASE_DIR_ENV = "RALPHOS_BASE_DIR"
OUTPUT_DIR_ENV = "RALPHOS_OUTPUT_DIR"

DEFAULT_BUSYBOX_URL = (
    "https://busybox.net/downloads/binaries/1.35.0-x86_64-linux-musl/busybox"
)

LEGACY_ENTRYPOINT_GUIDANCE = (
    "Deprecated entrypoint blocked: 'ralphos'.\n"
    "Use the new Stage 00 endpoint instead:\n"
    "  just build ralph\n"
    "or:\n"
    "  cargo run -p distro-builder --bin distro-builder -- iso build ralph"
)


@dataclass(frozen=True, slots=True)
class Stage00Config:
    base_dir: Path
    output_dir: Path
    busybox_url: str = DEFAULT_BUSYBOX_URL
    allow_legacy_entrypoint: bool = False

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, str],
        *,
        base_dir: str | Path | None = None,
        output_dir: str | Path | None = None,
        distro: DistroSpec = RALPH,
    ) -> Stage00Config:
        if base_dir is None:
            base_dir = environ.get(BASE_DIR_ENV) or Path.cwd()
        resolved_base = Path(base_dir).resolve()
        if output_dir is None:
            output_dir = environ.get(OUTPUT_DIR_ENV) or central_output_dir(
                resolved_base, distro=distro
            )
        return cls(
            base_dir=resolved_base,
            output_dir=Path(output_dir).resolve(),
            busybox_url=environ.get(BUSYBOX_URL_ENV) or DEFAULT_BUSYBOX_URL,
            allow_legacy_entrypoint=LEGACY_ENTRYPOINT_ENV in environ,
        )


def central_output_dir(base_dir: Path, *, distro: DistroSpec = RALPH) -> Path:
    """Return the monorepo-level artifact directory for *distro*."""
    monorepo = base_dir.parent if base_dir.parent != base_dir else base_dir
    return monorepo / ".artifacts" / "out" / distro.id


def ensure_legacy_entrypoint_allowed(config: Stage00Config) -> None:
    if not config.allow_legacy_entrypoint:
        raise PolicyError(
            LEGACY_ENTRYPOINT_GUIDANCE,
            hint=f"Set {LEGACY_ENTRYPOINT_ENV}=1 to run this entrypoint anyway.",
            context={"operation": "entrypoint"},
        )


__all__ = [
    "BASE_DIR_ENV",
    "BUSYBOX_URL_ENV",
    "DEFAULT_BUSYBOX_URL",
    "LEGACY_ENTRYPOINT_ENV",
    "LEGACY_ENTRYPOINT_GUIDANCE",
    "OUTPUT_DIR_ENV",
    "Stage00Config",
    "central_output_dir",
    "ensure_legacy_entrypoint_allowed",
]
