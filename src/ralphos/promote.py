"""Scratch-then-publish helpers for generated binary artifacts."""

from __future__ import annotations

import os
from pathlib import Path

from ralphos.errors import BuildError


def discard_stale(path: Path) -> None:
    """Remove a leftover file at *path*, if any."""
    if not (path.exists() or path.is_symlink()):
        return
    try:
        path.unlink()
    except OSError as exc:
        raise BuildError(
            f"Removing stale {path} failed.",
            context={"operation": "discard_stale", "path": str(path)},
        ) from exc


def promote(work: Path, final: Path) -> Path:
    """Atomically publish *work* under its canonical name *final*.

    Readers of *final* see either nothing or the complete artifact.
    """
    discard_stale(final)
    try:
        os.replace(work, final)
    except OSError as exc:
        raise BuildError(
            f"Promoting {work} -> {final} failed.",
            context={"operation": "promote", "work": str(work), "final": str(final)},
        ) from exc
    return final
