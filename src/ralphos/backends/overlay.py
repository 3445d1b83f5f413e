"""Native generator for the systemd live-overlay scaffold.

The overlay is a small ``/etc`` tree layered over the read-only rootfs at
boot. It is staged in ``live-overlay.work`` and renamed into place so a
partially written overlay never appears under its canonical name.
"""

from __future__ import annotations

import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

from ralphos.backends.base import ToolResult
from ralphos.models import LiveOverlayConfig, OutputLayout

UNIT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9@_:-][A-Za-z0-9@_.:-]*$")

SERIAL_TEST_PROFILE = """\
# Serial console test profile: quiet, predictable shell on ttyS0.
if [ "$(tty 2>/dev/null)" = "/dev/ttyS0" ]; then
    export TERM=vt100
    export PS1='# '
    stty cols 200 rows 50 2>/dev/null || true
    echo "___SHELL_READY___"
fi
"""

UTF8_LOCALE_PROFILE = """\
# Enforce a UTF-8 locale for interactive shells.
case "${LANG:-}" in
    *.UTF-8|*.utf8) ;;
    *) export LANG=C.UTF-8 ;;
esac
export LC_ALL="${LC_ALL:-$LANG}"
"""


@dataclass(slots=True)
class SystemdLiveOverlayGenerator:
    name: str = "systemd_live_overlay"

    def create(self, out_dir: Path, config: LiveOverlayConfig) -> ToolResult:
        final = Path(out_dir) / "live-overlay"
        work = OutputLayout.work_path(final)

        for unit in config.masked_units:
            if not unit or not UNIT_NAME_PATTERN.match(unit):
                return ToolResult.failure(
                    "create_live_overlay",
                    detail=f"Invalid systemd unit name to mask: {unit!r}",
                )

        try:
            if work.exists():
                shutil.rmtree(work)
            self._write_tree(work, config)
            if final.exists():
                shutil.rmtree(final)
            os.replace(work, final)
        except OSError as exc:
            return ToolResult.failure("create_live_overlay", detail=str(exc))
        return ToolResult.success("create_live_overlay")

    def _write_tree(self, root: Path, config: LiveOverlayConfig) -> None:
        etc = root / "etc"
        etc.mkdir(parents=True)

        issue = config.issue_message
        if issue is None:
            issue = f"{config.os_name} \\r (\\l)\n"
        (etc / "issue").write_text(_with_newline(issue), encoding="utf-8")

        if config.masked_units:
            units_dir = etc / "systemd" / "system"
            units_dir.mkdir(parents=True)
            for unit in sorted(set(config.masked_units)):
                (units_dir / unit).symlink_to("/dev/null")

        profile_d = etc / "profile.d"
        if config.write_serial_test_profile:
            profile_d.mkdir(parents=True, exist_ok=True)
            (profile_d / "00-serial-test.sh").write_text(SERIAL_TEST_PROFILE, encoding="utf-8")

        if config.machine_id is not None:
            (etc / "machine-id").write_text(_with_newline(config.machine_id), encoding="utf-8")

        if config.enforce_utf8_locale_profile:
            (etc / "locale.conf").write_text("LANG=C.UTF-8\n", encoding="utf-8")
            profile_d.mkdir(parents=True, exist_ok=True)
            (profile_d / "00-utf8-locale.sh").write_text(UTF8_LOCALE_PROFILE, encoding="utf-8")


def _with_newline(text: str) -> str:
    return text if text.endswith("\n") else text + "\n"
