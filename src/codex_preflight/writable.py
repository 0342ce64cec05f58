from __future__ import annotations

import os
from pathlib import Path

from codex_preflight.probe import CommandProbe, ProbeOutcome
from codex_preflight.report import CheckResult

MARKER_PREFIX = ".codex_preflight_write"
NESTED_MARKER_PREFIX = ".codex_sbx_write_test"

# $1 is the target directory; $$ keeps the marker unique per shell process.
_WRITABLE_SCRIPT = (
    'd="$1"; '
    'mkdir -p "$d" >/dev/null 2>&1 || true; '
    't="$d/{prefix}.$$"; '
    ': >"$t" && rm -f -- "$t"'
)


def marker_name(prefix: str = MARKER_PREFIX, *, pid: int | None = None) -> str:
    return f"{prefix}.{pid if pid is not None else os.getpid()}"


def probe_writable(directory: Path, *, prefix: str = MARKER_PREFIX) -> ProbeOutcome:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError:
        # The marker write below is the signal; a failed mkdir shows up there.
        pass

    marker = directory / marker_name(prefix)
    try:
        with marker.open("x", encoding="utf-8"):
            pass
        marker.unlink()
    except OSError as e:
        return ProbeOutcome(exit_code=1, output=f"{type(e).__name__}: {e}")
    return ProbeOutcome(exit_code=0)


def writable_argv(directory: str, *, prefix: str = NESTED_MARKER_PREFIX) -> list[str]:
    return ["sh", "-c", _WRITABLE_SCRIPT.format(prefix=prefix), "sh", directory]


def check_writable(probe: CommandProbe, label: str, directory: Path) -> CheckResult:
    return probe.evaluate(label, probe_writable(directory))
