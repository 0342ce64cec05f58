from __future__ import annotations

import re
import shutil
import subprocess
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from codex_preflight.report import CheckResult, Status

# Substrings that usually mark the "root cause" line of a failing tool. Order does not
# matter; the last matching line wins.
DEFAULT_FAILURE_SIGNATURES: tuple[str, ...] = (
    "PermissionError:",
    "NameResolutionError",
    "Could not resolve host",
    "Operation not permitted",
    "seccomp",
    "landlock",
    "sandbox denied",
    "denied",
)

VERBOSE_TAIL_LINES = 8

EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127
EXIT_TIMED_OUT = 124

_WS_RE = re.compile(r"\s+")
_SECRET_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?i)\b(bearer)\s+[A-Za-z0-9._~+/=-]+"), r"\1 <redacted>"),
    (re.compile(r"\bsk-[A-Za-z0-9_-]{8,}"), "<redacted>"),
    (
        re.compile(
            r"(?i)\b([a-z0-9_]*(?:token|secret|password|passwd|api[_-]?key))"
            r"(\s*[=:]\s*)(\"[^\"]*\"|'[^']*'|\S+)"
        ),
        r"\1\2<redacted>",
    ),
)


@dataclass(frozen=True)
class ProbeOutcome:
    exit_code: int
    # stdout and stderr, interleaved in execution order.
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def find_executable(name: str, *, path: str | None = None) -> str | None:
    if path is not None:
        return shutil.which(name, path=path)
    return shutil.which(name)


def execute(
    argv: Sequence[str],
    *,
    timeout_seconds: float | None = None,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
) -> ProbeOutcome:
    """
    Run `argv` to completion and capture its combined output.

    Launch failures never raise; they are reported with shell-style exit codes
    (127 missing, 126 not executable, 124 timed out) so callers only ever deal with a
    `ProbeOutcome`.
    """

    cmd = [str(part) for part in argv]
    if not cmd:
        return ProbeOutcome(exit_code=EXIT_NOT_FOUND, output="empty command")

    try:
        proc = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout_seconds,
            env=dict(env) if env is not None else None,
            cwd=str(cwd) if cwd is not None else None,
            check=False,
        )
    except FileNotFoundError:
        return ProbeOutcome(exit_code=EXIT_NOT_FOUND, output=f"{cmd[0]}: command not found")
    except subprocess.TimeoutExpired:
        timeout_note = f"{timeout_seconds:g}s" if timeout_seconds is not None else "timeout"
        return ProbeOutcome(
            exit_code=EXIT_TIMED_OUT, output=f"{cmd[0]}: timed out after {timeout_note}"
        )
    except OSError as e:
        return ProbeOutcome(exit_code=EXIT_NOT_EXECUTABLE, output=f"{cmd[0]}: {e}")

    return ProbeOutcome(exit_code=proc.returncode, output=proc.stdout or "")


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def summarize_error(
    output: str, *, signatures: Iterable[str] = DEFAULT_FAILURE_SIGNATURES
) -> str:
    """Pick the most root-cause looking line of `output`, collapsed to one line."""

    lines = [line for line in output.splitlines() if line.strip()]
    if not lines:
        return ""
    needles = [s for s in signatures if isinstance(s, str) and s]
    picked = ""
    for line in lines:
        if any(needle in line for needle in needles):
            picked = line
    if not picked:
        picked = lines[-1]
    return collapse_whitespace(picked)


def tail_detail(output: str, *, lines: int = VERBOSE_TAIL_LINES) -> str:
    tail = output.splitlines()[-lines:] if lines > 0 else []
    return collapse_whitespace(" ".join(tail))


def redact_secrets(text: str) -> str:
    out = text
    for pattern, replacement in _SECRET_PATTERNS:
        out = pattern.sub(replacement, out)
    return out


class CommandProbe:
    """Run external commands and reduce their outcome to a `CheckResult`."""

    def __init__(
        self,
        *,
        verbose: bool = False,
        signatures: Iterable[str] = DEFAULT_FAILURE_SIGNATURES,
        timeout_seconds: float | None = None,
    ) -> None:
        self.verbose = verbose
        self.signatures: tuple[str, ...] = tuple(signatures)
        self.timeout_seconds = timeout_seconds

    def execute(self, argv: Sequence[str]) -> ProbeOutcome:
        return execute(argv, timeout_seconds=self.timeout_seconds)

    def failure_detail(self, output: str) -> str | None:
        if not output.strip():
            return None
        if self.verbose:
            picked = tail_detail(output)
        else:
            picked = summarize_error(output, signatures=self.signatures)
        return redact_secrets(picked) or None

    def evaluate(self, label: str, outcome: ProbeOutcome) -> CheckResult:
        if outcome.ok:
            return CheckResult(label=label, status=Status.OK)
        return CheckResult(
            label=label,
            status=Status.FAIL,
            detail=self.failure_detail(outcome.output),
        )

    def run(self, label: str, argv: Sequence[str]) -> CheckResult:
        return self.evaluate(label, self.execute(argv))
