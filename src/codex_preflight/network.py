from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from codex_preflight.probe import CommandProbe, ProbeOutcome, find_executable
from codex_preflight.report import CheckResult, Status

SOCKET_PROBE_CODE = "import socket; s=socket.socket(); s.close()"
SOCKET_BLOCKED_SIGNATURE = "PermissionError: [Errno 1] Operation not permitted"
SOCKET_TOOLING_MISSING = "missing python3/uv for socket check"

DEFAULT_DNS_HOST = "github.com"

SOCKET_LABEL = "socket() syscall"


@dataclass(frozen=True)
class SocketProbeResult:
    check: CheckResult
    ok: bool


def socket_probe_argv(*, path: str | None = None) -> list[str]:
    """
    Build the socket() probe command.

    `python3` is preferred, then `uv run python`. With neither available the command
    fails with a tooling message instead of a network-looking error.
    """

    if find_executable("python3", path=path) is not None:
        return ["python3", "-c", SOCKET_PROBE_CODE]
    if find_executable("uv", path=path) is not None:
        return ["uv", "run", "python", "-c", SOCKET_PROBE_CODE]
    return ["sh", "-c", f"echo '{SOCKET_TOOLING_MISSING}' >&2; exit 2"]


def is_socket_blocked(output: str) -> bool:
    return SOCKET_BLOCKED_SIGNATURE in output


def evaluate_socket(
    probe: CommandProbe,
    outcome: ProbeOutcome,
    *,
    label: str = SOCKET_LABEL,
    blocked_label: str = f"{SOCKET_LABEL} blocked (likely sandbox network disabled)",
) -> SocketProbeResult:
    if outcome.ok:
        return SocketProbeResult(check=CheckResult(label=label, status=Status.OK), ok=True)
    if is_socket_blocked(outcome.output):
        return SocketProbeResult(
            check=CheckResult(label=blocked_label, status=Status.INFO), ok=False
        )
    return SocketProbeResult(
        check=CheckResult(
            label=f"{label} failed",
            status=Status.WARN,
            detail=probe.failure_detail(outcome.output),
        ),
        ok=False,
    )


def check_socket(
    probe: CommandProbe,
    *,
    argv: Sequence[str],
    prefix: Sequence[str] = (),
    label: str = SOCKET_LABEL,
    blocked_label: str | None = None,
) -> SocketProbeResult:
    outcome = probe.execute([*prefix, *argv])
    if blocked_label is None:
        return evaluate_socket(probe, outcome, label=label)
    return evaluate_socket(probe, outcome, label=label, blocked_label=blocked_label)


def dns_argv(host: str) -> list[str]:
    return ["getent", "hosts", host]


def check_dns(
    probe: CommandProbe, host: str = DEFAULT_DNS_HOST, *, socket_ok: bool
) -> CheckResult:
    if not socket_ok:
        return CheckResult(label=f"dns {host} (socket blocked)", status=Status.SKIP)
    return probe.run(f"dns {host}", dns_argv(host))
