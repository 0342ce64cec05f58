from __future__ import annotations

from typing import Any

from codex_preflight.network import (
    SOCKET_PROBE_CODE,
    SOCKET_TOOLING_MISSING,
    check_dns,
    check_socket,
    evaluate_socket,
    socket_probe_argv,
)
from codex_preflight.probe import CommandProbe, ProbeOutcome
from codex_preflight.report import Status

_BLOCKED = (
    "Traceback (most recent call last):\n"
    '  File "<string>", line 1, in <module>\n'
    "PermissionError: [Errno 1] Operation not permitted\n"
)


def test_socket_probe_argv_prefers_python3(fake_which: Any) -> None:
    fake_which({"python3", "uv"})
    assert socket_probe_argv() == ["python3", "-c", SOCKET_PROBE_CODE]


def test_socket_probe_argv_falls_back_to_uv(fake_which: Any) -> None:
    fake_which({"uv"})
    assert socket_probe_argv() == ["uv", "run", "python", "-c", SOCKET_PROBE_CODE]


def test_socket_probe_argv_reports_missing_tooling(fake_which: Any) -> None:
    fake_which(set())
    argv = socket_probe_argv()
    assert argv[:2] == ["sh", "-c"]
    assert SOCKET_TOOLING_MISSING in argv[2]


def test_evaluate_socket_ok() -> None:
    result = evaluate_socket(CommandProbe(), ProbeOutcome(exit_code=0))
    assert result.ok is True
    assert result.check.status is Status.OK
    assert result.check.label == "socket() syscall"


def test_evaluate_socket_blocked_is_info() -> None:
    result = evaluate_socket(CommandProbe(), ProbeOutcome(exit_code=1, output=_BLOCKED))
    assert result.ok is False
    assert result.check.status is Status.INFO
    assert "blocked" in result.check.label


def test_evaluate_socket_other_failure_is_warn() -> None:
    outcome = ProbeOutcome(exit_code=2, output=SOCKET_TOOLING_MISSING + "\n")
    result = evaluate_socket(CommandProbe(), outcome)
    assert result.ok is False
    assert result.check.status is Status.WARN
    assert result.check.detail == SOCKET_TOOLING_MISSING


def test_check_socket_wraps_prefix(fake_commands: Any) -> None:
    fake_commands.add("import socket", returncode=1, output=_BLOCKED)

    result = check_socket(
        CommandProbe(),
        argv=["python3", "-c", SOCKET_PROBE_CODE],
        prefix=["codex", "sandbox", "linux", "--full-auto", "--"],
        label="sandbox socket() syscall",
        blocked_label="sandbox socket() syscall blocked (expected unless network enabled)",
    )

    assert fake_commands.calls == [
        ["codex", "sandbox", "linux", "--full-auto", "--", "python3", "-c", SOCKET_PROBE_CODE]
    ]
    assert result.check.status is Status.INFO
    assert result.check.label.startswith("sandbox socket() syscall blocked")


def test_check_dns_skipped_when_socket_blocked(fake_commands: Any) -> None:
    result = check_dns(CommandProbe(), "github.com", socket_ok=False)

    assert result.status is Status.SKIP
    assert result.label == "dns github.com (socket blocked)"
    assert fake_commands.calls == []


def test_check_dns_runs_getent(fake_commands: Any) -> None:
    fake_commands.add("getent hosts github.com", returncode=2, output="")

    result = check_dns(CommandProbe(), "github.com", socket_ok=True)

    assert fake_commands.calls == [["getent", "hosts", "github.com"]]
    assert result.status is Status.FAIL
    assert result.label == "dns github.com"
