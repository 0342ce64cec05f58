from __future__ import annotations

import io
from typing import Any

from codex_preflight.nested import (
    NETWORK_ACCESS_OVERRIDE,
    network_checks,
    run_nested_probes,
    sandbox_prefix,
)
from codex_preflight.network import SOCKET_PROBE_CODE
from codex_preflight.probe import CommandProbe
from codex_preflight.report import Reporter, Status

_SOCKET_ARGV = ["python3", "-c", SOCKET_PROBE_CODE]
_ENV = {"HOME": "/home/u", "TMPDIR": "/tmp"}


def _run(fake_commands: Any, *, socket_ok: bool, with_network: bool = False) -> list[str]:
    buf = io.StringIO()
    run_nested_probes(
        Reporter(buf),
        CommandProbe(),
        env=_ENV,
        socket_ok=socket_ok,
        socket_argv=_SOCKET_ARGV,
        with_network=with_network,
    )
    return buf.getvalue().splitlines()


def test_sandbox_prefix() -> None:
    assert sandbox_prefix() == ["codex", "sandbox", "linux", "--full-auto", "--"]
    assert sandbox_prefix(network=True) == [
        "codex",
        "sandbox",
        "linux",
        "--full-auto",
        "-c",
        NETWORK_ACCESS_OVERRIDE,
        "--",
    ]


def test_skipped_when_current_socket_blocked(fake_commands: Any) -> None:
    lines = _run(fake_commands, socket_ok=False, with_network=True)

    assert lines[0] == "Nested sandbox probes"
    assert len(lines) == 2
    assert lines[1].startswith("SKIP- current process blocks socket()")
    assert fake_commands.calls == []


def test_nested_probes_run_inside_codex_sandbox(fake_commands: Any) -> None:
    fake_commands.add(
        "import socket",
        returncode=1,
        output="PermissionError: [Errno 1] Operation not permitted\n",
    )
    fake_commands.add(
        "/home/u/.config/wbg-auth",
        returncode=1,
        output="sh: 1: cannot create /home/u/.config/wbg-auth/x: Permission denied\n",
    )

    lines = _run(fake_commands, socket_ok=True)

    assert lines[0] == "Nested sandbox probes (codex sandbox linux --full-auto)"
    assert lines[1:] == [
        "OK  - sandbox write cwd",
        "OK  - sandbox write /tmp",
        "INFO- sandbox socket() syscall blocked (expected unless network enabled)",
        "FAIL- sandbox write /home/u/.config/wbg-auth",
        "     sh: 1: cannot create /home/u/.config/wbg-auth/x: Permission denied",
    ]
    assert all(call[:5] == sandbox_prefix() for call in fake_commands.calls)
    assert not any("network_access" in " ".join(call) for call in fake_commands.calls)


def test_with_network_adds_second_pass(fake_commands: Any) -> None:
    fake_commands.add("getent hosts login.microsoftonline.com", returncode=2)

    lines = _run(fake_commands, socket_ok=True, with_network=True)

    start = lines.index("Nested sandbox probes (network enabled)")
    assert lines[start + 1 :] == [
        "OK  - sandbox(net) socket() syscall",
        "OK  - sandbox(net) dns github.com",
        "FAIL- sandbox(net) dns login.microsoftonline.com",
    ]
    assert fake_commands.ran(NETWORK_ACCESS_OVERRIDE)


def test_network_checks_custom_hosts(fake_commands: Any) -> None:
    results = network_checks(CommandProbe(), socket_argv=_SOCKET_ARGV, dns_hosts=["example.org"])

    assert [r.label for r in results] == [
        "sandbox(net) socket() syscall",
        "sandbox(net) dns example.org",
    ]
    assert all(r.status is Status.OK for r in results)
    assert fake_commands.calls[-1][-3:] == ["getent", "hosts", "example.org"]
