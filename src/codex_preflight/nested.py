from __future__ import annotations

import os
from collections.abc import Mapping, Sequence

from codex_preflight.network import (
    DEFAULT_DNS_HOST,
    SOCKET_LABEL,
    check_socket,
    dns_argv,
)
from codex_preflight.pathing import config_home, temp_dir
from codex_preflight.probe import CommandProbe
from codex_preflight.report import CheckResult, Reporter, Status
from codex_preflight.writable import writable_argv

NETWORK_ACCESS_OVERRIDE = "sandbox_workspace_write.network_access=true"
DEFAULT_NETWORK_DNS_HOSTS: tuple[str, ...] = (DEFAULT_DNS_HOST, "login.microsoftonline.com")

SKIPPED_NOTE = (
    "current process blocks socket(); "
    "run this script from a normal shell for nested codex sandbox probes"
)


def sandbox_prefix(binary: str = "codex", *, network: bool = False) -> list[str]:
    prefix = [binary, "sandbox", "linux", "--full-auto"]
    if network:
        prefix.extend(["-c", NETWORK_ACCESS_OVERRIDE])
    prefix.append("--")
    return prefix


def _wrapped(prefix: Sequence[str], argv: Sequence[str]) -> list[str]:
    return [*prefix, *argv]


def nested_checks(
    probe: CommandProbe,
    *,
    env: Mapping[str, str],
    socket_argv: Sequence[str],
    binary: str = "codex",
) -> list[CheckResult]:
    prefix = sandbox_prefix(binary)
    tmp = temp_dir(env)
    auth_dir = os.path.join(config_home(env), "wbg-auth")

    results = [
        probe.run("sandbox write cwd", _wrapped(prefix, writable_argv("."))),
        probe.run(f"sandbox write {tmp}", _wrapped(prefix, writable_argv(tmp))),
    ]
    socket = check_socket(
        probe,
        argv=socket_argv,
        prefix=prefix,
        label=f"sandbox {SOCKET_LABEL}",
        blocked_label=f"sandbox {SOCKET_LABEL} blocked (expected unless network enabled)",
    )
    results.append(socket.check)
    results.append(
        probe.run(f"sandbox write {auth_dir}", _wrapped(prefix, writable_argv(auth_dir)))
    )
    return results


def network_checks(
    probe: CommandProbe,
    *,
    socket_argv: Sequence[str],
    dns_hosts: Sequence[str] = DEFAULT_NETWORK_DNS_HOSTS,
    binary: str = "codex",
) -> list[CheckResult]:
    prefix = sandbox_prefix(binary, network=True)
    results = [probe.run(f"sandbox(net) {SOCKET_LABEL}", _wrapped(prefix, socket_argv))]
    for host in dns_hosts:
        results.append(probe.run(f"sandbox(net) dns {host}", _wrapped(prefix, dns_argv(host))))
    return results


def run_nested_probes(
    reporter: Reporter,
    probe: CommandProbe,
    *,
    env: Mapping[str, str],
    socket_ok: bool,
    socket_argv: Sequence[str],
    with_network: bool = False,
    dns_hosts: Sequence[str] = DEFAULT_NETWORK_DNS_HOSTS,
    binary: str = "codex",
) -> None:
    """
    Re-run the write and socket probes inside `codex sandbox linux --full-auto`.

    An outer seccomp filter also applies to the nested process, so when the current
    process cannot create sockets the nested results would say nothing new and the whole
    battery is skipped.
    """

    if not socket_ok:
        reporter.section("Nested sandbox probes")
        reporter.emit(Status.SKIP, SKIPPED_NOTE)
        return

    reporter.section(f"Nested sandbox probes ({' '.join(sandbox_prefix(binary)[:-1])})")
    reporter.emit_all(nested_checks(probe, env=env, socket_argv=socket_argv, binary=binary))

    if with_network:
        reporter.section("Nested sandbox probes (network enabled)")
        reporter.emit_all(
            network_checks(probe, socket_argv=socket_argv, dns_hosts=dns_hosts, binary=binary)
        )
