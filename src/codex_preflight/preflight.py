from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from codex_preflight.codex_config import check_config_linkage, check_config_sanity, config_path
from codex_preflight.context import context_checks, tooling_checks
from codex_preflight.nested import run_nested_probes
from codex_preflight.network import SocketProbeResult, check_dns, check_socket, socket_probe_argv
from codex_preflight.pathing import config_home, temp_dir, uv_cache_dir
from codex_preflight.probe import CommandProbe, find_executable
from codex_preflight.report import CheckResult, Reporter, Status
from codex_preflight.settings import PreflightSettings
from codex_preflight.writable import check_writable

TITLE = "codex-sandbox-preflight"

INTERPRETATION_NOTES: tuple[str, ...] = (
    "In Codex OS sandboxes, socket() can be seccomp-blocked: "
    "PermissionError: [Errno 1] Operation not permitted",
    "Outside the sandbox, socket() can work normally "
    "(host network OK != sandbox network OK)",
    "That usually means sandbox network disabled (not that host DNS is broken); "
    "compare host vs: codex sandbox linux --full-auto",
    "DNS / git / auth failures inside sandbox can be downstream of socket() being blocked",
    "wbg-auth needs writable ~/.config/wbg-auth in the sandbox "
    "(add to sandbox_workspace_write.writable_roots)",
    "Host-only preflights won't catch sandbox-only restrictions; "
    "rely on nested codex sandbox probes",
)


@dataclass(frozen=True)
class PreflightOptions:
    with_network: bool = False
    run_nested: bool = True
    verbose: bool = False


def primary_tool_checks(probe: CommandProbe, *, binary: str = "codex") -> list[CheckResult]:
    """
    The run-critical checks: a failure in any of these makes the run exit 1.

    All three always run, so a missing binary still reports the version and login checks.
    """

    if find_executable(binary) is not None:
        present = CheckResult(label=f"{binary} in PATH", status=Status.OK)
    else:
        present = CheckResult(label=f"{binary} in PATH", status=Status.FAIL)
    return [
        present,
        probe.run(f"{binary} --version", [binary, "--version"]),
        probe.run(f"{binary} login status", [binary, "login", "status"]),
    ]


def filesystem_checks(
    probe: CommandProbe, *, env: Mapping[str, str], cwd: Path
) -> list[CheckResult]:
    tmp = temp_dir(env)
    uv_dir = uv_cache_dir(env)
    cfg_home = config_home(env)
    targets = [
        ("write cwd", cwd),
        (f"write {tmp}", Path(tmp)),
        (f"write UV_CACHE_DIR ({uv_dir})", Path(uv_dir)),
        (f"write {cfg_home}/wbg-auth", Path(cfg_home) / "wbg-auth"),
        (f"write {cfg_home}/io.datasette.llm", Path(cfg_home) / "io.datasette.llm"),
    ]
    return [check_writable(probe, label, directory) for label, directory in targets]


def run_preflight(
    options: PreflightOptions,
    *,
    settings: PreflightSettings | None = None,
    env: Mapping[str, str] | None = None,
    reporter: Reporter | None = None,
    cwd: Path | None = None,
) -> int:
    """
    Run every check in order and return the process exit code.

    Returns 1 when a run-critical check failed, else 0. Advisory failures never change the
    exit code and never stop the run.
    """

    settings = settings or PreflightSettings()
    env = env if env is not None else os.environ
    reporter = reporter or Reporter()
    cwd = cwd or Path.cwd()
    probe = CommandProbe(
        verbose=options.verbose,
        signatures=settings.failure_signatures,
        timeout_seconds=settings.timeout_seconds,
    )
    binary = settings.codex_binary

    reporter.section(TITLE)
    reporter.section("Interpretation notes (generic, high-signal)")
    for note in INTERPRETATION_NOTES:
        reporter.emit(Status.INFO, note)

    reporter.section("Primary tool")
    critical = primary_tool_checks(probe, binary=binary)
    reporter.emit_all(critical)
    critical_fail = any(result.failed for result in critical)

    reporter.section("Context")
    reporter.emit_all(context_checks(probe, env=env, cwd=cwd))

    reporter.section("Tooling")
    reporter.emit_all(tooling_checks(probe, codex_binary=binary))

    reporter.section("Current process checks")
    reporter.emit_all(filesystem_checks(probe, env=env, cwd=cwd))

    socket_argv = socket_probe_argv()
    current_socket: SocketProbeResult = check_socket(probe, argv=socket_argv)
    reporter.emit_result(current_socket.check)
    reporter.emit_result(check_dns(probe, settings.dns_host, socket_ok=current_socket.ok))

    cfg_path = config_path(env)
    reporter.section("Config linkage")
    reporter.emit_result(check_config_linkage(cfg_path))

    reporter.section("Config sanity (sandbox writable_roots)")
    reporter.emit_all(check_config_sanity(cfg_path, env=env))

    if options.run_nested:
        run_nested_probes(
            reporter,
            probe,
            env=env,
            socket_ok=current_socket.ok,
            socket_argv=socket_argv,
            with_network=options.with_network,
            dns_hosts=settings.network_dns_hosts,
            binary=binary,
        )

    return 1 if critical_fail else 0
