from __future__ import annotations

import os
import platform
from collections.abc import Mapping
from pathlib import Path

from codex_preflight.probe import CommandProbe, find_executable
from codex_preflight.report import CheckResult, Status

CONTEXT_ENV_KEYS: tuple[str, ...] = (
    "HOME",
    "TMPDIR",
    "UV_CACHE_DIR",
    "XDG_CACHE_HOME",
    "XDG_CONFIG_HOME",
)

# (binary, version argv) pairs checked only when the binary is on PATH.
OPTIONAL_TOOLS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("uv", ("uv", "--version")),
    ("python3", ("python3", "-V")),
    ("git", ("git", "--version")),
    ("bd", ("bd", "version")),
    ("llm", ("llm", "--version")),
)


def _user_name() -> str:
    try:
        import pwd

        return pwd.getpwuid(os.getuid()).pw_name
    except Exception:  # noqa: BLE001
        pass
    try:
        import getpass

        return getpass.getuser()
    except Exception:  # noqa: BLE001
        return "unknown"


def _uid() -> str:
    getuid = getattr(os, "getuid", None)
    if not callable(getuid):
        return "?"
    return str(getuid())


def _physical_cwd(cwd: Path | None = None) -> str:
    try:
        return str((cwd or Path.cwd()).resolve())
    except OSError:
        return os.environ.get("PWD", "?")


def _kernel_release() -> str:
    try:
        return platform.release()
    except Exception:  # noqa: BLE001
        return ""


def is_wsl(env: Mapping[str, str], *, kernel_release: str | None = None) -> bool:
    if env.get("WSL_DISTRO_NAME"):
        return True
    release = kernel_release if kernel_release is not None else _kernel_release()
    return "microsoft" in release.lower()


def render_env(env: Mapping[str, str]) -> str:
    parts: list[str] = []
    for key in CONTEXT_ENV_KEYS:
        value = env.get(key)
        if key == "HOME":
            parts.append(f"HOME={value or ''}")
        else:
            parts.append(f"{key}={value if value else '<unset>'}")
    return "env " + " ".join(parts)


def git_summary(probe: CommandProbe) -> CheckResult | None:
    inside = probe.execute(["git", "rev-parse", "--is-inside-work-tree"])
    if not inside.ok:
        return None
    branch_out = probe.execute(["git", "rev-parse", "--abbrev-ref", "HEAD"])
    branch = branch_out.output.strip() if branch_out.ok else ""
    status_out = probe.execute(["git", "status", "--porcelain"])
    dirty = (
        len([line for line in status_out.output.splitlines() if line.strip()])
        if status_out.ok
        else 0
    )
    return CheckResult(
        label=f"git branch={branch or '?'} dirty_paths={dirty}", status=Status.INFO
    )


def context_checks(
    probe: CommandProbe,
    *,
    env: Mapping[str, str],
    cwd: Path | None = None,
    kernel_release: str | None = None,
) -> list[CheckResult]:
    results = [
        CheckResult(
            label=f"user={_user_name()} uid={_uid()} cwd={_physical_cwd(cwd)}",
            status=Status.INFO,
        )
    ]
    if is_wsl(env, kernel_release=kernel_release):
        distro = env.get("WSL_DISTRO_NAME") or "unknown"
        results.append(CheckResult(label=f"wsl=yes distro={distro}", status=Status.INFO))
    results.append(CheckResult(label=render_env(env), status=Status.INFO))

    git = git_summary(probe)
    if git is not None:
        results.append(git)
    return results


def codex_skills_feature(probe: CommandProbe, *, binary: str = "codex") -> str | None:
    outcome = probe.execute([binary, "features", "list"])
    for line in outcome.output.splitlines():
        if line.startswith("skills"):
            return line.strip()
    return None


def tooling_checks(
    probe: CommandProbe,
    *,
    path: str | None = None,
    codex_binary: str = "codex",
) -> list[CheckResult]:
    results: list[CheckResult] = []
    skills = codex_skills_feature(probe, binary=codex_binary)
    if skills:
        results.append(CheckResult(label=f"codex features: {skills}", status=Status.INFO))

    for binary, argv in OPTIONAL_TOOLS:
        if find_executable(binary, path=path) is None:
            continue
        results.append(probe.run(" ".join(argv), list(argv)))

    if find_executable("wbg-auth", path=path) is not None:
        results.append(CheckResult(label="wbg-auth in PATH", status=Status.OK))
    return results
