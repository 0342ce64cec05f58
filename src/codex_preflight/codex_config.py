from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from codex_preflight.pathing import home_dir, normalize_root, wanted_writable_roots
from codex_preflight.report import CheckResult, Status

CONFIG_DISPLAY_PATH = "~/.codex/config.toml"
SANDBOX_TABLE = "sandbox_workspace_write"

_UNSET = "<unset>"


@dataclass(frozen=True)
class SandboxConfigSnapshot:
    model: str | None = None
    approval_presets: str | None = None
    web_search_request: str | None = None
    network_access: bool = False
    writable_roots: frozenset[str] = field(default_factory=frozenset)


class ConfigLoadError(ValueError):
    def __init__(self, message: str, *, kind: str) -> None:
        super().__init__(message)
        self.kind = kind


def config_path(env: Mapping[str, str]) -> Path:
    return Path(home_dir(env)) / ".codex" / "config.toml"


def _optional_text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    return value if isinstance(value, str) else str(value)


def parse_config_snapshot(data: Mapping[str, Any], *, home: str) -> SandboxConfigSnapshot:
    sandbox = data.get(SANDBOX_TABLE)
    if not isinstance(sandbox, dict):
        sandbox = {}

    network_access = sandbox.get("network_access")
    roots = sandbox.get("writable_roots")
    if not isinstance(roots, list):
        roots = []

    return SandboxConfigSnapshot(
        model=_optional_text(data.get("model")),
        approval_presets=_optional_text(data.get("approval_presets")),
        web_search_request=_optional_text(data.get("web_search_request")),
        network_access=network_access if isinstance(network_access, bool) else False,
        writable_roots=frozenset(
            normalize_root(p, home=home) for p in roots if isinstance(p, str)
        ),
    )


def load_config_snapshot(path: Path, *, home: str) -> SandboxConfigSnapshot:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError as e:
        raise ConfigLoadError("config.toml missing", kind="missing") from e
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigLoadError(
            f"failed to parse config.toml: {type(e).__name__}: {e}", kind="parse_error"
        ) from e
    return parse_config_snapshot(data, home=home)


def _render_text(value: str | None) -> str:
    return _UNSET if value is None else value


def check_config_linkage(path: Path) -> CheckResult:
    if not path.exists():
        return CheckResult(label=f"{CONFIG_DISPLAY_PATH} missing", status=Status.WARN)

    if path.is_symlink():
        try:
            target = str(path.resolve(strict=True))
        except (OSError, RuntimeError):
            target = "<unknown>"
        return CheckResult(
            label=f"{CONFIG_DISPLAY_PATH} is symlinked to: {target}", status=Status.OK
        )

    return CheckResult(
        label=(
            f"{CONFIG_DISPLAY_PATH} is a regular file "
            "(if you manage it via symlinks, consider re-linking it)"
        ),
        status=Status.INFO,
    )


def check_config_sanity(path: Path, *, env: Mapping[str, str]) -> list[CheckResult]:
    """
    Report the sandbox-relevant settings of the Codex config and which of the wanted
    writable roots it grants.

    Any problem reading the file yields a single WARN and nothing else.
    """

    if not path.is_file() or not os.access(path, os.R_OK):
        return [
            CheckResult(
                label=f"skipped (need readable {CONFIG_DISPLAY_PATH})", status=Status.WARN
            )
        ]

    home = home_dir(env)
    try:
        snapshot = load_config_snapshot(path, home=home)
    except ConfigLoadError as e:
        return [CheckResult(label=str(e), status=Status.WARN)]

    summary = " ".join(
        [
            f"model={_render_text(snapshot.model)}",
            f"approval_presets={_render_text(snapshot.approval_presets)}",
            f"web_search_request={_render_text(snapshot.web_search_request)}",
            f"sandbox_network_access={str(snapshot.network_access).lower()}",
        ]
    )
    results = [
        CheckResult(label=summary, status=Status.INFO),
        CheckResult(
            label=f"writable_roots_count={len(snapshot.writable_roots)}", status=Status.INFO
        ),
    ]
    for wanted in wanted_writable_roots(env):
        if wanted in snapshot.writable_roots:
            results.append(CheckResult(label=f"has_writable_root={wanted}", status=Status.OK))
        else:
            results.append(
                CheckResult(label=f"missing_writable_root={wanted}", status=Status.WARN)
            )
    return results
