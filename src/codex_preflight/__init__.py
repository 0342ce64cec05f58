from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as package_version

from codex_preflight.codex_config import (
    ConfigLoadError,
    SandboxConfigSnapshot,
    check_config_linkage,
    check_config_sanity,
    load_config_snapshot,
)
from codex_preflight.pathing import normalize_root, wanted_writable_roots
from codex_preflight.preflight import PreflightOptions, run_preflight
from codex_preflight.probe import CommandProbe, ProbeOutcome, execute, summarize_error
from codex_preflight.report import CheckResult, Reporter, Status
from codex_preflight.settings import PreflightSettings, SettingsError, load_settings


def _resolve_version() -> str:
    for distribution_name in ("codex-preflight", "codex_preflight"):
        try:
            return package_version(distribution_name)
        except PackageNotFoundError:
            continue
    return "0+unknown"


__version__ = _resolve_version()

__all__ = [
    "__version__",
    "CheckResult",
    "CommandProbe",
    "ConfigLoadError",
    "PreflightOptions",
    "PreflightSettings",
    "ProbeOutcome",
    "Reporter",
    "SandboxConfigSnapshot",
    "SettingsError",
    "Status",
    "check_config_linkage",
    "check_config_sanity",
    "execute",
    "load_config_snapshot",
    "load_settings",
    "normalize_root",
    "run_preflight",
    "summarize_error",
    "wanted_writable_roots",
]
