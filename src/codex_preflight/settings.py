from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator

from codex_preflight.network import DEFAULT_DNS_HOST
from codex_preflight.nested import DEFAULT_NETWORK_DNS_HOSTS
from codex_preflight.pathing import config_home
from codex_preflight.probe import DEFAULT_FAILURE_SIGNATURES

SETTINGS_ENV = "CODEX_PREFLIGHT_SETTINGS"
TIMEOUT_ENV = "CODEX_PREFLIGHT_TIMEOUT_SECONDS"
_SETTINGS_VERSION = 1

SETTINGS_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "version": {"const": _SETTINGS_VERSION},
        "failure_signatures": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
        },
        "dns_host": {"type": "string", "minLength": 1},
        "network_dns_hosts": {
            "type": "array",
            "items": {"type": "string", "minLength": 1},
        },
        "timeout_seconds": {"type": ["number", "null"], "exclusiveMinimum": 0},
        "codex_binary": {"type": "string", "minLength": 1},
    },
}


@dataclass(frozen=True)
class PreflightSettings:
    failure_signatures: tuple[str, ...] = DEFAULT_FAILURE_SIGNATURES
    dns_host: str = DEFAULT_DNS_HOST
    network_dns_hosts: tuple[str, ...] = DEFAULT_NETWORK_DNS_HOSTS
    # None keeps external commands unbounded.
    timeout_seconds: float | None = None
    codex_binary: str = "codex"


class SettingsError(ValueError):
    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or []


def default_settings_path(env: Mapping[str, str]) -> Path:
    return Path(config_home(env)) / "codex-preflight" / "settings.yaml"


def validate_settings(data: Any) -> list[str]:
    validator = Draft202012Validator(SETTINGS_SCHEMA)
    errors = sorted(validator.iter_errors(data), key=lambda e: str(e.path))
    formatted: list[str] = []
    for error in errors:
        path = "$"
        for part in error.path:
            path += f"[{part!r}]" if isinstance(part, int) else f".{part}"
        formatted.append(f"{path}: {error.message}")
    return formatted


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise SettingsError(f"Failed to read {path}: {e}", code="unreadable") from e
    except yaml.YAMLError as e:
        raise SettingsError(f"Failed to parse YAML in {path}: {e}", code="parse_error") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise SettingsError(
            f"Expected a YAML mapping in {path}, got {type(raw).__name__}.", code="invalid"
        )
    return raw


def _timeout_from_env(env: Mapping[str, str]) -> float | None:
    raw = env.get(TIMEOUT_ENV)
    if raw is None or not raw.strip():
        return None
    try:
        timeout = float(raw)
    except ValueError as e:
        raise SettingsError(
            f"Invalid {TIMEOUT_ENV}; expected seconds as a number, got {raw!r}.",
            code="invalid",
        ) from e
    if timeout <= 0:
        return None
    return timeout


def settings_from_mapping(
    data: Mapping[str, Any], *, source: str = "<settings>"
) -> PreflightSettings:
    problems = validate_settings(dict(data))
    if problems:
        raise SettingsError(
            f"Invalid settings in {source}:\n" + "\n".join(f"- {p}" for p in problems),
            code="invalid",
            details=problems,
        )

    defaults = PreflightSettings()
    extra = tuple(data.get("failure_signatures") or ())
    signatures = defaults.failure_signatures + tuple(
        s for s in extra if s not in defaults.failure_signatures
    )
    hosts = data.get("network_dns_hosts")
    timeout = data.get("timeout_seconds")
    return PreflightSettings(
        failure_signatures=signatures,
        dns_host=data.get("dns_host", defaults.dns_host),
        network_dns_hosts=tuple(hosts) if hosts is not None else defaults.network_dns_hosts,
        timeout_seconds=float(timeout) if timeout is not None else None,
        codex_binary=data.get("codex_binary", defaults.codex_binary),
    )


def load_settings(path: Path | None = None, *, env: Mapping[str, str]) -> PreflightSettings:
    """
    Resolve settings from (in order) an explicit path, `CODEX_PREFLIGHT_SETTINGS`, or the
    default `${XDG_CONFIG_HOME:-~/.config}/codex-preflight/settings.yaml`.

    Explicitly requested files must exist; the default file is optional.
    `CODEX_PREFLIGHT_TIMEOUT_SECONDS` overrides `timeout_seconds` from the file.
    """

    explicit = path
    if explicit is None:
        from_env = env.get(SETTINGS_ENV)
        if isinstance(from_env, str) and from_env.strip():
            explicit = Path(from_env.strip())

    if explicit is not None:
        if not explicit.is_file():
            raise SettingsError(f"Settings file not found: {explicit}", code="missing")
        settings = settings_from_mapping(_load_yaml_mapping(explicit), source=str(explicit))
    else:
        candidate = default_settings_path(env)
        if candidate.is_file():
            settings = settings_from_mapping(_load_yaml_mapping(candidate), source=str(candidate))
        else:
            settings = PreflightSettings()

    env_timeout = _timeout_from_env(env)
    if env_timeout is None:
        return settings
    return replace(settings, timeout_seconds=env_timeout)
