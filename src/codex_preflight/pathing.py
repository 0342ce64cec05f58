from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

_HOME_PREFIXES: tuple[str, ...] = ("${HOME}", "$HOME", "~")


def home_dir(env: Mapping[str, str]) -> str:
    home = env.get("HOME")
    if isinstance(home, str) and home:
        return home
    return str(Path.home())


def _env_or(env: Mapping[str, str], key: str, default: str) -> str:
    value = env.get(key)
    return value if isinstance(value, str) and value else default


def config_home(env: Mapping[str, str]) -> str:
    return _env_or(env, "XDG_CONFIG_HOME", os.path.join(home_dir(env), ".config"))


def cache_home(env: Mapping[str, str]) -> str:
    return _env_or(env, "XDG_CACHE_HOME", os.path.join(home_dir(env), ".cache"))


def uv_cache_dir(env: Mapping[str, str]) -> str:
    return _env_or(env, "UV_CACHE_DIR", os.path.join(cache_home(env), "uv"))


def temp_dir(env: Mapping[str, str]) -> str:
    return _env_or(env, "TMPDIR", "/tmp")


def normalize_root(raw: str, *, home: str) -> str:
    """
    Normalize a writable-root entry for comparison.

    A leading `~`, `$HOME` or `${HOME}` is expanded to `home`, then redundant separators
    and `.`/`..` segments are collapsed. The path does not need to exist.
    """

    value = raw
    for prefix in _HOME_PREFIXES:
        if value == prefix or value.startswith(prefix + "/"):
            value = home + value[len(prefix) :]
            break
    return os.path.normpath(value)


def wanted_writable_roots(env: Mapping[str, str]) -> tuple[str, ...]:
    """
    Writable roots a sandboxed session usually needs, in report order.

    1. `wbg-auth` config dir (it opens its log file there on startup)
    2. the `uv` cache
    3. `~/tmp`
    """

    home = home_dir(env)
    wanted = (
        os.path.join(config_home(env), "wbg-auth"),
        uv_cache_dir(env),
        os.path.join(home, "tmp"),
    )
    return tuple(normalize_root(p, home=home) for p in wanted)
