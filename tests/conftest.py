from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import pytest

import codex_preflight.probe as probe_mod


@dataclass(frozen=True)
class _Proc:
    returncode: int
    stdout: str = ""
    stderr: str = ""


class FakeCommands:
    """Scripted stand-in for `subprocess.run`, matched on the joined argv."""

    def __init__(self) -> None:
        self._rules: list[tuple[str, int, str | BaseException]] = []
        self.calls: list[list[str]] = []

    def add(self, match: str, returncode: int = 0, output: str = "") -> None:
        self._rules.append((match, returncode, output))

    def raise_on(self, match: str, exc: BaseException) -> None:
        self._rules.append((match, -1, exc))

    def ran(self, match: str) -> bool:
        return any(match in " ".join(argv) for argv in self.calls)

    def __call__(self, argv: list[str], **_kwargs: Any) -> _Proc:
        self.calls.append(list(argv))
        joined = " ".join(argv)
        for match, returncode, output in self._rules:
            if match not in joined:
                continue
            if isinstance(output, BaseException):
                raise output
            return _Proc(returncode=returncode, stdout=output)
        return _Proc(returncode=0)


@pytest.fixture
def fake_commands(monkeypatch: pytest.MonkeyPatch) -> FakeCommands:
    fake = FakeCommands()
    monkeypatch.setattr(probe_mod.subprocess, "run", fake)
    return fake


@pytest.fixture
def fake_which(monkeypatch: pytest.MonkeyPatch) -> Callable[[Iterable[str]], None]:
    """Install a `shutil.which` that only finds the given binaries."""

    def _install(present: Iterable[str]) -> None:
        available = set(present)

        def _fake_which(name: str, path: str | None = None) -> str | None:  # noqa: ARG001
            return f"/usr/bin/{name}" if name in available else None

        monkeypatch.setattr(probe_mod.shutil, "which", _fake_which)

    return _install
