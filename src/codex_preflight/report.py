from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, TextIO

_DETAIL_INDENT = "     "
_WS_RE = re.compile(r"\s+")


class Status(str, Enum):
    OK = "OK"
    FAIL = "FAIL"
    WARN = "WARN"
    INFO = "INFO"
    SKIP = "SKIP"


@dataclass(frozen=True)
class CheckResult:
    label: str
    status: Status
    detail: str | None = None
    # Print `detail` even when the status is not FAIL/WARN.
    show_detail: bool = False

    @property
    def failed(self) -> bool:
        return self.status is Status.FAIL


def format_status(status: Any) -> str:
    if isinstance(status, Status):
        value = status.value
    elif isinstance(status, str) and status.strip().upper() in Status.__members__:
        value = status.strip().upper()
    else:
        value = "????"
    return f"{value:<4}- "


def _coerce_label(label: Any) -> str:
    if not isinstance(label, str) or not label.strip():
        return "<unknown>"
    return label


class Reporter:
    """
    Line-oriented report writer.

    Every check renders as `<STATUS>- <label>`; FAIL/WARN results (or results that ask for
    it) get one indented detail line underneath. Sections are plain title lines separated by
    a blank line. The reporter never raises on bad input or a broken stream.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._wrote_any = False

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def line(self, text: str = "") -> None:
        try:
            self.stream.write(f"{text}\n")
            self.stream.flush()
        except (OSError, ValueError):
            return
        self._wrote_any = True

    def section(self, title: str) -> None:
        if self._wrote_any:
            self.line()
        self.line(_coerce_label(title))

    def emit(
        self,
        status: Status,
        label: str,
        detail: str | None = None,
        *,
        show_detail: bool = False,
    ) -> None:
        self.line(format_status(status) + _coerce_label(label))
        if not isinstance(detail, str):
            return
        compact = _WS_RE.sub(" ", detail).strip()
        if not compact:
            return
        if show_detail or status in (Status.FAIL, Status.WARN):
            self.line(_DETAIL_INDENT + compact)

    def emit_result(self, result: CheckResult) -> None:
        self.emit(result.status, result.label, result.detail, show_detail=result.show_detail)

    def emit_all(self, results: list[CheckResult]) -> None:
        for result in results:
            self.emit_result(result)
