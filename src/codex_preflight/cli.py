from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from codex_preflight.preflight import PreflightOptions, run_preflight
from codex_preflight.settings import SettingsError, load_settings

_EPILOG = """\
environment:
  CODEX_PREFLIGHT_SETTINGS         path to a YAML settings file
  CODEX_PREFLIGHT_TIMEOUT_SECONDS  per-command timeout (unset: no timeout)

exit status:
  0  codex is installed, reports a version and is logged in
  1  one of those three checks failed (all other checks are advisory)
  2  invalid arguments or settings
"""


def _enable_console_backslashreplace(stream: Any) -> None:
    reconfigure = getattr(stream, "reconfigure", None)
    if not callable(reconfigure):
        return
    try:
        if str(getattr(stream, "errors", "")).lower() == "backslashreplace":
            return
        reconfigure(errors="backslashreplace")
    except Exception:  # noqa: BLE001
        return


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codex-preflight",
        description=(
            "Fast diagnostics for common Codex Linux sandbox surprises "
            "(network + writable paths)."
        ),
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument(
        "--with-network",
        action="store_true",
        help=(
            "Also run a second sandbox pass with "
            "-c sandbox_workspace_write.network_access=true"
        ),
    )
    parser.add_argument(
        "--no-sandbox",
        dest="run_nested",
        action="store_false",
        help="Skip nested `codex sandbox ...` probes (still checks current process)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Print longer error snippets for failing checks",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="YAML settings file (default: $XDG_CONFIG_HOME/codex-preflight/settings.yaml)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    _enable_console_backslashreplace(sys.stdout)
    _enable_console_backslashreplace(sys.stderr)

    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        settings = load_settings(args.settings, env=os.environ)
    except SettingsError as e:
        print(str(e), file=sys.stderr)
        return 2

    options = PreflightOptions(
        with_network=bool(args.with_network),
        run_nested=bool(args.run_nested),
        verbose=bool(args.verbose),
    )
    return run_preflight(options, settings=settings)
