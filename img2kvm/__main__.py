# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/__main__.py
from __future__ import annotations

import sys
import traceback
from typing import Optional, Sequence

from .cli.argument_parser import parse_args_with_config
from .core.exceptions import Fatal, format_exception_for_cli
from .orchestrator.orchestrator import Orchestrator


def _print_stderr(msg: str) -> None:
    print(msg, file=sys.stderr)


def _safe_log(logger, level: str, msg: str, **kw) -> None:
    """
    Log through `logger` if we have one, else fall back to stderr.
    """
    if logger is None:
        _print_stderr(msg)
        return

    fn = getattr(logger, level, None)
    if callable(fn):
        fn(msg, **kw)
    else:
        _print_stderr(msg)


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse, run the pipeline and map the outcome to an exit code."""
    logger: Optional[object] = None

    # Phase 1: parse (Fatal can happen here, e.g. unreadable config)
    try:
        args, _conf, logger = parse_args_with_config(argv)
    except Fatal as e:
        # Config loader already logged through U.die when it had a logger.
        if logger is None:
            _print_stderr(f"💥 ERROR    {e}")
        return e.code
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        return 130

    verbose = int(getattr(args, "verbose", 0) or 0)

    # Phase 2: run pipeline
    try:
        Orchestrator(logger, args).run()
        rc = 0
    except Fatal as e:
        _safe_log(
            logger,
            "error",
            f"Error: {format_exception_for_cli(e, verbose=verbose)}",
            extra={"error": e.to_dict(include_cause=verbose >= 2)},
        )
        rc = e.code
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        rc = 130
    except Exception as e:
        # Unexpected exceptions must not fail silently.
        _safe_log(logger, "error", f"💥 UNHANDLED {type(e).__name__}: {e}")
        _safe_log(logger, "debug", traceback.format_exc())
        rc = 1

    return rc


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
