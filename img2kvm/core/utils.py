# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/core/utils.py
from __future__ import annotations

import json
import logging
import re
import shlex
import shutil
import subprocess
from typing import Any, List, Optional, Union

from .exceptions import ExternalProcessError, Fatal

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGT]?)(I?)B?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"": 1, "K": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4}


class U:
    @staticmethod
    def die(logger: logging.Logger, msg: str, code: int = 1) -> None:
        logger.error(msg)
        raise Fatal(code, msg)

    @staticmethod
    def which(prog: str) -> Optional[str]:
        return shutil.which(prog)

    @staticmethod
    def json_dump(obj: Any) -> str:
        return json.dumps(obj, indent=2, sort_keys=True, default=str)

    @staticmethod
    def human_bytes(n: Optional[int]) -> str:
        if n is None:
            return "unknown"
        x = float(n)
        for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
            if x < 1024 or unit == "TiB":
                return f"{int(x)} {unit}" if unit == "B" else f"{x:.2f} {unit}"
            x /= 1024
        return f"{n} B"

    @staticmethod
    def human_to_bytes(s: Union[str, int]) -> int:
        """
        "64MiB", "64M", "64mb", "1.5 GiB" and plain "1024" (bytes).
        Units are binary whether or not the "i" is written.
        """
        if isinstance(s, int):
            return s
        m = _SIZE_RE.match(str(s))
        if not m:
            raise ValueError(f"not a size: {s!r}")
        num, unit, _ = m.groups()
        return int(float(num) * _SIZE_UNITS[unit.upper()])

    @staticmethod
    def banner(logger: logging.Logger, title: str) -> None:
        line = "─" * max(10, len(title) + 2)
        logger.info(line)
        logger.info(f" {title}")
        logger.info(line)

    @staticmethod
    def pretty_cmd(cmd: List[Any]) -> str:
        return " ".join(shlex.quote(str(x)) for x in cmd)

    @staticmethod
    def run_cmd(
        logger: logging.Logger,
        cmd: List[Any],
        *,
        capture: bool = False,
    ) -> subprocess.CompletedProcess:
        """
        Run a command to completion (no timeout) and return the result.

        The exit status is left to the caller; spawn failures (missing
        binary, EACCES) propagate as OSError.
        """
        pretty = U.pretty_cmd(cmd)
        logger.debug("Running: %s", pretty)
        try:
            return subprocess.run(
                [str(x) for x in cmd],
                check=False,
                capture_output=capture,
                text=True,
                errors="replace",
            )
        except OSError as e:
            logger.debug("Command could not be started: %s (%s)", pretty, e)
            raise

    @staticmethod
    def run_external(logger: logging.Logger, cmd: List[Any], *, tool: str) -> str:
        """
        Run an external tool to completion and return its captured stdout.

        Raises ExternalProcessError when the binary is missing, cannot be
        spawned, or exits non-zero (captured stderr, else stdout, is kept
        verbatim in `.output`).
        """
        argv = [str(x) for x in cmd]
        if U.which(argv[0]) is None:
            raise ExternalProcessError(
                msg=f"Failed to execute {tool} command: {argv[0]} not found in PATH",
                cmd=argv,
                context={"tool": tool},
            )

        try:
            cp = U.run_cmd(logger, argv, capture=True)
        except OSError as e:
            raise ExternalProcessError(
                msg=f"Failed to execute {tool} command: {e}",
                cause=e,
                cmd=argv,
                context={"tool": tool},
            ) from e

        stdout = cp.stdout or ""
        stderr = cp.stderr or ""
        if cp.returncode != 0:
            raise ExternalProcessError(
                msg=f"{tool} failed (exit {cp.returncode})",
                cmd=argv,
                returncode=cp.returncode,
                output=stderr if stderr.strip() else stdout,
                context={"tool": tool},
            )
        if stderr.strip():
            logger.debug("%s stderr:\n%s", tool, stderr.rstrip())
        return stdout
