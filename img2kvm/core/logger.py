# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/core/logger.py
"""
Console and file logging for img2kvm.

Human output is one line per record: time, emoji, level, message and any
`ctx` key/values. `--json-logs` switches every handler to NDJSON.
"""
from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from termcolor import colored as _colored

# Below DEBUG; enabled with -vvv. Shows decoder/context decisions.
TRACE = 5
if not hasattr(logging, "TRACE"):
    logging.TRACE = TRACE  # type: ignore[attr-defined]
    logging.addLevelName(TRACE, "TRACE")


def _logger_trace(self: logging.Logger, msg: str, *args, **kwargs) -> None:
    if self.isEnabledFor(TRACE):
        self._log(TRACE, msg, args, **kwargs)


if not hasattr(logging.Logger, "trace"):
    logging.Logger.trace = _logger_trace  # type: ignore[attr-defined]

# levelname -> (emoji, termcolor color)
_LEVELS = {
    "TRACE": ("🧬", "cyan"),
    "DEBUG": ("🔍", "blue"),
    "INFO": ("✅", "green"),
    "WARNING": ("⚠️", "yellow"),
    "ERROR": ("💥", "red"),
    "CRITICAL": ("🧨", "red"),
}


def is_tty(stream=None) -> bool:
    """True if `stream` (default: stderr) is an interactive terminal."""
    stream = sys.stderr if stream is None else stream
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        # closed stream
        return False


def _emoji_ok(stream=None) -> bool:
    enc = getattr(stream or sys.stderr, "encoding", None) or "utf-8"
    try:
        "✅".encode(enc)
    except (UnicodeEncodeError, LookupError):
        return False
    return True


def c(
    text: str,
    color: Optional[str] = None,
    attrs: Optional[List[str]] = None,
    *,
    enable: bool = True,
) -> str:
    """Colorize text with termcolor unless disabled."""
    if not enable or not color:
        return text
    return _colored(text, color=color, attrs=attrs or [])


def _one_line(v: Any, limit: int = 240) -> str:
    s = str(v).replace("\r", "\\r").replace("\n", "\\n")
    return s if len(s) <= limit else s[: limit - 1] + "…"


def _ctx_suffix(ctx: Optional[Mapping[str, Any]]) -> str:
    if not ctx:
        return ""
    return " " + " ".join(f"{k}={_one_line(ctx[k])}" for k in sorted(ctx, key=str))


@dataclass
class LogStyle:
    color: bool = True
    emoji: bool = True
    millis: bool = False
    source: bool = False  # module:line
    pid: bool = False
    utc: bool = False


class EmojiFormatter(logging.Formatter):
    def __init__(self, style: LogStyle):
        super().__init__()
        self._style = style

    def _stamp(self, created: float) -> str:
        tz = _dt.timezone.utc if self._style.utc else None
        dt = _dt.datetime.fromtimestamp(created, tz=tz)
        return dt.strftime("%H:%M:%S.%f")[:-3] if self._style.millis else dt.strftime("%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        emoji, color = _LEVELS.get(record.levelname, ("•", None))
        if not self._style.emoji:
            emoji = "·"
        colorize = self._style.color and is_tty()

        level = c(f"{record.levelname:<8}", color, enable=colorize)
        msg = record.getMessage()
        if record.levelno >= logging.WARNING:
            msg = c(msg, color, ["bold"], enable=colorize)

        where = []
        if self._style.pid:
            where.append(f"pid={os.getpid()}")
        if self._style.source:
            where.append(f"{record.module}:{record.lineno}")
        where_s = f" [{' '.join(where)}]" if where else ""

        line = f"{self._stamp(record.created)} {emoji} {level}{where_s} {msg}{_ctx_suffix(getattr(record, 'ctx', None))}"
        if record.exc_info:
            tb = "\n".join("  " + ln for ln in self.formatException(record.exc_info).splitlines())
            line += "\n" + c(tb, "red", enable=colorize)
        return line


class JsonFormatter(logging.Formatter):
    """NDJSON: one object per record, for CI and log shipping."""

    def __init__(self, *, utc: bool = True):
        super().__init__()
        self._tz = _dt.timezone.utc if utc else None

    def format(self, record: logging.LogRecord) -> str:
        obj: Dict[str, Any] = {
            "ts": _dt.datetime.fromtimestamp(record.created, tz=self._tz).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": os.getpid(),
            "module": record.module,
            "lineno": record.lineno,
        }
        ctx = getattr(record, "ctx", None)
        if ctx:
            obj["ctx"] = {str(k): _one_line(v) for k, v in dict(ctx).items()}
        # Img2KvmError.to_dict() from the top-level handler
        err = getattr(record, "error", None)
        if err:
            obj["error"] = err
        if record.exc_info:
            obj["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else "Exception"
            obj["traceback"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False, default=str)


class Log:
    @staticmethod
    def _level_from_flags(verbose: int, quiet: int) -> int:
        """
        default / -v: INFO, -vv: DEBUG, -vvv: TRACE
        -q: WARNING, -qq: ERROR (quiet wins over verbose)
        """
        if quiet:
            return logging.ERROR if quiet >= 2 else logging.WARNING
        if verbose >= 3:
            return TRACE
        if verbose >= 2:
            return logging.DEBUG
        return logging.INFO

    @staticmethod
    def step(logger: logging.Logger, msg: str, **ctx: Any) -> None:
        """Pipeline phase marker: `--- <msg>`."""
        logger.info("--- %s", msg, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def trace(logger: logging.Logger, msg: str, *args: Any, **ctx: Any) -> None:
        if ctx:
            logger.trace(msg, *args, extra={"ctx": ctx})  # type: ignore[attr-defined]
        else:
            logger.trace(msg, *args)  # type: ignore[attr-defined]

    @staticmethod
    def setup(
        verbose: int = 0,
        log_file: Optional[str] = None,
        *,
        quiet: int = 0,
        color: Optional[bool] = None,
        utc: bool = False,
        logger_name: str = "img2kvm",
        json_logs: bool = False,
    ) -> logging.Logger:
        """
        Configure and return the project logger (idempotent: old handlers are replaced).

        log_file adds a plain-text (or NDJSON) file handler with millisecond
        timestamps, pid and source location.
        """
        logger = logging.getLogger(logger_name)
        logger.propagate = False
        level = Log._level_from_flags(verbose, quiet)
        logger.setLevel(level)

        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()

        def fmt(style: LogStyle) -> logging.Formatter:
            return JsonFormatter(utc=utc) if json_logs else EmojiFormatter(style)

        console = logging.StreamHandler(stream=sys.stderr)
        console.setLevel(level)
        console.setFormatter(
            fmt(
                LogStyle(
                    color=True if color is None else bool(color),
                    emoji=_emoji_ok(),
                    millis=verbose >= 3,
                    source=verbose >= 3,
                    pid=verbose >= 2,
                    utc=utc,
                )
            )
        )
        logger.addHandler(console)

        if log_file:
            fp = Path(log_file).expanduser().resolve()
            fp.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(fp, encoding="utf-8")
            fh.setLevel(level)
            fh.setFormatter(fmt(LogStyle(color=False, millis=True, source=True, pid=True, utc=utc)))
            logger.addHandler(fh)

        logger.debug("Logger initialized (level=%s)", logging.getLevelName(level))
        Log.trace(logger, "TRACE enabled (verbose >= 3)")
        return logger
