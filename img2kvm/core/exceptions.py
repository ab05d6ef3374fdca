# SPDX-License-Identifier: LGPL-3.0-or-later
# img2kvm/core/exceptions.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _safe_int(x: Any, default: int = 1) -> int:
    try:
        return int(x)
    except (TypeError, ValueError):
        return default


def _clamp_exit_code(code: int) -> int:
    # Exit codes are 0..255; anything else collapses to a generic failure.
    if code < 0:
        return 1
    if code > 255:
        return 255
    return code


def _one_line(s: str, limit: int = 600) -> str:
    s = (s or "").strip().replace("\r", " ").replace("\n", " ")
    s = " ".join(s.split())
    return s if len(s) <= limit else (s[: limit - 3] + "...")


def _format_context_compact(ctx: Dict[str, Any]) -> str:
    # Stable order, single line; "phase" is rendered as a prefix instead.
    parts = []
    for k in sorted(ctx.keys()):
        if k == "phase":
            continue
        parts.append(f"{k}={ctx.get(k)!r}")
    return ", ".join(parts)


@dataclass(eq=False)
class Img2KvmError(Exception):
    """
    Base project error with:
      - stable fields for reporting/JSON
      - readable __str__ (what users see)
      - an exit code the top-level main() honors
    """
    code: int = 1
    msg: str = "error"
    cause: Optional[BaseException] = None
    context: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        self.code = _clamp_exit_code(_safe_int(self.code, default=1))
        self.msg = _one_line(self.msg) or self.__class__.__name__
        if self.context is None:
            self.context = {}
        super().__init__(self.msg)
        self.args = (self.msg,)

    @property
    def phase(self) -> Optional[str]:
        return (self.context or {}).get("phase")

    def with_context(self, **ctx: Any) -> "Img2KvmError":
        if self.context is None:
            self.context = {}
        self.context.update(ctx)
        return self

    def user_message(self, *, include_context: bool = False, include_cause: bool = False) -> str:
        """
        Human-friendly message for CLI output/logs.

        The failing phase, when known, is prefixed: "decompress: Failed to ...".
        """
        base = self.msg or self.__class__.__name__
        parts = [f"{self.phase}: {base}" if self.phase else base]

        if include_context and self.context:
            compact = _format_context_compact(self.context)
            if compact:
                parts.append(f"[{_one_line(compact)}]")

        if include_cause and self.cause is not None:
            parts.append(f"(cause: {type(self.cause).__name__}: {_one_line(str(self.cause))})")

        return " ".join(parts)

    def __str__(self) -> str:
        return self.user_message(include_context=False, include_cause=False)

    def to_dict(self, *, include_cause: bool = False) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "code": self.code,
            "message": self.msg,
            "context": dict(self.context or {}),
        }
        if include_cause and self.cause is not None:
            d["cause"] = {"type": type(self.cause).__name__, "message": _one_line(str(self.cause))}
        return d


class Fatal(Img2KvmError):
    """
    User-facing fatal error (exit code is honored by top-level main()).
    """
    pass


@dataclass(eq=False)
class UnsupportedFormat(Fatal):
    """File extension is missing or not one of the handled kinds."""
    code: int = 2
    msg: str = "Unsupported file extension"


@dataclass(eq=False)
class FileIoError(Fatal):
    """Open/read/create/write/remove failure; the message names the path."""
    code: int = 3
    msg: str = "I/O error"


@dataclass(eq=False)
class DecodeError(Fatal):
    """Corrupt or truncated compressed stream, empty archive, bad decoder config."""
    code: int = 4
    msg: str = "Failed to decode compressed stream"


@dataclass(eq=False)
class PathError(Fatal):
    """A usable file name (stem) could not be derived from a path."""
    code: int = 5
    msg: str = "Invalid path"


@dataclass(eq=False)
class ExternalProcessError(Fatal):
    """
    An external tool could not be spawned or exited non-zero.

    `output` holds the captured diagnostic text and is surfaced verbatim
    (multi-line) rather than squashed into `msg`.
    """
    code: int = 6
    msg: str = "External command failed"
    cmd: List[str] = field(default_factory=list)
    returncode: Optional[int] = None
    output: str = ""

    def user_message(self, *, include_context: bool = False, include_cause: bool = False) -> str:
        base = super().user_message(include_context=include_context, include_cause=include_cause)
        out = (self.output or "").rstrip()
        return f"{base}: {out}" if out else base

    def to_dict(self, *, include_cause: bool = False) -> Dict[str, Any]:
        d = super().to_dict(include_cause=include_cause)
        d.update({"cmd": list(self.cmd), "returncode": self.returncode, "output": self.output})
        return d


def format_exception_for_cli(e: BaseException, *, verbose: int = 0) -> str:
    """
    One-liner output for CLI.

    verbose=0: just message
    verbose=1: message + compact context (if any)
    verbose>=2: message + context + cause
    """
    if isinstance(e, Img2KvmError):
        return e.user_message(
            include_context=(verbose >= 1),
            include_cause=(verbose >= 2),
        )

    if verbose >= 2:
        return f"{type(e).__name__}: {_one_line(str(e))}"
    return _one_line(str(e)) or type(e).__name__
