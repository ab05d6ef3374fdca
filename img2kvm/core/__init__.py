# SPDX-License-Identifier: LGPL-3.0-or-later
# img2kvm/core/__init__.py
from .context import RunContext
from .exceptions import (
    DecodeError,
    ExternalProcessError,
    Fatal,
    FileIoError,
    Img2KvmError,
    PathError,
    UnsupportedFormat,
)

__all__ = [
    "RunContext",
    "DecodeError",
    "ExternalProcessError",
    "Fatal",
    "FileIoError",
    "Img2KvmError",
    "PathError",
    "UnsupportedFormat",
]
