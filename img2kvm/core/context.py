# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/core/context.py
"""
Per-run settings shared by the selector, the decompression engine and the namer.

The working directory is captured once, when the context is built, and is
carried explicitly from there on.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .exceptions import PathError

# liblzma memory ceiling for legacy .lzma streams (dictionary + state).
DEFAULT_LZMA_MEMLIMIT = 64 * 1024 * 1024
DEFAULT_CHUNK_SIZE = 1024 * 1024

TEMP_DISK_NAME = "img2kvm_temp.qcow2"


@dataclass(frozen=True)
class RunContext:
    workdir: Path
    overwrite: bool = True
    lzma_memlimit: int = DEFAULT_LZMA_MEMLIMIT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    progress: bool = True

    @classmethod
    def capture(
        cls,
        workdir: Optional[Union[str, Path]] = None,
        **kw,
    ) -> "RunContext":
        """Build a context, resolving `workdir` (default: current directory) once."""
        base = Path(workdir).expanduser() if workdir else Path(os.getcwd())
        try:
            wd = base.resolve(strict=True)
        except (FileNotFoundError, RuntimeError) as e:
            raise PathError(msg=f"Working directory does not exist: {base}", cause=e) from e
        if not wd.is_dir():
            raise PathError(msg=f"Working directory is not a directory: {wd}")
        return cls(workdir=wd, **kw)

    @property
    def temp_disk(self) -> Path:
        return self.workdir / TEMP_DISK_NAME
