# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/core/file_ops.py
"""
Atomic file operation utilities.

A decompressed image only appears under its final name once every byte has
been decoded and written; a failure removes the partial temp file.
"""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Generator


@contextmanager
def atomic_write(
    target_path: Path,
    *,
    suffix: str = ".part",
) -> Generator[BinaryIO, None, None]:
    """
    Open a temporary sibling of `target_path` for binary writing.

    On clean exit the temp file is flushed and atomically renamed over
    `target_path` (replacing any existing file). If the block raises, the
    temp file is removed and the exception propagates.

    Example:
        with atomic_write(Path("/work/disk.img")) as out:
            out.write(data)
    """
    target_path = Path(target_path)

    fd, temp_name = tempfile.mkstemp(
        suffix=suffix,
        prefix=f".{target_path.name}.",
        dir=str(target_path.parent),
    )
    temp_path = Path(temp_name)

    try:
        with os.fdopen(fd, "wb") as f:
            yield f
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, target_path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
