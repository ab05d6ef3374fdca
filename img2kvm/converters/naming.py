# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/converters/naming.py
from __future__ import annotations

from pathlib import Path
from typing import Union

from ..core.exceptions import PathError


def stem_of(path: Union[str, Path]) -> str:
    """
    File name with exactly its final extension removed.

      foo.img.gz -> foo.img
      foo.tar.gz -> foo.tar
      archive.zip -> archive
    """
    p = Path(path)
    stem = p.stem
    if not p.name or stem in ("", ".", ".."):
        raise PathError(
            msg=f"Failed to get file stem from {str(path) or '<empty path>'}",
            context={"path": str(path)},
        )
    return stem


def output_path(src: Union[str, Path], workdir: Union[str, Path]) -> Path:
    """Where the decompressed payload of `src` lands: <workdir>/<stem>."""
    return Path(workdir) / stem_of(src)
