# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/converters/formats.py
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, Union

from ..core.exceptions import UnsupportedFormat


class FormatTag(Enum):
    BZIP2 = "bzip2"
    GZIP = "gzip"
    LZMA = "lzma"
    XZ = "xz"
    ZIP = "zip"
    RAW_IMAGE = "img"
    RAW_ISO = "iso"
    UNSUPPORTED = "unsupported"

    @property
    def is_compressed(self) -> bool:
        return self in _COMPRESSED

    @property
    def is_raw(self) -> bool:
        return self in (FormatTag.RAW_IMAGE, FormatTag.RAW_ISO)


_COMPRESSED = frozenset({FormatTag.BZIP2, FormatTag.GZIP, FormatTag.LZMA, FormatTag.XZ, FormatTag.ZIP})

EXTENSION_MAP: Dict[str, FormatTag] = {
    "bz2": FormatTag.BZIP2,
    "bzip2": FormatTag.BZIP2,
    "gz": FormatTag.GZIP,
    "lzma": FormatTag.LZMA,
    "xz": FormatTag.XZ,
    "zip": FormatTag.ZIP,
    "img": FormatTag.RAW_IMAGE,
    "iso": FormatTag.RAW_ISO,
}


def extension_of(path: Union[str, Path]) -> str:
    """Final extension of the file name, lowercased and without the dot ("" if none)."""
    return Path(path).suffix[1:].lower()


def lookup(extension: str) -> FormatTag:
    """Map a bare extension ("GZ", "xz", ...) to its tag; UNSUPPORTED if unknown."""
    return EXTENSION_MAP.get((extension or "").lstrip(".").lower(), FormatTag.UNSUPPORTED)


def classify(path: Union[str, Path]) -> FormatTag:
    """
    Pick the handling strategy for `path` from its final extension.

    Only the last suffix counts: "disk.img.gz" is GZIP. Missing or unknown
    extensions raise UnsupportedFormat; UNSUPPORTED is never returned.
    """
    ext = extension_of(path)
    if not ext:
        raise UnsupportedFormat(
            msg=f"File has no valid extension: {Path(path).name}",
            context={"path": str(path)},
        )

    tag = lookup(ext)
    if tag is FormatTag.UNSUPPORTED:
        raise UnsupportedFormat(
            msg=f"Unsupported file extension: {ext}",
            context={"path": str(path), "extension": ext},
        )
    return tag


def supported_extensions() -> str:
    return ", ".join(sorted(EXTENSION_MAP))
