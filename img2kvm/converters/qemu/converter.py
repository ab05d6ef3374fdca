# SPDX-License-Identifier: LGPL-3.0-or-later
from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ...core.utils import U


class Convert:
    """
    qemu-img convert wrapper.

    The source is always handed over as raw bytes (`-f raw`): either the
    user's .img/.iso or the decompressed payload. qemu-img runs to
    completion; its output is captured and logged after exit.
    """

    DEFAULT_BINARY = "qemu-img"

    @staticmethod
    def build_cmd(
        src: Path,
        dst: Path,
        *,
        qemu_img: str = DEFAULT_BINARY,
        in_format: str = "raw",
        out_format: str = "qcow2",
    ) -> List[str]:
        return [qemu_img, "convert", "-f", in_format, "-O", out_format, str(src), str(dst)]

    @staticmethod
    def to_qcow2(
        logger: logging.Logger,
        src: Path,
        dst: Path,
        *,
        qemu_img: str = DEFAULT_BINARY,
    ) -> str:
        """Convert raw `src` into qcow2 `dst`; returns qemu-img's stdout."""
        cmd = Convert.build_cmd(Path(src), Path(dst), qemu_img=qemu_img)
        logger.info(f"Converting: {src} -> {dst} (in_format=raw, out_format=qcow2)")
        out = U.run_external(logger, cmd, tool="qemu-img")
        if out.strip():
            logger.info(out.rstrip())
        return out
