# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/orchestrator/orchestrator.py

from __future__ import annotations

import argparse
import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from ..converters.decompress import Decompress
from ..converters.formats import FormatTag, classify
from ..converters.naming import output_path
from ..converters.qemu.converter import Convert
from ..core.context import RunContext
from ..core.exceptions import FileIoError, Img2KvmError
from ..core.logger import Log
from ..core.utils import U
from ..proxmox.importdisk import DEFAULT_STORAGE, ImportDisk


@dataclass
class RunResult:
    source: Path
    tag: FormatTag
    image: Path
    disk: Path
    decompressed: bool
    convert_output: str = ""
    import_output: str = ""
    dry_run: bool = False


@contextlib.contextmanager
def _phase(name: str) -> Iterator[None]:
    """Tag project errors escaping this block with the phase that failed."""
    try:
        yield
    except Img2KvmError as e:
        if not e.phase:
            e.with_context(phase=name)
        raise


class Orchestrator:
    """
    Sequential pipeline:
      resolve source -> classify -> (decompress) -> qemu-img convert
      -> qm importdisk -> cleanup

    Any failure propagates immediately. Artifacts created before the
    failing step are left on disk for the operator to inspect.
    """

    def __init__(self, logger: logging.Logger, args: argparse.Namespace, ctx: Optional[RunContext] = None):
        self.logger = logger
        self.args = args
        self.ctx = ctx or context_from_args(args)

        Log.trace(
            self.logger,
            "Orchestrator init: image=%r vm_id=%r storage=%r workdir=%s",
            getattr(args, "image_name", None),
            getattr(args, "vm_id", None),
            getattr(args, "storage", None),
            self.ctx.workdir,
        )

    @property
    def qemu_img(self) -> str:
        return getattr(self.args, "qemu_img", None) or Convert.DEFAULT_BINARY

    @property
    def qm(self) -> str:
        return getattr(self.args, "qm", None) or ImportDisk.DEFAULT_BINARY

    @property
    def storage(self) -> str:
        return getattr(self.args, "storage", None) or DEFAULT_STORAGE

    def resolve_source(self) -> Path:
        raw = Path(str(self.args.image_name)).expanduser()
        try:
            src = raw.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            raise FileIoError(msg=f"Failed to canonicalize image path: {raw}: {e}", cause=e, context={"path": str(raw)}) from e
        if not src.is_file():
            raise FileIoError(msg=f"Source is not a regular file: {src}", context={"path": str(src)})
        return src

    def prepare_image(self, src: Path, tag: FormatTag) -> Path:
        """Return the raw image qemu-img should read: `src` itself, or its decompressed payload."""
        if tag.is_raw:
            self.logger.info("%s is a raw image; no decompression needed", src.name)
            return src
        return Decompress.run(self.logger, src, tag, self.ctx)

    def run(self) -> RunResult:
        vm_id = int(self.args.vm_id)
        disk = self.ctx.temp_disk

        with _phase("resolve"):
            src = self.resolve_source()
        with _phase("classify"):
            tag = classify(src)
        Log.trace(self.logger, "classified %s as %s", src.name, tag.name)

        if getattr(self.args, "dry_run", False):
            return self._dry_run(src, tag, vm_id, disk)

        with _phase("decompress"):
            image = self.prepare_image(src, tag)
        result = RunResult(source=src, tag=tag, image=image, disk=disk, decompressed=tag.is_compressed)

        Log.step(self.logger, "convert img to qcow2...")
        with _phase("convert"):
            result.convert_output = Convert.to_qcow2(self.logger, image, disk, qemu_img=self.qemu_img)

        Log.step(self.logger, "importdisk...")
        with _phase("importdisk"):
            result.import_output = ImportDisk.run(self.logger, vm_id, disk, self.storage, qm=self.qm)

        with _phase("cleanup"):
            self.cleanup(result)

        Log.step(self.logger, "success")
        return result

    def cleanup(self, result: RunResult) -> None:
        if getattr(self.args, "keep_temp", False):
            self.logger.info("Keeping intermediate files: %s%s", result.disk, f", {result.image}" if result.decompressed else "")
            return

        Log.step(self.logger, "remove temp file...")
        self._remove(result.disk, "Failed to remove temporary qcow2 file")
        if result.decompressed:
            self._remove(result.image, "Failed to remove decompressed image file")

    def _remove(self, path: Path, what: str) -> None:
        try:
            path.unlink()
        except OSError as e:
            raise FileIoError(msg=f"{what}: {path}: {e}", cause=e, context={"path": str(path)}) from e
        self.logger.debug("removed %s", path)

    def _dry_run(self, src: Path, tag: FormatTag, vm_id: int, disk: Path) -> RunResult:
        U.banner(self.logger, "Dry run (nothing is written)")
        if tag.is_compressed:
            with _phase("decompress"):
                image = output_path(src, self.ctx.workdir)
            self.logger.info("would decompress %s (%s) -> %s", src, tag.value, image)
        else:
            image = src
        self.logger.info("would run: %s", U.pretty_cmd(Convert.build_cmd(image, disk, qemu_img=self.qemu_img)))
        self.logger.info("would run: %s", U.pretty_cmd(ImportDisk.build_cmd(vm_id, disk, self.storage, qm=self.qm)))
        return RunResult(source=src, tag=tag, image=image, disk=disk, decompressed=False, dry_run=True)


def context_from_args(args: argparse.Namespace) -> RunContext:
    """Capture the working directory and engine knobs once, at startup."""
    kw = {}
    if getattr(args, "lzma_memlimit", None) is not None:
        kw["lzma_memlimit"] = U.human_to_bytes(args.lzma_memlimit)
    return RunContext.capture(
        getattr(args, "workdir", None),
        overwrite=bool(getattr(args, "overwrite", True)),
        progress=bool(getattr(args, "progress", True)),
        **kw,
    )
