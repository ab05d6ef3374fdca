# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/proxmox/importdisk.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ..core.utils import U

DEFAULT_STORAGE = "local-lvm"


class ImportDisk:
    """`qm importdisk <vmid> <disk> <storage>`: attach a disk image to a Proxmox VE VM."""

    DEFAULT_BINARY = "qm"

    @staticmethod
    def build_cmd(vm_id: int, disk: Path, storage: str = DEFAULT_STORAGE, *, qm: str = DEFAULT_BINARY) -> List[str]:
        return [qm, "importdisk", str(vm_id), str(disk), storage]

    @staticmethod
    def run(
        logger: logging.Logger,
        vm_id: int,
        disk: Path,
        storage: str = DEFAULT_STORAGE,
        *,
        qm: str = DEFAULT_BINARY,
    ) -> str:
        cmd = ImportDisk.build_cmd(vm_id, Path(disk), storage, qm=qm)
        logger.info("Importing %s into VM %s on storage %s", disk, vm_id, storage)
        out = U.run_external(logger, cmd, tool="qm importdisk")
        if out.strip():
            logger.info(out.rstrip())
        return out
