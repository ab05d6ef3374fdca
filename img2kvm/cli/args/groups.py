# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
from __future__ import annotations

import argparse

from ...proxmox.importdisk import DEFAULT_STORAGE


def _add_global_config_logging(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Global config/logging (two-phase parse relies on these)
    # ------------------------------------------------------------------
    from ... import __version__

    p.add_argument(
        "--config",
        action="append",
        default=[],
        help="YAML/JSON config file (repeatable; later overrides earlier).",
    )
    p.add_argument("--dump-config", action="store_true", help="Print merged normalized config and exit.")
    p.add_argument("--dump-args", action="store_true", help="Print final parsed args and exit.")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity: -v, -vv, -vvv")
    p.add_argument("-q", "--quiet", action="count", default=0, help="Only warnings (-q) or errors (-qq).")
    p.add_argument("--log-file", dest="log_file", default=None, help="Write logs to file.")
    p.add_argument("--json-logs", dest="json_logs", action="store_true", help="Emit NDJSON log lines.")


def _add_image_target(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # What to import, and where
    # ------------------------------------------------------------------
    p.add_argument(
        "-n",
        "--image-name",
        dest="image_name",
        default=None,
        help=(
            "The image file, e.g. openwrt-24.10.2-x86-64-generic-squashfs-combined-efi.img.gz. "
            "Accepted extensions: img, iso (used as-is) and bz2, bzip2, gz, lzma, xz, zip (decompressed first)."
        ),
    )
    p.add_argument("-i", "--vm-id", dest="vm_id", type=int, default=None, help="The ID of the Proxmox VE VM, e.g. 100.")
    p.add_argument("-s", "--storage", default=DEFAULT_STORAGE, help="Proxmox VE storage pool.")


def _add_run_policy(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Intermediate files
    # ------------------------------------------------------------------
    p.add_argument(
        "--workdir",
        default=None,
        help="Directory for the decompressed image and the temporary qcow2 (default: current directory).",
    )
    p.add_argument(
        "--no-overwrite",
        dest="overwrite",
        action="store_false",
        default=True,
        help="Fail instead of replacing an existing file at the decompressed image's path.",
    )
    p.add_argument("--keep-temp", dest="keep_temp", action="store_true", help="Keep the decompressed image and qcow2 after import.")
    p.add_argument("--dry-run", dest="dry_run", action="store_true", help="Classify the image and print the plan; write nothing.")
    p.add_argument("--no-progress", dest="progress", action="store_false", default=True, help="Disable the decompression progress bar.")


def _add_tool_knobs(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # External tools / decoder limits
    # ------------------------------------------------------------------
    p.add_argument("--qemu-img", dest="qemu_img", default="qemu-img", help="qemu-img binary.")
    p.add_argument("--qm", dest="qm", default="qm", help="Proxmox qm binary.")
    p.add_argument(
        "--lzma-memlimit",
        dest="lzma_memlimit",
        default="64MiB",
        help="Memory ceiling for legacy .lzma decoding (e.g. 64MiB, 256M).",
    )
