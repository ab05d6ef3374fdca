# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
from __future__ import annotations

import argparse
from typing import Any, Dict

from ...core.utils import U


def _require(v: Any) -> bool:
    """Present and, for strings, not blank."""
    if isinstance(v, str):
        return bool(v.strip())
    return v is not None


def _merged_get(args: argparse.Namespace, conf: Dict[str, Any], key: str) -> Any:
    """CLI value when given, else the config value."""
    v = getattr(args, key, None)
    return v if _require(v) else conf.get(key)


def _validate_image_name(args: argparse.Namespace, conf: Dict[str, Any]) -> None:
    if not _require(_merged_get(args, conf, "image_name")):
        raise SystemExit("missing required `image_name:` (YAML) or CLI -n/--image-name")


def _validate_vm_id(args: argparse.Namespace, conf: Dict[str, Any]) -> None:
    vm_id = _merged_get(args, conf, "vm_id")
    if not _require(vm_id):
        raise SystemExit("missing required `vm_id:` (YAML) or CLI -i/--vm-id")
    try:
        n = int(vm_id)
    except (TypeError, ValueError):
        raise SystemExit(f"vm_id must be an integer, got: {vm_id!r}")
    if n <= 0:
        raise SystemExit(f"vm_id must be a positive integer, got: {n}")
    args.vm_id = n


def _validate_storage(args: argparse.Namespace, conf: Dict[str, Any]) -> None:
    if not _require(_merged_get(args, conf, "storage")):
        raise SystemExit("storage must not be empty (YAML `storage:` or CLI -s/--storage)")


def _validate_lzma_memlimit(args: argparse.Namespace, conf: Dict[str, Any]) -> None:
    raw = _merged_get(args, conf, "lzma_memlimit")
    if not _require(raw):
        return
    try:
        n = U.human_to_bytes(raw)
    except ValueError as e:
        raise SystemExit(f"--lzma-memlimit is not a valid size: {raw!r}: {e}")
    if n <= 0:
        raise SystemExit(f"--lzma-memlimit must be positive, got: {raw!r}")


def validate_args(args: argparse.Namespace, conf: Dict[str, Any]) -> None:
    _validate_image_name(args, conf)
    _validate_vm_id(args, conf)
    _validate_storage(args, conf)
    _validate_lzma_memlimit(args, conf)
