# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/config/config_loader.py
from __future__ import annotations

import argparse
import glob
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

from ..core.utils import U

# Config keys accepted under a different spelling than the argparse dest.
_ALIASES = {
    "image": "image_name",
    "image-name": "image_name",
    "vmid": "vm_id",
    "vm-id": "vm_id",
    "storage_pool": "storage",
}


class Config:
    """
    YAML/JSON config files.

    Files are merged left to right (later wins, dicts merge recursively) and
    applied as argparse defaults, so anything on the command line overrides
    the config and required options can be satisfied from a file.
    """

    @staticmethod
    def expand_configs(logger: logging.Logger, paths: List[str]) -> List[Path]:
        out: List[Path] = []
        for p in paths:
            expanded = str(Path(p).expanduser())
            matches = sorted(glob.glob(expanded)) if glob.has_magic(expanded) else [expanded]
            if not matches:
                U.die(logger, f"Config glob matched nothing: {p}", 1)
            for m in matches:
                mp = Path(m)
                if not mp.is_file():
                    U.die(logger, f"Config file not found: {mp}", 1)
                out.append(mp)
        return out

    @staticmethod
    def load_one(logger: logging.Logger, path: Path) -> Dict[str, Any]:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            U.die(logger, f"Cannot read config {path}: {e}", 1)
            raise  # unreachable

        try:
            if path.suffix.lower() == ".json":
                data = json.loads(text) if text.strip() else {}
            else:
                data = yaml.safe_load(text) or {}
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            U.die(logger, f"Invalid config {path}: {e}", 1)
            raise  # unreachable

        if not isinstance(data, dict):
            U.die(logger, f"Config {path}: top-level must be a mapping, got {type(data).__name__}", 1)
        logger.debug("Loaded config %s (%d keys)", path, len(data))
        return Config.normalize(data)

    @staticmethod
    def normalize(data: Dict[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for k, v in data.items():
            key = str(k).strip()
            key = _ALIASES.get(key, key).replace("-", "_")
            out[key] = v
        return out

    @staticmethod
    def merge(base: Dict[str, Any], over: Dict[str, Any]) -> Dict[str, Any]:
        out = dict(base)
        for k, v in over.items():
            if isinstance(v, dict) and isinstance(out.get(k), dict):
                out[k] = Config.merge(out[k], v)
            else:
                out[k] = v
        return out

    @staticmethod
    def load_many(logger: logging.Logger, paths: List[Path]) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for p in paths:
            merged = Config.merge(merged, Config.load_one(logger, p))
        return merged

    @staticmethod
    def apply_as_defaults(logger: logging.Logger, parser: argparse.ArgumentParser, conf: Dict[str, Any]) -> None:
        """Push known keys into parser defaults; unknown keys are reported and ignored."""
        dests = {a.dest for a in parser._actions}
        known = {k: v for k, v in conf.items() if k in dests}
        unknown = sorted(k for k in conf if k not in dests)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        if known:
            parser.set_defaults(**known)

        # A required option satisfied by config must not be demanded again.
        for a in parser._actions:
            if a.dest in known and a.required:
                a.required = False
