# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/cli/args/parser.py
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, Optional, Sequence, Tuple

from ...config.config_loader import Config
from ...converters.formats import supported_extensions
from ...core.logger import Log, c
from ...core.utils import U
from ..help_texts import FEATURE_SUMMARY, YAML_EXAMPLE
from .groups import (
    _add_global_config_logging,
    _add_image_target,
    _add_run_policy,
    _add_tool_knobs,
)
from .validators import validate_args

# Logging knobs the pre-parser sees on the CLI but a config file may also set.
_LOGGING_KEYS = ("verbose", "quiet", "log_file", "json_logs")


class HelpFormatter(argparse.RawDescriptionHelpFormatter, argparse.ArgumentDefaultsHelpFormatter):
    pass


def _heading(title: str) -> str:
    return c(title + ":\n", "cyan", ["bold"])


def _build_epilog() -> str:
    return (
        _heading("YAML example")
        + c(YAML_EXAMPLE, "cyan")
        + "\n"
        + _heading("Feature summary")
        + c(FEATURE_SUMMARY, "cyan")
        + f" • Recognized extensions: {supported_extensions()}\n"
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="img2kvm",
        description=c("img2kvm: convert a (compressed) disk image and import it into a Proxmox VE VM", "green", ["bold"]),
        formatter_class=HelpFormatter,
        epilog=_build_epilog(),
    )
    _add_global_config_logging(p)
    _add_image_target(p)
    _add_run_policy(p)
    _add_tool_knobs(p)
    return p


def _build_preparser() -> argparse.ArgumentParser:
    """Only what is needed before the config is known: where it is, and how to log."""
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", action="append", default=[])
    pre.add_argument("-v", "--verbose", action="count", default=0)
    pre.add_argument("-q", "--quiet", action="count", default=0)
    pre.add_argument("--log-file", dest="log_file", default=None)
    pre.add_argument("--json-logs", dest="json_logs", action="store_true")
    pre.add_argument("--dump-config", action="store_true")
    pre.add_argument("--dump-args", action="store_true")
    return pre


def _load_merged_config(logger: Any, cfgs: Sequence[str]) -> Dict[str, Any]:
    if not cfgs:
        return {}
    return Config.load_many(logger, Config.expand_configs(logger, list(cfgs)))


def _logging_opts(args0: argparse.Namespace, conf: Dict[str, Any]) -> Dict[str, Any]:
    """CLI logging flags, falling back to config values where the CLI is silent."""
    out = {}
    for key in _LOGGING_KEYS:
        v = getattr(args0, key, None)
        out[key] = v if v else conf.get(key, v)
    return out


def _setup_logger(opts: Dict[str, Any]) -> Any:
    return Log.setup(
        int(opts.get("verbose") or 0),
        opts.get("log_file"),
        quiet=int(opts.get("quiet") or 0),
        json_logs=bool(opts.get("json_logs")),
    )


def parse_args_with_config(
    argv: Optional[Sequence[str]] = None,
    logger: Any = None,
) -> Tuple[argparse.Namespace, Dict[str, Any], Any]:
    """
    Returns (args, merged config, logger).

      1. pre-parse --config and the logging flags; set up logging
      2. load + merge config files (later wins)
      3. apply config as parser defaults, then parse for real (CLI wins)
      4. validate the merged result (SystemExit with a message on error)

    A caller-supplied logger is used as-is; otherwise logging is configured
    here and re-configured if the config file sets verbosity or a log file.
    """
    argv = list(sys.argv[1:] if argv is None else argv)

    pre = _build_preparser()
    args0, _rest = pre.parse_known_args(argv)

    own_logger = logger is None
    if own_logger:
        logger = _setup_logger(_logging_opts(args0, {}))

    conf = _load_merged_config(logger, args0.config)

    if own_logger and any(k in conf for k in _LOGGING_KEYS):
        logger = _setup_logger(_logging_opts(args0, conf))

    if args0.dump_config:
        print(U.json_dump(conf))
        raise SystemExit(0)

    parser = build_parser()
    Config.apply_as_defaults(logger, parser, conf)
    args = parser.parse_args(argv)

    if args0.dump_args:
        print(U.json_dump(vars(args)))
        raise SystemExit(0)

    validate_args(args, conf)
    return args, conf, logger
