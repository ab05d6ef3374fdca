# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/cli/args/__init__.py
"""Two-phase (config, then CLI) argument parsing for img2kvm."""
from __future__ import annotations

from .parser import build_parser, parse_args_with_config
from .validators import validate_args

__all__ = ["build_parser", "parse_args_with_config", "validate_args"]
