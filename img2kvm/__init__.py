# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/__init__.py
"""
img2kvm - import a (compressed) disk image into a Proxmox VE virtual machine

Usage as a library:

    from img2kvm import Decompress, RunContext, classify

    ctx = RunContext.capture("/var/tmp")
    tag = classify(src)
    raw = Decompress.run(logger, src, tag, ctx) if tag.is_compressed else src
"""

__version__ = "0.1.0"

from .converters import Convert, Decompress, FormatTag, classify, output_path
from .core import RunContext
from .orchestrator import Orchestrator, RunResult

__all__ = [
    "__version__",
    "Convert",
    "Decompress",
    "FormatTag",
    "classify",
    "output_path",
    "RunContext",
    "Orchestrator",
    "RunResult",
]
