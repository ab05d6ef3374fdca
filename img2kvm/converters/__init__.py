# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/converters/__init__.py
"""Format detection, decompression and disk conversion."""

from .decompress import Decompress
from .formats import FormatTag, classify
from .naming import output_path, stem_of
from .qemu.converter import Convert

__all__ = ["Convert", "Decompress", "FormatTag", "classify", "output_path", "stem_of"]
