# SPDX-License-Identifier: LGPL-3.0-or-later
# img2kvm/converters/qemu/__init__.py
"""
QEMU-based conversion utilities.

- converter: qemu-img raw -> qcow2 conversion
"""

from .converter import Convert

__all__ = ["Convert"]
