# SPDX-License-Identifier: LGPL-3.0-or-later
# img2kvm/cli/__init__.py
"""Command-line interface."""
