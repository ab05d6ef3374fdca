# SPDX-License-Identifier: LGPL-3.0-or-later
# img2kvm/orchestrator/__init__.py
"""Pipeline orchestration."""

from .orchestrator import Orchestrator, RunResult, context_from_args

__all__ = ["Orchestrator", "RunResult", "context_from_args"]
