# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for SchoolFlow.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- inflight: Duplicate-submission protection for mutations
"""

from schoolflow.utils.inflight import InFlightRegistry, OperationInProgressError
from schoolflow.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # In-flight guard
    "InFlightRegistry",
    "OperationInProgressError",
]
