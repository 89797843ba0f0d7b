"""Configuration management for the budget planner.

This module centralizes all tunable values including chart thresholds,
the auto-save delay and logging defaults, together with their
environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

# Persistence
SAVE_DELAY_SECONDS = float(os.getenv("BUDGET_PLANNER_SAVE_DELAY", "1.5"))
TEMPLATE_VERSION = "1.0.0"
DEFAULT_CURRENCY = os.getenv("BUDGET_PLANNER_CURRENCY", "EUR")

# Scenario overrides closer than this to the baseline count as "no change"
OVERRIDE_TOLERANCE = 0.005

# Charts
SMALL_SLICE_THRESHOLD = float(os.getenv("BUDGET_PLANNER_SLICE_THRESHOLD", "0.02"))
OTHER_SLICE_ID = "__other__"
OTHER_SLICE_NAME = os.getenv("BUDGET_PLANNER_OTHER_LABEL", "Other")
MIN_ACTUAL_FOR_SEVERITY = 0.01

# Logging
LOG_LEVEL = os.getenv("BUDGET_PLANNER_LOG_LEVEL", "WARNING")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_save_delay() -> float:
    """Get the auto-save quiet period in seconds (never negative)."""
    return max(0.0, SAVE_DELAY_SECONDS)


def get_slice_threshold() -> float:
    """Get the share below which pie slices are merged into "Other"."""
    return min(max(SMALL_SLICE_THRESHOLD, 0.0), 1.0)


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stream handler to the package logger.

    Only the ``budget_planner`` logger is touched so embedding
    applications keep control over the root logger.
    """
    package_logger = logging.getLogger("budget_planner")
    package_logger.setLevel((level or LOG_LEVEL).upper())
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
    return package_logger
