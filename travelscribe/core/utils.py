"""Shared utility functions for TravelScribe."""

import logging
import time

from travelscribe.core.config import get_settings


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger (idempotent)."""
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel((level or get_settings().log_level).upper())


def epoch_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)
