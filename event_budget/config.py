"""Configuration management for the event budget dashboard.

This module centralizes all configuration values including paths,
defaults, and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

# Base project root - assumes this file is in event_budget/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("EVENT_BUDGET_DATA_DIR", _PROJECT_ROOT / "data"))
RECEIPTS_DIR = Path(os.getenv("EVENT_BUDGET_RECEIPTS_DIR", DATA_DIR / "receipts"))

# Database
DB_PATH = Path(
    os.getenv("EVENT_BUDGET_DB_PATH", DATA_DIR / "event_budget.db")
).resolve()

# Public URL prefix for stored receipts.  Empty means file:// URLs.
RECEIPTS_BASE_URL = os.getenv("EVENT_BUDGET_RECEIPTS_URL", "")

# Receipts larger than this are rejected before upload
MAX_RECEIPT_BYTES = int(float(os.getenv("EVENT_BUDGET_MAX_RECEIPT_MB", "5")) * 1024 * 1024)

# Static phrase typed by the user to confirm event deletion (not an auth check)
DELETE_CONFIRMATION_PHRASE = os.getenv("EVENT_BUDGET_DELETE_PHRASE", "oatside-pepero")

CURRENCY_SYMBOL = os.getenv("EVENT_BUDGET_CURRENCY", "₱")

LOG_LEVEL = os.getenv("EVENT_BUDGET_LOG_LEVEL", "INFO")

# Retry policy for idempotent reads only
READ_RETRY_ATTEMPTS = int(os.getenv("EVENT_BUDGET_READ_RETRIES", "3"))
READ_RETRY_BACKOFF_SECONDS = 0.2


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, RECEIPTS_DIR, DB_PATH.parent]:
        directory.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str | None = None) -> None:
    """Attach a single stream handler to the package logger."""
    logger = logging.getLogger("event_budget")
    logger.setLevel((level or LOG_LEVEL).upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(handler)
