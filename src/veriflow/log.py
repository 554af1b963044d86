"""
VeriFlow Logging

Structured JSON logging for the `veriflow` logger namespace.

Modules log through logging.getLogger(__name__); lifecycle context is
passed with `extra=` and rendered as top-level JSON keys.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone


LOGGER_NAME = "veriflow"

EXTRA_FIELDS = (
    "case_id",
    "reference",
    "status",
    "reviewer_id",
    "rejection_count",
    "submission_number",
    "attempt",
    "error_code",
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single JSON stream handler to the veriflow logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    return logger
