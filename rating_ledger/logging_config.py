"""
Structured Logging Configuration Module

One JSON object per line for every ledger event. Besides the message, a line
carries the account, the action and, where they apply, the amount moved, the
resulting balance and the rejection kind, so rejected ratings and withdrawals
can be filtered on ``error`` without parsing messages.
"""

import logging
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


# Record attributes promoted to top-level keys of the JSON line
LEDGER_FIELDS = ("user_id", "action", "resource", "amount", "balance", "error")


class JSONFormatter(logging.Formatter):
    """JSON formatter for ledger events"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in LEDGER_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value

        details = getattr(record, "details", None)
        if details:
            log_entry["details"] = details
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = "rating_ledger") -> logging.Logger:
    """
    Attach a single JSON stream handler to the package logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Logger to configure; module loggers below it inherit it

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger


def get_logger(name: str = "rating_ledger") -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               user_id: Optional[str] = None, action: Optional[str] = None,
               resource: Optional[str] = None, amount: Optional[int] = None,
               balance: Optional[int] = None, error: Any = None,
               details: Optional[Dict[str, Any]] = None):
    """
    Log a ledger event with structured fields.

    Args:
        logger: Logger instance
        level: Level name (info, warning, error, ...)
        message: Human-readable message
        user_id: Account the event applies to
        action: Operation name, e.g. "rating" or "withdraw_request"
        resource: What was acted upon ("account", "settings", "auth")
        amount: Currency units moved by the event
        balance: Account balance after the event
        error: Rejection kind; an Enum member is logged by its value
        details: Any further key/value data
    """
    if isinstance(error, Enum):
        error = error.value
    fields = {
        "user_id": user_id,
        "action": action,
        "resource": resource,
        "amount": amount,
        "balance": balance,
        "error": error,
        "details": details,
    }
    logger.log(
        getattr(logging, level.upper()), message,
        extra={k: v for k, v in fields.items() if v is not None}
    )
