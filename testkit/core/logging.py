"""Logging for the harness.

Log lines routinely carry clone URLs, CLI arguments and API headers, so
everything emitted through the ``testkit`` logger passes through
``redact_sensitive`` first.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

REDACTED = "***REDACTED***"

# Keys whose values are never logged
SENSITIVE_KEYS = re.compile(r"api[_-]?key|token|secret|password|credential|authorization", re.IGNORECASE)

# user:password@ or token@ segments embedded in clone URLs
URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)[^/@\s]+@")
BEARER = re.compile(r"(bearer\s+)(?!\*\*\*)\S+", re.IGNORECASE)
KEY_VALUE = re.compile(rf"({SENSITIVE_KEYS.pattern})(\s*[=:]\s*)(?!\*\*\*)[^\s@/]+", re.IGNORECASE)

# LogRecord attributes set through ``extra=`` that are copied into JSON output
EXTRA_FIELDS = ("provider", "resource_kind", "command", "owner", "repo")


class StructuredFormatter(logging.Formatter):
    """Emit one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_sensitive(record.getMessage()),
        }
        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                entry[field] = redact_sensitive(getattr(record, field))
        if record.exc_info:
            entry["exception"] = redact_sensitive(self.formatException(record.exc_info))
        return json.dumps(entry, default=str)


def redact_sensitive(data: Any) -> Any:
    """Mask credentials in strings, and in dicts and lists of them.

    Dict values are masked outright when their key looks sensitive.
    Strings have URL credentials, bearer tokens and ``key=value`` pairs
    with sensitive keys masked. Anything else is returned unchanged.
    """
    if isinstance(data, dict):
        return {k: REDACTED if SENSITIVE_KEYS.search(str(k)) else redact_sensitive(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [redact_sensitive(item) for item in data]
    if not isinstance(data, str):
        return data

    data = URL_CREDENTIALS.sub(rf"\g<scheme>{REDACTED}@", data)
    data = BEARER.sub(rf"\1{REDACTED}", data)
    return KEY_VALUE.sub(rf"\1\2{REDACTED}", data)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def setup_logging(level: str = "INFO", structured: bool = False) -> None:
    """Configure the ``testkit`` logger.

    The root logger is left alone so that pytest's log capture keeps working.

    Args:
        level: Log level name, case-insensitive
        structured: Emit JSON lines instead of plain text
    """
    root = logging.getLogger("testkit")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler()
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.handlers = [handler]

    for noisy in ("httpx", "httpcore", "git"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
