# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structured JSON logger for DeepLedger.

Every log line is one JSON object with four fixed fields (ts, level, module,
msg) plus whatever the caller hands over through `extra`. The corpus builder
relies on this to report progress counters and shape statistics as
machine-readable fields instead of formatted strings.

Library modules call `get_logger(__name__)` once at import time. The runtime
bootstrap later calls `set_package_level` so that a single `log_level` setting
reaches every logger that was already created.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER_PREFIX = "deepledger"

# Attributes every LogRecord carries. Anything else on a record came in via `extra`.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Last level applied by set_package_level; loggers created afterwards start at it.
_package_level = "INFO"


class JsonFormatter(logging.Formatter):
    """
    Render a LogRecord as a single JSON line.

    Extra context fields are merged at the top level, so
    ``logger.info("shapes averaged", extra={"kept": 12})`` comes out as
    ``{"ts": ..., "level": "INFO", ..., "msg": "shapes averaged", "kept": 12}``.
    Values json can't handle natively (paths, tensors) are stringified.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "msg": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            entry[key] = value

        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _resolve_log_level(level_name: str) -> int:
    """Map a level name to its logging constant, rejecting anything unknown."""
    upper = level_name.upper()
    if upper not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level '{level_name}'. Must be one of: {', '.join(sorted(_VALID_LOG_LEVELS))}"
        )
    return getattr(logging, upper)


def _make_handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler


def get_logger(
    name: str,
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Create (or fetch) a structured JSON logger.

    Args:
        name: Logger name, normally the calling module's __name__.
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL. Defaults to the
            last level given to set_package_level (INFO before any call).
        log_file: Optional file that receives the same JSON lines as stdout.

    Returns:
        A logging.Logger writing JSON to stdout (and the file, if given).

    Raises:
        ValueError: If log_level is not a recognised level name.
    """
    logger = logging.getLogger(name)
    level = _resolve_log_level(log_level or _package_level)
    logger.setLevel(level)

    # Handlers are attached once per name; repeated calls only adjust the level.
    if logger.handlers:
        return logger

    logger.addHandler(_make_handler(logging.StreamHandler(stream=sys.stdout), level))

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(
            _make_handler(logging.FileHandler(str(log_file), encoding="utf-8"), level)
        )

    logger.propagate = False
    return logger


def set_package_level(log_level: str, log_file: Optional[Path] = None) -> None:
    """
    Apply a level (and optionally a log file) to every deepledger logger.

    Loggers created by get_logger at import time keep their own handlers, so
    changing the level after the fact means walking the logger registry.
    """
    level = _resolve_log_level(log_level)
    global _package_level
    _package_level = log_level.upper()
    for name in list(logging.Logger.manager.loggerDict):
        if name != PACKAGE_LOGGER_PREFIX and not name.startswith(PACKAGE_LOGGER_PREFIX + "."):
            continue
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)

        if log_file is None:
            continue
        already_attached = any(
            isinstance(h, logging.FileHandler) and Path(h.baseFilename) == log_file.resolve()
            for h in logger.handlers
        )
        if logger.handlers and not already_attached:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            logger.addHandler(
                _make_handler(logging.FileHandler(str(log_file), encoding="utf-8"), level)
            )
