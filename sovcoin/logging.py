"""
Logging setup for sovcoin.

Library modules only ever call logging.getLogger(__name__); nothing is
configured until an application (the CLI, the demo) calls
configure_logging().

Levels used across the package:
    DEBUG    arithmetic errors, individual ledger moves, journal appends
    INFO     committed transitions
    WARNING  instant → deferred fallback, rolled-back transactions
"""

import json
import logging
import os
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from sovcoin.core.exceptions import ConfigError

ROOT_LOGGER = "sovcoin"


@dataclass(frozen=True)
class LoggingOptions:
    level:  str = "INFO"
    format: str = "text"  # text | json
    file:   Optional[str] = None


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time":    self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level":   record.levelname,
            "logger":  record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _normalize_level(level: str) -> int:
    value = getattr(logging, level.strip().upper(), None)
    if not isinstance(value, int):
        raise ConfigError(f"Invalid log level: {level}")
    return value


def _normalize_format(fmt: str) -> str:
    lowered = fmt.strip().lower()
    if lowered in {"text", "json"}:
        return lowered
    raise ConfigError(f"Invalid log format: {fmt}")


def load_logging_options_from_env(base: LoggingOptions = LoggingOptions()) -> LoggingOptions:
    """
    Env vars, each overriding the matching field of base when set:
        SOVCOIN_LOG_LEVEL   (default INFO)
        SOVCOIN_LOG_FORMAT  text | json (default text)
        SOVCOIN_LOG_FILE    optional rotating log file; empty disables it
    """
    return LoggingOptions(
        level=  os.getenv("SOVCOIN_LOG_LEVEL", base.level),
        format= os.getenv("SOVCOIN_LOG_FORMAT", base.format),
        file=   os.getenv("SOVCOIN_LOG_FILE", base.file or "") or None,
    )


def configure_logging(options: LoggingOptions) -> logging.Logger:
    """
    Configure the "sovcoin" logger hierarchy: stderr always, plus an
    optional rotating file. Safe to call more than once; handlers are
    replaced, not stacked.
    """
    level = _normalize_level(options.level)
    fmt = _normalize_format(options.format)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)

    if options.file:
        file_handler = RotatingFileHandler(
            options.file,
            maxBytes=10 * 1024 * 1024,
            backupCount=3,
        )
        if fmt == "json":
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
            )
        logger.addHandler(file_handler)

    return logger
