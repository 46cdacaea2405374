"""Process-wide logger, log levels and log modes."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, MutableMapping, Union


class LogLevel(IntEnum):
    DEBUG = -1
    INFO = 0
    WARN = 1
    ERROR = 2
    DPANIC = 3
    PANIC = 4
    FATAL = 5

    def __str__(self) -> str:
        return self.name.lower()


def to_log_level(level: str) -> LogLevel:
    """Parse a level name, case-insensitively; unknown names give INFO."""
    try:
        return LogLevel[level.upper()]
    except KeyError:
        return LogLevel.INFO


class LogMode(IntEnum):
    PRODUCTION = 0
    DEVELOPMENT = 1

    def __str__(self) -> str:
        return self.name.lower()


def to_log_mode(mode: str) -> LogMode:
    """Parse 'production' or 'development'; anything else raises ValueError."""
    try:
        return LogMode[mode.upper()]
    except KeyError:
        raise ValueError("unknown log mode") from None


@dataclass
class Options:
    level: LogLevel = LogLevel.INFO
    mode: LogMode = LogMode.PRODUCTION


class _KeyValueAdapter(logging.LoggerAdapter):
    """Appends bound key-value pairs to every message."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        if self.extra:
            pairs = " ".join(f"{k}={v}" for k, v in self.extra.items()).replace("%", "%%")
            msg = f"{msg} {pairs}"
        return msg, kwargs


Logger = Union[logging.Logger, logging.LoggerAdapter]

_log: Logger = logging.getLogger("authorino")

_PYTHON_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.DPANIC: logging.CRITICAL,
    LogLevel.PANIC: logging.CRITICAL,
    LogLevel.FATAL: logging.CRITICAL,
}

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}


def _base(logger: Logger) -> logging.Logger:
    return logger.logger if isinstance(logger, logging.LoggerAdapter) else logger


def _values(logger: Logger) -> dict[str, Any]:
    if isinstance(logger, logging.LoggerAdapter) and logger.extra:
        return dict(logger.extra)
    return {}


def set_logger(logger: Logger, options: Options) -> None:
    """Make ``logger`` the base logger of the process."""
    global _log
    _log = logger
    logger.info(
        "setting instance base logger min level=%s mode=%s", options.level, options.mode
    )


def with_name(name: str) -> Logger:
    """A logger derived from the base logger, named ``name``."""
    child = _base(_log).getChild(name)
    values = _values(_log)
    return _KeyValueAdapter(child, values) if values else child


def with_values(**kwargs: Any) -> Logger:
    """A logger derived from the base logger, bound to the given values."""
    return _KeyValueAdapter(_base(_log), {**_values(_log), **kwargs})


class _JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data = {
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname.lower()),
            "ts": record.created,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            data["error"] = self.formatException(record.exc_info)
        return json.dumps(data)


def new_logger(options: Options) -> logging.Logger:
    """Configure and return the 'authorino' logger writing to stderr."""
    logger = logging.getLogger("authorino")
    logger.handlers.clear()
    logger.setLevel(_PYTHON_LEVELS[LogLevel(options.level)])
    logger.propagate = False
    handler = logging.StreamHandler(sys.stderr)
    if options.mode == LogMode.DEVELOPMENT:
        handler.setFormatter(
            logging.Formatter("%(asctime)s\t%(levelname)s\t%(name)s\t%(message)s")
        )
    else:
        handler.setFormatter(_JSONFormatter())
    logger.addHandler(handler)
    return logger