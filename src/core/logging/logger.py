"""
Gildhall Logging Subsystem

Purpose
-------
One logging setup for the whole economy process. Every record carries the
settlement context it was emitted under (which character, which operation,
which request), so a bid, a trade acceptance and a scheduler sweep running
concurrently can be told apart in the output.

Output
------
- Console: JSON lines in production (or when ``LOG_JSON`` is set), otherwise
  human-readable text, colored when attached to a terminal.
- File: a JSON log under ``Config.LOGS_DIR`` rotated at UTC midnight, unless
  ``LOG_TO_FILE`` is false.

Context
-------
Context lives in a ContextVar, so each asyncio task sees only its own:

    async with LogContext(character_id=7, operation="place_bid"):
        logger.info("Bid accepted", extra={"amount": 150})

Fields attached to every record: ``character_id``, ``operation``,
``request_id`` and ``component``. Extra keyword arguments given to
``LogContext`` are attached as well.

``Config`` is imported lazily because the config package logs during its own
import.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

_context: ContextVar[Dict[str, Any]] = ContextVar("gildhall_log_context", default={})

CONTEXT_FIELDS = ("character_id", "operation", "request_id", "component")
UNSET = "-"

_INSTALLED_FLAG = "_gildhall_logging_installed"

# Attributes every LogRecord has; anything else on a record came from ``extra``
# or from the context filter.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


# ============================================================================
# Settings
# ============================================================================


@dataclass(frozen=True)
class LoggingSettings:
    level: int
    json_output: bool
    colors: bool
    to_file: bool
    logs_dir: Path
    environment: str

    file_name: str = "gildhall.json.log"
    file_backups: int = 7
    text_format: str = "%(asctime)s %(levelname)-8s %(name)s [%(operation)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @classmethod
    def from_config(cls) -> LoggingSettings:
        from src.core.config.config import Config

        environment = str(Config.ENVIRONMENT).lower()
        json_output = Config.LOG_JSON if Config.LOG_JSON is not None else environment == "production"
        level = getattr(logging, str(Config.LOG_LEVEL).upper(), None)
        return cls(
            level=level if isinstance(level, int) else logging.INFO,
            json_output=bool(json_output),
            colors=not json_output and sys.stdout.isatty(),
            to_file=bool(Config.LOG_TO_FILE),
            logs_dir=Path(Config.LOGS_DIR),
            environment=environment,
        )


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """Copy the current log context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context = _context.get()
        for key, value in context.items():
            # explicit ``extra=`` values win over ambient context
            if not hasattr(record, key):
                setattr(record, key, value)
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, UNSET)
        return True


class ConsoleFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[36m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, datefmt: str, colors: bool) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.colors = colors

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        text = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno) if self.colors else None
        return f"{color}{text}{self.RESET}" if color else text


class JSONFormatter(logging.Formatter):
    """One JSON object per record; context and ``extra`` fields included."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        document: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_") or value == UNSET:
                continue
            document[key] = value

        if record.exc_info:
            document["exception"] = self.formatException(record.exc_info)

        return json.dumps(document, ensure_ascii=False, default=str)


# ============================================================================
# Setup / Teardown
# ============================================================================


def _console_handler(settings: LoggingSettings) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if settings.json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            ConsoleFormatter(settings.text_format, settings.date_format, settings.colors)
        )
    return handler


def _file_handler(settings: LoggingSettings) -> logging.Handler:
    settings.logs_dir.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(settings.logs_dir / settings.file_name),
        when="midnight",
        backupCount=settings.file_backups,
        encoding="utf-8",
        utc=True,
    )
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(force: bool = False) -> None:
    """Install the root handlers once per process (``force`` re-installs)."""
    root = logging.getLogger()
    if getattr(root, _INSTALLED_FLAG, False) and not force:
        return

    settings = LoggingSettings.from_config()

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    handlers = [_console_handler(settings)]
    if settings.to_file:
        handlers.append(_file_handler(settings))

    for handler in handlers:
        handler.setLevel(settings.level)
        handler.addFilter(ContextFilter())
        root.addHandler(handler)
    root.setLevel(settings.level)

    for noisy in ("sqlalchemy.engine", "aiosqlite", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    setattr(root, _INSTALLED_FLAG, True)
    logging.getLogger(__name__).debug(
        "Logging installed",
        extra={
            "environment": settings.environment,
            "json_output": settings.json_output,
            "to_file": settings.to_file,
        },
    )


def shutdown_logging() -> None:
    root = logging.getLogger()
    if not getattr(root, _INSTALLED_FLAG, False):
        return

    for handler in list(root.handlers):
        handler.flush()
        handler.close()
        root.removeHandler(handler)
    setattr(root, _INSTALLED_FLAG, False)


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


class LogContext:
    """
    Bind context for every record emitted inside the block.

    Nested contexts inherit the outer fields and override what they set.
    A ``request_id`` is generated when neither this block nor an enclosing
    one provides one.
    """

    def __init__(
        self,
        character_id: Optional[int] = None,
        operation: Optional[str] = None,
        request_id: Optional[str] = None,
        component: Optional[str] = None,
        **extra: Any,
    ) -> None:
        given = {
            "character_id": character_id,
            "operation": operation,
            "request_id": request_id,
            "component": component,
            **extra,
        }
        self._fields = {key: value for key, value in given.items() if value is not None}
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> LogContext:
        merged = {**_context.get(), **self._fields}
        merged.setdefault("request_id", new_request_id())
        self._token = _context.set(merged)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(**fields: Any) -> None:
    """Merge fields into the current task's context (None values are ignored)."""
    current = dict(_context.get())
    current.update({key: value for key, value in fields.items() if value is not None})
    _context.set(current)


def get_log_context() -> Dict[str, Any]:
    return dict(_context.get())


def clear_log_context() -> None:
    _context.set({})


setup_logging()
