"""
pyrsx Logger
============

Structured logging for the compiler pipeline.

Every logger obtained with get_logger() shares the handlers of the
"pyrsx" root logger, so configure_logging() re-routes the parser, the
compiler and the transform at once:

    logger = get_logger("pyrsx.transform")
    logger.info("Transformed module", path="app.rsx.py", invocations=3)
    # 2026-01-15 10:30:45 [INFO] pyrsx.transform: Transformed module path=app.rsx.py invocations=3
"""

from __future__ import annotations

import logging
import sys
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Union

import orjson


ROOT_LOGGER = "pyrsx"


class LogLevel(IntEnum):
    """Log levels."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def parse(cls, value: Union[str, int, "LogLevel"]) -> "LogLevel":
        """Parse a level name ("debug", "WARNING") or number."""
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown log level: {value}") from None
        return cls(value)


@dataclass
class LogRecord:
    """
    Structured log record.

    Attributes:
        level: Log level
        message: Log message
        timestamp: Record timestamp
        context: Additional key/value context
        exception: Exception info
        logger_name: Name of the emitting logger
    """

    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[BaseException] = None
    logger_name: str = ROOT_LOGGER

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data: Dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.name,
            "message": self.message,
            "logger": self.logger_name,
        }

        if self.context:
            data["context"] = self.context

        if self.exception:
            data["exception"] = {
                "type": type(self.exception).__name__,
                "message": str(self.exception),
            }

        return data

    def to_json(self) -> str:
        """Convert to JSON string."""
        return orjson.dumps(self.to_dict(), default=str).decode()


class LogFormatter:
    """Base log formatter."""

    def format(self, record: LogRecord) -> str:
        raise NotImplementedError


class TextFormatter(LogFormatter):
    """
    Plain text formatter.

    Example output:
        2026-01-15 10:30:45 [WARNING] pyrsx.compiler: Unknown tag tag=widget
    """

    COLORS = {
        LogLevel.DEBUG: "\033[36m",
        LogLevel.INFO: "\033[32m",
        LogLevel.WARNING: "\033[33m",
        LogLevel.ERROR: "\033[31m",
        LogLevel.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        format_string: Optional[str] = None,
        date_format: str = "%Y-%m-%d %H:%M:%S",
        colors: bool = False,
    ):
        self.format_string = format_string or "{timestamp} [{level}] {logger}: {message}"
        self.date_format = date_format
        self.colors = colors

    def format(self, record: LogRecord) -> str:
        level = record.level.name
        if self.colors:
            level = f"{self.COLORS.get(record.level, '')}{level}{self.RESET}"

        message = record.message
        if record.context:
            pairs = " ".join(f"{k}={v}" for k, v in record.context.items())
            message = f"{message} {pairs}"

        output = self.format_string.format(
            timestamp=record.timestamp.strftime(self.date_format),
            level=level,
            message=message,
            logger=record.logger_name,
        )

        # Diagnostics render their own excerpt, anything else gets a traceback
        if record.exception:
            render = getattr(record.exception, "format", None)
            if callable(render):
                output += "\n" + render()
            else:
                output += "\n" + "".join(traceback.format_exception(
                    type(record.exception),
                    record.exception,
                    record.exception.__traceback__,
                ))

        return output


class JsonFormatter(LogFormatter):
    """JSON-lines formatter."""

    def format(self, record: LogRecord) -> str:
        return record.to_json()


class LogHandler:
    """Base log handler."""

    def __init__(
        self,
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ):
        self.formatter = formatter or TextFormatter()
        self.level = level

    def handle(self, record: LogRecord) -> None:
        if record.level >= self.level:
            self.emit(record)

    def emit(self, record: LogRecord) -> None:
        raise NotImplementedError


class StreamHandler(LogHandler):
    """Stream output handler (stderr by default)."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ):
        super().__init__(formatter, level)
        self.stream = stream or sys.stderr

    def emit(self, record: LogRecord) -> None:
        self.stream.write(self.formatter.format(record) + "\n")
        self.stream.flush()


class FileHandler(LogHandler):
    """Append-only file handler."""

    def __init__(
        self,
        path: Union[str, Path],
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ):
        super().__init__(formatter or JsonFormatter(), level)
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, record: LogRecord) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(self.formatter.format(record) + "\n")


class MemoryHandler(LogHandler):
    """Keeps records in memory, for inspection in tests and tooling."""

    def __init__(self, level: LogLevel = LogLevel.DEBUG):
        super().__init__(level=level)
        self.records: List[LogRecord] = []

    def emit(self, record: LogRecord) -> None:
        self.records.append(record)

    def messages(self, level: Optional[LogLevel] = None) -> List[str]:
        return [r.message for r in self.records if level is None or r.level == level]

    def clear(self) -> None:
        self.records.clear()


class Logger:
    """
    Structured logger.

    Example:
        logger = Logger("pyrsx.parser")

        logger.debug("Parsed markup", tag="div", length=120)
        logger.error("Could not load element metadata", exception=e)

        # With context
        logger = logger.with_context(filename="app.rsx.py")
        logger.info("Transformed module")
    """

    def __init__(
        self,
        name: str = ROOT_LOGGER,
        level: Optional[LogLevel] = None,
        handlers: Optional[List[LogHandler]] = None,
        parent: Optional["Logger"] = None,
    ):
        """
        Initialize logger.

        Args:
            name: Logger name
            level: Minimum log level (None: inherit from parent)
            handlers: Own handlers
            parent: Logger whose handlers and level are inherited
        """
        self.name = name
        self._level = level
        self._handlers = handlers if handlers is not None else []
        self._parent = parent
        self._context: Dict[str, Any] = {}

    @property
    def level(self) -> LogLevel:
        if self._level is not None:
            return self._level
        if self._parent is not None:
            return self._parent.level
        return LogLevel.INFO

    @level.setter
    def level(self, value: Optional[LogLevel]) -> None:
        self._level = value

    @property
    def handlers(self) -> List[LogHandler]:
        if self._parent is not None:
            return self._handlers + self._parent.handlers
        return self._handlers

    def add_handler(self, handler: LogHandler) -> "Logger":
        self._handlers.append(handler)
        return self

    def remove_handler(self, handler: LogHandler) -> "Logger":
        self._handlers.remove(handler)
        return self

    def with_context(self, **context: Any) -> "Logger":
        """
        Create logger with additional context.

        Args:
            **context: Context key-values

        Returns:
            New logger sharing this logger's handlers
        """
        new_logger = Logger(
            name=self.name,
            level=self._level,
            handlers=self._handlers,
            parent=self._parent,
        )
        new_logger._context = {**self._context, **context}
        return new_logger

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self.level

    def _log(
        self,
        level: LogLevel,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        if not self.is_enabled_for(level):
            return

        record = LogRecord(
            level=level,
            message=message,
            context={**self._context, **context},
            exception=exception,
            logger_name=self.name,
        )

        for handler in self.handlers:
            try:
                handler.handle(record)
            except (OSError, ValueError):
                pass  # a broken stream must not abort a compilation

    def debug(self, message: str, **context: Any) -> None:
        self._log(LogLevel.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(LogLevel.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(LogLevel.WARNING, message, **context)

    def error(
        self,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        self._log(LogLevel.ERROR, message, exception, **context)

    def critical(
        self,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        self._log(LogLevel.CRITICAL, message, exception, **context)

    def exception(self, message: str, **context: Any) -> None:
        """Log the exception currently being handled."""
        self._log(LogLevel.ERROR, message, sys.exc_info()[1], **context)


# Global logger registry
_root = Logger(name=ROOT_LOGGER, level=LogLevel.INFO, handlers=[StreamHandler()])
_loggers: Dict[str, Logger] = {ROOT_LOGGER: _root}


def get_logger(
    name: str = ROOT_LOGGER,
    level: Optional[LogLevel] = None,
) -> Logger:
    """
    Get or create logger.

    Args:
        name: Logger name ("pyrsx.<area>" by convention)
        level: Log level (default: inherit from the root logger)

    Returns:
        Logger instance
    """
    if name not in _loggers:
        _loggers[name] = Logger(name=name, level=level, parent=_root)
    elif level is not None:
        _loggers[name].level = level
    return _loggers[name]


def configure_logging(
    level: Optional[Union[LogLevel, str]] = None,
    format: Optional[str] = None,
    log_file: Optional[str] = None,
    colors: bool = False,
    stream: Optional[TextIO] = None,
) -> Logger:
    """
    Configure the root logger.

    Unset arguments fall back to the logging.level and logging.format
    configuration keys.

    Args:
        level: Log level
        format: Output format ("text" or "json")
        log_file: Optional log file path
        colors: Enable colored text output
        stream: Output stream (default: stderr)

    Returns:
        The root logger
    """
    from pyrsx.core.config import get_config

    cfg = get_config()
    level = LogLevel.parse(level if level is not None else cfg.get_str("logging.level", "INFO"))
    format = format or cfg.get_str("logging.format", "text")

    if format not in ("text", "json"):
        raise ValueError(f"Unknown log format: {format}")

    formatter: LogFormatter = JsonFormatter() if format == "json" else TextFormatter(colors=colors)
    handlers: List[LogHandler] = [StreamHandler(stream=stream, formatter=formatter, level=level)]

    if log_file:
        file_formatter = JsonFormatter() if format == "json" else TextFormatter()
        handlers.append(FileHandler(log_file, formatter=file_formatter, level=level))

    _root.level = level
    _root._handlers = handlers
    return _root
