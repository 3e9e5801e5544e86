"""
Process logging configuration.

This module sets up the root logger with console and optional (rotating)
file handlers, in plain text or structured JSON. Per-query execution logs
are separate: they live on the query record, not in these handlers.
"""

import json
import logging
import logging.handlers
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union


class LogLevel(Enum):
    """Log level enumeration."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def parse(cls, value: Union["LogLevel", str, int]) -> "LogLevel":
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Invalid log level '{value}'")


class LogFormat(Enum):
    """Log format types."""
    TEXT = "text"
    JSON = "json"
    DETAILED = "detailed"


_STANDARD_ATTRS = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName', 'taskName',
    'processName', 'process', 'exc_info', 'exc_text', 'stack_info',
    'message', 'extra_data',
})


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Structured context comes from ``record.extra_data`` and from any
    ``extra=`` keys passed to the logging call.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        extra_data = getattr(record, 'extra_data', None)
        if isinstance(extra_data, dict):
            log_data.update(extra_data)
        for attr_name, attr_value in record.__dict__.items():
            if attr_name.startswith('_') or attr_name in _STANDARD_ATTRS or callable(attr_value):
                continue
            log_data.setdefault(attr_name, attr_value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False, separators=(',', ':'))


def _parse_size(max_file_size: str) -> int:
    size = max_file_size.strip().upper()
    for suffix, factor in (('KB', 1024), ('MB', 1024 ** 2), ('GB', 1024 ** 3)):
        if size.endswith(suffix):
            return int(size[:-2]) * factor
    return int(size)


class LoggingManager:
    """Configures the root logger."""

    def __init__(
        self,
        log_level: LogLevel = LogLevel.INFO,
        log_format: LogFormat = LogFormat.TEXT,
        log_file: Optional[Path] = None,
        enable_console: bool = True,
        enable_rotation: bool = True,
        max_file_size: str = "10MB",
        backup_count: int = 5,
        console_handler: Optional[logging.Handler] = None,
    ):
        self.log_level = log_level
        self.log_format = log_format
        self.log_file = Path(log_file) if log_file else None
        self.enable_console = enable_console
        self.enable_rotation = enable_rotation
        self.max_file_size = max_file_size
        self.backup_count = backup_count
        self.console_handler = console_handler

        self._setup_root_logger()

    def _setup_root_logger(self) -> None:
        root_logger = logging.getLogger()
        root_logger.setLevel(self.log_level.value)
        root_logger.handlers.clear()

        formatter = self._create_formatter()

        if self.enable_console:
            console_handler = self.console_handler or logging.StreamHandler()
            console_handler.setLevel(self.log_level.value)
            # A caller-supplied handler (e.g. RichHandler) keeps its own layout.
            if self.console_handler is None or self.log_format == LogFormat.JSON:
                console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

        if self.log_file:
            file_handler = self._create_file_handler()
            file_handler.setLevel(self.log_level.value)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

    def _create_formatter(self) -> logging.Formatter:
        if self.log_format == LogFormat.JSON:
            return JSONFormatter()
        if self.log_format == LogFormat.DETAILED:
            return logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - '
                '%(module)s:%(funcName)s:%(lineno)d - %(message)s'
            )
        return logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    def _create_file_handler(self) -> logging.Handler:
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        if self.enable_rotation:
            return logging.handlers.RotatingFileHandler(
                filename=self.log_file,
                maxBytes=_parse_size(self.max_file_size),
                backupCount=self.backup_count,
                encoding='utf-8',
            )
        return logging.FileHandler(self.log_file, encoding='utf-8')


def configure_logging_from_config(
    config_manager,
    console_handler: Optional[logging.Handler] = None,
    level_override: Optional[str] = None,
) -> LoggingManager:
    """Set up logging from the ``logging`` configuration section."""
    level = level_override or config_manager.get("logging.level", "INFO")
    return LoggingManager(
        log_level=LogLevel.parse(level),
        log_format=LogFormat(config_manager.get("logging.format", "text")),
        log_file=config_manager.get("logging.file"),
        console_handler=console_handler,
    )
