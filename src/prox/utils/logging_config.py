"""Logging configuration for prox."""

import logging
import logging.handlers
import os
import re
import sys
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional

ROOT_LOGGER_NAME = "prox"

# Group 1 keeps the key and separator, the value after it is redacted
DEFAULT_SENSITIVE_PATTERNS = [
    r"((?:password|ticket|PVEAuthCookie|CSRFPreventionToken)[\"']?\s*[=:]\s*[\"']?)[^\s,;&\"']+",
]


class LogLevel(str, Enum):
    """Log levels for configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def parse(cls, value: Any) -> "LogLevel":
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.WARNING


@dataclass
class LoggingConfig:
    """Configuration for logging system."""

    level: LogLevel = LogLevel.WARNING
    enable_console_logging: bool = True
    log_file: Optional[str] = None
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_colors: bool = True
    sensitive_data_patterns: List[str] = field(
        default_factory=lambda: list(DEFAULT_SENSITIVE_PATTERNS)
    )

    @classmethod
    def from_config(cls, config: Any, verbose: bool = False) -> "LoggingConfig":
        """
        Build logging settings from the ``logging`` config section.

        Args:
            config: Config instance
            verbose: Force DEBUG level
        """
        level = LogLevel.DEBUG if verbose else LogLevel.parse(config.get("logging.level", "WARNING"))
        return cls(
            level=level,
            log_file=config.get("logging.file"),
            console_colors=bool(config.get("logging.use_colors", True)),
        )


class SensitiveDataFilter(logging.Filter):
    """Filter to redact credentials and session tokens from log messages."""

    def __init__(self, patterns: List[str]) -> None:
        """
        Initialize the filter with sensitive data patterns.

        Args:
            patterns: Regex patterns; group 1 is kept, the rest of the match
                is replaced
        """
        super().__init__()
        self.patterns = patterns
        self.compiled_patterns = [re.compile(pattern, re.IGNORECASE) for pattern in patterns]

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Filter log record to redact sensitive data.

        Returns:
            bool: Always True (we modify but don't filter out records)
        """
        if isinstance(record.msg, str):
            record.msg = self.redact(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                self.redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )

        return True

    def redact(self, text: str) -> str:
        """Redact sensitive data from text."""
        for pattern in self.compiled_patterns:
            text = pattern.sub(r"\1[REDACTED]", text)
        return text


class ColoredConsoleFormatter(logging.Formatter):
    """Console formatter with color support."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and self._supports_color()

    def _supports_color(self) -> bool:
        return (
            hasattr(sys.stderr, "isatty")
            and sys.stderr.isatty()
            and os.environ.get("TERM") != "dumb"
        )

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            reset = self.COLORS["RESET"]
            formatted = (
                f"{color}[{timestamp}] {record.levelname:<8}{reset} - "
                f"{record.name} - {record.getMessage()}"
            )
        else:
            formatted = f"[{timestamp}] {record.levelname:<8} - {record.name} - {record.getMessage()}"

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"
        return formatted


class LoggingManager:
    """
    Installs handlers on the ``prox`` logger.

    Every handler carries the sensitive data filter, so tickets and
    passwords never reach the console or the log file.
    """

    def __init__(self, config: Optional[LoggingConfig] = None):
        self.config = config or LoggingConfig()

    def setup_logging(self) -> logging.Logger:
        """Set up handlers and levels; safe to call more than once."""
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(getattr(logging, self.config.level.value))

        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

        if self.config.enable_console_logging:
            root_logger.addHandler(self._create_console_handler())

        if self.config.log_file:
            root_logger.addHandler(self._create_file_handler())

        self._configure_third_party_logging()
        return root_logger

    def _add_filters(self, handler: logging.Handler) -> None:
        if self.config.sensitive_data_patterns:
            handler.addFilter(SensitiveDataFilter(self.config.sensitive_data_patterns))

    def _create_console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(getattr(logging, self.config.level.value))
        handler.setFormatter(ColoredConsoleFormatter(use_colors=self.config.console_colors))
        self._add_filters(handler)
        return handler

    def _create_file_handler(self) -> logging.Handler:
        """Create rotating file handler."""
        log_file = Path(os.path.expanduser(str(self.config.log_file)))
        log_file.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            filename=str(log_file),
            maxBytes=self.config.max_file_size_mb * 1024 * 1024,
            backupCount=self.config.backup_count,
            encoding="utf-8",
        )
        handler.setLevel(getattr(logging, self.config.level.value))
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] %(levelname)-8s - %(name)s - %(threadName)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        self._add_filters(handler)
        return handler

    def _configure_third_party_logging(self) -> None:
        """Reduce noise from third-party libraries."""
        for logger_name in ("urllib3", "requests", "keyring"):
            logging.getLogger(logger_name).setLevel(logging.WARNING)


def setup_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Configure logging for prox.

    Args:
        config: Logging configuration

    Returns:
        The configured ``prox`` logger
    """
    return LoggingManager(config).setup_logging()
