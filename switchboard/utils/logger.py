# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Logging configuration for Switchboard."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

__all__ = [
    "logger",
    "setup_logger",
    "configure_logging",
    "LogFormat",
]

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "message", "taskName",
    "thread", "threadName",
}


class LogFormat(str, Enum):
    """Supported log output formats."""

    JSON = "json"
    HUMAN = "human"
    TEXT = "text"


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Emits one JSON object per line. Anything passed through ``extra=`` is
    nested under an ``extra`` key so metrics lines stay machine readable.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


class HumanFormatter(logging.Formatter):
    """Colored single-line formatter for terminals."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%H:%M:%S")
        level = record.levelname
        if self.use_colors:
            color = self.COLORS.get(level, "")
            prefix = f"{self.DIM}{timestamp}{self.RESET} {color}{self.BOLD}[{level:>8}]{self.RESET}"
        else:
            prefix = f"{timestamp} [{level:>8}]"

        output = f"{prefix} {record.getMessage()}"
        if record.exc_info:
            output += f"\n{self.formatException(record.exc_info)}"
        return output


class TextFormatter(logging.Formatter):
    """Plain text log formatter."""

    def __init__(self):
        super().__init__(fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def get_log_level(level_str: str) -> int:
    """
    Convert log level string to logging constant.

    Args:
        level_str: Log level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logging level constant, INFO for unknown names
    """
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "WARN": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(level_str.upper(), logging.INFO)


def get_formatter(log_format: Union[LogFormat, str], use_colors: bool = True) -> logging.Formatter:
    """Return the formatter for ``log_format`` (JSON when unrecognized)."""
    try:
        log_format = LogFormat(str(log_format).lower())
    except ValueError:
        log_format = LogFormat.JSON

    if log_format == LogFormat.HUMAN:
        return HumanFormatter(use_colors=use_colors)
    if log_format == LogFormat.TEXT:
        return TextFormatter()
    return JsonFormatter()


def configure_logging(
    level: str = "INFO",
    log_format: Union[LogFormat, str] = LogFormat.JSON,
) -> None:
    """
    Reconfigure the global Switchboard logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: json, human or text
    """
    log_level = get_log_level(level)

    logger.setLevel(log_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(get_formatter(log_format))
    logger.addHandler(handler)


def setup_logger(
    name: str = "switchboard",
    level: int = logging.INFO,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Setup and configure a logger for Switchboard.

    Honors SWITCHBOARD_LOG_FORMAT (json|human|text) and SWITCHBOARD_LOG_LEVEL.

    Args:
        name: Logger name
        level: Logging level
        format_string: Custom format string for log messages

    Returns:
        Configured logger instance
    """
    log = logging.getLogger(name)
    log.setLevel(level)
    log.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    env_format = os.environ.get("SWITCHBOARD_LOG_FORMAT", "json").lower()
    env_level = os.environ.get("SWITCHBOARD_LOG_LEVEL", "")

    if env_level:
        level = get_log_level(env_level)
        log.setLevel(level)
        handler.setLevel(level)

    if format_string is not None:
        formatter = logging.Formatter(format_string)
    else:
        formatter = get_formatter(env_format)

    handler.setFormatter(formatter)
    log.addHandler(handler)

    return log


# Default logger instance
logger = setup_logger()
