"""Logging configuration for sshbuddy with file output and optional console."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog

from ..constants import LOG_FILE


def setup_logging(
    log_dir: Path | str,
    log_level: str | None = None,
    max_file_size_mb: int = 5,
    console: bool = False,
) -> None:
    """Setup structured logging to a rotating file and, optionally, stderr.

    The interactive front end owns the terminal, so console output is off by
    default.

    Args:
        log_dir: Directory for the log file
        log_level: Log level (defaults to LOG_LEVEL env var or INFO)
        max_file_size_mb: Max file size before truncation (no backup files kept)
        console: Also log to stderr
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    log_level_num = getattr(logging, log_level.upper(), logging.INFO)
    max_bytes = max_file_size_mb * 1024 * 1024

    # Clear any existing handlers to prevent duplicates
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level_num)

    from structlog.stdlib import BoundLogger, LoggerFactory, ProcessorFormatter

    file_handler = RotatingFileHandler(
        log_dir / LOG_FILE,
        maxBytes=max_bytes,
        backupCount=0,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level_num)
    file_handler.setFormatter(ProcessorFormatter(processor=structlog.processors.JSONRenderer()))
    root_logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level_num)
        renderer = (
            structlog.dev.ConsoleRenderer()
            if sys.stderr.isatty()
            else structlog.processors.JSONRenderer()
        )
        console_handler.setFormatter(ProcessorFormatter(processor=renderer))
        root_logger.addHandler(console_handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger("sshbuddy")
    logger.info(
        "Logging system initialized",
        log_file=str((log_dir / LOG_FILE).absolute()),
        log_level=log_level,
        console=console,
    )


def get_logger(name: str = "sshbuddy") -> Any:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)
