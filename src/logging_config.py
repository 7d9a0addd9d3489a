"""Logging configuration using Loguru.

Provides structured logging with:
- Console output for development
- File rotation for production
- Truncation helpers so transcripts and tool payloads stay short in logs
"""

import sys
from pathlib import Path
from typing import Any

from loguru import logger


def setup_logging(
    level: str = "INFO",
    log_dir: str = "logs",
    enable_file: bool = True,
) -> None:
    """Configure application logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files
        enable_file: Whether to enable file logging
    """
    logger.remove()

    logger.add(
        sys.stderr,
        format=(
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=True,  # Disable in production for security
    )

    if enable_file:
        log_path = Path(log_dir)
        log_path.mkdir(exist_ok=True)

        logger.add(
            log_path / "voicedesk_{time:YYYY-MM-DD}.log",
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{name}:{function}:{line} | "
                "{message}"
            ),
            level=level,
            rotation="100 MB",
            retention="30 days",
            compression="gz",
            backtrace=True,
            diagnose=False,
        )

        # Error-only log for quick debugging
        logger.add(
            log_path / "errors_{time:YYYY-MM-DD}.log",
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{name}:{function}:{line} | "
                "{message}\n{exception}"
            ),
            level="ERROR",
            rotation="50 MB",
            retention="90 days",
            compression="gz",
            backtrace=True,
            diagnose=False,
        )

    logger.info(f"Logging initialized at {level} level")


def get_logger(name: str) -> "logger":
    """Get a logger instance with the given name.

    Usage:
        from src.logging_config import get_logger
        logger = get_logger(__name__)
        logger.info("Message")
    """
    return logger.bind(name=name)


def truncate_for_log(text: str, limit: int = 80) -> str:
    """Shorten user or model text before it reaches a log line."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."


def describe_payload(data: dict[str, Any]) -> str:
    """Summarize a tool payload by its keys only.

    Tool data carries names, emails and phone numbers, so values never go
    into log lines.
    """
    if not data:
        return "(empty)"
    return ", ".join(sorted(str(key) for key in data))
