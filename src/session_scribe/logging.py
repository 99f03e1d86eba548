"""Logging configuration for session-scribe.

Provides centralized logging setup with file output to ~/.session-scribe/logs/.
"""

import logging
import sys
from pathlib import Path

# Default log directory
DEFAULT_LOG_DIR = Path.home() / ".session-scribe" / "logs"


def setup_logging(
    name: str,
    log_dir: Path | None = None,
    level: int = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Configure logging for a session-scribe component.

    Creates a logger with both file and optional console handlers.
    Log files are written to <log_dir>/<name>.log.

    Args:
        name: Logger name (used for log filename)
        log_dir: Directory for log files (defaults to ~/.session-scribe/logs/)
        level: Logging level (defaults to INFO)
        console: Whether to also log to console (defaults to True)

    Returns:
        Configured logger instance
    """
    if log_dir is None:
        log_dir = DEFAULT_LOG_DIR

    log_dir.mkdir(parents=True, exist_ok=True)

    # Component loggers propagate here, so the package root carries the handlers
    logger = logging.getLogger("session_scribe")
    logger.setLevel(level)

    # Avoid adding duplicate handlers if already configured
    if logger.handlers:
        return logging.getLogger(f"session_scribe.{name}")

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = logging.FileHandler(log_dir / f"{name}.log", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logging.getLogger(f"session_scribe.{name}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a session-scribe component.

    For full configuration with file output, use setup_logging().

    Args:
        name: Logger name (will be prefixed with 'session_scribe.')

    Returns:
        Logger instance
    """
    return logging.getLogger(f"session_scribe.{name}")
