"""Logging configuration for tainter."""

import logging
import sys
from pathlib import Path

TRACE = 5

# Level names accepted in the settings file, most to least severe.
LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": TRACE,
}

logging.addLevelName(TRACE, "TRACE")


def resolve_level(level: str) -> int:
    """Translate a level name into a logging level number.

    Accepts the settings file names (error, warn, info, debug, trace) as well
    as the standard logging names (WARNING, CRITICAL, ...).

    Raises:
        ValueError: If the name is unknown
    """
    name = level.strip().lower()
    if name in LOG_LEVELS:
        return LOG_LEVELS[name]
    value = logging.getLevelName(name.upper())
    if isinstance(value, int):
        return value
    raise ValueError(f"unknown log level '{level}', expected one of {list(LOG_LEVELS)}")


def setup_logging(level: str = "info", log_file: Path | None = None, verbose: bool = False) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (error, warn, info, debug, trace)
        log_file: Optional path to log file
        verbose: If True, set level to DEBUG unless a more detailed level was requested
    """
    numeric_level = resolve_level(level)
    if verbose:
        numeric_level = min(numeric_level, logging.DEBUG)

    # Create formatter
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers
    root_logger.handlers.clear()

    # The controller reports everything through its log stream, so the console
    # handler follows the configured level.
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (if specified)
    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except Exception as e:
            logging.warning(f"Failed to create log file handler: {e}")

    # Set levels for noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
