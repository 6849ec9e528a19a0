"""
Logging configuration for Outlook Mail Sorter.
"""

import logging
import logging.handlers
from pathlib import Path


# LOG_LEVEL values accepted from .env, mapped to logging level names
LEVEL_ALIASES = {
    "error": "ERROR",
    "warn": "WARNING",
    "warning": "WARNING",
    "info": "INFO",
    "debug": "DEBUG",
}


def resolve_log_level(value: str) -> str:
    """
    Map a LOG_LEVEL value to a logging level name.

    Unknown values fall back to INFO.

    Args:
        value: Level string from configuration (case-insensitive)

    Returns:
        Logging level name (DEBUG, INFO, WARNING, ERROR)
    """
    return LEVEL_ALIASES.get((value or "").strip().lower(), "INFO")


def setup_logging(
    log_level: str = "INFO", log_file: str = None, log_to_console: bool = True, log_format: str = "standard"
):
    """
    Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR) or a LOG_LEVEL alias
        log_file: Path to log file (None = no file logging)
        log_to_console: Whether to log to console
        log_format: Format style ('standard', 'detailed')
    """

    # Ensure logs directory exists
    if log_file:
        log_dir = Path(log_file).parent
        log_dir.mkdir(parents=True, exist_ok=True)

    formats = {
        "standard": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "detailed": "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(funcName)s - %(message)s",
    }

    log_format_str = formats.get(log_format, formats["standard"])

    formatter = logging.Formatter(log_format_str, datefmt="%Y-%m-%d %H:%M:%S")

    level_name = resolve_log_level(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name))

    # Remove existing handlers
    root_logger.handlers.clear()

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # File handler with rotation
    if log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Set third-party library log levels (reduce noise)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("msal").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.INFO)

    logging.info(f"Logging configured: level={level_name}, file={log_file}")

