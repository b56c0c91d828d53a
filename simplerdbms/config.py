"""
Runtime configuration and engine-wide constants.

Settings come from environment variables and can be overridden by the
REPL's command-line flags. Logging is configured here once per process.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional


# Text stored for SQL NULL in rows and data files
NULL_SENTINEL = "NULL"

# Tolerance for numeric equality and division-by-zero detection
EPSILON = 1e-9

DEFAULT_DATA_DIR = "./data"
DEFAULT_LOG_FILE = "./simplerdbms.log"
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:
    """Process-wide settings for the engine, REPL and web app."""
    data_dir: str = DEFAULT_DATA_DIR
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = DEFAULT_LOG_FILE

    @classmethod
    def from_env(cls) -> 'Settings':
        """
        Build settings from SIMPLERDBMS_* environment variables.

        An empty SIMPLERDBMS_LOG_FILE disables the log file.
        """
        log_file = os.environ.get("SIMPLERDBMS_LOG_FILE", DEFAULT_LOG_FILE)
        return cls(
            data_dir=os.environ.get("SIMPLERDBMS_DATA_DIR", DEFAULT_DATA_DIR),
            log_level=os.environ.get("SIMPLERDBMS_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
            log_file=log_file or None,
        )


def configure_logging(settings: Settings) -> None:
    """
    Install console and (optionally) file handlers on the package logger.

    Args:
        settings: Settings carrying the level name and log file path

    Raises:
        ValueError: If the level name is not a known logging level
    """
    level_name = settings.log_level.upper()
    if level_name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {settings.log_level}")

    logger = logging.getLogger("simplerdbms")
    logger.setLevel(getattr(logging, level_name))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console.setLevel(logging.WARNING)
    logger.addHandler(console)

    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
