"""
Logging configuration for the salinity trends pipeline.

Console output for run progress, a detailed log file for per-record diagnostics.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional


def setup_logger(
    name: str = "salinity_trends",
    log_file: Optional[str] = None,
    log_level: str = "INFO",
    console_level: str = "INFO"
) -> logging.Logger:
    """
    Set up the pipeline logger with console and file handlers.

    Args:
        name: Logger name
        log_file: Path to log file. If None, uses LOG_FILE env var or default
        log_level: Level of the logger itself (DEBUG, INFO, WARNING, ...)
        console_level: Level of the console handler

    Returns:
        Configured logger instance
    """
    if log_file is None:
        log_file = os.getenv("LOG_FILE", "logs/salinity_trends.log")

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Re-running setup must not stack handlers
    logger.handlers.clear()

    file_formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_formatter = logging.Formatter(
        fmt="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, console_level.upper(), logging.INFO))
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(file_formatter)
    logger.addHandler(file_handler)

    logger.propagate = False

    return logger


class LoggerContext:
    """Context manager that logs the start, duration and failure of a pipeline stage."""

    def __init__(self, logger: logging.Logger, stage: str):
        """
        Initialize logger context.

        Args:
            logger: Logger instance
            stage: Name of the stage being run
        """
        self.logger = logger
        self.stage = stage
        self.start_time: Optional[datetime] = None

    def __enter__(self):
        self.start_time = datetime.now()
        self.logger.info(f"Starting {self.stage}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = (datetime.now() - self.start_time).total_seconds()

        if exc_type is not None:
            self.logger.error(
                f"Stage '{self.stage}' failed after {duration:.2f}s: {exc_val}",
                exc_info=True
            )
            return False

        self.logger.info(f"Completed {self.stage} in {duration:.2f}s")
        return False
