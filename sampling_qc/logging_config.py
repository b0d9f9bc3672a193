"""Logging setup for the application and its libraries."""
from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from flask import Flask

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(app: Flask) -> None:
    """Attach console and optional daily-rotating file handlers.

    Handlers go on the package logger so ``app.logger`` and module loggers
    (``logging.getLogger(__name__)``) share them.
    """

    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    package_logger = logging.getLogger("sampling_qc")
    package_logger.setLevel(level)
    package_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    log_dir = app.config.get("LOG_DIR")
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.TimedRotatingFileHandler(
            filename=Path(log_dir) / "application.log",
            when="midnight",
            interval=1,
            backupCount=app.config.get("LOG_RETENTION_DAYS", 7),
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    app.logger.setLevel(level)
