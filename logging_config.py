"""Process-wide logging setup.

Console output uses a branded single-line format. When a log directory is
configured, two daily-rotated files are added:
    - error.log: ERROR and above, rotated at midnight, 14 days kept
    - combined.log: every record, rotated at midnight, 30 days kept
"""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

BRAND = "[FRC-API]"
CONSOLE_FORMAT = f"{BRAND}  %(asctime)s  %(levelname)s [%(name)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _rotating_handler(path: Path, backup_count: int, level: int) -> TimedRotatingFileHandler:
    handler = TimedRotatingFileHandler(
        path, when="midnight", backupCount=backup_count, encoding="utf-8"
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def configure_logging(level: str = "info", log_dir: str | Path | None = None) -> None:
    """Configure the root logger. Safe to call more than once."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    handlers[0].setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))

    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        handlers.append(_rotating_handler(directory / "error.log", 14, logging.ERROR))
        handlers.append(_rotating_handler(directory / "combined.log", 30, logging.NOTSET))

    logging.basicConfig(level=level.upper(), handlers=handlers, force=True)
