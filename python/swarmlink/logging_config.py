"""
swarmlink logging configuration.

Every module gets its logger from ``setup_logger`` so that output lands in a single
rotating file. The level and directory are controlled by environment variables.
"""

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


_LOG_DIR_CACHE: tuple[str | None, Path] | None = None
PRIMARY_LOG_FILENAME = "swarmlink.log"


def get_log_level() -> int:
    """
    Get log level from environment variable or default to INFO.

    Environment variable: SWARMLINK_LOG_LEVEL
    Valid values: DEBUG, INFO, WARNING, ERROR, CRITICAL
    """
    level_name = os.getenv("SWARMLINK_LOG_LEVEL", "INFO").upper()

    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    return level_map.get(level_name, logging.INFO)


def _can_write_files(directory: Path) -> bool:
    try:
        directory.mkdir(parents=True, exist_ok=True)
        probe = directory / f".write_probe_{os.getpid()}_{os.urandom(4).hex()}"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink(missing_ok=True)
        return True
    except OSError:
        return False


def get_log_directory() -> Path:
    """
    Get the log directory path.

    Default: ~/.swarmlink/.logs/
    Can be overridden with SWARMLINK_LOG_DIR environment variable.
    """
    global _LOG_DIR_CACHE

    log_dir_str = os.getenv("SWARMLINK_LOG_DIR")
    if _LOG_DIR_CACHE is not None and _LOG_DIR_CACHE[0] == log_dir_str:
        return _LOG_DIR_CACHE[1]

    candidates: list[Path] = []
    if log_dir_str:
        candidates.append(Path(log_dir_str).expanduser())
    else:
        candidates.append(Path.home() / ".swarmlink" / ".logs")

    # Fallback for sandboxed runners without a writable home.
    candidates.append(Path(tempfile.gettempdir()) / "swarmlink-logs")

    for candidate in candidates:
        if _can_write_files(candidate):
            _LOG_DIR_CACHE = (log_dir_str, candidate)
            return candidate

    chosen = candidates[0]
    _LOG_DIR_CACHE = (log_dir_str, chosen)
    return chosen


def get_primary_log_path() -> Path:
    return get_log_directory() / PRIMARY_LOG_FILENAME


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 2,
    console_output: bool = False,
) -> logging.Logger:
    """
    Set up a logger with file rotation and optional console output.

    Args:
        name: Logger name (e.g., 'swarmlink.tmux', 'swarmlink.queue')
        log_file: Log filename hint. Only `swarmlink.log` is persisted to file.
        max_bytes: Maximum size of the log file before rotation (default: 10MB)
        backup_count: Number of rotated files to keep
        console_output: Whether to also output to stderr (default: False)

    Example:
        >>> logger = setup_logger('swarmlink.queue', 'swarmlink.log')
        >>> logger.info("Queue opened")
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        logger.setLevel(get_log_level())
        return logger

    logger.setLevel(get_log_level())
    logger.propagate = False

    formatter = logging.Formatter(
        fmt="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )

    if log_file and log_file == PRIMARY_LOG_FILENAME:
        try:
            file_handler = RotatingFileHandler(
                get_primary_log_path(),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            import sys

            print(f"Warning: Failed to set up file logging: {e}", file=sys.stderr)

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(get_log_level())
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger

