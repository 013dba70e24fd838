"""
Unified logging setup for the whole project.
"""
import logging
import logging.handlers
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from .config import OUTPUTS_DIR


def setup_logging(level: str = "INFO",
                  log_file: Optional[Path] = None,
                  enable_console: bool = True) -> None:
    """
    Initialize the root logger with file and console output.
    Repeated calls do not create duplicate handlers.
    """
    root = logging.getLogger()

    # Always set the level (third-party libraries may have changed it)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    console_fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%H:%M:%S"
    )
    file_fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(filename)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if log_file is None:
        log_file = OUTPUTS_DIR / "codegraph.log"

    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logging.getLogger(__name__).warning(f"Cannot create log directory: {e}")

    # Add a file handler only if there is none for this file yet
    file_handler_exists = any(
        isinstance(h, logging.handlers.RotatingFileHandler) and getattr(h, 'baseFilename', None) == str(log_file)
        for h in root.handlers
    )
    if not file_handler_exists:
        file_handler = logging.handlers.RotatingFileHandler(
            str(log_file), maxBytes=25 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
        file_handler.setFormatter(file_fmt)
        root.addHandler(file_handler)

    if enable_console:
        console_exists = any(
            type(h) is logging.StreamHandler for h in root.handlers
        )
        if not console_exists:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
            console_handler.setFormatter(console_fmt)
            root.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Return a named logger.
    """
    return logging.getLogger(name)


@contextmanager
def log_timing(logger: logging.Logger, message: str):
    """
    Context manager that logs how long a block of code took.
    """
    start = time.time()
    logger.info(f"{message} - started")
    try:
        yield
    finally:
        took = time.time() - start
        logger.info(f"{message} - finished in {took:.2f}s")
