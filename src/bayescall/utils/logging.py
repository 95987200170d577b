"""
Logging utilities for bayescall.

Results may be streamed to stdout, so every diagnostic (log records, rich
status and progress output) goes to stderr.
"""

import logging
import time
from collections.abc import Callable
from contextlib import contextmanager
from functools import wraps
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

__all__ = [
    "console",
    "setup_logging",
    "timed",
    "log_call",
]

# Module-level console for rich output
console = Console(stderr=True)


def setup_logging(verbose: bool = False, log_file: str | None = None) -> None:
    """
    Configure logging for bayescall.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise INFO.
        log_file: Optional path to also write logs to.
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers: list[logging.Handler] = [
        RichHandler(
            console=console,
            rich_tracebacks=True,
            markup=False,
            show_path=verbose,
        )
    ]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )


@contextmanager
def timed(operation: str, logger: logging.Logger | None = None):
    """
    Log the wall time of a block at DEBUG level.

    Example:
        with timed("Calling chr1", logger):
            results = list(caller.run(feed))
    """
    log = logger or logging.getLogger(__name__)
    start = time.perf_counter()
    log.debug("Starting: %s", operation)
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        log.debug("Completed: %s (%.3fs)", operation, elapsed)


def log_call(logger: logging.Logger | None = None) -> Callable:
    """Decorator logging entry, duration and failures of a function."""

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            log = logger or logging.getLogger(func.__module__)
            log.debug("Calling %s", func.__name__)
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                log.error("%s failed: %s", func.__name__, e)
                raise
            log.debug("%s completed (%.3fs)", func.__name__, time.perf_counter() - start)
            return result

        return wrapper

    return decorator
