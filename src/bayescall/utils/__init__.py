"""
Utility modules for bayescall.

Provides logging, timing, and other shared utilities.
"""

from .logging import console, log_call, setup_logging, timed

__all__ = [
    "console",
    "log_call",
    "setup_logging",
    "timed",
]
