"""Observability module for DialogForge.

Provides structured logging.
"""

from dialogforge.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
]
