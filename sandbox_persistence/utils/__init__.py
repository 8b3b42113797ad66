"""Utility modules for sandbox persistence.

This package provides:
- logging: Root logger setup with JSON/text output support
"""

from sandbox_persistence.utils.logging import (
    JsonFormatter,
    configure_logger,
    configure_root_logger,
)

__all__ = [
    "JsonFormatter",
    "configure_logger",
    "configure_root_logger",
]
