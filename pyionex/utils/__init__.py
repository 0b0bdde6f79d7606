"""Utility modules for logging and compressed input handling."""

from pyionex.utils.logging import configure_logging, get_logger, setup_logging
from pyionex.utils.compression import (
    CompressionFormat,
    detect_compression,
    open_text,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "setup_logging",
    "CompressionFormat",
    "detect_compression",
    "open_text",
]
