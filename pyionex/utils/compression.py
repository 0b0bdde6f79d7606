"""
Transparent decompression of IONEX inputs.

IONEX products are usually distributed gzip-compressed (``CODG0020.22I.gz``).
The parser only ever sees a text stream; this module turns a path into one.

Usage:
    from pyionex.utils.compression import open_text

    with open_text("/path/to/CODG0020.22I.gz") as stream:
        ionex = IONEX.parse(stream)
"""

from __future__ import annotations

import gzip
import io
from enum import Enum
from pathlib import Path
from typing import TextIO

from pyionex.utils.logging import get_logger

logger = get_logger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


class CompressionFormat(str, Enum):
    """Supported compression formats."""

    GZIP = "gz"
    NONE = ""


def detect_compression(file_path: Path | str) -> CompressionFormat:
    """Detect compression format from magic bytes, falling back on the suffix.

    Args:
        file_path: Path to file

    Returns:
        Detected compression format
    """
    file_path = Path(file_path)

    if file_path.exists():
        with open(file_path, "rb") as f:
            if f.read(2) == GZIP_MAGIC:
                return CompressionFormat.GZIP
        return CompressionFormat.NONE

    if file_path.suffix.lower() == ".gz":
        return CompressionFormat.GZIP
    return CompressionFormat.NONE


def open_text(file_path: Path | str, mode: str = "r") -> TextIO:
    """Open a possibly gzip-compressed file as ASCII text.

    In write mode, compression is chosen from the ``.gz`` suffix.

    Args:
        file_path: Path to file
        mode: "r" or "w"

    Returns:
        Text stream; the caller owns it

    Raises:
        FileNotFoundError: If reading and the file does not exist
    """
    file_path = Path(file_path)

    if mode not in ("r", "w"):
        raise ValueError(f"Unsupported mode: {mode}")

    if mode == "r":
        if not file_path.exists():
            raise FileNotFoundError(f"IONEX file not found: {file_path}")
        compression = detect_compression(file_path)
    else:
        compression = (
            CompressionFormat.GZIP
            if file_path.suffix.lower() == ".gz"
            else CompressionFormat.NONE
        )

    logger.debug("Opening IONEX stream", path=str(file_path), mode=mode, compression=compression.name)

    if compression == CompressionFormat.GZIP:
        return io.TextIOWrapper(
            gzip.open(file_path, mode + "b"), encoding="ascii", errors="replace", newline=None
        )
    return open(file_path, mode, encoding="ascii", errors="replace")
