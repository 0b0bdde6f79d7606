"""Configuration and error hierarchy."""

from pyionex.core.config import Settings, load_settings
from pyionex.core.exceptions import (
    PyIonexError,
    MalformedField,
    HeaderIncomplete,
    InvalidGrid,
    InvalidEpochRange,
    GridSizeMismatch,
    MapSequenceError,
    OutOfGrid,
    ValueOverflow,
    IncompatibleMerge,
)

__all__ = [
    "Settings",
    "load_settings",
    "PyIonexError",
    "MalformedField",
    "HeaderIncomplete",
    "InvalidGrid",
    "InvalidEpochRange",
    "GridSizeMismatch",
    "MapSequenceError",
    "OutOfGrid",
    "ValueOverflow",
    "IncompatibleMerge",
]
