"""
Custom exceptions for pyionex.

Parse-time errors are fatal for the file being read: no partial model is
ever returned. Formatting errors abort the write only.
"""

from __future__ import annotations


class PyIonexError(Exception):
    """Base exception for all pyionex errors."""

    pass


class MalformedField(PyIonexError):
    """Non-numeric characters found in a numeric fixed-width column."""

    def __init__(
        self,
        line_number: int | None,
        start: int,
        end: int,
        text: str,
        field: str | None = None,
    ):
        self.line_number = line_number
        self.start = start
        self.end = end
        self.text = text
        self.field = field
        where = f"line {line_number}" if line_number is not None else "input"
        name = f" ({field})" if field else ""
        super().__init__(
            f"Malformed field{name} at {where}, columns {start + 1}-{end}: {text!r}"
        )


class HeaderIncomplete(PyIonexError):
    """Map data found before END OF HEADER, or input ended inside the header."""

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class InvalidGrid(PyIonexError):
    """Grid definition (or exponent) violates the IONEX header rules."""

    pass


class InvalidEpochRange(PyIonexError):
    """Missing or inverted EPOCH OF FIRST MAP / EPOCH OF LAST MAP."""

    pass


class GridSizeMismatch(PyIonexError):
    """A map row or block does not match the declared grid dimensions."""

    def __init__(
        self,
        message: str,
        expected: int | None = None,
        found: int | None = None,
        line_number: int | None = None,
    ):
        self.expected = expected
        self.found = found
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class MapSequenceError(PyIonexError):
    """Map ordinals or epochs are gapped, repeated or out of order."""

    def __init__(self, message: str, ordinal: int | None = None):
        self.ordinal = ordinal
        super().__init__(message)


class OutOfGrid(PyIonexError):
    """Exact-node lookup at a coordinate that is not a grid node."""

    def __init__(self, axis: str, value: float, message: str | None = None):
        self.axis = axis
        self.value = value
        super().__init__(message or f"{axis} {value} is not a grid node")


class ValueOverflow(PyIonexError):
    """A value does not fit its fixed column width when formatting."""

    def __init__(self, value: object, width: int, field: str | None = None):
        self.value = value
        self.width = width
        self.field = field
        name = f"{field} " if field else ""
        super().__init__(f"{name}value {value!r} does not fit in {width} columns")


class IncompatibleMerge(PyIonexError):
    """Two datasets cannot be merged (different grid, system or mapping)."""

    def __init__(self, attribute: str, left: object, right: object):
        self.attribute = attribute
        self.left = left
        self.right = right
        super().__init__(f"cannot merge: {attribute} differs ({left} vs {right})")
