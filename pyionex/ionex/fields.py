"""
Fixed-column field codec for IONEX records.

Every IONEX line is 60 columns of content followed by a 20 column label
(map data lines excepted). Column layouts are declared once as tables of
:class:`Field` and shared by the header parser, the map parser and the
formatter, so nothing in the package slices lines by hand.

Columns are 0-based and half-open here; error messages report them 1-based
as printed in the IONEX format description.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from pyionex.core.exceptions import MalformedField, ValueOverflow


# "No data" marker for TEC / RMS samples
SENTINEL = 9999

CONTENT_WIDTH = 60
LABEL_WIDTH = 20

SAMPLE_WIDTH = 5
SAMPLES_PER_LINE = 16

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([EeDd][+-]?\d+)?$")


class FieldKind(str, Enum):
    """Type of a fixed-width field."""

    INT = "I"
    FLOAT = "F"
    STR = "A"


@dataclass(frozen=True)
class Field:
    """One fixed-width column span: ``line[start:start + width]``."""

    name: str
    start: int
    width: int
    kind: FieldKind = FieldKind.INT
    decimals: int = 1

    @property
    def end(self) -> int:
        return self.start + self.width

    def extract(self, line: str) -> str:
        """Raw text of this field; short lines yield a short or empty string."""
        return line[self.start:self.end]

    def decode(
        self,
        line: str,
        line_number: Optional[int] = None,
        default: Any = None,
    ) -> Any:
        """Decode this field from ``line``.

        Blank fields return ``default``. Floats written without a decimal
        point take ``decimals`` implied decimal places (Fortran ``F`` rules).

        Raises:
            MalformedField: non-numeric text in a numeric column
        """
        text = self.extract(line).strip()
        if not text:
            return default

        if self.kind is FieldKind.STR:
            return text

        if self.kind is FieldKind.INT:
            if not _INT_RE.match(text):
                raise MalformedField(line_number, self.start, self.end, text, self.name)
            return int(text)

        if not _FLOAT_RE.match(text):
            raise MalformedField(line_number, self.start, self.end, text, self.name)
        if "." not in text and not any(c in text for c in "EeDd"):
            return int(text) / 10 ** self.decimals
        return float(text.replace("D", "E").replace("d", "e"))

    def encode(self, value: Any) -> str:
        """Encode ``value`` right-justified (strings left-justified).

        Raises:
            ValueOverflow: the value needs more than ``width`` columns
        """
        if value is None:
            return " " * self.width

        if self.kind is FieldKind.INT:
            text = f"{int(value):{self.width}d}"
        elif self.kind is FieldKind.FLOAT:
            text = f"{float(value):{self.width}.{self.decimals}f}"
        else:
            text = f"{value:<{self.width}}"

        if len(text) > self.width:
            raise ValueOverflow(value, self.width, self.name)
        return text


Schema = Sequence[Field]


def _fields(names: Iterable[str], width: int, offset: int = 0, **kwargs: Any) -> tuple[Field, ...]:
    return tuple(
        Field(name, offset + i * width, width, **kwargs) for i, name in enumerate(names)
    )


# Header records
VERSION_TYPE = (
    Field("version", 0, 8, FieldKind.STR),
    Field("file_type", 20, 1, FieldKind.STR),
    Field("system", 40, 3, FieldKind.STR),
)
PGM_RUN_BY_DATE = _fields(("program", "run_by", "date"), 20, kind=FieldKind.STR)
EPOCH = _fields(("year", "month", "day", "hour", "minute", "second"), 6)
INT6 = (Field("value", 0, 6),)
FLOAT8 = (Field("value", 0, 8, FieldKind.FLOAT),)
MAPPING_FUNCTION = (Field("mapping_function", 2, 4, FieldKind.STR),)
AXIS = _fields(("start", "end", "step"), 6, offset=2, kind=FieldKind.FLOAT)
TEXT = (Field("text", 0, CONTENT_WIDTH, FieldKind.STR),)

# Map records
ROW_HEADER = _fields(
    ("latitude", "lon1", "lon2", "dlon", "height"), 6, offset=2, kind=FieldKind.FLOAT
)


def split_label(line: str) -> tuple[str, str]:
    """Split a line into its 60 column content and stripped label."""
    line = line.rstrip("\r\n")
    return line[:CONTENT_WIDTH], line[CONTENT_WIDTH:CONTENT_WIDTH + LABEL_WIDTH].strip()


def decode_record(
    schema: Schema,
    line: str,
    line_number: Optional[int] = None,
    default: Any = None,
) -> dict[str, Any]:
    """Decode every field of ``schema`` from ``line`` into a dict."""
    return {field.name: field.decode(line, line_number, default) for field in schema}


def encode_record(schema: Schema, values: dict[str, Any]) -> str:
    """Place encoded fields at their columns in a 60 column content string."""
    buf = [" "] * CONTENT_WIDTH
    for field in schema:
        text = field.encode(values.get(field.name))
        buf[field.start:field.end] = text
    return "".join(buf).rstrip()


def format_line(content: str, label: str) -> str:
    """Format one labelled line: content padded to column 60, then the label.

    Raises:
        ValueOverflow: content longer than 60 columns
    """
    if len(content) > CONTENT_WIDTH:
        raise ValueOverflow(content, CONTENT_WIDTH, label)
    return f"{content:<{CONTENT_WIDTH}}{label:<{LABEL_WIDTH}}"


def wrap_text(text: str, width: int = CONTENT_WIDTH) -> list[str]:
    """Split free text into chunks that fit the content columns."""
    if not text:
        return [""]
    return [text[i:i + width] for i in range(0, len(text), width)]


def decode_samples(line: str, line_number: Optional[int] = None) -> list[int]:
    """Decode a ``16I5`` data line into raw integers.

    Trailing blanks end the line; a blank field inside the line is read as
    :data:`SENTINEL`.
    """
    content = line.rstrip("\r\n").rstrip()
    samples = []
    for start in range(0, len(content), SAMPLE_WIDTH):
        field = Field("sample", start, SAMPLE_WIDTH)
        samples.append(field.decode(content, line_number, default=SENTINEL))
    return samples


def encode_samples(samples: Sequence[int]) -> list[str]:
    """Encode raw integers as ``16I5`` data lines.

    Raises:
        ValueOverflow: a sample needs more than five columns
    """
    field = Field("sample", 0, SAMPLE_WIDTH)
    lines = []
    for i in range(0, len(samples), SAMPLES_PER_LINE):
        chunk = samples[i:i + SAMPLES_PER_LINE]
        lines.append("".join(field.encode(value) for value in chunk))
    return lines


def scale(raw: int, exponent: int) -> float:
    """Convert a raw sample to physical units: ``raw * 10**exponent``."""
    if exponent < 0:
        return raw / 10 ** (-exponent)
    return float(raw * 10 ** exponent)


def quantize(value: float, exponent: int) -> int:
    """Inverse of :func:`scale`, rounded to the nearest integer mantissa."""
    if exponent < 0:
        return int(round(value * 10 ** (-exponent)))
    return int(round(value / 10 ** exponent))
