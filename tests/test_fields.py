"""Tests for the fixed-column field codec."""

import pytest

from pyionex.core.exceptions import MalformedField, ValueOverflow
from pyionex.ionex import fields as F
from pyionex.ionex.fields import Field, FieldKind


class TestFieldDecode:
    """Tests for decoding single fields."""

    def test_decode_int(self) -> None:
        """Integers are right-justified in their span."""
        field = Field("value", 0, 6)
        assert field.decode("    -1") == -1
        assert field.decode("  2022    12") == 2022

    def test_blank_field_returns_default(self) -> None:
        """Blank or missing columns give the caller's default."""
        field = Field("value", 6, 6)
        assert field.decode("    12") is None
        assert field.decode("    12      ", default=0) == 0

    def test_decode_float_with_point(self) -> None:
        """Explicit decimal points are honoured."""
        field = Field("value", 2, 6, FieldKind.FLOAT)
        assert field.decode("    87.5") == pytest.approx(87.5)
        assert field.decode("  -180.0") == pytest.approx(-180.0)

    def test_decode_float_implied_decimal(self) -> None:
        """Floats without a point get the implied decimals of their schema."""
        field = Field("value", 0, 6, FieldKind.FLOAT, decimals=1)
        assert field.decode("   875") == pytest.approx(87.5)

    def test_decode_fortran_exponent(self) -> None:
        """D exponents are accepted."""
        field = Field("value", 0, 10, FieldKind.FLOAT)
        assert field.decode("  1.5D+01") == pytest.approx(15.0)

    def test_decode_string(self) -> None:
        """Strings are stripped."""
        field = Field("system", 40, 3, FieldKind.STR)
        line = " " * 40 + "GPS"
        assert field.decode(line) == "GPS"

    def test_malformed_int(self) -> None:
        """Non-numeric text raises MalformedField with line and columns."""
        field = Field("interval", 0, 6)
        with pytest.raises(MalformedField) as exc_info:
            field.decode("  12a4", line_number=7)

        assert exc_info.value.line_number == 7
        assert exc_info.value.start == 0
        assert exc_info.value.end == 6
        assert "line 7" in str(exc_info.value)
        assert "columns 1-6" in str(exc_info.value)

    def test_malformed_float(self) -> None:
        field = Field("value", 0, 8, FieldKind.FLOAT)
        with pytest.raises(MalformedField):
            field.decode("  63x1.0")


class TestFieldEncode:
    """Tests for encoding fields."""

    def test_encode_int_right_justified(self) -> None:
        assert Field("value", 0, 6).encode(-1) == "    -1"

    def test_encode_float(self) -> None:
        assert Field("value", 0, 6, FieldKind.FLOAT).encode(87.5) == "  87.5"
        assert Field("value", 0, 8, FieldKind.FLOAT).encode(6371.0) == "  6371.0"

    def test_encode_none_is_blank(self) -> None:
        assert Field("value", 0, 6).encode(None) == "      "

    def test_encode_overflow(self) -> None:
        """Values wider than the column raise ValueOverflow."""
        with pytest.raises(ValueOverflow) as exc_info:
            Field("sample", 0, 5).encode(123456)
        assert exc_info.value.width == 5

    def test_encode_record_places_fields(self) -> None:
        """Fields land at their declared columns."""
        content = F.encode_record(F.AXIS, {"start": 87.5, "end": -87.5, "step": -2.5})
        assert content == "    87.5 -87.5  -2.5"

    def test_encode_epoch_record(self) -> None:
        values = dict(year=2022, month=1, day=2, hour=0, minute=0, second=0)
        content = F.encode_record(F.EPOCH, values)
        assert content == "  2022     1     2     0     0     0"


class TestLines:
    """Tests for labelled line helpers."""

    def test_format_line_is_80_columns(self) -> None:
        line = F.format_line("     1", "INTERVAL")
        assert len(line) == 80
        assert line[60:].rstrip() == "INTERVAL"

    def test_format_line_overflow(self) -> None:
        with pytest.raises(ValueOverflow):
            F.format_line("x" * 61, "COMMENT")

    def test_split_label(self) -> None:
        line = F.format_line("  3600", "INTERVAL") + "\n"
        content, label = F.split_label(line)
        assert content.strip() == "3600"
        assert label == "INTERVAL"

    def test_split_label_short_line(self) -> None:
        """Lines shorter than the label column have an empty label."""
        assert F.split_label("  100  200\n") == ("  100  200", "")

    def test_wrap_text(self) -> None:
        chunks = F.wrap_text("a" * 130)
        assert [len(c) for c in chunks] == [60, 60, 10]


class TestSamples:
    """Tests for 16I5 data lines."""

    def test_decode_samples(self) -> None:
        assert F.decode_samples("  100  200 9999  -12\n") == [100, 200, 9999, -12]

    def test_blank_sample_inside_line_is_sentinel(self) -> None:
        assert F.decode_samples("  100       300") == [100, F.SENTINEL, 300]

    def test_malformed_sample(self) -> None:
        with pytest.raises(MalformedField):
            F.decode_samples("  100  2x0", line_number=42)

    def test_encode_samples_wraps_at_16(self) -> None:
        lines = F.encode_samples(list(range(20)))
        assert len(lines) == 2
        assert len(lines[0]) == 80
        assert len(lines[1]) == 20
        assert F.decode_samples(lines[0]) + F.decode_samples(lines[1]) == list(range(20))

    def test_encode_sample_overflow(self) -> None:
        with pytest.raises(ValueOverflow):
            F.encode_samples([100, 100000])


class TestScaling:
    """Tests for exponent scaling."""

    def test_scale_negative_exponent(self) -> None:
        assert F.scale(123, -1) == 12.3
        assert F.scale(100, -1) == 10.0

    def test_scale_positive_exponent(self) -> None:
        assert F.scale(12, 2) == 1200.0

    def test_quantize(self) -> None:
        assert F.quantize(12.34, -1) == 123
        assert F.quantize(1250.0, 2) == 12
