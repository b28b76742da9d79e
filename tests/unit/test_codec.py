"""
Unit tests for the type codec.
"""
from datetime import date, datetime
from decimal import Decimal

import pytest

from storage.codec import decode, decode_row, encode, encode_row
from storage.exceptions import DecodeError
from utils.models import FieldDescriptor, FieldKind, Schema


class Money:
    """Value object exposing its own JSON projection."""

    def __init__(self, amount, currency):
        self.amount = amount
        self.currency = currency

    def to_json(self):
        return {"amount": self.amount, "currency": self.currency}


class TestDecimal:
    """Test decimal encoding and decoding."""

    def test_text_round_trip_is_exact(self):
        encoded = encode("123.456", FieldKind.DECIMAL)
        decoded = decode(encoded, FieldKind.DECIMAL)

        assert encoded == "123.456"
        assert decoded == Decimal("123.456")
        assert str(decoded) == "123.456"

    def test_float_is_not_binary_expanded(self):
        assert encode(12.34, FieldKind.DECIMAL) == "12.34"

    def test_decimal_without_exponent(self):
        assert encode(Decimal("1E+2"), FieldKind.DECIMAL) == "100"

    def test_decode_native_decimal_and_float(self):
        assert decode(Decimal("9.99"), FieldKind.DECIMAL) == Decimal("9.99")
        assert decode(0.1, FieldKind.DECIMAL) == Decimal("0.1")

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            encode("abc", FieldKind.DECIMAL)
        with pytest.raises(DecodeError):
            decode("abc", FieldKind.DECIMAL, "nbig")


class TestBoolean:
    """Test boolean encoding and decoding."""

    def test_round_trip(self):
        assert encode(True, FieldKind.BOOLEAN) == 1
        assert decode(encode(True, FieldKind.BOOLEAN), FieldKind.BOOLEAN) is True
        assert decode(encode(False, FieldKind.BOOLEAN), FieldKind.BOOLEAN) is False

    def test_falsy_values_encode_to_zero(self):
        assert encode("", FieldKind.BOOLEAN) == 0
        assert encode(0, FieldKind.BOOLEAN) == 0

    @pytest.mark.parametrize("stored, expected", [
        (1, True), (0, False), (b"\x01", True), (b"\x00", False),
        ("1", True), ("0", False), ("false", False), ("true", True),
    ])
    def test_decode_stored_forms(self, stored, expected):
        assert decode(stored, FieldKind.BOOLEAN) is expected


class TestDatetime:
    """Test datetime encoding and decoding."""

    def test_microseconds_are_kept(self):
        value = datetime(2018, 11, 21, 10, 30, 15, 123456)

        assert encode(value, FieldKind.DATETIME) == value
        assert decode(value, FieldKind.DATETIME) == value

    def test_date_widens_to_midnight(self):
        assert encode(date(2018, 11, 21), FieldKind.DATETIME) == datetime(2018, 11, 21)
        assert decode(date(2018, 11, 21), FieldKind.DATETIME) == datetime(2018, 11, 21)

    def test_decode_text(self):
        assert decode("2018-11-21 00:00:00", FieldKind.DATETIME) == datetime(2018, 11, 21)

    def test_decode_invalid_text(self):
        with pytest.raises(DecodeError):
            decode("yesterday", FieldKind.DATETIME, "ndatetime")


class TestStructured:
    """Test list and map encoding and decoding."""

    def test_list_round_trip(self):
        encoded = encode(["foo", "bar"], FieldKind.LIST)

        assert encoded == '["foo","bar"]'
        assert decode(encoded, FieldKind.LIST) == ["foo", "bar"]

    def test_map_round_trip(self):
        encoded = encode({"foo": "bar"}, FieldKind.MAP)

        assert encoded == '{"foo":"bar"}'
        assert decode(encoded, FieldKind.MAP) == {"foo": "bar"}

    def test_json_projection_is_used_first(self):
        encoded = encode(Money(5, "IDR"), FieldKind.MAP)

        assert decode(encoded, FieldKind.MAP) == {"amount": 5, "currency": "IDR"}

    def test_nested_values(self):
        encoded = encode({"price": Decimal("1.50"), "tags": ("a", "b")}, FieldKind.MAP)

        assert decode(encoded, FieldKind.MAP) == {"price": "1.50", "tags": ["a", "b"]}

    def test_decode_spaced_json(self):
        assert decode('["foo", "bar"]', FieldKind.LIST) == ["foo", "bar"]

    def test_malformed_json_is_an_error(self):
        with pytest.raises(DecodeError) as excinfo:
            decode("[foo", FieldKind.LIST, "nlist")

        assert excinfo.value.field == "nlist"
        assert excinfo.value.kind is FieldKind.LIST
        assert excinfo.value.value == "[foo"

    def test_wrong_shape_is_an_error(self):
        with pytest.raises(DecodeError):
            decode('{"foo": "bar"}', FieldKind.LIST, "nlist")
        with pytest.raises(DecodeError):
            decode("[1]", FieldKind.MAP, "nmap")

    @pytest.mark.parametrize("kind", [FieldKind.LIST, FieldKind.MAP, FieldKind.DECIMAL, FieldKind.DATETIME])
    def test_invalid_utf8_bytes_are_an_error(self, kind):
        """Test undecodable stored bytes surface as DecodeError."""
        with pytest.raises(DecodeError) as excinfo:
            decode(b"\xff[1]", kind, "nfield")

        assert excinfo.value.field == "nfield"
        assert excinfo.value.kind is kind
        assert excinfo.value.value == b"\xff[1]"
        assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)

    def test_utf8_bytes_are_decoded(self):
        assert decode('["café"]'.encode("utf-8"), FieldKind.LIST) == ["café"]


class TestPassThrough:
    """Test kinds and values that pass through unchanged."""

    @pytest.mark.parametrize("kind", list(FieldKind))
    def test_none_passes_through(self, kind):
        assert encode(None, kind) is None
        assert decode(None, kind) is None

    @pytest.mark.parametrize("kind, value", [
        (FieldKind.DOUBLE, 12.34),
        (FieldKind.INTEGER, 1234),
        (FieldKind.STRING, "foobar"),
        (FieldKind.REFERENCE, 7),
    ])
    def test_scalar_kinds(self, kind, value):
        assert encode(value, kind) == value
        assert decode(value, kind) == value

    def test_type_directed_encoding(self):
        """Test encoding without a declared kind."""
        assert encode(True) == 1
        assert encode(Decimal("2.50")) == "2.50"
        assert encode(["a"]) == '["a"]'
        assert encode({"a": 1}) == '{"a":1}'
        assert encode(date(2020, 1, 2)) == datetime(2020, 1, 2)
        assert encode("text") == "text"
        assert encode(3) == 3


class TestRows:
    """Test row-level helpers."""

    def setup_method(self):
        """Set up test fixtures."""
        self.schema = Schema("foo", [
            FieldDescriptor("nbig", FieldKind.DECIMAL),
            FieldDescriptor("nboolean", FieldKind.BOOLEAN),
            FieldDescriptor("nlist", FieldKind.LIST),
        ])

    def test_encode_row(self):
        encoded = encode_row(self.schema, {"nbig": 12.34, "nboolean": "", "nlist": ["x"], "nfield": "raw"})

        assert encoded == {"nbig": "12.34", "nboolean": 0, "nlist": '["x"]', "nfield": "raw"}

    def test_decode_row_keeps_undeclared_columns(self):
        decoded = decode_row(self.schema, {
            "id": 1, "nbig": "123.456", "nboolean": 1, "nlist": '["foo"]', "nfield": "custom-field",
        })

        assert decoded == {
            "id": 1,
            "nbig": Decimal("123.456"),
            "nboolean": True,
            "nlist": ["foo"],
            "nfield": "custom-field",
        }
