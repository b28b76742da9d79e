"""
Type codec between MySQL column values and semantic field values.

Encoding prepares Python values for binding (pymysql escapes the result);
decoding turns what pymysql returns back into the declared field kind.
"""
import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from storage.exceptions import DecodeError
from utils.models import FieldKind, Schema

_FALSE_TEXT = {"", "0", "false", "f", "no", "n"}


def _json_default(value: Any) -> Any:
    if hasattr(value, "to_json") and callable(value.to_json):
        return value.to_json()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return dict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _to_json_text(value: Any) -> str:
    if hasattr(value, "to_json") and callable(value.to_json):
        value = value.to_json()
    if isinstance(value, tuple):
        value = list(value)
    elif isinstance(value, Mapping) and not isinstance(value, dict):
        value = dict(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=_json_default)


def _to_decimal_text(value: Any) -> str:
    if isinstance(value, float):
        # repr gives the shortest text that round-trips, not the binary expansion
        value = repr(value)
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Invalid decimal value: {value!r}") from e
    return format(number, "f")


def encode(value: Any, kind: Optional[FieldKind] = None) -> Any:
    """Convert a semantic value into a value pymysql can bind.

    Args:
        value: Value to encode
        kind: Declared field kind; when None the value's own type decides

    Returns:
        Engine-ready value
    """
    if value is None:
        return None

    if kind is None:
        if isinstance(value, bool):
            return 1 if value else 0
        if isinstance(value, Decimal):
            return _to_decimal_text(value)
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, (list, tuple, Mapping)) or hasattr(value, "to_json"):
            return _to_json_text(value)
        return value

    if kind is FieldKind.DECIMAL:
        return _to_decimal_text(value)
    if kind is FieldKind.BOOLEAN:
        return 1 if value else 0
    if kind is FieldKind.DATETIME:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        return value
    if kind in (FieldKind.LIST, FieldKind.MAP):
        if isinstance(value, (str, bytes)):
            # Already serialized by the caller
            return value
        return _to_json_text(value)
    return value


def _as_text(value: Any, kind: FieldKind, field: Optional[str]) -> Any:
    if not isinstance(value, (bytes, bytearray)):
        return value
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Stored {kind.value} for field {field!r} is not valid UTF-8",
                          field=field, kind=kind, value=value) from e


def _decode_json(value: Any, kind: FieldKind, field: Optional[str]) -> Any:
    expected = list if kind is FieldKind.LIST else dict
    if isinstance(value, expected):
        return value
    value = _as_text(value, kind, field)
    if not isinstance(value, str):
        raise DecodeError(f"Cannot decode {type(value).__name__} as {kind.value}",
                          field=field, kind=kind, value=value)
    try:
        decoded = json.loads(value)
    except ValueError as e:
        raise DecodeError(f"Malformed JSON for {kind.value} field {field!r}: {e}",
                          field=field, kind=kind, value=value) from e
    if not isinstance(decoded, expected):
        raise DecodeError(f"Expected JSON {kind.value} for field {field!r}, got {type(decoded).__name__}",
                          field=field, kind=kind, value=value)
    return decoded


def decode(value: Any, kind: FieldKind, field: Optional[str] = None) -> Any:
    """Convert a value returned by pymysql into its semantic kind.

    Raises:
        DecodeError: Stored value does not fit the declared kind
    """
    if value is None:
        return None

    if kind is FieldKind.DECIMAL:
        if isinstance(value, Decimal):
            return value
        value = _as_text(value, kind, field)
        if isinstance(value, float):
            value = repr(value)
        try:
            return Decimal(str(value).strip())
        except InvalidOperation as e:
            raise DecodeError(f"Invalid decimal text for field {field!r}",
                              field=field, kind=kind, value=value) from e

    if kind is FieldKind.BOOLEAN:
        if isinstance(value, (bytes, bytearray)):
            # BIT(1) columns come back as raw bytes
            return any(value)
        if isinstance(value, str):
            return value.strip().lower() not in _FALSE_TEXT
        return bool(value)

    if kind is FieldKind.DATETIME:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        value = _as_text(value, kind, field)
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value.strip())
            except ValueError as e:
                raise DecodeError(f"Invalid datetime text for field {field!r}",
                                  field=field, kind=kind, value=value) from e
        return value

    if kind in (FieldKind.LIST, FieldKind.MAP):
        return _decode_json(value, kind, field)

    return value


def encode_row(schema: Schema, row: Mapping[str, Any]) -> Dict[str, Any]:
    """Encode every value of a row using the schema's declared kinds."""
    encoded = {}
    for name, value in row.items():
        descriptor = schema.field(name)
        encoded[name] = encode(value, descriptor.kind if descriptor else None)
    return encoded


def decode_row(schema: Schema, row: Mapping[str, Any]) -> Dict[str, Any]:
    """Decode a raw row; columns the schema does not declare pass through."""
    decoded = {}
    for name, value in row.items():
        descriptor = schema.field(name)
        decoded[name] = decode(value, descriptor.kind, name) if descriptor else value
    return decoded
