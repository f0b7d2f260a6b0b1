"""
govsync/serialization.py

JSON codec for persisted pending-cache state.

The stored format is shared with caches written by the web dashboard, so the
encodings are fixed:
- big integers: "<digits>n"
- datetimes: ISO-8601 in UTC with millisecond precision, "2023-01-31T12:00:00.000Z"
- byte arrays: {"data": [..], "flag": "FLAG_TYPED_ARRAY"}

Usage:
    text = dumps({"weight": BigInt(10**18), "at": datetime.now(timezone.utc)})
    data = loads(text)   # {"weight": BigInt(10**18), "at": datetime(...)}
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from .config import BIGINT_PATTERN, ISO_DATE_PATTERN, FLAG_TYPED_ARRAY
from .precision import BigInt


def format_iso_datetime(value: datetime) -> str:
    """Render a datetime the way JavaScript's Date.toISOString() does."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    millis = value.microsecond // 1000
    return f"{value:%Y-%m-%dT%H:%M:%S}.{millis:03d}Z"


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string into an aware UTC datetime."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def encode_value(value: Any) -> Any:
    """Replace non-JSON types with their persisted string/object encodings."""
    if hasattr(value, "to_dict"):
        return encode_value(value.to_dict())
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, BigInt):
        return f"{int(value)}n"
    if isinstance(value, datetime):
        return format_iso_datetime(value)
    if isinstance(value, (bytes, bytearray)):
        return {"data": list(value), "flag": FLAG_TYPED_ARRAY}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {str(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [encode_value(v) for v in value]
    return value


def revive_value(value: Any) -> Any:
    """Inverse of encode_value for values that came back from json.loads."""
    if isinstance(value, dict):
        if value.get("flag") == FLAG_TYPED_ARRAY and isinstance(value.get("data"), list):
            return bytes(value["data"])
        return {k: revive_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [revive_value(v) for v in value]
    if isinstance(value, str):
        if BIGINT_PATTERN.match(value):
            return BigInt(int(value[:-1]))
        if ISO_DATE_PATTERN.match(value):
            try:
                return parse_iso_datetime(value)
            except ValueError:
                return value
    return value


def dumps(value: Any, **kwargs) -> str:
    return json.dumps(encode_value(value), **kwargs)


def loads(text: str) -> Any:
    return revive_value(json.loads(text))
