"""
govsync/tests/test_serialization.py

Tests for the persisted-state JSON codec.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal

from govsync.precision import BigInt
from govsync.serialization import (
    dumps,
    encode_value,
    format_iso_datetime,
    loads,
    parse_iso_datetime,
)


class TestDates:
    """Test ISO-8601 handling."""

    def test_format_matches_js_iso_string(self):
        value = datetime(2023, 1, 31, 14, 5, 9, 123456, tzinfo=timezone.utc)
        assert format_iso_datetime(value) == "2023-01-31T14:05:09.123Z"

    def test_naive_taken_as_utc(self):
        assert format_iso_datetime(datetime(2023, 1, 1)) == "2023-01-01T00:00:00.000Z"

    def test_parse_z_suffix(self):
        parsed = parse_iso_datetime("2023-01-31T14:05:09.123Z")
        assert parsed == datetime(2023, 1, 31, 14, 5, 9, 123000, tzinfo=timezone.utc)


class TestEncoding:
    """Test encode_value."""

    def test_bigint_suffix(self):
        assert encode_value(BigInt(10 ** 30)) == f"{10 ** 30}n"

    def test_plain_int_untouched(self):
        assert encode_value(5) == 5

    def test_bytes_flagged(self):
        assert encode_value(b"\x01\x02") == {"data": [1, 2], "flag": "FLAG_TYPED_ARRAY"}

    def test_decimal_as_string(self):
        assert encode_value(Decimal("0.55")) == "0.55"

    def test_nested(self):
        encoded = encode_value({"a": [BigInt(1), datetime(2023, 1, 1, tzinfo=timezone.utc)]})
        assert encoded == {"a": ["1n", "2023-01-01T00:00:00.000Z"]}


class TestRevive:
    """Test loads restores the encoded types."""

    def test_round_trip(self):
        original = {
            "weight": BigInt(123456789012345678901234567890),
            "at": datetime(2023, 5, 6, 7, 8, 9, tzinfo=timezone.utc),
            "raw": b"\x00\xff",
            "title": "Fund the treasury",
            "count": 3,
        }
        restored = loads(dumps(original))

        assert restored == original
        assert isinstance(restored["weight"], BigInt)

    def test_dashboard_written_cache(self):
        text = json.dumps({
            "0xdao": {
                "p1": {"totalVotingWeight": "1000n", "startDate": "2023-02-01T10:00:00.000Z"}
            }
        })
        restored = loads(text)["0xdao"]["p1"]

        assert restored["totalVotingWeight"] == 1000
        assert restored["startDate"].year == 2023

    def test_plain_strings_untouched(self):
        assert loads('["n", "12", "12x", "2023-01-01"]') == ["n", "12", "12x", "2023-01-01"]
