"""
govsync/tests/test_identifiers.py

Tests for the proposal identifier codec.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from govsync.errors import MalformedIdError, MissingPluginAddressError
from govsync.governance.identifiers import (
    ProposalIdentifier,
    canonical_proposal_id,
    decode_proposal_id,
    encode_proposal_id,
    pending_cache_key,
    strip_plugin_address,
)

PLUGIN = "0x4206cdbc1c7e1d76b9d8e63ad4d7e0b1a675cae3"

addresses = st.from_regex(r"\A0x[0-9a-f]{40}\Z", fullmatch=True)


class TestEncode:
    """Test encode_proposal_id."""

    def test_encode_zero(self):
        assert encode_proposal_id(PLUGIN, 0) == f"{PLUGIN}_0x0"

    def test_encode_hex(self):
        assert encode_proposal_id(PLUGIN, 31) == f"{PLUGIN}_0x1f"

    def test_encode_negative_raises(self):
        with pytest.raises(ValueError):
            encode_proposal_id(PLUGIN, -1)

    def test_encode_non_int_raises(self):
        with pytest.raises(TypeError):
            encode_proposal_id(PLUGIN, "3")
        with pytest.raises(TypeError):
            encode_proposal_id(PLUGIN, True)

    def test_identifier_str(self):
        identifier = ProposalIdentifier(PLUGIN, 255)
        assert str(identifier) == f"{PLUGIN}_0xff"
        assert identifier.encode() == str(identifier)


class TestDecode:
    """Test decode_proposal_id."""

    def test_decode_encoded(self):
        decoded = decode_proposal_id(f"{PLUGIN}_0x1f")
        assert decoded == ProposalIdentifier(PLUGIN, 31)

    def test_decode_uppercase_prefix(self):
        assert decode_proposal_id(f"{PLUGIN}_0XFF") == ProposalIdentifier(PLUGIN, 255)

    def test_decode_suffix_without_prefix_is_malformed(self):
        assert isinstance(decode_proposal_id(f"{PLUGIN}_1f"), MalformedIdError)

    def test_decode_negative_suffix_is_malformed(self):
        assert isinstance(decode_proposal_id(f"{PLUGIN}_-0x1"), MalformedIdError)

    def test_decode_empty_parts_are_malformed(self):
        assert isinstance(decode_proposal_id("_0x1"), MalformedIdError)
        assert isinstance(decode_proposal_id(f"{PLUGIN}_"), MalformedIdError)
        assert isinstance(decode_proposal_id(""), MalformedIdError)

    def test_decode_extra_separator_is_malformed(self):
        result = decode_proposal_id(f"{PLUGIN}_0x1_0x2")
        assert isinstance(result, MalformedIdError)
        assert result.raw == f"{PLUGIN}_0x1_0x2"

    def test_decode_never_raises_on_garbage(self):
        for raw in ["zz", "0xzz", None, 12, "__"]:
            result = decode_proposal_id(raw)
            assert isinstance(result, (MalformedIdError, MissingPluginAddressError))

    def test_legacy_without_fallback(self):
        result = decode_proposal_id("0x3")
        assert isinstance(result, MissingPluginAddressError)
        assert result.local_id == 3

    def test_legacy_hex_with_fallback(self):
        decoded = decode_proposal_id("0x00", PLUGIN)
        assert decoded == ProposalIdentifier(PLUGIN, 0)
        assert decoded.encode() == f"{PLUGIN}_0x0"

    def test_legacy_decimal_with_fallback(self):
        assert decode_proposal_id("12", PLUGIN) == ProposalIdentifier(PLUGIN, 12)

    def test_fallback_ignored_for_encoded_ids(self):
        decoded = decode_proposal_id(f"{PLUGIN}_0x2", "0xother")
        assert decoded.plugin_address == PLUGIN

    @given(addresses, st.integers(min_value=0, max_value=2 ** 256 - 1))
    @settings(max_examples=200, deadline=None)
    def test_round_trip(self, address, local_id):
        decoded = decode_proposal_id(encode_proposal_id(address, local_id))
        assert decoded == ProposalIdentifier(address, local_id)


class TestHelpers:
    """Test canonicalization and display helpers."""

    def test_canonical_strips_leading_zeros(self):
        assert canonical_proposal_id(f"{PLUGIN}_0x0001") == f"{PLUGIN}_0x1"
        assert canonical_proposal_id("0x00", PLUGIN) == f"{PLUGIN}_0x0"

    def test_canonical_of_undecodable_is_none(self):
        assert canonical_proposal_id("0x00") is None
        assert canonical_proposal_id("nope_nope") is None

    def test_strip_plugin_address(self):
        assert strip_plugin_address(f"{PLUGIN}_0x3") == "0x3"
        assert strip_plugin_address("0x3") == "0x3"

    def test_pending_cache_key(self):
        assert pending_cache_key("0xdao", f"{PLUGIN}_0x1") == f"0xdao_{PLUGIN}_0x1"
