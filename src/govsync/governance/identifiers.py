"""
govsync/governance/identifiers.py

Proposal identifier codec.

A proposal is identified by the plugin instance it was created on plus the
plugin-local counter. The encoded form is "{pluginAddress}_0x{hex(localId)}":

    0x4206cdbc...a675cae35_0x0
    0x4206cdbc...a675cae35_0x1f

Older records only carry the local counter ("0x00", "0x3" or plain "2"); those
decode only when the caller supplies the plugin address from context.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

from ..errors import MalformedIdError, MissingPluginAddressError

ID_SEPARATOR = "_"
HEX_PREFIX = "0x"

_HEX_RE = re.compile(r"^0[xX]([0-9a-fA-F]+)$")
_DECIMAL_RE = re.compile(r"^[0-9]+$")


@dataclass(frozen=True)
class ProposalIdentifier:
    """Plugin address + plugin-local proposal counter."""
    plugin_address: str
    local_id: int

    def encode(self) -> str:
        return encode_proposal_id(self.plugin_address, self.local_id)

    def __str__(self) -> str:
        return self.encode()


DecodeResult = Union[ProposalIdentifier, MalformedIdError, MissingPluginAddressError]


def encode_proposal_id(plugin_address: str, local_id: int) -> str:
    """
    Encode a (plugin address, local id) pair.

    Args:
        plugin_address: Address of the voting plugin instance
        local_id: Non-negative plugin-local counter

    Returns:
        "{plugin_address}_0x{hex}" with no leading zeros ("0x0" for zero)
    """
    if isinstance(local_id, bool) or not isinstance(local_id, int):
        raise TypeError(f"local_id must be int, got {type(local_id).__name__}")
    if local_id < 0:
        raise ValueError(f"local_id must be non-negative, got {local_id}")
    return f"{plugin_address}{ID_SEPARATOR}{HEX_PREFIX}{local_id:x}"


def _parse_local_id(segment: str) -> Optional[int]:
    """Parse "0x.." as hex or a bare digit string as decimal."""
    match = _HEX_RE.match(segment)
    if match:
        return int(match.group(1), 16)
    if _DECIMAL_RE.match(segment):
        return int(segment, 10)
    return None


def decode_proposal_id(
    raw: str,
    fallback_plugin_address: Optional[str] = None,
) -> DecodeResult:
    """
    Decode an encoded or legacy proposal id.

    Never raises: failures come back as MalformedIdError or
    MissingPluginAddressError instances.

    Args:
        raw: Encoded id ("{address}_0x{hex}") or legacy local id ("0x00", "2")
        fallback_plugin_address: Plugin address to use for legacy ids

    Returns:
        ProposalIdentifier, or an error value
    """
    if not isinstance(raw, str) or not raw.strip():
        return MalformedIdError(str(raw), "empty id")

    raw = raw.strip()
    parts = raw.split(ID_SEPARATOR)

    if len(parts) == 2:
        address, suffix = parts
        if not address:
            return MalformedIdError(raw, "missing plugin address")
        match = _HEX_RE.match(suffix)
        if not match:
            return MalformedIdError(raw, "suffix is not a 0x-prefixed hex integer")
        return ProposalIdentifier(address, int(match.group(1), 16))

    if len(parts) > 2:
        return MalformedIdError(raw, f"expected one '{ID_SEPARATOR}' separator")

    # legacy id with no plugin address
    local_id = _parse_local_id(raw)
    if local_id is None:
        return MalformedIdError(raw, "not a hex or decimal integer")
    if not fallback_plugin_address:
        return MissingPluginAddressError(raw, local_id)
    return ProposalIdentifier(fallback_plugin_address, local_id)


def canonical_proposal_id(raw: str, fallback_plugin_address: Optional[str] = None) -> Optional[str]:
    """Normalize any accepted id form to its encoded form, or None if it can't be decoded."""
    decoded = decode_proposal_id(raw, fallback_plugin_address)
    if isinstance(decoded, ProposalIdentifier):
        return decoded.encode()
    return None


def strip_plugin_address(proposal_id: str) -> str:
    """Return the plugin-local part of an id ("0xabc_0x3" -> "0x3")."""
    parts = proposal_id.split(ID_SEPARATOR)
    if len(parts) == 2 and parts[1]:
        return parts[1]
    return proposal_id


def pending_cache_key(dao_address: str, proposal_id: str) -> str:
    """Key under which per-proposal pending state is cached for a DAO."""
    return f"{dao_address}{ID_SEPARATOR}{proposal_id}"
