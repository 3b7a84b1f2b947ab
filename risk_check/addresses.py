"""
Chain address helpers - SS58, EVM and Solana address parsing.

SS58 addresses are canonicalised to the hex account id so the same account
matches list entries regardless of the network prefix it was typed with.
"""

import hashlib
import re
from dataclasses import dataclass
from typing import Optional

import base58

from risk_check.models import Chain


SS58_CHECKSUM_PREFIX = b"SS58PRE"
SS58_CHECKSUM_LENGTH = 2
ACCOUNT_ID_LENGTH = 32

SS58_PREFIX_CHAINS = {
    0: Chain.POLKADOT,
    2: Chain.KUSAMA,
    5: Chain.ASTAR,
    7: Chain.EDGEWARE,
    42: Chain.SUBSTRATE,
}

CHAIN_SS58_PREFIXES = {chain: prefix for prefix, chain in SS58_PREFIX_CHAINS.items()}

EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
HEX_ACCOUNT_ID_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
BASE58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]+$")


@dataclass(frozen=True)
class ParsedAddress:
    """Result of recognising a chain address."""
    chain: Chain
    normalized: str


def _ss58_checksum(data: bytes) -> bytes:
    digest = hashlib.blake2b(SS58_CHECKSUM_PREFIX + data, digest_size=64).digest()
    return digest[:SS58_CHECKSUM_LENGTH]


def ss58_decode(address: str) -> tuple[int, bytes]:
    """
    Decode an SS58 address into (network prefix, account id).

    Raises:
        ValueError: If the string is not a valid 32-byte SS58 address
    """
    if not address or not BASE58_RE.match(address):
        raise ValueError("Not a base58 string")

    raw = base58.b58decode(address)
    if len(raw) < 2:
        raise ValueError("SS58 payload too short")

    first = raw[0]
    if first < 64:
        prefix, prefix_len = first, 1
    elif first < 128:
        second = raw[1]
        prefix = ((first & 0b0011_1111) << 2) | (second >> 6) | ((second & 0b0011_1111) << 8)
        prefix_len = 2
    else:
        raise ValueError(f"Invalid SS58 prefix byte {first}")

    if len(raw) != prefix_len + ACCOUNT_ID_LENGTH + SS58_CHECKSUM_LENGTH:
        raise ValueError(f"Unsupported SS58 length {len(raw)}")

    body = raw[:-SS58_CHECKSUM_LENGTH]
    if _ss58_checksum(body) != raw[-SS58_CHECKSUM_LENGTH:]:
        raise ValueError("Invalid SS58 checksum")

    return prefix, body[prefix_len:]


def ss58_encode(account_id: bytes, prefix: int = 42) -> str:
    """Encode a 32-byte account id as an SS58 address for a network prefix."""
    if len(account_id) != ACCOUNT_ID_LENGTH:
        raise ValueError(f"Account id must be {ACCOUNT_ID_LENGTH} bytes")
    if not 0 <= prefix < 16384:
        raise ValueError(f"Invalid SS58 prefix {prefix}")

    if prefix < 64:
        prefix_bytes = bytes([prefix])
    else:
        prefix_bytes = bytes([
            ((prefix & 0b0000_0000_1111_1100) >> 2) | 0b0100_0000,
            (prefix >> 8) | ((prefix & 0b0000_0000_0000_0011) << 6),
        ])

    body = prefix_bytes + account_id
    return base58.b58encode(body + _ss58_checksum(body)).decode("ascii")


def account_id_to_hex(account_id: bytes) -> str:
    return "0x" + account_id.hex()


def hex_to_account_id(value: str) -> bytes:
    if not HEX_ACCOUNT_ID_RE.match(value):
        raise ValueError("Not a 32-byte hex account id")
    return bytes.fromhex(value[2:])


def to_ss58(normalized: str, chain: Chain) -> str:
    """Re-encode a canonical hex account id for the given SS58 chain."""
    prefix = CHAIN_SS58_PREFIXES.get(chain, 42)
    return ss58_encode(hex_to_account_id(normalized), prefix)


def _parse_ss58(value: str) -> Optional[ParsedAddress]:
    try:
        prefix, account_id = ss58_decode(value)
    except ValueError:
        return None
    chain = SS58_PREFIX_CHAINS.get(prefix, Chain.SUBSTRATE)
    return ParsedAddress(chain=chain, normalized=account_id_to_hex(account_id))


def _parse_solana(value: str) -> Optional[ParsedAddress]:
    if not 32 <= len(value) <= 44 or not BASE58_RE.match(value):
        return None
    try:
        decoded = base58.b58decode(value)
    except ValueError:
        return None
    if len(decoded) != ACCOUNT_ID_LENGTH:
        return None
    return ParsedAddress(chain=Chain.SOLANA, normalized=value)


def parse_address(value: str) -> Optional[ParsedAddress]:
    """
    Recognise a chain address. Returns None if the value is not one.

    Order: SS58, EVM hex, raw hex account id, Solana base58.
    """
    parsed = _parse_ss58(value)
    if parsed:
        return parsed

    if EVM_ADDRESS_RE.match(value):
        # No EIP-55 checksumming; lowercase is the lookup form
        return ParsedAddress(chain=Chain.ETHEREUM, normalized=value.lower())

    if HEX_ACCOUNT_ID_RE.match(value):
        return ParsedAddress(chain=Chain.SUBSTRATE, normalized=value.lower())

    return _parse_solana(value)
