"""Chain address encoding for secp256k1 public keys.

Bitcoin (P2PKH): Base58Check(version || RIPEMD160(SHA256(pubkey))).
Ethereum: last 20 bytes of Keccak-256(x || y), hex with EIP-55 mixed-case
checksum.

Decoders always recompute the checksum; a mismatch raises
AddressChecksumError and is never corrected.
"""
from __future__ import annotations

import hmac
import logging
import re
from typing import Tuple

import base58

from keyweave.core.exceptions import AddressChecksumError, KeyMaterialError
from keyweave.core.hashing import double_sha256, hash160, keccak256
from keyweave.security.curves import uncompress_secp256k1

logger = logging.getLogger(__name__)

BITCOIN_MAINNET_P2PKH = 0x00
CHECKSUM_SIZE = 4

_ETH_HEX = re.compile(r"^0x[0-9a-fA-F]{40}$")


# ====================================================================
#  Bitcoin -- Base58Check
# ====================================================================

def _checksum(payload: bytes) -> bytes:
    """First 4 bytes of double-SHA256."""
    return double_sha256(payload)[:CHECKSUM_SIZE]


def to_bitcoin_address(public_key: bytes, version: int = BITCOIN_MAINNET_P2PKH) -> str:
    """
    Derive a P2PKH address from a compressed (33-byte) or uncompressed
    (65-byte) secp256k1 public key. The key is hashed in the form given,
    as Bitcoin does.
    """
    if len(public_key) not in (33, 65):
        raise KeyMaterialError("bitcoin public key must be 33 or 65 bytes")
    # reject points that are not on the curve
    uncompress_secp256k1(public_key)
    if not 0 <= version <= 0xFF:
        raise ValueError("version must fit in one byte")

    payload = bytes([version]) + hash160(public_key)
    return base58.b58encode(payload + _checksum(payload)).decode("ascii")


def decode_bitcoin_address(address: str) -> Tuple[int, bytes]:
    """Return ``(version, pubkey_hash)`` after verifying the checksum."""
    if not isinstance(address, str) or not address:
        raise AddressChecksumError("bitcoin address must be a non-empty string")
    try:
        raw = base58.b58decode(address)
    except ValueError as e:
        raise AddressChecksumError(f"not valid base58: {e}") from e
    if len(raw) != 1 + 20 + CHECKSUM_SIZE:
        raise AddressChecksumError(f"unexpected address length: {len(raw)} bytes")

    payload, check = raw[:-CHECKSUM_SIZE], raw[-CHECKSUM_SIZE:]
    if not hmac.compare_digest(_checksum(payload), check):
        raise AddressChecksumError("bitcoin address checksum mismatch")
    return payload[0], payload[1:]


def validate_bitcoin_address(address: str) -> bool:
    try:
        decode_bitcoin_address(address)
    except AddressChecksumError:
        return False
    return True


# ====================================================================
#  Ethereum -- Keccak-256 + EIP-55
# ====================================================================

def _raw_point(public_key: bytes) -> bytes:
    # 64-byte x || y, no prefix byte
    if len(public_key) == 64:
        public_key = b"\x04" + public_key
    return uncompress_secp256k1(public_key)[1:]


def to_checksum_address(address: str) -> str:
    """Apply EIP-55 mixed-case checksumming to a 40-hex-digit address."""
    if not _ETH_HEX.fullmatch(address):
        raise AddressChecksumError("ethereum address must be 0x followed by 40 hex digits")
    lower = address[2:].lower()
    digest = keccak256(lower.encode("ascii")).hex()
    return "0x" + "".join(
        c.upper() if c.isalpha() and int(digest[i], 16) >= 8 else c
        for i, c in enumerate(lower)
    )


def to_ethereum_address(public_key: bytes) -> str:
    """Derive a checksummed Ethereum address from a secp256k1 public key."""
    point = _raw_point(public_key)
    return to_checksum_address("0x" + keccak256(point)[-20:].hex())


def decode_ethereum_address(address: str, strict: bool = True) -> bytes:
    """
    Return the 20 address bytes after verifying the checksum.

    With ``strict=False`` all-lowercase and all-uppercase addresses, which
    carry no checksum, are accepted as well.
    """
    if not isinstance(address, str) or not _ETH_HEX.fullmatch(address):
        raise AddressChecksumError("ethereum address must be 0x followed by 40 hex digits")
    body = address[2:]
    if not strict and (body == body.lower() or body == body.upper()):
        return bytes.fromhex(body)
    if to_checksum_address(address) != address:
        raise AddressChecksumError("ethereum address checksum mismatch")
    return bytes.fromhex(body)


def validate_ethereum_address(address: str, strict: bool = True) -> bool:
    try:
        decode_ethereum_address(address, strict=strict)
    except AddressChecksumError:
        return False
    return True
