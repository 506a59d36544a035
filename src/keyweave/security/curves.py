"""Per-curve key derivation from the base secret.

Each curve variant turns 32 bytes of HKDF output into a private key and
knows how to compute the matching public key. Scalars outside a curve's
valid range are resampled with the next counter value rather than reduced,
so every valid key is equally likely.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, x25519
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from ecdsa import NIST256p, SECP256k1, SigningKey, VerifyingKey
from ecdsa.errors import MalformedPointError

from keyweave.core.exceptions import CurveError, DerivationError, KeyMaterialError
from keyweave.core.models import Curve, CurveKeyPair

logger = logging.getLogger(__name__)

SCALAR_SIZE = 32
MAX_ATTEMPTS = 16
MIN_BASE_LENGTH = 16

SIGNING_TAG = "signing-v1"
ENCRYPTION_TAG = "encryption-v1"
BITCOIN_TAG = "secp256k1-bitcoin-v1"
ETHEREUM_TAG = "secp256k1-ethereum-v1"
P256_TAG = "p256-v1"


def _expand(base: bytes, domain_tag: str, curve: Curve, counter: int) -> bytes:
    info = domain_tag.encode("utf-8") + b"\x00" + curve.value.encode("ascii") + counter.to_bytes(4, "big")
    hkdf = HKDF(algorithm=hashes.SHA256(), length=SCALAR_SIZE, salt=None, info=info)
    return hkdf.derive(base)


class _CurveVariant:
    curve: Curve

    def accept(self, candidate: bytes) -> Optional[bytes]:
        """Return ``candidate`` as a private key, or None to resample."""
        raise NotImplementedError

    def public_key(self, private_key: bytes) -> bytes:
        raise NotImplementedError


class InternalCurve(_CurveVariant):
    # Ed25519 signing. Any 32-byte seed is valid; the primitive clamps it.
    curve = Curve.INTERNAL

    def accept(self, candidate):
        return candidate

    def public_key(self, private_key):
        sk = ed25519.Ed25519PrivateKey.from_private_bytes(private_key)
        return sk.public_key().public_bytes_raw()


class InternalExchangeCurve(_CurveVariant):
    # X25519 key agreement, clamped per RFC 7748 by the primitive.
    curve = Curve.INTERNAL_EXCHANGE

    def accept(self, candidate):
        return candidate

    def public_key(self, private_key):
        sk = x25519.X25519PrivateKey.from_private_bytes(private_key)
        return sk.public_key().public_bytes_raw()


class _PrimeOrderCurve(_CurveVariant):
    order: int

    def accept(self, candidate):
        k = int.from_bytes(candidate, "big")
        if 1 <= k < self.order:
            return candidate
        return None

    def check_scalar(self, private_key: bytes) -> int:
        if len(private_key) != SCALAR_SIZE:
            raise KeyMaterialError(f"{self.curve.value} private key must be {SCALAR_SIZE} bytes")
        k = int.from_bytes(private_key, "big")
        if not 1 <= k < self.order:
            raise KeyMaterialError(f"{self.curve.value} private key is out of range")
        return k


class Secp256k1Curve(_PrimeOrderCurve):
    curve = Curve.SECP256K1
    order = SECP256k1.order

    def public_key(self, private_key):
        # uncompressed 65-byte SEC1 point; see compress_secp256k1()
        self.check_scalar(private_key)
        sk = SigningKey.from_string(private_key, curve=SECP256k1)
        return sk.get_verifying_key().to_string("uncompressed")


class P256Curve(_PrimeOrderCurve):
    curve = Curve.P256
    order = NIST256p.order

    def public_key(self, private_key):
        k = self.check_scalar(private_key)
        sk = ec.derive_private_key(k, ec.SECP256R1())
        return sk.public_key().public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)


_VARIANTS: Dict[Curve, _CurveVariant] = {
    v.curve: v for v in (InternalCurve(), InternalExchangeCurve(), Secp256k1Curve(), P256Curve())
}


def _variant(curve: Curve) -> _CurveVariant:
    if not isinstance(curve, Curve):
        raise DerivationError(f"unsupported curve: {curve!r}")
    return _VARIANTS[curve]


def derive_curve_keys(base: bytes, curve: Curve, domain_tag: str) -> CurveKeyPair:
    """
    Derive the key pair for ``curve`` from ``base`` under ``domain_tag``.

    Identical ``(base, curve, domain_tag)`` always yields the identical pair;
    distinct tags yield unrelated keys.
    """
    variant = _variant(curve)
    if not isinstance(base, (bytes, bytearray)) or len(base) < MIN_BASE_LENGTH:
        raise DerivationError("base secret is missing or too short")
    if not domain_tag:
        raise DerivationError("domain tag must not be empty")

    for counter in range(MAX_ATTEMPTS):
        private_key = variant.accept(_expand(bytes(base), domain_tag, curve, counter))
        if private_key is not None:
            if counter:
                logger.debug("Resampled %s scalar %d time(s) for %s", curve.value, counter, domain_tag)
            return CurveKeyPair(curve=curve, private_key=private_key, public_key=variant.public_key(private_key))

    raise CurveError(f"no valid {curve.value} scalar after {MAX_ATTEMPTS} attempts")


def public_key_for(curve: Curve, private_key: bytes) -> bytes:
    """Recompute the public key for ``private_key`` on ``curve``."""
    variant = _variant(curve)
    if not isinstance(private_key, (bytes, bytearray)) or len(private_key) != SCALAR_SIZE:
        raise KeyMaterialError(f"{curve.value} private key must be {SCALAR_SIZE} bytes")
    try:
        return variant.public_key(bytes(private_key))
    except ValueError as e:
        raise KeyMaterialError(f"invalid {curve.value} private key: {e}") from e


def compress_secp256k1(public_key: bytes) -> bytes:
    """Return the 33-byte compressed form of a secp256k1 public key."""
    try:
        vk = VerifyingKey.from_string(public_key, curve=SECP256k1)
    except (MalformedPointError, ValueError) as e:
        raise KeyMaterialError(f"invalid secp256k1 public key: {e}") from e
    return vk.to_string("compressed")


def uncompress_secp256k1(public_key: bytes) -> bytes:
    """Return the 65-byte uncompressed (0x04 prefixed) form of a secp256k1 public key."""
    try:
        vk = VerifyingKey.from_string(public_key, curve=SECP256k1)
    except (MalformedPointError, ValueError) as e:
        raise KeyMaterialError(f"invalid secp256k1 public key: {e}") from e
    return vk.to_string("uncompressed")
