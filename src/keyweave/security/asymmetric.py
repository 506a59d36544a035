"""
Public-key envelope encryption over X25519.

encrypt(): a fresh ephemeral X25519 key agrees a secret with the recipient's
public key, HKDF-SHA256 turns it into an AES-256-GCM key and the
ephemeral public key rides along in the envelope. decrypt() repeats the
agreement from the recipient side.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Dict, Optional, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ed25519, x25519
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from keyweave.core.encoding import b64url_decode, b64url_encode
from keyweave.core.exceptions import EnvelopeFormatError, KeyMaterialError
from keyweave.core.models import ALG_AES_GCM, ALG_X25519_AES_GCM, IV_SIZE, Curve, CurveKeyPair, EncryptedEnvelope
from .curves import public_key_for
from .symmetric import EnvelopeLike, as_bytes, check_key, coerce_envelope, open_sealed, seal

logger = logging.getLogger(__name__)

KEY_SIZE = 32
ENVELOPE_INFO = b"keyweave/envelope/v1"
PAIRWISE_INFO = b"keyweave/pairwise/v1"

_JWK_CURVES = {Curve.INTERNAL_EXCHANGE: "X25519", Curve.INTERNAL: "Ed25519"}


def _check_raw(key: bytes, what: str) -> bytes:
    if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
        raise KeyMaterialError(f"{what} must be {KEY_SIZE} bytes")
    return bytes(key)


def _exchange(private_key: bytes, public_key: bytes) -> bytes:
    private_key = _check_raw(private_key, "X25519 private key")
    public_key = _check_raw(public_key, "X25519 public key")
    try:
        sk = x25519.X25519PrivateKey.from_private_bytes(private_key)
        return sk.exchange(x25519.X25519PublicKey.from_public_bytes(public_key))
    except ValueError as e:
        # low-order points produce an all-zero secret and are refused
        raise KeyMaterialError(f"key agreement failed: {e}") from e


def _kdf(shared: bytes, salt: Optional[bytes], info: bytes) -> bytes:
    hkdf = HKDF(algorithm=hashes.SHA256(), length=32, salt=salt, info=info)
    return hkdf.derive(shared)  # 256-bit AEAD key


class AsymmetricCipherService:
    """Hybrid X25519 + AES-256-GCM encryption; see module docstring."""

    def __init__(self, random_bytes: Callable[[int], bytes] = os.urandom):
        self._random_bytes = random_bytes

    def generate_key_pair(self) -> CurveKeyPair:
        private_key = self._random_bytes(KEY_SIZE)
        return CurveKeyPair(
            curve=Curve.INTERNAL_EXCHANGE,
            private_key=private_key,
            public_key=public_key_for(Curve.INTERNAL_EXCHANGE, private_key),
        )

    def shared_secret(self, private_key: bytes, public_key: bytes) -> bytes:
        """Raw X25519 agreement, for callers building their own channel."""
        return _exchange(private_key, public_key)

    def encrypt(self, message: Union[str, bytes], recipient_public_key: bytes, aad: Optional[bytes] = None) -> EncryptedEnvelope:
        recipient_public_key = _check_raw(recipient_public_key, "recipient public key")
        ephemeral = self.generate_key_pair()
        shared = _exchange(ephemeral.private_key, recipient_public_key)
        key = _kdf(shared, ephemeral.public_key + recipient_public_key, ENVELOPE_INFO)
        return seal(
            key,
            as_bytes(message),
            self._random_bytes(IV_SIZE),
            ALG_X25519_AES_GCM,
            aad,
            ephemeral_public_key=ephemeral.public_key,
        )

    def decrypt(self, envelope: EnvelopeLike, private_key: bytes, aad: Optional[bytes] = None) -> bytes:
        envelope = coerce_envelope(envelope)
        if envelope.algorithm_id != ALG_X25519_AES_GCM or envelope.ephemeral_public_key is None:
            raise EnvelopeFormatError(f"not a public-key envelope: {envelope.algorithm_id}")
        own_public = public_key_for(Curve.INTERNAL_EXCHANGE, _check_raw(private_key, "X25519 private key"))
        shared = _exchange(private_key, envelope.ephemeral_public_key)
        key = _kdf(shared, envelope.ephemeral_public_key + own_public, ENVELOPE_INFO)
        return open_sealed(key, envelope, aad)

    # ------------------------------------------------------------------
    # Static-static pairwise encryption between two known identities
    # ------------------------------------------------------------------

    def pairwise_key(self, own_private_key: bytes, other_public_key: bytes) -> bytes:
        """
        Symmetric key both parties of a pair compute from their own private
        key and the other's public key.
        """
        own_public = public_key_for(Curve.INTERNAL_EXCHANGE, _check_raw(own_private_key, "X25519 private key"))
        shared = _exchange(own_private_key, other_public_key)
        # order-independent salt so both directions agree
        salt = b"".join(sorted((own_public, bytes(other_public_key))))
        return check_key(_kdf(shared, salt, PAIRWISE_INFO))

    def encrypt_for(self, message: Union[str, bytes], sender: CurveKeyPair, recipient_public_key: bytes) -> EncryptedEnvelope:
        key = self.pairwise_key(sender.private_key, recipient_public_key)
        return seal(key, as_bytes(message), self._random_bytes(IV_SIZE), ALG_AES_GCM)

    def decrypt_from(self, envelope: EnvelopeLike, sender_public_key: bytes, recipient: CurveKeyPair) -> bytes:
        envelope = coerce_envelope(envelope)
        if envelope.algorithm_id != ALG_AES_GCM:
            raise EnvelopeFormatError(f"not a pairwise envelope: {envelope.algorithm_id}")
        key = self.pairwise_key(recipient.private_key, sender_public_key)
        return open_sealed(key, envelope)


# ----------------------------------------------------------------------
# Portable key representation (JWK "OKP", RFC 8037)
# ----------------------------------------------------------------------

def _jwk_curve(curve: Curve) -> str:
    try:
        return _JWK_CURVES[curve]
    except KeyError:
        raise KeyMaterialError(f"no OKP representation for {curve!r}") from None


def _load_jwk(data: Union[str, Dict[str, Any]], curve: Curve) -> Dict[str, Any]:
    try:
        jwk = json.loads(data) if isinstance(data, str) else dict(data)
    except (TypeError, ValueError) as e:
        raise KeyMaterialError(f"invalid JWK: {e}") from e
    if jwk.get("kty") != "OKP" or jwk.get("crv") != _jwk_curve(curve):
        raise KeyMaterialError(f'invalid JWK: expected kty "OKP" and crv "{_jwk_curve(curve)}"')
    return jwk


def _jwk_member(jwk: Dict[str, Any], name: str) -> bytes:
    try:
        return _check_raw(b64url_decode(jwk[name]), f'JWK "{name}"')
    except (KeyError, TypeError, ValueError) as e:
        raise KeyMaterialError(f'invalid JWK member "{name}": {e}') from e


def serialize_public_key(public_key: bytes, curve: Curve = Curve.INTERNAL_EXCHANGE) -> str:
    public_key = _check_raw(public_key, "public key")
    return json.dumps({"kty": "OKP", "crv": _jwk_curve(curve), "x": b64url_encode(public_key)}, sort_keys=True)


def deserialize_public_key(data: Union[str, Dict[str, Any]], curve: Curve = Curve.INTERNAL_EXCHANGE) -> bytes:
    jwk = _load_jwk(data, curve)
    public_key = _jwk_member(jwk, "x")
    try:
        if curve is Curve.INTERNAL:
            ed25519.Ed25519PublicKey.from_public_bytes(public_key)
        else:
            x25519.X25519PublicKey.from_public_bytes(public_key)
    except ValueError as e:
        raise KeyMaterialError(f"invalid public key: {e}") from e
    return public_key


def serialize_private_key(private_key: bytes, curve: Curve = Curve.INTERNAL_EXCHANGE) -> str:
    private_key = _check_raw(private_key, "private key")
    return json.dumps(
        {
            "kty": "OKP",
            "crv": _jwk_curve(curve),
            "x": b64url_encode(public_key_for(curve, private_key)),
            "d": b64url_encode(private_key),
        },
        sort_keys=True,
    )


def deserialize_private_key(data: Union[str, Dict[str, Any]], curve: Curve = Curve.INTERNAL_EXCHANGE) -> bytes:
    jwk = _load_jwk(data, curve)
    private_key = _jwk_member(jwk, "d")
    if "x" in jwk and _jwk_member(jwk, "x") != public_key_for(curve, private_key):
        raise KeyMaterialError("JWK public and private parts do not match")
    return private_key
