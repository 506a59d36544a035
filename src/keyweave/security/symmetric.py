"""
Authenticated symmetric encryption (AES-256-GCM) with raw or password keys.

Every call to :meth:`SymmetricCipherService.encrypt` draws a fresh 96-bit
IV from the service's random source; callers cannot supply one. The
envelope version and algorithm id are bound into the GCM associated data,
so an envelope relabelled with a different algorithm fails authentication.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import os
from typing import Any, Callable, Dict, Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from keyweave.core.encoding import b64url_decode, b64url_encode
from keyweave.core.exceptions import EnvelopeFormatError, IntegrityError, KeyMaterialError
from keyweave.core.models import (
    ALG_AES_GCM,
    ENVELOPE_VERSION,
    IV_SIZE,
    TAG_SIZE,
    EncryptedEnvelope,
)
from .kdf import KdfParams, derive_master_key, generate_salt, get_params

logger = logging.getLogger(__name__)

KEY_SIZE = 32
SALT_SIZE = 16

EnvelopeLike = Union[EncryptedEnvelope, Dict[str, Any], str]


@dataclass(frozen=True)
class PasswordKey:
    key: bytes = field(repr=False)
    salt: bytes


def as_bytes(data: Union[str, bytes]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    raise TypeError(f"expected str or bytes, not {type(data).__name__}")


def check_key(key: bytes) -> bytes:
    if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
        raise KeyMaterialError(f"symmetric key must be {KEY_SIZE} bytes")
    return bytes(key)


def coerce_envelope(envelope: EnvelopeLike) -> EncryptedEnvelope:
    if isinstance(envelope, EncryptedEnvelope):
        return envelope
    if isinstance(envelope, str):
        return EncryptedEnvelope.from_json(envelope)
    return EncryptedEnvelope.from_dict(envelope)


def header_aad(algorithm_id: str, version: int, aad: Optional[bytes]) -> bytes:
    header = f"keyweave/v{version}/{algorithm_id}".encode("ascii")
    return header if not aad else header + b"|" + aad


def seal(key: bytes, plaintext: bytes, iv: bytes, algorithm_id: str, aad: Optional[bytes] = None, **extra) -> EncryptedEnvelope:
    """AES-GCM encrypt and split the tag off into its own envelope field."""
    sealed = AESGCM(key).encrypt(iv, plaintext, header_aad(algorithm_id, ENVELOPE_VERSION, aad))
    return EncryptedEnvelope(
        iv=iv,
        ciphertext=sealed[:-TAG_SIZE],
        auth_tag=sealed[-TAG_SIZE:],
        algorithm_id=algorithm_id,
        **extra,
    )


def open_sealed(key: bytes, envelope: EncryptedEnvelope, aad: Optional[bytes] = None) -> bytes:
    try:
        return AESGCM(key).decrypt(
            envelope.iv,
            envelope.ciphertext + envelope.auth_tag,
            header_aad(envelope.algorithm_id, envelope.version, aad),
        )
    except InvalidTag:
        logger.warning("Rejected envelope: authentication tag mismatch (alg=%s)", envelope.algorithm_id)
        raise IntegrityError("Unable to decrypt message. Incorrect key or tampered ciphertext.") from None


class SymmetricCipherService:
    """
    AES-256-GCM encryption with raw 32-byte keys or password-derived keys.

    ``random_bytes`` supplies IVs, salts and generated keys; inject a seeded
    source in tests. ``kdf_params`` selects the Argon2id parameter set used
    for password keys.
    """

    def __init__(
        self,
        random_bytes: Callable[[int], bytes] = os.urandom,
        kdf_params: Optional[KdfParams] = None,
    ):
        self._random_bytes = random_bytes
        self._kdf_params = kdf_params or get_params()

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def generate_key(self) -> bytes:
        return self._random_bytes(KEY_SIZE)

    def derive_key_from_password(self, password: Union[str, bytes], salt: Optional[bytes] = None) -> PasswordKey:
        """
        Stretch ``password`` into an AES key.

        A random salt is generated when none is given; the caller must keep
        it (it travels in the envelope for :meth:`encrypt_with_password`).
        """
        if not password:
            raise KeyMaterialError("password must not be empty")
        if salt is None:
            salt = generate_salt(SALT_SIZE, self._random_bytes)
        key = derive_master_key(as_bytes(password), salt, self._kdf_params)
        return PasswordKey(key=key, salt=salt)

    # ------------------------------------------------------------------
    # Raw-key encryption
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: Union[str, bytes], key: bytes, aad: Optional[bytes] = None) -> EncryptedEnvelope:
        key = check_key(key)
        return seal(key, as_bytes(plaintext), self._random_bytes(IV_SIZE), ALG_AES_GCM, aad)

    def decrypt(self, envelope: EnvelopeLike, key: bytes, aad: Optional[bytes] = None) -> bytes:
        key = check_key(key)
        envelope = coerce_envelope(envelope)
        if envelope.algorithm_id != ALG_AES_GCM:
            raise EnvelopeFormatError(f"not a symmetric envelope: {envelope.algorithm_id}")
        return open_sealed(key, envelope, aad)

    # ------------------------------------------------------------------
    # Password encryption
    # ------------------------------------------------------------------

    def encrypt_with_password(self, plaintext: Union[str, bytes], password: Union[str, bytes]) -> EncryptedEnvelope:
        derived = self.derive_key_from_password(password)
        return seal(
            derived.key,
            as_bytes(plaintext),
            self._random_bytes(IV_SIZE),
            ALG_AES_GCM,
            salt=derived.salt,
        )

    def decrypt_with_password(self, envelope: EnvelopeLike, password: Union[str, bytes]) -> bytes:
        envelope = coerce_envelope(envelope)
        if envelope.salt is None:
            raise EnvelopeFormatError("envelope carries no salt; it was not password-encrypted")
        derived = self.derive_key_from_password(password, envelope.salt)
        return self.decrypt(envelope, derived.key)


# ----------------------------------------------------------------------
# Portable key representation (JWK "oct")
# ----------------------------------------------------------------------

def serialize_key(key: bytes) -> str:
    key = check_key(key)
    return json.dumps({"kty": "oct", "alg": "A256GCM", "k": b64url_encode(key)}, sort_keys=True)


def deserialize_key(data: Union[str, Dict[str, Any]]) -> bytes:
    try:
        jwk = json.loads(data) if isinstance(data, str) else dict(data)
    except (TypeError, ValueError) as e:
        raise KeyMaterialError(f"invalid JWK: {e}") from e
    if jwk.get("kty") != "oct" or "k" not in jwk:
        raise KeyMaterialError('invalid JWK: expected kty "oct" with a "k" member')
    try:
        key = b64url_decode(jwk["k"])
    except (TypeError, ValueError) as e:
        raise KeyMaterialError(f"invalid JWK key data: {e}") from e
    return check_key(key)
