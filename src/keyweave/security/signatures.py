"""Ed25519 signing over the internal key pair, plus cached symmetric decryption."""
from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any, Dict, Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519

from keyweave.core.config import Settings
from keyweave.core.exceptions import KeyMaterialError
from keyweave.core.models import Curve, CurveKeyPair, EncryptedEnvelope, IdentityBundle, InternalKeyPair, SignedMessage
from .cache import PlaintextCache
from .symmetric import EnvelopeLike, SymmetricCipherService, as_bytes, check_key, coerce_envelope

logger = logging.getLogger(__name__)

SigningPair = Union[InternalKeyPair, IdentityBundle, CurveKeyPair]
PublicKeyOrPair = Union[bytes, InternalKeyPair, IdentityBundle, CurveKeyPair]


def _signing_private_key(pair: SigningPair) -> bytes:
    if isinstance(pair, (InternalKeyPair, IdentityBundle)):
        return pair.priv
    if isinstance(pair, CurveKeyPair) and pair.curve is Curve.INTERNAL:
        return pair.private_key
    raise KeyMaterialError("signing requires the internal Ed25519 key pair")


def _verifying_public_key(key: PublicKeyOrPair) -> bytes:
    if isinstance(key, (InternalKeyPair, IdentityBundle)):
        return key.pub
    if isinstance(key, CurveKeyPair):
        if key.curve is not Curve.INTERNAL:
            raise KeyMaterialError("verification requires an internal Ed25519 public key")
        return key.public_key
    if isinstance(key, (bytes, bytearray)):
        return bytes(key)
    raise KeyMaterialError(f"unsupported public key type: {type(key).__name__}")


class SignatureService:
    """
    Sign/verify with the internal signing pair.

    ``encrypt``/``decrypt`` wrap :class:`SymmetricCipherService` and remember
    recovered plaintexts in a bounded :class:`PlaintextCache` owned by this
    instance. Cache entries are keyed by an HMAC of the envelope under the
    decryption key, so only the key that produced a ciphertext can hit its
    entry. Pass ``Settings(cache_enabled=False)`` (or a zero-capacity cache)
    to keep no plaintext in memory at all.
    """

    def __init__(
        self,
        symmetric: Optional[SymmetricCipherService] = None,
        cache: Optional[PlaintextCache] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or Settings()
        self._symmetric = symmetric or SymmetricCipherService()
        if cache is None:
            capacity = settings.cache_capacity if settings.cache_enabled else 0
            cache = PlaintextCache(capacity=capacity, ttl_seconds=settings.cache_ttl_seconds)
        self.cache = cache

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    def sign(self, data: Union[str, bytes], pair: SigningPair) -> SignedMessage:
        private_key = _signing_private_key(pair)
        try:
            sk = ed25519.Ed25519PrivateKey.from_private_bytes(private_key)
        except ValueError as e:
            raise KeyMaterialError(f"invalid Ed25519 private key: {e}") from e
        message = as_bytes(data)
        return SignedMessage(message=message, signature=sk.sign(message))

    def verify(self, signed: Union[SignedMessage, Dict[str, Any]], public_key_or_pair: PublicKeyOrPair) -> Optional[bytes]:
        """Return the signed message if the signature checks out, else None."""
        if not isinstance(signed, SignedMessage):
            try:
                signed = SignedMessage.from_dict(signed)
            except (KeyError, TypeError, ValueError):
                logger.debug("Rejected malformed signed message")
                return None
        public_key = _verifying_public_key(public_key_or_pair)
        try:
            pk = ed25519.Ed25519PublicKey.from_public_bytes(public_key)
        except ValueError as e:
            raise KeyMaterialError(f"invalid Ed25519 public key: {e}") from e
        try:
            pk.verify(signed.signature, signed.message)
        except InvalidSignature:
            return None
        return signed.message

    # ------------------------------------------------------------------
    # Cached symmetric encryption
    # ------------------------------------------------------------------

    @staticmethod
    def _cache_key(key: bytes, envelope: EncryptedEnvelope) -> bytes:
        return hmac.new(key, envelope.to_json().encode("utf-8"), hashlib.sha256).digest()

    def encrypt(self, data: Union[str, bytes], key: bytes) -> EncryptedEnvelope:
        key = check_key(key)
        plaintext = as_bytes(data)
        envelope = self._symmetric.encrypt(plaintext, key)
        self.cache.put(self._cache_key(key, envelope), plaintext)
        return envelope

    def decrypt(self, envelope: EnvelopeLike, key: bytes) -> bytes:
        key = check_key(key)
        envelope = coerce_envelope(envelope)
        cache_key = self._cache_key(key, envelope)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached
        plaintext = self._symmetric.decrypt(envelope, key)
        self.cache.put(cache_key, plaintext)
        return plaintext
