"""
Data models for derived identities, encrypted envelopes and stealth payloads
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import json
from typing import Any, Dict, Optional

from .encoding import b64d, b64e, b64url_encode, canonical_json, to_hex
from .exceptions import EnvelopeFormatError


class Curve(Enum):
    # Closed set of key families. The internal family is split in two because
    # an Ed25519 signing key cannot take part in a Diffie-Hellman exchange.
    INTERNAL = "ed25519"
    INTERNAL_EXCHANGE = "x25519"
    SECP256K1 = "secp256k1"
    P256 = "p256"


@dataclass(frozen=True)
class CurveKeyPair:
    curve: Curve
    private_key: bytes = field(repr=False)
    public_key: bytes


@dataclass(frozen=True)
class InternalKeyPair:
    # signing pair (Ed25519) + encryption pair (X25519), raw 32-byte keys
    pub: bytes
    priv: bytes = field(repr=False)
    epub: bytes
    epriv: bytes = field(repr=False)

    @property
    def signing(self) -> CurveKeyPair:
        return CurveKeyPair(Curve.INTERNAL, self.priv, self.pub)

    @property
    def encryption(self) -> CurveKeyPair:
        return CurveKeyPair(Curve.INTERNAL_EXCHANGE, self.epriv, self.epub)

    def to_dict(self) -> Dict[str, str]:
        return {
            "pub": b64url_encode(self.pub),
            "priv": b64url_encode(self.priv),
            "epub": b64url_encode(self.epub),
            "epriv": b64url_encode(self.epriv),
        }


@dataclass(frozen=True)
class ChainKeyPair:
    # secp256k1 key pair plus its chain-specific address
    private_key: bytes = field(repr=False)
    public_key: bytes
    address: str


@dataclass(frozen=True)
class IdentityBundle:
    """
    Result of :func:`keyweave.security.derive.derive`.

    Optional families are ``None`` when they were not requested; ``to_dict``
    omits them entirely.
    """

    version: str
    internal: InternalKeyPair
    secp256k1_bitcoin: Optional[ChainKeyPair] = None
    secp256k1_ethereum: Optional[ChainKeyPair] = None
    p256: Optional[CurveKeyPair] = None

    @property
    def pub(self) -> bytes:
        return self.internal.pub

    @property
    def priv(self) -> bytes:
        return self.internal.priv

    @property
    def epub(self) -> bytes:
        return self.internal.epub

    @property
    def epriv(self) -> bytes:
        return self.internal.epriv

    def to_dict(self) -> Dict[str, Any]:
        """
        Export in the graph layer's wire formats: internal keys as unpadded
        base64url, the P-256 public key as ``"x.y"`` base64url coordinates,
        Bitcoin keys as bare hex and Ethereum keys as ``0x`` hex.
        """
        out: Dict[str, Any] = {"version": self.version}
        out.update(self.internal.to_dict())
        if self.secp256k1_bitcoin is not None:
            out["secp256k1Bitcoin"] = {
                "privateKey": to_hex(self.secp256k1_bitcoin.private_key),
                "publicKey": to_hex(self.secp256k1_bitcoin.public_key),
                "address": self.secp256k1_bitcoin.address,
            }
        if self.secp256k1_ethereum is not None:
            out["secp256k1Ethereum"] = {
                "privateKey": to_hex(self.secp256k1_ethereum.private_key, prefix=True),
                "publicKey": to_hex(self.secp256k1_ethereum.public_key, prefix=True),
                "address": self.secp256k1_ethereum.address,
            }
        if self.p256 is not None:
            point = self.p256.public_key
            out["p256"] = {
                "pub": b64url_encode(point[1:33]) + "." + b64url_encode(point[33:65]),
                "priv": b64url_encode(self.p256.private_key),
            }
        return out


ENVELOPE_VERSION = 1
ALG_AES_GCM = "AES-256-GCM"
ALG_X25519_AES_GCM = "X25519-HKDF-SHA256+AES-256-GCM"
SUPPORTED_ALGORITHMS = (ALG_AES_GCM, ALG_X25519_AES_GCM)

IV_SIZE = 12
TAG_SIZE = 16


@dataclass(frozen=True)
class EncryptedEnvelope:
    """
    Authenticated ciphertext plus everything except the key needed to open it.

    ``salt`` is only present for password-based encryption and
    ``ephemeral_public_key`` only for public-key envelopes.
    """

    iv: bytes
    ciphertext: bytes
    auth_tag: bytes
    algorithm_id: str = ALG_AES_GCM
    salt: Optional[bytes] = None
    ephemeral_public_key: Optional[bytes] = None
    version: int = ENVELOPE_VERSION

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "v": self.version,
            "alg": self.algorithm_id,
            "iv": b64e(self.iv),
            "ct": b64e(self.ciphertext),
            "tag": b64e(self.auth_tag),
        }
        if self.salt is not None:
            out["salt"] = b64e(self.salt)
        if self.ephemeral_public_key is not None:
            out["epk"] = b64e(self.ephemeral_public_key)
        return out

    def to_json(self) -> str:
        return canonical_json(self.to_dict()).decode("utf-8")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EncryptedEnvelope":
        if not isinstance(data, dict):
            raise EnvelopeFormatError("envelope must be a mapping")
        version = data.get("v")
        if version != ENVELOPE_VERSION:
            raise EnvelopeFormatError(f"unsupported envelope version: {version!r}")
        alg = data.get("alg")
        if alg not in SUPPORTED_ALGORITHMS:
            raise EnvelopeFormatError(f"unsupported algorithm: {alg!r}")
        try:
            iv = b64d(data["iv"])
            ct = b64d(data["ct"])
            tag = b64d(data["tag"])
            salt = b64d(data["salt"]) if "salt" in data else None
            epk = b64d(data["epk"]) if "epk" in data else None
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise EnvelopeFormatError(f"malformed envelope field: {e}") from e
        if len(iv) != IV_SIZE or len(tag) != TAG_SIZE:
            raise EnvelopeFormatError("envelope iv/tag has the wrong length")
        if alg == ALG_X25519_AES_GCM and epk is None:
            raise EnvelopeFormatError("public-key envelope is missing its ephemeral key")
        return cls(
            iv=iv,
            ciphertext=ct,
            auth_tag=tag,
            algorithm_id=alg,
            salt=salt,
            ephemeral_public_key=epk,
            version=version,
        )

    @classmethod
    def from_json(cls, raw: str) -> "EncryptedEnvelope":
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise EnvelopeFormatError(f"envelope is not valid JSON: {e}") from e
        return cls.from_dict(data)


@dataclass(frozen=True)
class SignedMessage:
    # signed data carries its payload so verification can hand it back
    message: bytes
    signature: bytes

    def to_dict(self) -> Dict[str, str]:
        return {"m": b64e(self.message), "s": b64e(self.signature)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignedMessage":
        return cls(message=b64d(data["m"]), signature=b64d(data["s"]))


@dataclass(frozen=True)
class StealthPayload:
    # ephemeral_public_key must travel with the payment
    ephemeral_public_key: bytes
    one_time_address: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "ephemeralPublicKey": to_hex(self.ephemeral_public_key, prefix=True),
            "oneTimeAddress": self.one_time_address,
        }
