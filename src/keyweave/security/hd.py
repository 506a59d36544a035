"""
Purpose-specific child identities derived from a master identity.

A child is a full internal key pair (Ed25519 signing + X25519 encryption)
derived from the master's private keys under a purpose tag, so the same
master and purpose always give the same child and different purposes give
unrelated children. Holders of only the master public key can compute a
stable per-purpose identifier, but not the child's keys.
"""
from __future__ import annotations

import logging
import unicodedata
from typing import Dict, Iterable, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from keyweave.core.encoding import b64url_encode
from keyweave.core.exceptions import DerivationError, KeyMaterialError
from keyweave.core.models import Curve, IdentityBundle, InternalKeyPair
from .curves import derive_curve_keys

logger = logging.getLogger(__name__)

HD_SALT = b"keyweave/hd/v1"
HD_PUBLIC_SALT = b"keyweave/hd-pub/v1"

MasterPair = Union[InternalKeyPair, IdentityBundle]


def _purpose(purpose: str) -> str:
    if not isinstance(purpose, str):
        raise DerivationError(f"purpose must be a string, not {type(purpose).__name__}")
    purpose = unicodedata.normalize("NFC", purpose).strip()
    if not purpose:
        raise DerivationError("purpose must not be empty")
    return purpose


def _master(master: MasterPair) -> InternalKeyPair:
    if isinstance(master, IdentityBundle):
        return master.internal
    if isinstance(master, InternalKeyPair):
        return master
    raise KeyMaterialError(f"master must be an internal key pair, not {type(master).__name__}")


def _child_base(master: InternalKeyPair, purpose: str) -> bytes:
    # both master private keys feed the child secret
    hkdf = HKDF(algorithm=hashes.SHA256(), length=32, salt=HD_SALT, info=purpose.encode("utf-8"))
    return hkdf.derive(master.priv + master.epriv)


def derive_child_key(master: MasterPair, purpose: str) -> InternalKeyPair:
    """Derive the child identity of ``master`` for ``purpose``."""
    purpose = _purpose(purpose)
    base = _child_base(_master(master), purpose)
    signing = derive_curve_keys(base, Curve.INTERNAL, f"hd/{purpose}/signing-v1")
    encryption = derive_curve_keys(base, Curve.INTERNAL_EXCHANGE, f"hd/{purpose}/encryption-v1")
    logger.debug("Derived child identity for purpose %r", purpose)
    return InternalKeyPair(
        pub=signing.public_key,
        priv=signing.private_key,
        epub=encryption.public_key,
        epriv=encryption.private_key,
    )


def derive_child_public_id(master_public_key: bytes, purpose: str) -> str:
    """
    Stable identifier for the ``purpose`` child of the identity owning
    ``master_public_key``. Computable from public data only; it is a label,
    not a key.
    """
    if not isinstance(master_public_key, (bytes, bytearray)) or len(master_public_key) != 32:
        raise KeyMaterialError("master public key must be 32 bytes")
    purpose = _purpose(purpose)
    hkdf = HKDF(algorithm=hashes.SHA256(), length=32, salt=HD_PUBLIC_SALT, info=purpose.encode("utf-8"))
    return b64url_encode(hkdf.derive(bytes(master_public_key)))


def derive_key_hierarchy(master: MasterPair, purposes: Iterable[str]) -> Dict[str, InternalKeyPair]:
    """Map each purpose to its child identity; duplicates collapse."""
    return {_purpose(p): derive_child_key(master, p) for p in purposes}
