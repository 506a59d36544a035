"""Security package of keyweave.

This package provides:
- Argon2id-based base secret derivation
- Per-curve key derivation (Ed25519/X25519, secp256k1, P-256)
- Bitcoin and Ethereum address encoding
- AES-256-GCM and X25519 envelope encryption
- Ed25519 signatures with a bounded plaintext cache
- secp256k1 stealth addresses
- Purpose-specific child identities
"""

from .kdf import generate_salt, derive_base, derive_master_key, KdfParams
from .curves import derive_curve_keys, public_key_for
from .addresses import (
    to_bitcoin_address,
    decode_bitcoin_address,
    validate_bitcoin_address,
    to_ethereum_address,
    to_checksum_address,
    validate_ethereum_address,
)
from .symmetric import SymmetricCipherService
from .asymmetric import AsymmetricCipherService
from .cache import PlaintextCache
from .signatures import SignatureService
from .stealth import StealthAddressService
from .derive import DeriveOptions, derive, derive_async
from .hd import derive_child_key, derive_child_public_id, derive_key_hierarchy

__all__ = [
    "generate_salt",
    "derive_base",
    "derive_master_key",
    "KdfParams",
    "derive_curve_keys",
    "public_key_for",
    "to_bitcoin_address",
    "decode_bitcoin_address",
    "validate_bitcoin_address",
    "to_ethereum_address",
    "to_checksum_address",
    "validate_ethereum_address",
    "SymmetricCipherService",
    "AsymmetricCipherService",
    "PlaintextCache",
    "SignatureService",
    "StealthAddressService",
    "DeriveOptions",
    "derive",
    "derive_async",
    "derive_child_key",
    "derive_child_public_id",
    "derive_key_hierarchy",
]
