""" Hash helpers shared by the identity layer. """

import hashlib

from Crypto.Hash import RIPEMD160, keccak


SHORT_HASH_ITERATIONS = 100_000


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def double_sha256(data: bytes) -> bytes:
    return sha256(sha256(data))


def hash160(data: bytes) -> bytes:
    # RIPEMD160(SHA256(data)), Bitcoin's public key hash
    return RIPEMD160.new(sha256(data)).digest()


def keccak256(data: bytes) -> bytes:
    # Original Keccak padding, not NIST SHA3-256
    return keccak.new(digest_bits=256, data=data).digest()


def hash_text(text: str) -> str:
    # Hex SHA-256 of a UTF-8 string.
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def short_hash(text: str, salt: str = "") -> str:
    """Return an 8-hex-char PBKDF2-SHA256 digest of ``text``.

    Used for compact, non-secret lookup labels; never as key material.
    """
    digest = hashlib.pbkdf2_hmac(
        "sha256", text.encode("utf-8"), salt.encode("utf-8"), SHORT_HASH_ITERATIONS
    )
    return digest.hex()[:8]
