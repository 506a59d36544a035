"""Password stretching for keyweave.

The base secret every identity key is derived from comes out of Argon2id
with a fixed, versioned parameter set. Changing any parameter changes every
derived key, so parameters are never edited in place: a new set is added
under a new version tag and the tag is recorded in the derived bundle.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import os
import unicodedata
from typing import Callable, Dict, Optional, Sequence, Union

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw

from keyweave.core.exceptions import DerivationError

logger = logging.getLogger(__name__)

Extra = Union[str, bytes, Sequence[Union[str, bytes]], None]


@dataclass(frozen=True)
class KdfParams:
    version: str
    time_cost: int
    memory_cost: int
    parallelism: int
    key_len: int = 32


KDF_PARAMS: Dict[str, KdfParams] = {
    "v1": KdfParams(version="v1", time_cost=3, memory_cost=65536, parallelism=1, key_len=32),
}
DEFAULT_KDF_VERSION = "v1"

# Salt for the identity base secret. Fixed so the same password always
# yields the same identity.
BASE_SALT = b"keyweave/base/v1"
MIN_SALT_LENGTH = 8
MIN_INPUT_LENGTH = 16


def generate_salt(length: int = 16, random_bytes: Callable[[int], bytes] = os.urandom) -> bytes:
    """Return a cryptographically secure random salt."""
    return random_bytes(length)


def get_params(version: str = DEFAULT_KDF_VERSION) -> KdfParams:
    try:
        return KDF_PARAMS[version]
    except KeyError:
        raise DerivationError(f"unknown KDF parameter version: {version!r}") from None


def _normalize(text: str) -> str:
    return unicodedata.normalize("NFC", text).strip()


def normalize_input(password: Union[str, bytes], extra: Extra = None) -> bytes:
    """
    Combine ``password`` and ``extra`` into the byte string that gets stretched.

    Strings are NFC-normalized and stripped so visually identical input from
    different keyboards/platforms maps to the same identity. ``extra`` may be
    a single value or a sequence; items are joined with ``|``.
    """
    if password is None:
        raise DerivationError("password is required")
    if isinstance(password, str):
        pwd = _normalize(password).encode("utf-8")
    elif isinstance(password, (bytes, bytearray)):
        pwd = bytes(password)
    else:
        raise DerivationError(f"password must be str or bytes, not {type(password).__name__}")
    if not pwd:
        raise DerivationError("password must not be empty")

    if extra is None:
        items = []
    elif isinstance(extra, (str, bytes, bytearray)):
        items = [extra]
    else:
        items = list(extra)

    parts = []
    for item in items:
        if isinstance(item, str):
            parts.append(_normalize(item).encode("utf-8"))
        elif isinstance(item, (bytes, bytearray)):
            parts.append(bytes(item))
        else:
            parts.append(_normalize(str(item)).encode("utf-8"))

    combined = pwd + b"|".join(parts)
    if len(combined) < MIN_INPUT_LENGTH:
        raise DerivationError(f"insufficient input entropy ({len(combined)} bytes)")
    return combined


def derive_master_key(password: Union[str, bytes], salt: bytes, params: Optional[KdfParams] = None) -> bytes:
    """
    Derive raw key bytes from a password using Argon2id.
    """
    params = params or get_params()
    if isinstance(password, str):
        password = password.encode("utf-8")
    if not isinstance(salt, (bytes, bytearray)) or len(salt) < MIN_SALT_LENGTH:
        raise DerivationError(f"salt must be at least {MIN_SALT_LENGTH} bytes")

    try:
        return hash_secret_raw(
            secret=password,
            salt=bytes(salt),
            time_cost=params.time_cost,
            memory_cost=params.memory_cost,
            parallelism=params.parallelism,
            hash_len=params.key_len,
            type=Type.ID,
        )
    except HashingError as e:
        raise DerivationError(f"argon2id failed: {e}") from e


def derive_base(
    password: Union[str, bytes],
    extra: Extra = None,
    salt: bytes = BASE_SALT,
    params: Optional[KdfParams] = None,
) -> bytes:
    """Stretch ``password`` + ``extra`` into the base secret."""
    params = params or get_params()
    combined = normalize_input(password, extra)
    logger.debug("Stretching identity input (kdf=%s, input_len=%d)", params.version, len(combined))
    return derive_master_key(combined, salt, params)


def kdf_params_to_dict(salt: bytes, params: KdfParams) -> Dict:
    return {
        "algo": "argon2id",
        "version": params.version,
        "salt": salt.hex(),
        "time": params.time_cost,
        "memory": params.memory_cost,
        "parallelism": params.parallelism,
    }
