"""
Lightweight helpers for base64/base64url/hex conversion and canonical JSON.
Decoders are strict: malformed input raises ValueError instead of being
silently repaired.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Dict


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode("ascii")


def b64d(s: str) -> bytes:
    if not isinstance(s, str):
        raise ValueError(f"base64 data must be str, not {type(s).__name__}")
    try:
        return base64.b64decode(s.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"invalid base64 data: {e}") from e


def b64url_encode(b: bytes) -> str:
    # unpadded, as used in JWK coordinates
    return base64.urlsafe_b64encode(b).decode("ascii").rstrip("=")


def b64url_decode(s: str) -> bytes:
    if not isinstance(s, str):
        raise ValueError(f"base64url data must be str, not {type(s).__name__}")
    padded = s + "=" * (-len(s) % 4)
    try:
        return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"invalid base64url data: {e}") from e


def to_hex(b: bytes, prefix: bool = False) -> str:
    return ("0x" if prefix else "") + b.hex()


def from_hex(s: str) -> bytes:
    if s.startswith(("0x", "0X")):
        s = s[2:]
    return bytes.fromhex(s)


def canonical_json(obj: Dict[str, Any]) -> bytes:
    # Deterministic, minimal JSON for MACs and cache keys
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")
