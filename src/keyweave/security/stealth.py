"""One-time stealth addresses on secp256k1 (dual-key).

The recipient holds a viewing pair ``V = v*G`` and a spending pair
``P = p*G``. The sender:

1. samples ``r`` and publishes ``R = r*G`` with the payment
2. computes the shared point ``S = r*V``
3. hashes ``S`` to a scalar ``h`` and pays to the Ethereum address of
   ``P + h*G``

The recipient computes ``S = v*R``. The viewing key alone is enough to
recognise the payment (:meth:`StealthAddressService.scan_stealth_address`);
spending needs the one-time private key ``p + h mod n``. The sender never
learns that key. With ``V == P`` this is the single-key scheme.
"""
from __future__ import annotations

import logging
import os
from typing import Callable, Dict, Optional

from ecdsa import SECP256k1, VerifyingKey
from ecdsa.errors import MalformedPointError

from keyweave.core.exceptions import CurveError, KeyMaterialError, StealthRecoveryError
from keyweave.core.hashing import keccak256
from keyweave.core.models import Curve, CurveKeyPair, StealthPayload
from .addresses import to_ethereum_address
from .curves import MAX_ATTEMPTS, SCALAR_SIZE, public_key_for

logger = logging.getLogger(__name__)

_G = SECP256k1.generator
_N = SECP256k1.order


def _point(public_key: bytes):
    try:
        return VerifyingKey.from_string(bytes(public_key), curve=SECP256k1).pubkey.point
    except (MalformedPointError, ValueError, TypeError) as e:
        raise KeyMaterialError(f"invalid secp256k1 public key: {e}") from e


def _encode(point, encoding: str = "compressed") -> bytes:
    try:
        return VerifyingKey.from_public_point(point, curve=SECP256k1).to_string(encoding)
    except (MalformedPointError, ValueError, AssertionError) as e:
        raise CurveError(f"point cannot be encoded: {e}") from e


def _scalar(private_key: bytes) -> int:
    if not isinstance(private_key, (bytes, bytearray)) or len(private_key) != SCALAR_SIZE:
        raise KeyMaterialError(f"secp256k1 private key must be {SCALAR_SIZE} bytes")
    k = int.from_bytes(private_key, "big")
    if not 1 <= k < _N:
        raise KeyMaterialError("secp256k1 private key is out of range")
    return k


def _tweak(shared_point) -> int:
    # hash the shared point to a scalar in [1, n), resampling on overflow
    seed = _encode(shared_point)
    for counter in range(MAX_ATTEMPTS):
        s = int.from_bytes(keccak256(seed + counter.to_bytes(4, "big")), "big")
        if 1 <= s < _N:
            return s
    raise CurveError("no valid stealth tweak")


class StealthAddressService:
    """Generate, scan and open secp256k1 stealth addresses; see module docstring."""

    def __init__(self, random_bytes: Callable[[int], bytes] = os.urandom):
        self._random_bytes = random_bytes

    def _random_key(self) -> CurveKeyPair:
        for _ in range(MAX_ATTEMPTS):
            candidate = self._random_bytes(SCALAR_SIZE)
            if 1 <= int.from_bytes(candidate, "big") < _N:
                return CurveKeyPair(
                    curve=Curve.SECP256K1,
                    private_key=candidate,
                    public_key=public_key_for(Curve.SECP256K1, candidate),
                )
        raise CurveError("random source produced no valid secp256k1 scalar")

    def generate_stealth_keys(self) -> Dict[str, CurveKeyPair]:
        """Fresh viewing and spending key pairs for a stealth recipient."""
        return {"viewing": self._random_key(), "spending": self._random_key()}

    def generate_stealth_address(
        self,
        spending_public_key: bytes,
        viewing_public_key: Optional[bytes] = None,
    ) -> StealthPayload:
        """
        Pay to a fresh one-time address of the recipient.

        Without ``viewing_public_key`` the spending key doubles as the
        viewing key.
        """
        if not spending_public_key:
            raise KeyMaterialError("recipient public key is required")
        spending = _point(spending_public_key)
        viewing = spending if viewing_public_key is None else _point(viewing_public_key)
        ephemeral = self._random_key()
        r = int.from_bytes(ephemeral.private_key, "big")

        one_time = spending + _G * _tweak(viewing * r)
        address = to_ethereum_address(_encode(one_time, "uncompressed"))
        logger.debug("Generated stealth address %s", address)
        return StealthPayload(ephemeral_public_key=_encode(_G * r), one_time_address=address)

    def scan_stealth_address(
        self,
        ephemeral_public_key: bytes,
        viewing_private_key: bytes,
        spending_public_key: bytes,
        address: str,
    ) -> bool:
        """
        Check with the viewing key alone whether ``address`` pays to the
        owner of ``spending_public_key``. Cannot spend.
        """
        v = _scalar(viewing_private_key)
        spending = _point(spending_public_key)
        try:
            ephemeral = _point(ephemeral_public_key)
        except KeyMaterialError as e:
            raise StealthRecoveryError(f"corrupted ephemeral public key: {e}") from e
        one_time = spending + _G * _tweak(ephemeral * v)
        return to_ethereum_address(_encode(one_time, "uncompressed")).lower() == address.lower()

    def open_stealth_address(
        self,
        ephemeral_public_key: bytes,
        spending_private_key: bytes,
        expected_address: Optional[str] = None,
        viewing_private_key: Optional[bytes] = None,
    ) -> CurveKeyPair:
        """
        Recover the one-time spending key for a payment.

        ``viewing_private_key`` defaults to the spending key. When
        ``expected_address`` is given the recovered key must control it,
        otherwise :class:`StealthRecoveryError` is raised.
        """
        p = _scalar(spending_private_key)
        v = p if viewing_private_key is None else _scalar(viewing_private_key)
        try:
            ephemeral = _point(ephemeral_public_key)
        except KeyMaterialError as e:
            raise StealthRecoveryError(f"corrupted ephemeral public key: {e}") from e

        k = (p + _tweak(ephemeral * v)) % _N
        if k == 0:
            raise StealthRecoveryError("derived one-time key is zero")
        private_key = k.to_bytes(SCALAR_SIZE, "big")
        pair = CurveKeyPair(
            curve=Curve.SECP256K1,
            private_key=private_key,
            public_key=public_key_for(Curve.SECP256K1, private_key),
        )

        if expected_address is not None:
            if to_ethereum_address(pair.public_key).lower() != expected_address.lower():
                logger.warning("Stealth key does not match the expected address")
                raise StealthRecoveryError("recovered key does not control the stealth address")
        return pair
