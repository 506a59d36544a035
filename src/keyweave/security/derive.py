"""
Password -> identity bundle.

The password (plus optional extra entropy) is stretched once into a base
secret; every requested key family is then derived from that secret under
its own domain tag. Families do not depend on each other, so they can be
computed on an executor; the bundle is only assembled once all of them
have finished.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import Executor
from dataclasses import dataclass
import functools
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Union

from keyweave.core.exceptions import DerivationError
from keyweave.core.models import ChainKeyPair, Curve, CurveKeyPair, IdentityBundle, InternalKeyPair
from .addresses import to_bitcoin_address, to_ethereum_address
from .curves import (
    BITCOIN_TAG,
    ENCRYPTION_TAG,
    ETHEREUM_TAG,
    P256_TAG,
    SIGNING_TAG,
    compress_secp256k1,
    derive_curve_keys,
)
from .kdf import BASE_SALT, Extra, KdfParams, derive_base, get_params

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeriveOptions:
    """Which optional key families to derive. All default to off."""

    include_secp256k1_bitcoin: bool = False
    include_secp256k1_ethereum: bool = False
    include_p256: bool = False

    _ALIASES = {
        "includeSecp256k1Bitcoin": "include_secp256k1_bitcoin",
        "includeSecp256k1Ethereum": "include_secp256k1_ethereum",
        "includeP256": "include_p256",
    }

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "DeriveOptions":
        """Accept snake_case or the graph layer's camelCase flag names."""
        kwargs: Dict[str, bool] = {}
        for name, value in options.items():
            field_name = cls._ALIASES.get(name, name)
            if field_name not in ("include_secp256k1_bitcoin", "include_secp256k1_ethereum", "include_p256"):
                raise DerivationError(f"unknown derive option: {name!r}")
            if not isinstance(value, bool):
                raise DerivationError(f"derive option {name!r} must be a bool")
            kwargs[field_name] = value
        return cls(**kwargs)


OptionsLike = Union[DeriveOptions, Mapping[str, Any], None]


def _coerce_options(options: OptionsLike) -> DeriveOptions:
    if options is None:
        return DeriveOptions()
    if isinstance(options, DeriveOptions):
        return options
    if isinstance(options, Mapping):
        return DeriveOptions.from_mapping(options)
    raise DerivationError(f"options must be DeriveOptions or a mapping, not {type(options).__name__}")


def _internal_signing(base: bytes) -> CurveKeyPair:
    return derive_curve_keys(base, Curve.INTERNAL, SIGNING_TAG)


def _internal_encryption(base: bytes) -> CurveKeyPair:
    return derive_curve_keys(base, Curve.INTERNAL_EXCHANGE, ENCRYPTION_TAG)


def _bitcoin(base: bytes) -> ChainKeyPair:
    pair = derive_curve_keys(base, Curve.SECP256K1, BITCOIN_TAG)
    public_key = compress_secp256k1(pair.public_key)
    return ChainKeyPair(private_key=pair.private_key, public_key=public_key, address=to_bitcoin_address(public_key))


def _ethereum(base: bytes) -> ChainKeyPair:
    pair = derive_curve_keys(base, Curve.SECP256K1, ETHEREUM_TAG)
    return ChainKeyPair(
        private_key=pair.private_key,
        public_key=pair.public_key,
        address=to_ethereum_address(pair.public_key),
    )


def _p256(base: bytes) -> CurveKeyPair:
    return derive_curve_keys(base, Curve.P256, P256_TAG)


def derive(
    password: Union[str, bytes],
    extra: Extra = None,
    options: OptionsLike = None,
    *,
    params: Optional[KdfParams] = None,
    executor: Optional[Executor] = None,
) -> IdentityBundle:
    """
    Deterministically derive an identity bundle from ``password``.

    The internal signing/encryption pair is always present; the secp256k1
    and P-256 families only when requested in ``options``. The same
    password, extra and options always produce the identical bundle.
    """
    opts = _coerce_options(options)
    params = params or get_params()
    base = derive_base(password, extra, BASE_SALT, params)

    jobs: Dict[str, Callable[[bytes], Any]] = {
        "signing": _internal_signing,
        "encryption": _internal_encryption,
    }
    if opts.include_secp256k1_bitcoin:
        jobs["bitcoin"] = _bitcoin
    if opts.include_secp256k1_ethereum:
        jobs["ethereum"] = _ethereum
    if opts.include_p256:
        jobs["p256"] = _p256

    if executor is None:
        results = {name: job(base) for name, job in jobs.items()}
    else:
        futures = {name: executor.submit(job, base) for name, job in jobs.items()}
        # wait for every family; the first failure propagates
        results = {name: future.result() for name, future in futures.items()}

    signing, encryption = results["signing"], results["encryption"]
    logger.debug("Derived identity (kdf=%s, families=%s)", params.version, ",".join(jobs))
    return IdentityBundle(
        version=params.version,
        internal=InternalKeyPair(
            pub=signing.public_key,
            priv=signing.private_key,
            epub=encryption.public_key,
            epriv=encryption.private_key,
        ),
        secp256k1_bitcoin=results.get("bitcoin"),
        secp256k1_ethereum=results.get("ethereum"),
        p256=results.get("p256"),
    )


async def derive_async(
    password: Union[str, bytes],
    extra: Extra = None,
    options: OptionsLike = None,
    *,
    params: Optional[KdfParams] = None,
    executor: Optional[Executor] = None,
) -> IdentityBundle:
    """Run :func:`derive` off the event loop; cancelling abandons the result."""
    loop = asyncio.get_running_loop()
    call = functools.partial(derive, password, extra, options, params=params)
    return await loop.run_in_executor(executor, call)
