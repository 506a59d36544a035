"""Runtime settings for keyweave, read from ``KEYWEAVE_*`` environment variables."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Mapping, Optional


@dataclass(frozen=True)
class Settings:
    """Tunables shared by the services.

    - ``kdf_version`` selects the versioned Argon2id parameter set used for
      password stretching (see :mod:`keyweave.security.kdf`).
    - ``cache_*`` configure the plaintext cache owned by each
      :class:`~keyweave.security.signatures.SignatureService`.
      ``cache_ttl_seconds=0`` disables expiry; ``cache_enabled=False``
      disables the cache entirely for secret-sensitive deployments.
    """

    kdf_version: str = "v1"
    cache_enabled: bool = True
    cache_capacity: int = 1024
    cache_ttl_seconds: float = 300.0
    log_level: int = logging.INFO


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def _parse_float(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def _parse_level(name: str, raw: str) -> int:
    level = logging.getLevelName(raw.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"{name} must be a logging level name, got {raw!r}")
    return level


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from the environment, falling back to defaults."""
    # imported here: keyweave.security imports this module
    from keyweave.security.kdf import KDF_PARAMS

    env = os.environ if environ is None else environ
    defaults = Settings()

    kdf_version = env.get("KEYWEAVE_KDF_VERSION", defaults.kdf_version)
    if kdf_version not in KDF_PARAMS:
        raise ValueError(
            f"KEYWEAVE_KDF_VERSION must be one of {sorted(KDF_PARAMS)}, got {kdf_version!r}"
        )

    raw = env.get("KEYWEAVE_CACHE_ENABLED")
    cache_enabled = defaults.cache_enabled if raw is None else _parse_bool("KEYWEAVE_CACHE_ENABLED", raw)

    raw = env.get("KEYWEAVE_CACHE_CAPACITY")
    cache_capacity = defaults.cache_capacity if raw is None else _parse_int("KEYWEAVE_CACHE_CAPACITY", raw)

    raw = env.get("KEYWEAVE_CACHE_TTL_SECONDS")
    cache_ttl = defaults.cache_ttl_seconds if raw is None else _parse_float("KEYWEAVE_CACHE_TTL_SECONDS", raw)

    raw = env.get("KEYWEAVE_LOG_LEVEL")
    log_level = defaults.log_level if raw is None else _parse_level("KEYWEAVE_LOG_LEVEL", raw)

    return Settings(
        kdf_version=kdf_version,
        cache_enabled=cache_enabled,
        cache_capacity=cache_capacity,
        cache_ttl_seconds=cache_ttl,
        log_level=log_level,
    )
