"""Unit tests for the Key Derivation Function (KDF) module."""

import pytest

from keyweave.core.exceptions import DerivationError
from keyweave.security.kdf import (
    BASE_SALT,
    KDF_PARAMS,
    KdfParams,
    derive_base,
    derive_master_key,
    generate_salt,
    get_params,
    kdf_params_to_dict,
    normalize_input,
)


def test_generate_salt_defaults():
    """Ensure salt generation returns bytes of the default length (16)."""
    salt = generate_salt()
    assert isinstance(salt, bytes)
    assert len(salt) == 16


def test_generate_salt_custom_length_and_source(seeded_random):
    """Salt generation respects the length and the injected random source."""
    salt = generate_salt(length=32, random_bytes=seeded_random)
    assert len(salt) == 32
    assert isinstance(salt, bytes)


def test_v1_parameters_are_pinned():
    """The v1 parameter set must never change: every derived key depends on it."""
    assert KDF_PARAMS["v1"] == KdfParams(version="v1", time_cost=3, memory_cost=65536, parallelism=1, key_len=32)
    assert get_params() is KDF_PARAMS["v1"]


def test_get_params_unknown_version():
    with pytest.raises(DerivationError, match="unknown KDF parameter version"):
        get_params("v999")


def test_derive_master_key_str_and_bytes_agree(fast_params):
    """Passing the same password as string or bytes yields the same key."""
    salt = generate_salt()
    key_from_str = derive_master_key("password123", salt, fast_params)
    key_from_bytes = derive_master_key(b"password123", salt, fast_params)

    assert key_from_str == key_from_bytes
    assert len(key_from_str) == 32


def test_derive_master_key_custom_length():
    """Ensure custom parameters (cost, length) are respected."""
    params = KdfParams(version="test", time_cost=1, memory_cost=8, parallelism=1, key_len=64)
    key = derive_master_key(b"pass", generate_salt(), params)
    assert len(key) == 64


@pytest.mark.parametrize("salt", [b"", b"short", "not-bytes-salt"])
def test_derive_master_key_rejects_malformed_salt(salt, fast_params):
    with pytest.raises(DerivationError, match="salt"):
        derive_master_key(b"password123", salt, fast_params)


def test_normalize_input_nfc_and_strip():
    """Composed and decomposed forms of the same text map to the same input."""
    composed = "caf\u00e9 au lait please"
    decomposed = "  cafe\u0301 au lait please \n"
    assert normalize_input(composed) == normalize_input(decomposed)


def test_normalize_input_joins_extra():
    combined = normalize_input("correct horse", ["alpha", b"beta"])
    assert combined == b"correct horsealpha|beta"


def test_normalize_input_single_extra_value():
    assert normalize_input("correct horse battery", "x") == b"correct horse batteryx"


@pytest.mark.parametrize("password", ["", "   ", b"", None])
def test_normalize_input_rejects_empty_password(password):
    with pytest.raises(DerivationError):
        normalize_input(password)


def test_normalize_input_rejects_low_entropy():
    with pytest.raises(DerivationError, match="insufficient input entropy"):
        normalize_input("short")


def test_derive_base_is_deterministic(fast_params):
    a = derive_base("correct horse battery staple", None, BASE_SALT, fast_params)
    b = derive_base("correct horse battery staple", None, BASE_SALT, fast_params)
    assert a == b
    assert len(a) == 32


def test_derive_base_depends_on_extra(fast_params):
    a = derive_base("correct horse battery staple", None, BASE_SALT, fast_params)
    b = derive_base("correct horse battery staple", "device-1", BASE_SALT, fast_params)
    assert a != b


def test_derive_base_depends_on_params(fast_params):
    slower = KdfParams(version="test2", time_cost=2, memory_cost=8, parallelism=1)
    a = derive_base("correct horse battery staple", None, BASE_SALT, fast_params)
    b = derive_base("correct horse battery staple", None, BASE_SALT, slower)
    assert a != b


def test_kdf_params_to_dict():
    """Validate the helper function serialization."""
    salt = b"\xaa" * 16
    result = kdf_params_to_dict(salt=salt, params=KdfParams(version="v9", time_cost=2, memory_cost=1024, parallelism=4))

    assert result == {
        "algo": "argon2id",
        "version": "v9",
        "salt": "aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa",
        "time": 2,
        "memory": 1024,
        "parallelism": 4,
    }
