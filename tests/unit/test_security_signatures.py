"""Unit tests for Ed25519 signing and cached symmetric decryption."""

from dataclasses import replace
from unittest.mock import patch

import pytest

from keyweave.core.config import Settings
from keyweave.core.exceptions import IntegrityError, KeyMaterialError
from keyweave.core.models import Curve, SignedMessage
from keyweave.security.cache import PlaintextCache
from keyweave.security.curves import derive_curve_keys
from keyweave.security.signatures import SignatureService
from keyweave.security.symmetric import SymmetricCipherService


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def symmetric():
    return SymmetricCipherService()


@pytest.fixture
def service(symmetric):
    return SignatureService(symmetric=symmetric)


@pytest.fixture
def signing_pair():
    return derive_curve_keys(b"s" * 32, Curve.INTERNAL, "signing-v1")


# ==============================================================================
# Sign / verify
# ==============================================================================

def test_sign_and_verify(service, signing_pair):
    signed = service.sign(b"hello", signing_pair)
    assert len(signed.signature) == 64
    assert service.verify(signed, signing_pair.public_key) == b"hello"


def test_sign_is_deterministic(service, signing_pair):
    assert service.sign("same", signing_pair) == service.sign("same", signing_pair)


def test_verify_accepts_wire_dict(service, signing_pair):
    signed = service.sign("text", signing_pair)
    assert service.verify(signed.to_dict(), signing_pair) == b"text"


def test_tampered_message_returns_none(service, signing_pair):
    signed = service.sign(b"pay 10", signing_pair)
    assert service.verify(replace(signed, message=b"pay 99"), signing_pair.public_key) is None


def test_tampered_signature_returns_none(service, signing_pair):
    signed = service.sign(b"pay 10", signing_pair)
    sig = bytearray(signed.signature)
    sig[0] ^= 0x01
    assert service.verify(SignedMessage(signed.message, bytes(sig)), signing_pair.public_key) is None


def test_wrong_public_key_returns_none(service, signing_pair):
    other = derive_curve_keys(b"o" * 32, Curve.INTERNAL, "signing-v1")
    assert service.verify(service.sign(b"m", signing_pair), other.public_key) is None


def test_malformed_signed_dict_returns_none(service, signing_pair):
    assert service.verify({"m": "not base64!"}, signing_pair.public_key) is None


@pytest.mark.parametrize("signed", [{"m": 5, "s": "AAAA"}, {"m": "AAAA", "s": None}, {"m": b"AAAA", "s": "AAAA"}])
def test_non_string_members_return_none(service, signing_pair, signed):
    assert service.verify(signed, signing_pair.public_key) is None


def test_sign_rejects_non_internal_pair(service):
    pair = derive_curve_keys(b"s" * 32, Curve.SECP256K1, "secp256k1-ethereum-v1")
    with pytest.raises(KeyMaterialError):
        service.sign(b"m", pair)


def test_verify_rejects_invalid_public_key(service, signing_pair):
    signed = service.sign(b"m", signing_pair)
    with pytest.raises(KeyMaterialError):
        service.verify(signed, b"\x00" * 5)


# ==============================================================================
# Cached decryption
# ==============================================================================

def test_decrypt_served_from_cache(service, symmetric):
    key = symmetric.generate_key()
    envelope = service.encrypt(b"cached", key)

    with patch.object(symmetric, "decrypt") as inner:
        assert service.decrypt(envelope, key) == b"cached"
        inner.assert_not_called()


def test_cache_miss_populates_cache(symmetric):
    service = SignatureService(symmetric=symmetric)
    key = symmetric.generate_key()
    envelope = symmetric.encrypt(b"fresh", key)
    assert len(service.cache) == 0

    assert service.decrypt(envelope.to_json(), key) == b"fresh"
    assert len(service.cache) == 1


def test_wrong_key_never_hits_cache(service, symmetric):
    key = symmetric.generate_key()
    envelope = service.encrypt(b"secret", key)
    with pytest.raises(IntegrityError):
        service.decrypt(envelope, symmetric.generate_key())


def test_cache_disabled_by_settings(symmetric):
    service = SignatureService(symmetric=symmetric, settings=Settings(cache_enabled=False))
    key = symmetric.generate_key()
    envelope = service.encrypt(b"no cache", key)
    assert len(service.cache) == 0

    with patch.object(symmetric, "decrypt", wraps=symmetric.decrypt) as inner:
        assert service.decrypt(envelope, key) == b"no cache"
        inner.assert_called_once()


def test_explicit_cache_instance_is_used(symmetric):
    cache = PlaintextCache(capacity=1)
    service = SignatureService(symmetric=symmetric, cache=cache)
    key = symmetric.generate_key()
    service.encrypt(b"one", key)
    service.encrypt(b"two", key)
    assert service.cache is cache
    assert len(cache) == 1


def test_instances_do_not_share_cache(symmetric):
    a = SignatureService(symmetric=symmetric)
    b = SignatureService(symmetric=symmetric)
    a.encrypt(b"only in a", symmetric.generate_key())
    assert len(a.cache) == 1
    assert len(b.cache) == 0
