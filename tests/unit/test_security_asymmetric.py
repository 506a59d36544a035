"""Unit tests for X25519 envelope encryption and OKP key serialization."""

from dataclasses import replace
import json

import pytest

from keyweave.core.exceptions import EnvelopeFormatError, IntegrityError, KeyMaterialError
from keyweave.core.models import ALG_AES_GCM, ALG_X25519_AES_GCM, Curve
from keyweave.security.asymmetric import (
    AsymmetricCipherService,
    deserialize_private_key,
    deserialize_public_key,
    serialize_private_key,
    serialize_public_key,
)
from keyweave.security.curves import derive_curve_keys


@pytest.fixture
def service():
    return AsymmetricCipherService()


@pytest.fixture
def recipient(service):
    return service.generate_key_pair()


def test_generate_key_pair(service):
    pair = service.generate_key_pair()
    assert pair.curve is Curve.INTERNAL_EXCHANGE
    assert len(pair.private_key) == 32
    assert len(pair.public_key) == 32


def test_roundtrip(service, recipient):
    envelope = service.encrypt(b"for your eyes only", recipient.public_key)
    assert envelope.algorithm_id == ALG_X25519_AES_GCM
    assert len(envelope.ephemeral_public_key) == 32
    assert service.decrypt(envelope, recipient.private_key) == b"for your eyes only"


def test_roundtrip_via_json(service, recipient):
    envelope = service.encrypt("text message", recipient.public_key)
    assert service.decrypt(envelope.to_json(), recipient.private_key) == b"text message"


def test_each_encryption_uses_fresh_ephemeral_key(service, recipient):
    a = service.encrypt(b"same", recipient.public_key)
    b = service.encrypt(b"same", recipient.public_key)
    assert a.ephemeral_public_key != b.ephemeral_public_key


def test_wrong_private_key_fails_closed(service, recipient):
    envelope = service.encrypt(b"secret", recipient.public_key)
    other = service.generate_key_pair()
    with pytest.raises(IntegrityError):
        service.decrypt(envelope, other.private_key)


def test_swapped_ephemeral_key_fails_closed(service, recipient):
    envelope = service.encrypt(b"secret", recipient.public_key)
    forged = replace(envelope, ephemeral_public_key=service.generate_key_pair().public_key)
    with pytest.raises(IntegrityError):
        service.decrypt(forged, recipient.private_key)


def test_decrypt_rejects_symmetric_envelope(service, recipient):
    envelope = service.encrypt(b"secret", recipient.public_key)
    with pytest.raises(EnvelopeFormatError):
        service.decrypt(replace(envelope, algorithm_id=ALG_AES_GCM), recipient.private_key)


@pytest.mark.parametrize("bad", [b"", b"\x01" * 31, b"\x01" * 33])
def test_encrypt_rejects_bad_public_key(service, bad):
    with pytest.raises(KeyMaterialError):
        service.encrypt(b"data", bad)


def test_low_order_public_key_is_refused(service):
    # the all-zero point yields an all-zero shared secret
    with pytest.raises(KeyMaterialError):
        service.encrypt(b"data", b"\x00" * 32)


def test_shared_secret_agrees(service):
    alice, bob = service.generate_key_pair(), service.generate_key_pair()
    assert service.shared_secret(alice.private_key, bob.public_key) == service.shared_secret(
        bob.private_key, alice.public_key
    )


def test_pairwise_encryption_between_derived_identities(service):
    alice = derive_curve_keys(b"a" * 32, Curve.INTERNAL_EXCHANGE, "encryption-v1")
    bob = derive_curve_keys(b"b" * 32, Curve.INTERNAL_EXCHANGE, "encryption-v1")

    envelope = service.encrypt_for(b"hi bob", alice, bob.public_key)
    assert service.decrypt_from(envelope, alice.public_key, bob) == b"hi bob"

    mallory = service.generate_key_pair()
    with pytest.raises(IntegrityError):
        service.decrypt_from(envelope, mallory.public_key, bob)


# ==============================================================================
# Key serialization
# ==============================================================================

def test_public_key_serialization_roundtrip(recipient):
    serialized = serialize_public_key(recipient.public_key)
    jwk = json.loads(serialized)
    assert jwk["kty"] == "OKP" and jwk["crv"] == "X25519"
    assert deserialize_public_key(serialized) == recipient.public_key


def test_private_key_serialization_roundtrip(recipient):
    serialized = serialize_private_key(recipient.private_key)
    assert deserialize_private_key(serialized) == recipient.private_key
    assert json.loads(serialized)["x"] == json.loads(serialize_public_key(recipient.public_key))["x"]


def test_ed25519_serialization_roundtrip():
    pair = derive_curve_keys(b"c" * 32, Curve.INTERNAL, "signing-v1")
    assert deserialize_public_key(serialize_public_key(pair.public_key, Curve.INTERNAL), Curve.INTERNAL) == pair.public_key
    assert deserialize_private_key(serialize_private_key(pair.private_key, Curve.INTERNAL), Curve.INTERNAL) == pair.private_key


def test_private_key_with_mismatched_public_part(service, recipient):
    jwk = json.loads(serialize_private_key(recipient.private_key))
    jwk["x"] = json.loads(serialize_public_key(service.generate_key_pair().public_key))["x"]
    with pytest.raises(KeyMaterialError, match="do not match"):
        deserialize_private_key(jwk)


def test_curve_mismatch_is_rejected(recipient):
    with pytest.raises(KeyMaterialError):
        deserialize_public_key(serialize_public_key(recipient.public_key), Curve.INTERNAL)


def test_no_okp_form_for_secp256k1(recipient):
    with pytest.raises(KeyMaterialError):
        serialize_public_key(recipient.public_key, Curve.SECP256K1)


@pytest.mark.parametrize("bad", ["{", '{"kty": "OKP", "crv": "X25519"}', '{"kty": "OKP", "crv": "X25519", "x": "AAAA"}'])
def test_deserialize_public_key_garbage(bad):
    with pytest.raises(KeyMaterialError):
        deserialize_public_key(bad)
