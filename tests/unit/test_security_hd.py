"""Unit tests for purpose-specific child identities."""

import pytest

from keyweave.core.exceptions import DerivationError, KeyMaterialError
from keyweave.core.models import Curve
from keyweave.security.curves import public_key_for
from keyweave.security.derive import derive
from keyweave.security.hd import derive_child_key, derive_child_public_id, derive_key_hierarchy
from keyweave.security.kdf import KdfParams
from keyweave.security.signatures import SignatureService

FAST = KdfParams(version="test", time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture(scope="module")
def master():
    return derive("correct horse battery staple", params=FAST)


def test_child_is_deterministic(master):
    assert derive_child_key(master, "messaging") == derive_child_key(master, "messaging")


def test_bundle_and_internal_pair_agree(master):
    assert derive_child_key(master, "payments") == derive_child_key(master.internal, "payments")


def test_purposes_are_isolated(master):
    messaging = derive_child_key(master, "messaging")
    payments = derive_child_key(master, "payments")
    keys = {messaging.priv, messaging.epriv, payments.priv, payments.epriv, master.priv, master.epriv}
    assert len(keys) == 6


def test_purpose_is_normalized(master):
    assert derive_child_key(master, " caf\u00e9 ") == derive_child_key(master, "cafe\u0301")


def test_child_keys_are_consistent(master):
    child = derive_child_key(master, "signing")
    assert public_key_for(Curve.INTERNAL, child.priv) == child.pub
    assert public_key_for(Curve.INTERNAL_EXCHANGE, child.epriv) == child.epub

    service = SignatureService()
    assert service.verify(service.sign(b"hi", child), child.pub) == b"hi"
    assert service.verify(service.sign(b"hi", child), master.pub) is None


def test_different_masters_give_different_children(master):
    other = derive("another long enough password", params=FAST)
    assert derive_child_key(master, "messaging") != derive_child_key(other, "messaging")




def test_hierarchy(master):
    tree = derive_key_hierarchy(master, ["messaging", "payments", "messaging "])
    assert set(tree) == {"messaging", "payments"}
    assert tree["payments"] == derive_child_key(master, "payments")
    assert derive_key_hierarchy(master, []) == {}


@pytest.mark.parametrize("purpose", ["", "   ", None, 7])
def test_bad_purpose(master, purpose):
    with pytest.raises(DerivationError):
        derive_child_key(master, purpose)


def test_bad_master():
    with pytest.raises(KeyMaterialError):
        derive_child_key(b"\x00" * 32, "messaging")


def test_public_id(master):
    a = derive_child_public_id(master.pub, "messaging")
    assert a == derive_child_public_id(master.pub, "messaging")
    assert a != derive_child_public_id(master.pub, "payments")
    assert len(a) == 43
    with pytest.raises(KeyMaterialError):
        derive_child_public_id(b"short", "messaging")
