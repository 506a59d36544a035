"""
Single entry point for plugins consuming keyweave.

Wires the services together from one :class:`~keyweave.core.config.Settings`
and one random source, and exposes only the operations consumers need. The
base secret and the plaintext cache stay internal.
"""

from __future__ import annotations

from concurrent.futures import Executor
import logging
import os
from typing import Any, Callable, Dict, Iterable, Optional, Union

from keyweave.core.config import Settings, load_settings
from keyweave.core.models import (
    CurveKeyPair,
    EncryptedEnvelope,
    IdentityBundle,
    InternalKeyPair,
    SignedMessage,
    StealthPayload,
)
from keyweave.security.asymmetric import AsymmetricCipherService
from keyweave.security.derive import OptionsLike, derive
from keyweave.security.hd import MasterPair, derive_child_key, derive_key_hierarchy
from keyweave.security.kdf import Extra, get_params
from keyweave.security.signatures import PublicKeyOrPair, SignatureService, SigningPair
from keyweave.security.stealth import StealthAddressService
from keyweave.security.symmetric import EnvelopeLike, SymmetricCipherService

logger = logging.getLogger(__name__)


class IdentityEngine:
    """
    Facade over derivation, ciphers, signatures and stealth addresses.

    ``settings`` defaults to :func:`load_settings` (environment).
    ``random_bytes`` feeds every IV, salt and ephemeral key.
    ``executor``, when given, is used to derive key families in parallel.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        random_bytes: Callable[[int], bytes] = os.urandom,
        executor: Optional[Executor] = None,
    ):
        self.settings = settings or load_settings()
        self._params = get_params(self.settings.kdf_version)
        self._executor = executor
        self._symmetric = SymmetricCipherService(random_bytes=random_bytes, kdf_params=self._params)
        self._asymmetric = AsymmetricCipherService(random_bytes=random_bytes)
        self._signatures = SignatureService(symmetric=self._symmetric, settings=self.settings)
        self._stealth = StealthAddressService(random_bytes=random_bytes)
        logger.debug(
            "IdentityEngine ready (kdf=%s, cache=%s)",
            self._params.version,
            "on" if self._signatures.cache.enabled else "off",
        )

    # derivation

    def derive(self, password: Union[str, bytes], extra: Extra = None, options: OptionsLike = None) -> IdentityBundle:
        return derive(password, extra, options, params=self._params, executor=self._executor)

    def derive_child_key(self, master: MasterPair, purpose: str) -> InternalKeyPair:
        return derive_child_key(master, purpose)

    def derive_key_hierarchy(self, master: MasterPair, purposes: Iterable[str]) -> Dict[str, InternalKeyPair]:
        return derive_key_hierarchy(master, purposes)

    # symmetric

    def generate_symmetric_key(self) -> bytes:
        return self._symmetric.generate_key()

    def encrypt_with_symmetric_key(self, plaintext: Union[str, bytes], key: bytes) -> EncryptedEnvelope:
        return self._signatures.encrypt(plaintext, key)

    def decrypt_with_symmetric_key(self, envelope: EnvelopeLike, key: bytes) -> bytes:
        return self._signatures.decrypt(envelope, key)

    def encrypt_with_password(self, plaintext: Union[str, bytes], password: Union[str, bytes]) -> EncryptedEnvelope:
        return self._symmetric.encrypt_with_password(plaintext, password)

    def decrypt_with_password(self, envelope: EnvelopeLike, password: Union[str, bytes]) -> bytes:
        return self._symmetric.decrypt_with_password(envelope, password)

    # asymmetric

    def generate_key_pair(self) -> CurveKeyPair:
        return self._asymmetric.generate_key_pair()

    def encrypt(self, message: Union[str, bytes], recipient_public_key: bytes) -> EncryptedEnvelope:
        return self._asymmetric.encrypt(message, recipient_public_key)

    def decrypt(self, envelope: EnvelopeLike, private_key: bytes) -> bytes:
        return self._asymmetric.decrypt(envelope, private_key)

    def encrypt_for(self, message: Union[str, bytes], sender: CurveKeyPair, recipient_public_key: bytes) -> EncryptedEnvelope:
        return self._asymmetric.encrypt_for(message, sender, recipient_public_key)

    def decrypt_from(self, envelope: EnvelopeLike, sender_public_key: bytes, recipient: CurveKeyPair) -> bytes:
        return self._asymmetric.decrypt_from(envelope, sender_public_key, recipient)

    # signatures

    def sign(self, data: Union[str, bytes], pair: SigningPair) -> SignedMessage:
        return self._signatures.sign(data, pair)

    def verify(self, signed: Union[SignedMessage, Dict[str, Any]], public_key_or_pair: PublicKeyOrPair) -> Optional[bytes]:
        return self._signatures.verify(signed, public_key_or_pair)

    # stealth

    def generate_stealth_keys(self) -> Dict[str, CurveKeyPair]:
        return self._stealth.generate_stealth_keys()

    def generate_stealth_address(
        self,
        spending_public_key: bytes,
        viewing_public_key: Optional[bytes] = None,
    ) -> StealthPayload:
        return self._stealth.generate_stealth_address(spending_public_key, viewing_public_key)

    def scan_stealth_address(
        self,
        ephemeral_public_key: bytes,
        viewing_private_key: bytes,
        spending_public_key: bytes,
        address: str,
    ) -> bool:
        return self._stealth.scan_stealth_address(ephemeral_public_key, viewing_private_key, spending_public_key, address)

    def open_stealth_address(
        self,
        ephemeral_public_key: bytes,
        spending_private_key: bytes,
        expected_address: Optional[str] = None,
        viewing_private_key: Optional[bytes] = None,
    ) -> CurveKeyPair:
        return self._stealth.open_stealth_address(
            ephemeral_public_key, spending_private_key, expected_address, viewing_private_key
        )
