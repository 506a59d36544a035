"""
Exceptions for keyweave
Every cryptographic failure surfaces as a subclass of KeyweaveError so that
callers at the plugin boundary have one place to catch and map them.
"""

from typing import Any, Dict


class KeyweaveError(Exception):
    # general container for errors
    code = "KEYWEAVE_ERROR"
    public_message = "The cryptographic operation failed."


class DerivationError(KeyweaveError):
    # raised on invalid password, salt or derive options
    code = "DERIVATION_FAILED"
    public_message = "Unable to derive keys from the supplied credentials."


class CurveError(KeyweaveError):
    # raised when no valid scalar is found after exhausting resampling
    code = "CURVE_FAILED"
    public_message = "Unable to derive a valid curve key."


class IntegrityError(KeyweaveError):
    # raised on an authenticated-decryption tag mismatch
    code = "INTEGRITY_FAILED"
    public_message = "Unable to decrypt message. Incorrect key or corrupted data."


class KeyMaterialError(KeyweaveError):
    # raised on malformed or mismatched-length key material
    code = "INVALID_KEY"
    public_message = "The supplied key is invalid."


class AddressChecksumError(KeyweaveError):
    # raised when an address fails to decode or its checksum does not match
    code = "INVALID_ADDRESS"
    public_message = "The address is invalid."


class StealthRecoveryError(KeyweaveError):
    # raised when a stealth address cannot be opened
    code = "STEALTH_OPEN_FAILED"
    public_message = "Unable to open the stealth address."


class EnvelopeFormatError(KeyweaveError):
    # raised when an envelope is garbled or carries an unknown version/algorithm
    code = "INVALID_ENVELOPE"
    public_message = "The encrypted payload format is not supported."


def to_public_error(exc: BaseException) -> Dict[str, Any]:
    """Map an exception to a non-leaking record for user-facing layers.

    Only the class name, a stable code and a fixed message are exposed; the
    exception's own text (which may mention sizes or internal state) is not.
    """
    if isinstance(exc, KeyweaveError):
        return {
            "type": type(exc).__name__,
            "code": exc.code,
            "message": exc.public_message,
        }
    return {
        "type": "KeyweaveError",
        "code": KeyweaveError.code,
        "message": KeyweaveError.public_message,
    }
