"""
Error taxonomy for cltvlock.

Construction helpers raise these for malformed input. Expected negative
outcomes of spend validation (immature lock, bad signature, ...) are not
exceptions; see ``cltvlock.validator.ValidationResult``.
"""
from __future__ import annotations


class CltvLockError(Exception):
    """Base class for all cltvlock errors."""


class InvalidParameter(CltvLockError, ValueError):
    """Malformed key, out-of-range height, unknown preset or network."""


class EncodingError(CltvLockError, ValueError):
    """Non-minimal or malformed script number, script or transaction bytes."""


class AddressError(CltvLockError, ValueError):
    """Address string could not be decoded."""


class AddressChecksumMismatch(AddressError):
    pass


class AddressVersionMismatch(AddressError):
    pass


class SignatureVerificationFailed(CltvLockError):
    pass
