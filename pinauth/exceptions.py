"""
PinAuth Exceptions.

Crypto and storage failures are raised as ``VaultError`` subclasses by the
custodian and vault; the unlock machine surfaces user-facing errors instead
of raising them.
"""


class AuthenticatorError(Exception):
    """Base error for every PinAuth failure."""


class ValidationError(AuthenticatorError):
    """Malformed PIN input (not exactly 6 ASCII digits)."""


class MismatchError(AuthenticatorError):
    """PIN confirmation or login mismatch."""


class VaultError(AuthenticatorError):
    """The sealed PIN cannot be written or recovered."""


class AuthFailure(VaultError):
    """Sealed record failed authentication (tampered, corrupted, wrong key)."""


class KeyUnavailable(VaultError):
    """The key store or the key under the alias cannot be used."""


class StoreError(VaultError):
    """Sealing or persisting a PIN failed."""


class BiometricError(AuthenticatorError):
    """Biometric avenue did not authenticate the user."""


class BiometricFailure(BiometricError):
    """Biometric challenge was presented and rejected."""


class BiometricCancelled(BiometricError):
    """Biometric challenge was dismissed or withdrawn."""


class InvalidParameter(AuthenticatorError, ValueError):
    """Caller violated a parameter contract (e.g. digit count out of range)."""


class StateError(AuthenticatorError):
    """Operation is not allowed in the current unlock state."""
