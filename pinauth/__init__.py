"""PinAuth.

A 6-digit PIN sealed with a key-store AES-GCM key, an unlock state machine
(PIN or biometric) and a 30-second rotating code derived from the PIN.
"""
from .version import __version__
from .conf import AuthenticatorConfig
from .exceptions import (
    AuthenticatorError,
    ValidationError,
    MismatchError,
    VaultError,
    AuthFailure,
    KeyUnavailable,
    StoreError,
    BiometricError,
    BiometricFailure,
    BiometricCancelled,
    InvalidParameter,
    StateError,
)
from .otp import generate_code, time_window, remaining_fraction
from .scheduler import CodeTick, RefreshScheduler
from .storage import KeyValueStore, MemoryStore, JsonFileStore
from .collaborators import BiometricChallenger, BiometricResult, CodeSink
from .vault import KeyCustodian, MemoryKeyStore, PinVault, SealedRecord
from .unlock import (
    UnlockMachine,
    UnlockState,
    NoPin,
    SettingPin,
    ConfirmingPin,
    Locked,
    Unlocked,
)

__all__ = [
    "__version__",
    "AuthenticatorConfig",
    "AuthenticatorError",
    "ValidationError",
    "MismatchError",
    "VaultError",
    "AuthFailure",
    "KeyUnavailable",
    "StoreError",
    "BiometricError",
    "BiometricFailure",
    "BiometricCancelled",
    "InvalidParameter",
    "StateError",
    "generate_code",
    "time_window",
    "remaining_fraction",
    "CodeTick",
    "RefreshScheduler",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "BiometricChallenger",
    "BiometricResult",
    "CodeSink",
    "KeyCustodian",
    "MemoryKeyStore",
    "PinVault",
    "SealedRecord",
    "UnlockMachine",
    "UnlockState",
    "NoPin",
    "SettingPin",
    "ConfirmingPin",
    "Locked",
    "Unlocked",
]
