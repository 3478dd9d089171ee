"""PIN Vault — the user's PIN sealed at rest with a key-store AES-GCM key.

Security Note (Threat Model):
    The PIN is decrypted into process memory while the app is unlocked and
    is the HMAC key of the generated codes. A memory dump of the process
    exposes it. Protecting against that requires keeping code derivation
    inside the secure element, which is out of scope.
"""

from .keystore import KeySpec, KeyStoreBackend, MemoryKeyStore
from .custodian import KeyCustodian, SealedRecord
from .pin_vault import PinVault

__all__ = [
    "KeySpec",
    "KeyStoreBackend",
    "MemoryKeyStore",
    "KeyCustodian",
    "SealedRecord",
    "PinVault",
]
