"""
Key Store backends — where the AES key actually lives.

A backend owns symmetric keys under string aliases and performs AEAD with
them; key material is never returned to callers. Platform hardware stores
implement :class:`KeyStoreBackend`; :class:`MemoryKeyStore` is the software
implementation on top of ``cryptography``'s AESGCM.

Security Note:
    Never log key material, nonces or ciphertext. Only log aliases.
"""
import os
import logging
import threading
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field, field_validator
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import AuthFailure, KeyUnavailable

logger = logging.getLogger("pinauth.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16  # GCM tag appended to ciphertext


class KeySpec(BaseModel):
    """Parameters of the key generated under an alias."""

    algorithm: str = "AES"
    key_size: int = 256
    block_mode: str = "GCM"
    padding: str = "NoPadding"
    purposes: frozenset[str] = Field(
        default=frozenset({"encrypt", "decrypt"})
    )
    exportable: bool = False

    model_config = {"frozen": True}

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        if v != "AES":
            raise ValueError(f"Unsupported key algorithm: {v}")
        return v

    @field_validator("key_size")
    @classmethod
    def validate_key_size(cls, v: int) -> int:
        if v not in (128, 192, 256):
            raise ValueError(f"Unsupported AES key size: {v}")
        return v

    @field_validator("block_mode")
    @classmethod
    def validate_block_mode(cls, v: str) -> str:
        if v != "GCM":
            raise ValueError(f"Unsupported block mode: {v}")
        return v

    @field_validator("padding")
    @classmethod
    def validate_padding(cls, v: str) -> str:
        if v != "NoPadding":
            raise ValueError("GCM keys must be configured without padding")
        return v

    @field_validator("purposes")
    @classmethod
    def validate_purposes(cls, v: frozenset[str]) -> frozenset[str]:
        if not v or not v <= {"encrypt", "decrypt"}:
            raise ValueError(f"Key purposes must be encrypt/decrypt, got {sorted(v)}")
        return v

    @field_validator("exportable")
    @classmethod
    def validate_exportable(cls, v: bool) -> bool:
        if v:
            raise ValueError("Keys must not be exportable")
        return v


@runtime_checkable
class KeyStoreBackend(Protocol):
    """Contract of a secure key store.

    ``encrypt`` chooses a fresh random nonce itself. ``decrypt`` raises
    :class:`AuthFailure` when the tag does not verify and
    :class:`KeyUnavailable` when the alias cannot be used.
    """

    def contains_alias(self, alias: str) -> bool: ...

    def generate_key_if_absent(self, alias: str, spec: KeySpec) -> None: ...

    def encrypt(self, alias: str, plaintext: bytes) -> tuple[bytes, bytes]: ...

    def decrypt(self, alias: str, nonce: bytes, ciphertext: bytes) -> bytes: ...


class MemoryKeyStore:
    """Software key store holding AESGCM keys in process memory.

    ``invalidate(alias)`` models a platform security event that permanently
    invalidates a key; ``available = False`` models an inaccessible store.
    """

    def __init__(self) -> None:
        self._keys: dict[str, AESGCM] = {}
        self._invalidated: set[str] = set()
        self._lock = threading.Lock()
        self.available = True

    def _check_available(self) -> None:
        if not self.available:
            raise KeyUnavailable("Key store is not accessible")

    def _cipher(self, alias: str) -> AESGCM:
        self._check_available()
        if alias in self._invalidated:
            raise KeyUnavailable(f"Key '{alias}' has been invalidated")
        try:
            return self._keys[alias]
        except KeyError:
            raise KeyUnavailable(f"No key under alias '{alias}'") from None

    def contains_alias(self, alias: str) -> bool:
        self._check_available()
        return alias in self._keys

    def generate_key_if_absent(self, alias: str, spec: KeySpec) -> None:
        """Generate a key under alias unless one already exists."""
        self._check_available()
        with self._lock:
            if alias in self._keys:
                return
            key = AESGCM.generate_key(bit_length=spec.key_size)
            self._keys[alias] = AESGCM(key)
        logger.info("Generated AES-%d key under alias=%s", spec.key_size, alias)

    def invalidate(self, alias: str) -> None:
        """Mark a key unusable, as a platform security event would."""
        self._invalidated.add(alias)
        logger.warning("Key alias=%s invalidated", alias)

    def encrypt(self, alias: str, plaintext: bytes) -> tuple[bytes, bytes]:
        """Encrypt with a fresh random nonce.

        Returns:
            Tuple of (nonce, ciphertext + GCM tag).
        """
        cipher = self._cipher(alias)
        nonce = os.urandom(NONCE_SIZE)
        return nonce, cipher.encrypt(nonce, plaintext, None)

    def decrypt(self, alias: str, nonce: bytes, ciphertext: bytes) -> bytes:
        cipher = self._cipher(alias)
        try:
            return cipher.decrypt(nonce, ciphertext, None)
        except InvalidTag as err:
            raise AuthFailure("Sealed record failed authentication") from err
        except ValueError as err:
            # nonce length outside what AESGCM accepts
            raise AuthFailure(str(err)) from err
