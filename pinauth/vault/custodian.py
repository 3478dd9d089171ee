"""
Key Custodian — seal/unseal primitives over one key-store alias.

Every backend call runs in a worker thread since hardware key stores may
block on I/O. Failures are reduced to two outcomes:
- :class:`AuthFailure`: the record does not verify (tamper, corruption,
  wrong key, malformed nonce).
- :class:`KeyUnavailable`: the store or the key cannot be used.

Both are non-retryable for the same record.
"""
import asyncio
import base64
import binascii
import logging

from pydantic import BaseModel
from cryptography.exceptions import InvalidTag

from ..conf import DEFAULT_KEY_ALIAS
from ..exceptions import AuthFailure, KeyUnavailable, VaultError
from .keystore import KeySpec, KeyStoreBackend, NONCE_SIZE, TAG_SIZE

logger = logging.getLogger("pinauth.vault")


class SealedRecord(BaseModel):
    """Encrypted form of a PIN: nonce plus ciphertext with GCM tag."""

    nonce: bytes
    ciphertext: bytes

    model_config = {"frozen": True}

    def to_storage(self) -> tuple[str, str]:
        """Return (nonce, ciphertext) as base64 strings without line wrapping."""
        return (
            base64.b64encode(self.nonce).decode("ascii"),
            base64.b64encode(self.ciphertext).decode("ascii"),
        )

    @classmethod
    def from_storage(cls, nonce_b64: str, ciphertext_b64: str) -> "SealedRecord":
        """Parse the two persisted base64 values.

        Raises:
            AuthFailure: If either value is not valid base64.
        """
        try:
            return cls(
                nonce=base64.b64decode(nonce_b64, validate=True),
                ciphertext=base64.b64decode(ciphertext_b64, validate=True),
            )
        except (binascii.Error, ValueError) as err:
            raise AuthFailure("Sealed record is not valid base64") from err


class KeyCustodian:
    """Owns one symmetric key in a key store and seals/unseals with it."""

    def __init__(
        self,
        backend: KeyStoreBackend,
        alias: str = DEFAULT_KEY_ALIAS,
        spec: KeySpec | None = None,
    ):
        self._backend = backend
        self._alias = alias
        self._spec = spec or KeySpec()

    @property
    def alias(self) -> str:
        return self._alias

    async def ensure_key(self) -> None:
        """Generate the key under the alias unless it already exists.

        Raises:
            KeyUnavailable: If the key store cannot be reached.
        """
        try:
            await asyncio.to_thread(
                self._backend.generate_key_if_absent, self._alias, self._spec,
            )
        except VaultError:
            raise
        except Exception as err:
            raise KeyUnavailable(
                f"Cannot provision key '{self._alias}': {err}"
            ) from err

    async def seal(self, plaintext: bytes) -> SealedRecord:
        """Encrypt plaintext under a fresh nonce.

        Raises:
            KeyUnavailable: If the key cannot be used.
        """
        try:
            nonce, ciphertext = await asyncio.to_thread(
                self._backend.encrypt, self._alias, plaintext,
            )
        except VaultError:
            raise
        except Exception as err:
            raise KeyUnavailable(
                f"Cannot seal with key '{self._alias}': {err}"
            ) from err
        logger.debug("Sealed record with key alias=%s", self._alias)
        return SealedRecord(nonce=nonce, ciphertext=ciphertext)

    async def unseal(self, record: SealedRecord) -> bytes:
        """Decrypt and verify a sealed record.

        Raises:
            AuthFailure: If the record is malformed or fails verification.
            KeyUnavailable: If the key cannot be used.
        """
        if len(record.nonce) < NONCE_SIZE:
            raise AuthFailure(
                f"nonce too short: {len(record.nonce)} bytes "
                f"(minimum {NONCE_SIZE})"
            )
        if len(record.ciphertext) < TAG_SIZE:
            raise AuthFailure(
                f"ciphertext too short: {len(record.ciphertext)} bytes "
                f"(minimum {TAG_SIZE})"
            )
        try:
            return await asyncio.to_thread(
                self._backend.decrypt, self._alias, record.nonce, record.ciphertext,
            )
        except VaultError:
            raise
        except InvalidTag as err:
            raise AuthFailure("Sealed record failed authentication") from err
        except Exception as err:
            raise KeyUnavailable(
                f"Cannot unseal with key '{self._alias}': {err}"
            ) from err
