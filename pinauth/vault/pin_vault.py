"""
PinVault — the user's PIN sealed at rest.

Persists a PIN as two independent entries in a key-value store:
- ``user_pin_iv``: base64 nonce
- ``user_pin_enc``: base64 ciphertext + GCM tag

Loading fails closed: any record that cannot be recovered reads as
"no PIN configured", which sends the user back to onboarding.

Security Note:
    The plaintext PIN is never persisted and never logged. Only entry
    names and the key alias are logged.
"""
import asyncio
import logging
from typing import Optional

from ..conf import PIN_NONCE_KEY, PIN_CIPHERTEXT_KEY
from ..exceptions import StoreError, VaultError
from ..pin import is_valid_pin, validate_pin
from ..storage import KeyValueStore
from .custodian import KeyCustodian, SealedRecord

logger = logging.getLogger("pinauth.vault")


class PinVault:
    """Seals, persists and recovers the user's PIN.

    Reads and writes of the nonce/ciphertext pair are serialized by one
    lock, and both entries are written in a single ``set_many`` call, so a
    reader never pairs a nonce from one seal with ciphertext from another.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        custodian: KeyCustodian,
        nonce_key: str = PIN_NONCE_KEY,
        ciphertext_key: str = PIN_CIPHERTEXT_KEY,
    ):
        self._storage = storage
        self._custodian = custodian
        self._nonce_key = nonce_key
        self._ciphertext_key = ciphertext_key
        self._lock = asyncio.Lock()

    async def ensure_key(self) -> None:
        """Provision the sealing key if it does not exist yet.

        Raises:
            KeyUnavailable: If the key store cannot be reached.
        """
        await self._custodian.ensure_key()

    async def _read_pair(self) -> tuple[Optional[str], Optional[str]]:
        nonce = await asyncio.to_thread(self._storage.get, self._nonce_key)
        ciphertext = await asyncio.to_thread(self._storage.get, self._ciphertext_key)
        return nonce, ciphertext

    async def load(self) -> Optional[str]:
        """Recover the stored PIN.

        Returns:
            The 6-digit PIN, or None when no PIN is stored or the stored
            record cannot be recovered.
        """
        try:
            async with self._lock:
                nonce_b64, ciphertext_b64 = await self._read_pair()
        except Exception as err:
            logger.warning(
                "Cannot read stored PIN (%s), treating as not configured",
                type(err).__name__,
            )
            return None
        if nonce_b64 is None or ciphertext_b64 is None:
            logger.debug("No sealed PIN in storage")
            return None
        try:
            record = SealedRecord.from_storage(nonce_b64, ciphertext_b64)
            plaintext = await self._custodian.unseal(record)
        except VaultError as err:
            logger.warning(
                "Stored PIN unrecoverable (%s), treating as not configured",
                type(err).__name__,
            )
            return None
        try:
            pin = plaintext.decode("ascii")
        except UnicodeDecodeError:
            pin = None
        if not is_valid_pin(pin):
            logger.warning("Stored PIN has invalid format, treating as not configured")
            return None
        return pin

    async def store(self, pin: str) -> None:
        """Seal and persist a PIN, replacing any previous one.

        Raises:
            ValidationError: If pin is not exactly 6 ASCII digits.
            StoreError: If sealing or persisting fails.
        """
        validate_pin(pin)
        try:
            record = await self._custodian.seal(pin.encode("ascii"))
        except VaultError as err:
            raise StoreError(f"Cannot seal PIN: {err}") from err
        nonce_b64, ciphertext_b64 = record.to_storage()
        async with self._lock:
            try:
                await asyncio.to_thread(
                    self._storage.set_many,
                    {self._nonce_key: nonce_b64, self._ciphertext_key: ciphertext_b64},
                )
            except Exception as err:
                raise StoreError(f"Cannot persist PIN: {err}") from err
        logger.info(
            "PIN sealed with key alias=%s and stored under %s/%s",
            self._custodian.alias, self._nonce_key, self._ciphertext_key,
        )

    async def clear(self) -> None:
        """Remove both persisted entries.

        Raises:
            StoreError: If the entries cannot be removed.
        """
        async with self._lock:
            try:
                await asyncio.to_thread(self._storage.delete, self._nonce_key)
                await asyncio.to_thread(self._storage.delete, self._ciphertext_key)
            except Exception as err:
                raise StoreError(f"Cannot clear stored PIN: {err}") from err
        logger.info("Stored PIN cleared")
