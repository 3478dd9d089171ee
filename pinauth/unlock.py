"""
UnlockMachine — onboarding and authentication state machine.

States::

    NoPin --valid PIN--> SettingPin(p) --same PIN--> ConfirmingPin(p)
      ^                       |                          |  vault.store(p)
      +------mismatch---------+          store ok        v
                                     Locked <------------+
                                       |  PIN match or biometric success
                                       v
                                    Unlocked (terminal)

Every external event (PIN submission, biometric result) computes and
applies exactly one transition under a single lock. While ``Locked`` the
manual PIN avenue and the biometric avenue race; the first success wins
and the other is cancelled.
"""
import asyncio
import hmac
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from .conf import AuthenticatorConfig
from .collaborators import BiometricChallenger, BiometricResult, CodeSink
from .exceptions import (
    AuthenticatorError,
    BiometricCancelled,
    BiometricFailure,
    KeyUnavailable,
    MismatchError,
    StateError,
    StoreError,
    ValidationError,
)
from .pin import is_valid_pin
from .scheduler import CodeTick, RefreshScheduler, now_millis
from .storage import JsonFileStore, MemoryStore
from .vault import KeyCustodian, KeyStoreBackend, PinVault

logger = logging.getLogger("pinauth.unlock")


@dataclass(frozen=True)
class NoPin:
    """No PIN configured; waiting for the first entry."""


@dataclass(frozen=True)
class SettingPin:
    """First entry accepted; waiting for confirmation."""
    pending: str = field(repr=False)


@dataclass(frozen=True)
class ConfirmingPin:
    """Confirmed PIN is being sealed and stored."""
    pending: str = field(repr=False)


@dataclass(frozen=True)
class Locked:
    """PIN configured; waiting for PIN entry or biometric."""


@dataclass(frozen=True)
class Unlocked:
    """Authenticated; codes are being generated."""


UnlockState = Union[NoPin, SettingPin, ConfirmingPin, Locked, Unlocked]
StateListener = Callable[[UnlockState, Optional[AuthenticatorError]], None]


class UnlockMachine:
    """Sequences PIN setup, confirmation and unlock, then drives the codes.

    Args:
        vault: Where the PIN is sealed.
        biometric: Optional platform biometric prompt.
        sink: Optional clipboard/notification sink for ``copy_code``.
        config: Code length and tick interval.
        clock: Millisecond wall clock handed to the refresh scheduler.
    """

    def __init__(
        self,
        vault: PinVault,
        *,
        biometric: Optional[BiometricChallenger] = None,
        sink: Optional[CodeSink] = None,
        config: Optional[AuthenticatorConfig] = None,
        clock: Callable[[], int] = now_millis,
    ):
        self._vault = vault
        self._biometric = biometric
        self._sink = sink
        self._config = config or AuthenticatorConfig()
        self._clock = clock
        self._state: UnlockState = NoPin()
        self._error: Optional[AuthenticatorError] = None
        self._pin: Optional[str] = None
        self._started = False
        self._lock = asyncio.Lock()
        self._listeners: list[StateListener] = []
        self._biometric_task: Optional[asyncio.Task] = None
        self._scheduler: Optional[RefreshScheduler] = None

    @classmethod
    def from_config(
        cls,
        config: AuthenticatorConfig,
        backend: KeyStoreBackend,
        *,
        biometric: Optional[BiometricChallenger] = None,
        sink: Optional[CodeSink] = None,
    ) -> "UnlockMachine":
        """Wire storage, custodian and vault from a configuration.

        Storage is a :class:`JsonFileStore` at ``config.storage_path``,
        or an in-memory store when no path is configured.
        """
        if config.storage_path:
            storage = JsonFileStore(config.storage_path)
        else:
            logger.warning("No storage path configured, PIN will not survive restart")
            storage = MemoryStore()
        custodian = KeyCustodian(backend, alias=config.key_alias)
        vault = PinVault(
            storage,
            custodian,
            nonce_key=config.nonce_key,
            ciphertext_key=config.ciphertext_key,
        )
        return cls(vault, biometric=biometric, sink=sink, config=config)

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> UnlockState:
        return self._state

    @property
    def error(self) -> Optional[AuthenticatorError]:
        """Error surfaced by the latest event, or None."""
        return self._error

    @property
    def scheduler(self) -> Optional[RefreshScheduler]:
        return self._scheduler

    @property
    def current(self) -> Optional[CodeTick]:
        """Latest code tick while unlocked."""
        return self._scheduler.current if self._scheduler else None

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener called with (state, error) after each event."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state, self._error)
            except Exception:
                logger.exception("State listener failed")

    def _transition(
        self, state: UnlockState, error: Optional[AuthenticatorError] = None,
    ) -> None:
        logger.debug(
            "Unlock state %s -> %s", type(self._state).__name__, type(state).__name__,
        )
        self._state = state
        self._error = error
        self._notify()

    def _surface(self, error: AuthenticatorError) -> None:
        logger.info("%s in state %s: %s", type(error).__name__, type(self._state).__name__, error)
        self._error = error
        self._notify()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> UnlockState:
        """Pick the initial state from the vault.

        Returns:
            ``Locked`` when a PIN is stored, ``NoPin`` otherwise.
        """
        async with self._lock:
            if self._started:
                raise StateError("Unlock machine already started")
            self._started = True
            try:
                await self._vault.ensure_key()
            except KeyUnavailable as err:
                logger.warning("Key store unavailable at startup: %s", err)
            pin = await self._vault.load()
            if pin is None:
                # drop any unrecoverable record before onboarding again
                try:
                    await self._vault.clear()
                except StoreError as err:
                    logger.warning("Cannot clear stale PIN record: %s", err)
                self._transition(NoPin())
            else:
                self._enter_locked(pin)
            return self._state

    async def close(self) -> None:
        """Cancel the biometric prompt and stop the code ticker."""
        task, self._biometric_task = self._biometric_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._scheduler is not None:
            await self._scheduler.stop()
        logger.debug("Unlock machine closed in state %s", type(self._state).__name__)

    async def __aenter__(self) -> "UnlockMachine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def submit(self, candidate: str) -> UnlockState:
        """Handle one PIN entry in the current state.

        User errors are surfaced on ``error`` and to listeners, not raised.

        Returns:
            The state after the event.

        Raises:
            StateError: If the machine is not started or already unlocked.
        """
        async with self._lock:
            if not self._started:
                raise StateError("Unlock machine not started")
            state = self._state
            if isinstance(state, NoPin):
                self._on_new_pin(candidate)
            elif isinstance(state, SettingPin):
                await self._on_confirmation(state.pending, candidate)
            elif isinstance(state, Locked):
                self._on_login(candidate)
            else:
                raise StateError(
                    f"PIN entry not accepted in state {type(state).__name__}"
                )
            return self._state

    def _on_new_pin(self, candidate: str) -> None:
        if not is_valid_pin(candidate):
            self._surface(ValidationError("PIN must be 6 digits"))
            return
        self._transition(SettingPin(candidate))

    async def _on_confirmation(self, pending: str, candidate: str) -> None:
        if not is_valid_pin(candidate):
            self._surface(ValidationError("PIN must be 6 digits"))
            return
        if candidate != pending:
            self._transition(NoPin(), MismatchError("PINs do not match"))
            return
        self._transition(ConfirmingPin(pending))
        try:
            await self._vault.store(pending)
        except StoreError as err:
            self._transition(SettingPin(pending), err)
            return
        self._enter_locked(pending)

    def _on_login(self, candidate: str) -> None:
        if not is_valid_pin(candidate):
            self._surface(ValidationError("PIN must be 6 digits"))
            return
        if not hmac.compare_digest(candidate.encode("ascii"), self._pin.encode("ascii")):
            self._surface(MismatchError("Wrong PIN"))
            return
        self._unlock("pin")

    async def request_biometric(self) -> None:
        """Start (or restart) the biometric avenue while locked.

        Raises:
            StateError: If not locked or no biometric challenger is configured.
        """
        async with self._lock:
            if not isinstance(self._state, Locked):
                raise StateError(
                    f"Biometric not available in state {type(self._state).__name__}"
                )
            if self._biometric is None:
                raise StateError("No biometric challenger configured")
            self._launch_biometric()

    def copy_code(self) -> str:
        """Push the current code to the sink and return it.

        Raises:
            StateError: If not unlocked.
        """
        if not isinstance(self._state, Unlocked) or self.current is None:
            raise StateError("No code available before unlock")
        code = self.current.code
        if self._sink is not None:
            self._sink.push(code)
        return code

    # ------------------------------------------------------------------
    # Locked / Unlocked helpers (called with the lock held)
    # ------------------------------------------------------------------

    def _enter_locked(self, pin: str) -> None:
        self._pin = pin
        self._transition(Locked())
        if self._biometric is not None:
            self._launch_biometric()

    def _launch_biometric(self) -> None:
        if self._biometric_task is not None and not self._biometric_task.done():
            return
        self._biometric_task = asyncio.get_running_loop().create_task(
            self._run_biometric()
        )

    async def _run_biometric(self) -> None:
        try:
            result = BiometricResult(await self._biometric.authenticate())
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Biometric challenger raised")
            result = BiometricResult.FAILURE
        async with self._lock:
            if not isinstance(self._state, Locked):
                return
            if result is BiometricResult.SUCCESS:
                self._unlock("biometric")
            elif result is BiometricResult.CANCELLED:
                self._surface(BiometricCancelled("Biometric cancelled"))
            else:
                self._surface(BiometricFailure("Biometric failed"))

    def _unlock(self, avenue: str) -> None:
        # the task stays referenced so close() can await its teardown
        task = self._biometric_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        self._scheduler = RefreshScheduler(
            self._pin.encode("ascii"),
            digits=self._config.digits,
            interval=self._config.tick_interval,
            clock=self._clock,
        )
        self._transition(Unlocked())
        self._scheduler.start()
        logger.info("Unlocked via %s", avenue)
