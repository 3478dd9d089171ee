"""Shared fixtures and test doubles."""
import asyncio

import pytest

from pinauth.collaborators import BiometricResult
from pinauth.storage import MemoryStore
from pinauth.vault import KeyCustodian, MemoryKeyStore, PinVault


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


class ScriptedBiometric:
    """Biometric challenger that waits for the test to decide the outcome."""

    def __init__(self):
        self.calls = 0
        self.cancelled = 0
        self._result: asyncio.Future | None = None

    async def authenticate(self) -> BiometricResult:
        self.calls += 1
        self._result = asyncio.get_running_loop().create_future()
        try:
            return await self._result
        except asyncio.CancelledError:
            self.cancelled += 1
            raise

    @property
    def pending(self) -> bool:
        return self._result is not None and not self._result.done()

    def resolve(self, result: BiometricResult) -> None:
        self._result.set_result(result)

    def fail_with(self, err: Exception) -> None:
        self._result.set_exception(err)


class ListSink:
    """Code sink recording every pushed code."""

    def __init__(self):
        self.codes: list[str] = []

    def push(self, code: str) -> None:
        self.codes.append(code)


async def settle(rounds: int = 20) -> None:
    """Let pending tasks and worker-thread callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0.001)


@pytest.fixture
def keystore():
    return MemoryKeyStore()


@pytest.fixture
def storage():
    return MemoryStore()


@pytest.fixture
def custodian(keystore):
    return KeyCustodian(keystore)


@pytest.fixture
def vault(storage, custodian):
    return PinVault(storage, custodian)


@pytest.fixture
def clock():
    return FakeClock(1_700_000_000_000)


@pytest.fixture
def biometric():
    return ScriptedBiometric()


@pytest.fixture
def sink():
    return ListSink()
