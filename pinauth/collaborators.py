"""Contracts of the platform collaborators consumed by the unlock machine."""
from enum import Enum
from typing import Protocol, runtime_checkable


class BiometricResult(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


@runtime_checkable
class BiometricChallenger(Protocol):
    """Platform biometric prompt.

    ``authenticate`` must tolerate cancellation of the awaiting task, which
    is how a pending prompt is withdrawn once the PIN avenue wins.
    """

    async def authenticate(self) -> BiometricResult: ...


@runtime_checkable
class CodeSink(Protocol):
    """Write-only destination for the current code (clipboard, toast)."""

    def push(self, code: str) -> None: ...
