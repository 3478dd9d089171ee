"""
RefreshScheduler — keeps the displayed code and countdown current.

Ticks are aligned to wall-clock 30-second windows: the countdown is
measured from the start of the current window, never from activation,
and the code is recomputed when the window rolls over.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .conf import WINDOW_MILLIS
from .exceptions import InvalidParameter, StateError
from .otp import generate_code, remaining_fraction, time_window

logger = logging.getLogger("pinauth.otp")


def now_millis() -> int:
    """Current Unix time in milliseconds."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class CodeTick:
    code: str
    remaining_fraction: float
    window: int
    time_millis: int


TickListener = Callable[[CodeTick], None]


class RefreshScheduler:
    """Periodic code/countdown emitter with an explicit start/stop lifecycle."""

    def __init__(
        self,
        secret: bytes,
        *,
        digits: int = 6,
        interval: float = 1.0,
        clock: Callable[[], int] = now_millis,
    ):
        if interval <= 0:
            raise InvalidParameter(f"interval must be positive, got {interval}")
        # fail fast on a bad digit count rather than inside the ticker task
        generate_code(secret, 0, digits)
        self._secret = bytes(secret)
        self._digits = digits
        self._interval = interval
        self._clock = clock
        self._listeners: list[TickListener] = []
        self._task: Optional[asyncio.Task] = None
        self._window: Optional[int] = None
        self._code: Optional[str] = None
        self._current: Optional[CodeTick] = None

    @property
    def current(self) -> Optional[CodeTick]:
        """Latest emitted tick, or None before the first activation."""
        return self._current

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, listener: TickListener) -> Callable[[], None]:
        """Register a tick listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _tick(self) -> CodeTick:
        now = self._clock()
        window = time_window(now)
        if window != self._window:
            self._code = generate_code(self._secret, now, self._digits)
            self._window = window
            logger.debug("Code refreshed for window %d", window)
        tick = CodeTick(
            code=self._code,
            remaining_fraction=remaining_fraction(now),
            window=window,
            time_millis=now,
        )
        self._current = tick
        for listener in list(self._listeners):
            try:
                listener(tick)
            except Exception:
                logger.exception("Tick listener failed")
        return tick

    def _delay(self, tick: CodeTick) -> float:
        until_rollover = (tick.window + 1) * WINDOW_MILLIS - tick.time_millis
        return min(self._interval, until_rollover / 1000)

    async def _run(self, first: CodeTick) -> None:
        tick = first
        while True:
            await asyncio.sleep(self._delay(tick))
            tick = self._tick()

    def start(self) -> CodeTick:
        """Emit the current code immediately and begin ticking.

        Must be called from a running event loop.

        Raises:
            StateError: If the scheduler is already running.
        """
        if self.running:
            raise StateError("Refresh scheduler already running")
        self._window = None
        self._code = None
        first = self._tick()
        self._task = asyncio.get_running_loop().create_task(self._run(first))
        logger.debug("Refresh scheduler started")
        return first

    async def stop(self) -> None:
        """Cancel the ticker and wait until it has finished."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Refresh scheduler stopped")
