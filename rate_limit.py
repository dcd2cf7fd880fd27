"""
Dual-window rate limiting for the Riot API.

Riot enforces two quotas per key at the same time (a short burst window and a
longer sustained window). A request may only go out once both windows have a
permit left, so every call is gated on the short window first and the long
window second.
"""

import threading
from dataclasses import dataclass

from errors import Cancelled


DEFAULT_RATE_LIMITS = (
    (19, 1.0),     # dev key allows 20 per second, keep one spare
    (99, 120.0),   # dev key allows 100 per 2 minutes, keep one spare
)

WAIT_POLL_INTERVAL = 0.1


@dataclass(frozen=True)
class RateWindow:
    capacity: int
    period: float

    def __post_init__(self):
        if self.capacity <= 0:
            raise ValueError(f"capacity must be positive, got {self.capacity}")
        if self.period <= 0:
            raise ValueError(f"period must be positive, got {self.period}")

    @property
    def label(self) -> str:
        return f"{self.capacity}/{self.period:g}s"


class WindowState:
    """Remaining permits for one window, reset to capacity on every tick."""

    def __init__(self, window: RateWindow, poll_interval=WAIT_POLL_INTERVAL):
        self.window = window
        self._remaining = window.capacity
        self._cond = threading.Condition()
        self._poll_interval = poll_interval

    @property
    def remaining(self) -> int:
        with self._cond:
            return self._remaining

    def try_acquire(self) -> bool:
        with self._cond:
            if self._remaining > 0:
                self._remaining -= 1
                return True
            return False

    def acquire(self, cancel=None):
        with self._cond:
            while self._remaining <= 0:
                if cancel is not None and cancel.is_set():
                    raise Cancelled(f"cancelled while waiting on window {self.window.label}")
                self._cond.wait(self._poll_interval if cancel is not None else None)
            if cancel is not None and cancel.is_set():
                raise Cancelled(f"cancelled before acquiring window {self.window.label}")
            self._remaining -= 1

    def replenish(self):
        with self._cond:
            self._remaining = self.window.capacity
            self._cond.notify_all()


class _Ticker(threading.Thread):
    """Calls ``replenish`` on a window every period until stopped."""

    def __init__(self, state: WindowState):
        super().__init__(name=f"rate-window-{state.window.label}", daemon=True)
        self._state = state
        self._stopped = threading.Event()

    def run(self):
        while not self._stopped.wait(self._state.window.period):
            self._state.replenish()

    def stop(self):
        self._stopped.set()


class DualWindowLimiter:
    """Blocks callers until both a short and a long window grant a permit.

    The limiter is built once and handed to every client that shares the API
    key. With ``start_timers=False`` nothing replenishes on its own and tests
    drive the windows by calling ``replenish()`` directly.
    """

    def __init__(
        self,
        short: RateWindow,
        long: RateWindow,
        *,
        start_timers=True,
        poll_interval=WAIT_POLL_INTERVAL,
    ):
        self.short = WindowState(short, poll_interval)
        self.long = WindowState(long, poll_interval)
        self._tickers = []
        if start_timers:
            for state in (self.short, self.long):
                ticker = _Ticker(state)
                ticker.start()
                self._tickers.append(ticker)

    @classmethod
    def from_limits(cls, rate_limits=DEFAULT_RATE_LIMITS, **kwargs):
        (short_cap, short_period), (long_cap, long_period) = rate_limits
        return cls(
            RateWindow(short_cap, short_period),
            RateWindow(long_cap, long_period),
            **kwargs,
        )

    def acquire(self, cancel=None):
        """Wait for a permit on the short window, then on the long one."""
        self.short.acquire(cancel)
        self.long.acquire(cancel)

    def close(self):
        for ticker in self._tickers:
            ticker.stop()
        self._tickers = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
