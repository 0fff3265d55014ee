"""
Time sources for the raffle.

The raffle only ever reads integer UNIX seconds, the same resolution a block
timestamp has. `SystemClock` follows wall time; `ManualClock` is a devnet/test
clock that only moves when told to (the equivalent of `evm_increaseTime`
followed by mining a block).
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from threading import Lock


class Clock(ABC):
    @abstractmethod
    def now(self) -> int:
        """Current time in whole seconds since the epoch."""


class SystemClock(Clock):
    def now(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    def __init__(self, start: int = 1_700_000_000) -> None:
        if start < 0:
            raise ValueError("start must be >= 0")
        self._now = int(start)
        self._lock = Lock()

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move time forward by `seconds` (>= 0) and return the new time."""
        if seconds < 0:
            raise ValueError("cannot move time backwards")
        with self._lock:
            self._now += int(seconds)
            return self._now

    def set(self, ts: int) -> None:
        with self._lock:
            if ts < self._now:
                raise ValueError(f"cannot move time backwards: {ts} < {self._now}")
            self._now = int(ts)


__all__ = ["Clock", "SystemClock", "ManualClock"]
