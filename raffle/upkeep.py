"""
Upkeep trigger surface.

`UpkeepCompatible` is what a keeper needs from a contract: a read-only check
and an action. `Keeper` is a minimal external trigger that performs one
check-then-perform pass per `tick()`; `run()` repeats ticks at a fixed period
until stopped. There is no retry or backoff: a failing perform propagates to
the caller of `tick()`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from threading import Event
from typing import Any, List, Optional, Tuple

log = logging.getLogger(__name__)


class UpkeepCompatible(ABC):
    @abstractmethod
    def check_upkeep(self, check_data: bytes = b"") -> Tuple[bool, bytes]:
        """Return (upkeep_needed, perform_data). Must not mutate state."""

    @abstractmethod
    def perform_upkeep(self, perform_data: bytes = b"") -> Any:
        ...


class Keeper:
    def __init__(self, target: UpkeepCompatible, *, check_data: bytes = b"") -> None:
        self.target = target
        self.check_data = check_data
        self.performed: List[Any] = []

    def tick(self) -> Optional[Any]:
        needed, perform_data = self.target.check_upkeep(self.check_data)
        if not needed:
            log.debug("upkeep not needed")
            return None
        result = self.target.perform_upkeep(perform_data)
        self.performed.append(result)
        log.info("upkeep performed: %r", result)
        return result

    def run(self, period_s: float, stop: Event, max_ticks: Optional[int] = None) -> int:
        """Tick every `period_s` seconds until `stop` is set; return the number of ticks."""
        if period_s <= 0:
            raise ValueError("period_s must be > 0")
        ticks = 0
        while not stop.is_set():
            self.tick()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            stop.wait(period_s)
        return ticks


__all__ = ["UpkeepCompatible", "Keeper"]
