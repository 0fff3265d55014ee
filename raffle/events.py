"""
raffle.events
=============

Canonical event names and an ordered, in-memory event log shared by the raffle
and the local coordinator.

- Events are appended in emission order and carry a global sequence number, so
  a test (or the CLI) can see the interleaving of raffle and coordinator
  notifications.
- Field values are normalized: `bytes` become 0x-hex strings, ints stay ints,
  everything else is kept as `str`.
- Listeners registered with `subscribe`/`once` run synchronously, after the
  event has been recorded. A listener that raises propagates to the emitter.
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Callable, Dict, List, Optional

from .types import Address, Event

log = logging.getLogger(__name__)

# Raffle
EV_RAFFLE_ENTER = "RaffleEnter"
EV_WINNER_PICKED = "WinnerPicked"

# Coordinator
EV_SUBSCRIPTION_CREATED = "SubscriptionCreated"
EV_SUBSCRIPTION_FUNDED = "SubscriptionFunded"
EV_CONSUMER_ADDED = "ConsumerAdded"
EV_RANDOM_WORDS_REQUESTED = "RandomWordsRequested"
EV_RANDOM_WORDS_FULFILLED = "RandomWordsFulfilled"

Listener = Callable[[Event], None]


def _normalize(value: object) -> object:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


class EventLog:
    """Append-only notification log with synchronous listeners."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._events: List[Event] = []
        self._listeners: Dict[str, List[Listener]] = {}

    def emit(self, emitter: Address, name: str, **fields: object) -> Event:
        with self._lock:
            ev = Event(
                seq=len(self._events),
                name=name,
                emitter=emitter,
                args=tuple((k, _normalize(v)) for k, v in sorted(fields.items())),
            )
            self._events.append(ev)
            listeners = list(self._listeners.get(name, ()))
        log.debug("event %s from %s: %s", name, emitter, dict(ev.args))
        for fn in listeners:
            fn(ev)
        return ev

    def subscribe(self, name: str, fn: Listener) -> None:
        with self._lock:
            self._listeners.setdefault(name, []).append(fn)

    def unsubscribe(self, name: str, fn: Listener) -> None:
        with self._lock:
            fns = self._listeners.get(name, [])
            if fn in fns:
                fns.remove(fn)

    def once(self, name: str, fn: Listener) -> None:
        """Run `fn` for the next `name` event only."""

        def _wrapper(ev: Event) -> None:
            self.unsubscribe(name, _wrapper)
            fn(ev)

        self.subscribe(name, _wrapper)

    def filter(self, name: Optional[str] = None, emitter: Optional[Address] = None) -> List[Event]:
        with self._lock:
            return [
                e
                for e in self._events
                if (name is None or e.name == name) and (emitter is None or e.emitter == emitter)
            ]

    def last(self, name: str) -> Optional[Event]:
        found = self.filter(name)
        return found[-1] if found else None

    def names(self) -> List[str]:
        with self._lock:
            return [e.name for e in self._events]

    def __len__(self) -> int:
        return len(self._events)


__all__ = [
    "EventLog",
    "Listener",
    "EV_RAFFLE_ENTER",
    "EV_WINNER_PICKED",
    "EV_SUBSCRIPTION_CREATED",
    "EV_SUBSCRIPTION_FUNDED",
    "EV_CONSUMER_ADDED",
    "EV_RANDOM_WORDS_REQUESTED",
    "EV_RANDOM_WORDS_FULFILLED",
]
