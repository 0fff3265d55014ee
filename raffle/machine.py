"""
raffle.machine
==============

The raffle state machine.

Lifecycle of one round:

    OPEN ──enter_raffle()*──► OPEN ──perform_upkeep()──► CALCULATING
      ▲                                                      │
      └───────────── _fulfill_random_words() ◄─ coordinator ─┘

- Entrants pay at least the entrance fee while the raffle is OPEN.
- Once the interval has elapsed and there is at least one paid entrant,
  anyone may call `perform_upkeep`, which flips the raffle to CALCULATING and
  asks the coordinator for one random word. The call returns right after the
  request is registered; the draw completes later, when the coordinator calls
  `raw_fulfill_random_words`.
- The callback picks `players[word % len(players)]`, resets the round and pays
  the whole balance to the winner.

Failure model
-------------
- Validation faults (underpayment, wrong state, upkeep not due, unknown
  request, empty player list) raise before any state is touched.
- A refused payout raises `TransferFailed` *after* the round was reset: the
  raffle is OPEN again with no players and the pot stays in its balance. This
  is not retried.
- If the coordinator never answers, the raffle stays CALCULATING.

Every public operation runs under one re-entrant lock, so operations never
interleave.
"""

from __future__ import annotations

import itertools
import logging
from threading import RLock
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .clock import Clock, SystemClock
from .constants import NUM_WORDS, REQUEST_CONFIRMATIONS
from .coordinator.base import RandomnessConsumer, RandomnessCoordinator
from .errors import (
    InsufficientPayment,
    NoPlayers,
    NotOpen,
    RaffleError,
    TransferFailed,
    UnknownRequest,
    UpkeepNotNeeded,
)
from .events import EV_RAFFLE_ENTER, EV_WINNER_PICKED, EventLog
from .ledger import Ledger
from .metrics import METRICS, Metrics
from .types import Address, Amount, RaffleState, RequestId, address_for, normalize_key_hash
from .upkeep import UpkeepCompatible

log = logging.getLogger(__name__)

_instance_seq = itertools.count(1)


class Raffle(RandomnessConsumer, UpkeepCompatible):
    def __init__(
        self,
        coordinator: RandomnessCoordinator,
        entrance_fee: Amount,
        gas_lane: str,
        subscription_id: int,
        callback_gas_limit: int,
        interval: int,
        *,
        ledger: Ledger,
        clock: Optional[Clock] = None,
        events: Optional[EventLog] = None,
        metrics: Optional[Metrics] = None,
        address: Optional[Address] = None,
    ) -> None:
        if not isinstance(entrance_fee, int) or entrance_fee < 0:
            raise ValueError("entrance_fee must be a non-negative int")
        if not isinstance(interval, int) or interval < 0:
            raise ValueError("interval must be a non-negative int")
        if not isinstance(callback_gas_limit, int) or callback_gas_limit <= 0:
            raise ValueError("callback_gas_limit must be > 0")
        if not isinstance(subscription_id, int) or subscription_id < 0:
            raise ValueError("subscription_id must be a non-negative int")

        super().__init__(coordinator.address)
        self._coordinator = coordinator
        self._entrance_fee = entrance_fee
        self._gas_lane = normalize_key_hash(gas_lane)
        self._subscription_id = subscription_id
        self._callback_gas_limit = callback_gas_limit
        self._interval = interval

        self._ledger = ledger
        self._clock = clock or SystemClock()
        self.events = events if events is not None else EventLog()
        self._metrics = metrics or METRICS
        self._address = address or address_for(f"raffle:{next(_instance_seq)}")

        self._lock = RLock()
        self._players: List[Address] = []
        self._state = RaffleState.OPEN
        self._last_timestamp = self._clock.now()
        self._recent_winner: Optional[Address] = None
        self._in_flight: Optional[RequestId] = None

    @property
    def address(self) -> Address:
        return self._address

    @property
    def balance(self) -> Amount:
        return self._ledger.balance_of(self._address)

    # ----- entry --------------------------------------------------------------

    def enter_raffle(self, participant: Address, value: Amount) -> None:
        with self._lock:
            if value < self._entrance_fee:
                self._metrics.record_entry("insufficient_payment")
                raise InsufficientPayment(paid=value, required=self._entrance_fee)
            if self._state != RaffleState.OPEN:
                self._metrics.record_entry("not_open")
                raise NotOpen(state=self._state)

            self._ledger.transfer(participant, self._address, value)
            self._players.append(participant)
            self._metrics.record_entry("accepted")
            log.debug("%s entered with %d (players=%d)", participant, value, len(self._players))
            self.events.emit(self._address, EV_RAFFLE_ENTER, player=participant)

    # ----- upkeep -------------------------------------------------------------

    def upkeep_needed(self) -> bool:
        is_open = self._state == RaffleState.OPEN
        time_passed = (self._clock.now() - self._last_timestamp) > self._interval
        has_players = len(self._players) > 0
        has_balance = self.balance > 0
        return is_open and time_passed and has_players and has_balance

    def check_upkeep(self, check_data: bytes = b"") -> Tuple[bool, bytes]:
        """Read-only. `check_data` is accepted and ignored."""
        return self.upkeep_needed(), b""

    def perform_upkeep(self, perform_data: bytes = b"") -> RequestId:
        with self._lock:
            if not self.upkeep_needed():
                self._metrics.record_upkeep("not_needed")
                raise UpkeepNotNeeded(
                    balance=self.balance,
                    player_count=len(self._players),
                    state=self._state,
                )

            self._state = RaffleState.CALCULATING
            try:
                request_id = self._coordinator.request_random_words(
                    self._gas_lane,
                    self._subscription_id,
                    REQUEST_CONFIRMATIONS,
                    self._callback_gas_limit,
                    NUM_WORDS,
                    consumer=self._address,
                )
            except Exception:
                # a failed request leaves the round exactly as it was
                self._state = RaffleState.OPEN
                raise
            self._in_flight = request_id
            self._metrics.record_upkeep("requested")
            log.info(
                "upkeep performed: request %d for %d players, pot %d",
                request_id,
                len(self._players),
                self.balance,
            )
            return request_id

    # ----- randomness callback ------------------------------------------------

    def _fulfill_random_words(self, request_id: RequestId, random_words: Sequence[int]) -> None:
        with self._lock:
            if not self._players:
                self._metrics.record_fulfillment("no_players")
                raise NoPlayers(request_id=request_id)
            if (
                self._state != RaffleState.CALCULATING
                or self._in_flight is None
                or request_id != self._in_flight
            ):
                self._metrics.record_fulfillment("unknown_request")
                raise UnknownRequest(request_id=request_id, expected=self._in_flight)
            if len(random_words) == 0:
                self._metrics.record_fulfillment("invalid")
                raise RaffleError("no random words delivered", details={"request_id": request_id})

            winner_index = random_words[0] % len(self._players)
            winner = self._players[winner_index]
            self._recent_winner = winner
            self._state = RaffleState.OPEN
            self._players = []
            self._last_timestamp = self._clock.now()
            self._in_flight = None

            prize = self.balance
            if not self._ledger.send(self._address, winner, prize):
                self._metrics.record_fulfillment("transfer_failed")
                log.error("payout of %d to %s refused; pot stays in %s", prize, winner, self._address)
                raise TransferFailed(winner=winner, amount=prize)

            self._metrics.record_fulfillment("paid")
            self._metrics.observe_payout(prize)
            log.info("winner picked: %s (index %d) paid %d", winner, winner_index, prize)
            self.events.emit(self._address, EV_WINNER_PICKED, winner=winner)

    # ----- views --------------------------------------------------------------

    def get_entrance_fee(self) -> Amount:
        return self._entrance_fee

    def get_player(self, index: int) -> Address:
        if index < 0 or index >= len(self._players):
            raise IndexError(f"player index {index} out of range")
        return self._players[index]

    def get_recent_winner(self) -> Optional[Address]:
        return self._recent_winner

    def get_raffle_state(self) -> RaffleState:
        return self._state

    def get_num_words(self) -> int:
        return NUM_WORDS

    def get_number_of_players(self) -> int:
        return len(self._players)

    def get_latest_timestamp(self) -> int:
        return self._last_timestamp

    def get_request_confirmations(self) -> int:
        return REQUEST_CONFIRMATIONS

    def get_interval(self) -> int:
        return self._interval

    def get_pending_request(self) -> Optional[RequestId]:
        return self._in_flight

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "address": self._address,
                "state": self._state.name,
                "entrance_fee": self._entrance_fee,
                "interval": self._interval,
                "players": list(self._players),
                "balance": self.balance,
                "last_timestamp": self._last_timestamp,
                "recent_winner": self._recent_winner,
                "pending_request": self._in_flight,
            }


__all__ = ["Raffle"]
