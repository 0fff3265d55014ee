"""
Error types for the raffle and its collaborators. Each error carries a stable
`code` and a small `details` mapping so it is safe to surface over logs or a
CLI as JSON.

Exports:
- RaffleError (base)
- InsufficientPayment, NotOpen, UpkeepNotNeeded, TransferFailed
- NoPlayers, UnknownRequest, OnlyCoordinatorCanFulfill
- CoordinatorError, NonexistentRequest, InvalidSubscription,
  InvalidConsumer, InsufficientBalance
- LedgerError, InsufficientFunds
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional


class RaffleError(Exception):
    """Base class for raffle domain errors."""

    code: str = "RAFFLE_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"), default=str)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


# ---------------------------------------------------------------------------
# Raffle state machine
# ---------------------------------------------------------------------------


class InsufficientPayment(RaffleError):
    """The value sent with an entry is below the entrance fee."""

    code = "RAFFLE_NOT_ENOUGH_ETH_ENTERED"

    def __init__(self, *, paid: int, required: int, message: str = "not enough value entered") -> None:
        self.paid = int(paid)
        self.required = int(required)
        super().__init__(message, details={"paid": self.paid, "required": self.required})


class NotOpen(RaffleError):
    """Entries are blocked while a winner is being calculated."""

    code = "RAFFLE_NOT_OPEN"

    def __init__(self, *, state: int, message: str = "raffle is not open") -> None:
        self.state = int(state)
        super().__init__(message, details={"state": self.state})


class UpkeepNotNeeded(RaffleError):
    """perform_upkeep was called while check_upkeep would return False."""

    code = "RAFFLE_UPKEEP_NOT_NEEDED"

    def __init__(
        self,
        *,
        balance: int,
        player_count: int,
        state: int,
        message: str = "upkeep not needed",
    ) -> None:
        self.balance = int(balance)
        self.player_count = int(player_count)
        self.state = int(state)
        super().__init__(
            message,
            details={"balance": self.balance, "player_count": self.player_count, "state": self.state},
        )


class TransferFailed(RaffleError):
    """
    The payout to the winner was rejected. The round has already been reset
    when this is raised; the pot stays in the raffle balance.
    """

    code = "RAFFLE_TRANSFER_FAILED"

    def __init__(self, *, winner: str, amount: int, message: str = "payout transfer failed") -> None:
        self.winner = winner
        self.amount = int(amount)
        super().__init__(message, details={"winner": winner, "amount": self.amount})


class NoPlayers(RaffleError):
    """A randomness callback arrived while there is nobody to pick from."""

    code = "RAFFLE_NO_PLAYERS"

    def __init__(self, *, request_id: Optional[int], message: str = "no players to pick a winner from") -> None:
        self.request_id = request_id
        super().__init__(message, details={"request_id": request_id})


class UnknownRequest(RaffleError):
    """A callback does not match the request the raffle is waiting on."""

    code = "RAFFLE_UNKNOWN_REQUEST"

    def __init__(
        self,
        *,
        request_id: Optional[int],
        expected: Optional[int],
        message: str = "callback for a request that is not in flight",
    ) -> None:
        self.request_id = request_id
        self.expected = expected
        super().__init__(message, details={"request_id": request_id, "expected": expected})


class OnlyCoordinatorCanFulfill(RaffleError):
    """Randomness callbacks are only accepted from the configured coordinator."""

    code = "RAFFLE_ONLY_COORDINATOR_CAN_FULFILL"

    def __init__(self, *, have: str, want: str, message: str = "only coordinator can fulfill") -> None:
        self.have = have
        self.want = want
        super().__init__(message, details={"have": have, "want": want})


# ---------------------------------------------------------------------------
# Randomness coordinator
# ---------------------------------------------------------------------------


class CoordinatorError(RaffleError):
    """Base error for coordinator-side failures."""

    code = "COORDINATOR_ERROR"


class NonexistentRequest(CoordinatorError):
    """Fulfillment for an id that was never issued or was already answered."""

    code = "COORDINATOR_NONEXISTENT_REQUEST"

    def __init__(self, *, request_id: int, message: str = "nonexistent request") -> None:
        self.request_id = int(request_id)
        super().__init__(message, details={"request_id": self.request_id})


class InvalidSubscription(CoordinatorError):
    code = "COORDINATOR_INVALID_SUBSCRIPTION"

    def __init__(self, *, sub_id: int, message: str = "invalid subscription") -> None:
        self.sub_id = int(sub_id)
        super().__init__(message, details={"sub_id": self.sub_id})


class InvalidConsumer(CoordinatorError):
    code = "COORDINATOR_INVALID_CONSUMER"

    def __init__(self, *, sub_id: int, consumer: str, message: str = "consumer not registered") -> None:
        self.sub_id = int(sub_id)
        self.consumer = consumer
        super().__init__(message, details={"sub_id": self.sub_id, "consumer": consumer})


class InsufficientBalance(CoordinatorError):
    """The subscription cannot pay for the fulfillment."""

    code = "COORDINATOR_INSUFFICIENT_BALANCE"

    def __init__(self, *, sub_id: int, balance: int, payment: int) -> None:
        self.sub_id = int(sub_id)
        self.balance = int(balance)
        self.payment = int(payment)
        super().__init__(
            "insufficient subscription balance",
            details={"sub_id": self.sub_id, "balance": self.balance, "payment": self.payment},
        )


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class LedgerError(RaffleError):
    """Base error for balance book operations."""

    code = "LEDGER_ERROR"


class InsufficientFunds(LedgerError):
    code = "LEDGER_INSUFFICIENT_FUNDS"

    def __init__(self, *, address: str, have: int, need: int) -> None:
        self.address = address
        self.have = int(have)
        self.need = int(need)
        super().__init__(
            f"insufficient balance: have {self.have}, need {self.need}",
            details={"address": address, "have": self.have, "need": self.need},
        )


__all__ = [
    "RaffleError",
    "InsufficientPayment",
    "NotOpen",
    "UpkeepNotNeeded",
    "TransferFailed",
    "NoPlayers",
    "UnknownRequest",
    "OnlyCoordinatorCanFulfill",
    "CoordinatorError",
    "NonexistentRequest",
    "InvalidSubscription",
    "InvalidConsumer",
    "InsufficientBalance",
    "LedgerError",
    "InsufficientFunds",
]
