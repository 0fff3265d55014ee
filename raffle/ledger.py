"""
Raffle value book
-----------------

Integer balances per address, enough to make entrance payments and payouts
observable. Amounts are smallest-unit integers (no floats). All operations
check:
  • Non-negativity
  • Sufficient balance before debits

Two transfer flavours exist, mirroring how contracts move value:
  • `transfer(src, dst, amount)` raises on failure (payments *into* a contract,
    where the caller's whole operation aborts).
  • `send(src, dst, amount)` returns False when the recipient refuses the
    funds, leaving both balances untouched. The caller decides what a refusal
    means.

A recipient refuses funds when it has been marked with `reject_incoming`
(a contract without a payable fallback, in chain terms).

Concurrency: a coarse `threading.RLock` protects mutating methods.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from threading import RLock
from typing import Dict, Iterable, List, Literal, Set

from .errors import InsufficientFunds, LedgerError
from .types import Address, Amount

log = logging.getLogger(__name__)

OpName = Literal["credit", "transfer", "send"]


def _ensure_nonneg(x: int, name: str) -> None:
    if not isinstance(x, int) or x < 0:
        raise LedgerError(f"{name} must be a non-negative int, got {x!r}")


@dataclass(frozen=True)
class JournalEntry:
    seq: int
    op: OpName
    src: Address
    dst: Address
    amount: Amount
    ok: bool = True
    meta: Dict[str, str] = field(default_factory=dict)


class Ledger:
    def __init__(self, balances: Dict[Address, Amount] | None = None) -> None:
        self._lock = RLock()
        self._balances: Dict[Address, Amount] = {}
        self._rejecting: Set[Address] = set()
        self._journal: List[JournalEntry] = []
        for addr, amt in (balances or {}).items():
            self.credit(addr, amt)

    # --- queries ---

    def balance_of(self, address: Address) -> Amount:
        return self._balances.get(address, 0)

    def accounts(self) -> Iterable[Address]:
        return sorted(self._balances)

    def journal(self) -> List[JournalEntry]:
        with self._lock:
            return list(self._journal)

    def total_supply(self) -> Amount:
        return sum(self._balances.values())

    # --- mutations ---

    def reject_incoming(self, address: Address, reject: bool = True) -> None:
        with self._lock:
            if reject:
                self._rejecting.add(address)
            else:
                self._rejecting.discard(address)

    def credit(self, address: Address, amount: Amount) -> Amount:
        """Mint `amount` into `address` (funding dev accounts)."""
        _ensure_nonneg(amount, "amount")
        with self._lock:
            self._balances[address] = self._balances.get(address, 0) + amount
            self._record("credit", "", address, amount)
            return self._balances[address]

    def transfer(self, src: Address, dst: Address, amount: Amount) -> None:
        _ensure_nonneg(amount, "amount")
        with self._lock:
            have = self._balances.get(src, 0)
            if have < amount:
                raise InsufficientFunds(address=src, have=have, need=amount)
            if dst in self._rejecting:
                raise LedgerError(f"recipient {dst} rejects incoming transfers")
            self._move(src, dst, amount)
            self._record("transfer", src, dst, amount)

    def send(self, src: Address, dst: Address, amount: Amount) -> bool:
        _ensure_nonneg(amount, "amount")
        with self._lock:
            have = self._balances.get(src, 0)
            if have < amount:
                raise InsufficientFunds(address=src, have=have, need=amount)
            if dst in self._rejecting:
                log.warning("send of %d from %s refused by %s", amount, src, dst)
                self._record("send", src, dst, amount, ok=False)
                return False
            self._move(src, dst, amount)
            self._record("send", src, dst, amount)
            return True

    # --- internal helpers ---

    def _move(self, src: Address, dst: Address, amount: Amount) -> None:
        self._balances[src] = self._balances.get(src, 0) - amount
        self._balances[dst] = self._balances.get(dst, 0) + amount

    def _record(self, op: OpName, src: Address, dst: Address, amount: Amount, ok: bool = True) -> None:
        self._journal.append(JournalEntry(len(self._journal), op, src, dst, amount, ok))


__all__ = ["Ledger", "JournalEntry"]
