from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Tuple

from .constants import KEY_HASH_LEN, NUM_WORDS, REQUEST_CONFIRMATIONS

Address = str
RequestId = int
Amount = int


class RaffleState(IntEnum):
    """Lifecycle of a raffle round. Values match the on-chain enum ordinals."""

    OPEN = 0
    CALCULATING = 1


def address_for(tag: str) -> Address:
    """Stable 20-byte hex address (0x...) derived from a tag."""
    return "0x" + hashlib.sha3_256(tag.encode("utf-8")).hexdigest()[:40]


def normalize_key_hash(key_hash: str) -> str:
    """Return a lowercase 0x-prefixed bytes32 hex string, or raise ValueError."""
    h = key_hash.strip().lower()
    if h.startswith("0x"):
        h = h[2:]
    try:
        raw = bytes.fromhex(h)
    except ValueError as e:
        raise ValueError(f"key hash is not hex: {key_hash!r}") from e
    if len(raw) != KEY_HASH_LEN:
        raise ValueError(f"key hash must be {KEY_HASH_LEN} bytes, got {len(raw)}")
    return "0x" + h


@dataclass(frozen=True)
class RandomWordsRequest:
    """
    Parameters of one randomness request, as handed to the coordinator.

    Fields:
      key_hash              : gas lane (bytes32 hex) selecting the max gas price
      sub_id                : subscription paying for the request
      minimum_confirmations : blocks to wait before answering
      callback_gas_limit    : gas budget for the consumer callback
      num_words             : how many random words to deliver
      consumer              : address of the contract receiving the callback
    """

    key_hash: str
    sub_id: int
    callback_gas_limit: int
    consumer: Address
    minimum_confirmations: int = REQUEST_CONFIRMATIONS
    num_words: int = NUM_WORDS

    def __post_init__(self) -> None:
        object.__setattr__(self, "key_hash", normalize_key_hash(self.key_hash))
        for name in ("sub_id", "callback_gas_limit", "minimum_confirmations", "num_words"):
            v = getattr(self, name)
            if not isinstance(v, int) or v < 0:
                raise ValueError(f"{name} must be a non-negative int")
        if self.num_words == 0:
            raise ValueError("num_words must be > 0")


@dataclass(frozen=True)
class Event:
    """A notification emitted by a component; `seq` orders events across the log."""

    seq: int
    name: str
    emitter: Address
    args: Tuple[Tuple[str, object], ...] = field(default_factory=tuple)

    def arg(self, key: str) -> object:
        for k, v in self.args:
            if k == key:
                return v
        raise KeyError(key)

    def to_dict(self) -> dict:
        return {"seq": self.seq, "name": self.name, "emitter": self.emitter, "args": dict(self.args)}


__all__ = [
    "Address",
    "RequestId",
    "Amount",
    "RaffleState",
    "RandomWordsRequest",
    "Event",
    "normalize_key_hash",
    "address_for",
]
