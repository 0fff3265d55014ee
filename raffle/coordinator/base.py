# raffle/coordinator/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..errors import OnlyCoordinatorCanFulfill
from ..types import Address, RequestId


class RandomnessCoordinator(ABC):
    """An oracle that answers randomness requests asynchronously, by callback."""

    @property
    @abstractmethod
    def address(self) -> Address:
        """Identity the coordinator uses when it calls consumers back."""

    @abstractmethod
    def request_random_words(
        self,
        key_hash: str,
        sub_id: int,
        minimum_request_confirmations: int,
        callback_gas_limit: int,
        num_words: int,
        *,
        consumer: Address,
    ) -> RequestId:
        """Register a request and return its id. Must not call the consumer back inline."""


class RandomnessConsumer(ABC):
    """
    Receiver side of the request/callback protocol.

    Coordinators deliver through `raw_fulfill_random_words`, passing their own
    address as `caller`. Anything else is rejected before subclass code runs.
    Subclasses implement the protected `_fulfill_random_words` hook; there is
    no other public delivery path.
    """

    def __init__(self, coordinator_address: Address) -> None:
        self._coordinator_address = coordinator_address

    @property
    @abstractmethod
    def address(self) -> Address:
        ...

    def raw_fulfill_random_words(
        self, request_id: RequestId, random_words: Sequence[int], *, caller: Address
    ) -> None:
        if caller != self._coordinator_address:
            raise OnlyCoordinatorCanFulfill(have=caller, want=self._coordinator_address)
        self._fulfill_random_words(request_id, random_words)

    @abstractmethod
    def _fulfill_random_words(self, request_id: RequestId, random_words: Sequence[int]) -> None:
        """Consume delivered words. Only reached through `raw_fulfill_random_words`."""


__all__ = ["RandomnessCoordinator", "RandomnessConsumer"]
