# -*- coding: utf-8 -*-
"""
Local randomness coordinator (development networks and tests).

This coordinator follows a two-step pattern:
1) request_random_words(...): a consumer registers a request against a funded
   subscription and immediately gets back a request id. Nothing else happens.
2) fulfill_random_words(request_id, consumer): someone (a test, the CLI, a
   devnet operator) answers the request. The coordinator derives the words,
   charges the subscription and calls the consumer back with its own address
   as the caller.

Word derivation (deterministic, cheap):
    word[i] = int( sha3_256( u256(request_id) | u256(i) ) )

Events:
- SubscriptionCreated(sub_id, owner)
- SubscriptionFunded(sub_id, old_balance, new_balance)
- ConsumerAdded(sub_id, consumer)
- RandomWordsRequested(key_hash, request_id, pre_seed, sub_id,
                       minimum_request_confirmations, callback_gas_limit,
                       num_words, sender)
- RandomWordsFulfilled(request_id, output_seed, payment, success)

Notes:
- The fulfilled event is emitted whether or not the consumer callback raises;
  a raising callback is reported with success=False and re-raised.
- Request ids start at 1 and increase by one per request.
- A request is removed before its callback runs, so each id is delivered at
  most once; a second fulfillment fails with NonexistentRequest.
- Payment is charged up front as base_fee + gas_price_link * callback_gas_limit
  (the callback's gas budget, not its measured use).
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from threading import RLock
from typing import Dict, List, Optional, Sequence, Set

from ..constants import BASE_FEE, GAS_PRICE_LINK
from ..errors import (
    CoordinatorError,
    InsufficientBalance,
    InvalidConsumer,
    InvalidSubscription,
    NonexistentRequest,
)
from ..events import (
    EV_CONSUMER_ADDED,
    EV_RANDOM_WORDS_FULFILLED,
    EV_RANDOM_WORDS_REQUESTED,
    EV_SUBSCRIPTION_CREATED,
    EV_SUBSCRIPTION_FUNDED,
    EventLog,
)
from ..types import Address, RandomWordsRequest, RequestId, address_for
from .base import RandomnessConsumer, RandomnessCoordinator

log = logging.getLogger(__name__)

_MAX_NUM_WORDS = 500
_MAX_CALLBACK_GAS = 2_500_000
_MAX_CONFIRMATIONS = 200


def derive_random_words(request_id: RequestId, num_words: int) -> List[int]:
    out: List[int] = []
    for i in range(num_words):
        h = hashlib.sha3_256(request_id.to_bytes(32, "big") + i.to_bytes(32, "big"))
        out.append(int.from_bytes(h.digest(), "big"))
    return out


@dataclass
class Subscription:
    sub_id: int
    owner: Address
    balance: int = 0
    consumers: Set[Address] = field(default_factory=set)

    def snapshot(self) -> Dict:
        return {
            "sub_id": self.sub_id,
            "owner": self.owner,
            "balance": self.balance,
            "consumers": sorted(self.consumers),
        }


@dataclass(frozen=True)
class FulfillmentResult:
    request_id: RequestId
    random_words: List[int]
    payment: int
    success: bool


class LocalCoordinator(RandomnessCoordinator):
    def __init__(
        self,
        events: Optional[EventLog] = None,
        *,
        base_fee: int = BASE_FEE,
        gas_price_link: int = GAS_PRICE_LINK,
        address: Optional[Address] = None,
    ) -> None:
        if base_fee < 0 or gas_price_link < 0:
            raise ValueError("base_fee and gas_price_link must be >= 0")
        self._address = address or address_for("coordinator:local")
        self.events = events if events is not None else EventLog()
        self.base_fee = int(base_fee)
        self.gas_price_link = int(gas_price_link)
        self._lock = RLock()
        self._subs: Dict[int, Subscription] = {}
        self._requests: Dict[RequestId, RandomWordsRequest] = {}
        self._next_sub_id = 1
        self._next_request_id = 1

    @property
    def address(self) -> Address:
        return self._address

    # ----- subscriptions ------------------------------------------------------

    def create_subscription(self, owner: Address = "") -> int:
        with self._lock:
            sub_id = self._next_sub_id
            self._next_sub_id += 1
            self._subs[sub_id] = Subscription(sub_id=sub_id, owner=owner)
        self.events.emit(self.address, EV_SUBSCRIPTION_CREATED, sub_id=sub_id, owner=owner)
        log.info("created subscription %d for %s", sub_id, owner or "<anonymous>")
        return sub_id

    def fund_subscription(self, sub_id: int, amount: int) -> int:
        if not isinstance(amount, int) or amount < 0:
            raise ValueError("amount must be a non-negative int")
        with self._lock:
            sub = self._sub(sub_id)
            old = sub.balance
            sub.balance = old + amount
        self.events.emit(
            self.address, EV_SUBSCRIPTION_FUNDED, sub_id=sub_id, old_balance=old, new_balance=sub.balance
        )
        return sub.balance

    def add_consumer(self, sub_id: int, consumer: Address) -> None:
        with self._lock:
            self._sub(sub_id).consumers.add(consumer)
        self.events.emit(self.address, EV_CONSUMER_ADDED, sub_id=sub_id, consumer=consumer)

    def get_subscription(self, sub_id: int) -> Dict:
        with self._lock:
            return self._sub(sub_id).snapshot()

    def _sub(self, sub_id: int) -> Subscription:
        sub = self._subs.get(sub_id)
        if sub is None:
            raise InvalidSubscription(sub_id=sub_id)
        return sub

    # ----- requests -----------------------------------------------------------

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
        if num_words > _MAX_NUM_WORDS:
            raise CoordinatorError("num_words too large", details={"num_words": num_words})
        if callback_gas_limit > _MAX_CALLBACK_GAS:
            raise CoordinatorError("callback gas limit too big", details={"callback_gas_limit": callback_gas_limit})
        if minimum_request_confirmations > _MAX_CONFIRMATIONS:
            raise CoordinatorError(
                "invalid request confirmations", details={"confirmations": minimum_request_confirmations}
            )
        req = RandomWordsRequest(
            key_hash=key_hash,
            sub_id=sub_id,
            callback_gas_limit=callback_gas_limit,
            consumer=consumer,
            minimum_confirmations=minimum_request_confirmations,
            num_words=num_words,
        )
        with self._lock:
            sub = self._sub(sub_id)
            if consumer not in sub.consumers:
                raise InvalidConsumer(sub_id=sub_id, consumer=consumer)
            request_id = self._next_request_id
            self._next_request_id += 1
            self._requests[request_id] = req

        self.events.emit(
            self.address,
            EV_RANDOM_WORDS_REQUESTED,
            key_hash=req.key_hash,
            request_id=request_id,
            pre_seed=request_id,
            sub_id=sub_id,
            minimum_request_confirmations=req.minimum_confirmations,
            callback_gas_limit=req.callback_gas_limit,
            num_words=req.num_words,
            sender=consumer,
        )
        log.debug("request %d registered for %s on sub %d", request_id, consumer, sub_id)
        return request_id

    def pending_requests(self) -> Dict[RequestId, RandomWordsRequest]:
        with self._lock:
            return dict(self._requests)

    def payment_for(self, request: RandomWordsRequest) -> int:
        return self.base_fee + self.gas_price_link * request.callback_gas_limit

    # ----- fulfillment --------------------------------------------------------

    def fulfill_random_words(self, request_id: RequestId, consumer: RandomnessConsumer) -> FulfillmentResult:
        """Answer `request_id` with words derived from the id itself."""
        return self.fulfill_random_words_with_override(request_id, consumer, ())

    def fulfill_random_words_with_override(
        self,
        request_id: RequestId,
        consumer: RandomnessConsumer,
        words: Sequence[int],
    ) -> FulfillmentResult:
        """
        Answer `request_id` with caller-chosen words. An empty `words` falls
        back to derived words; otherwise its length must equal the request's
        word count.
        """
        with self._lock:
            req = self._requests.get(request_id)
            if req is None:
                raise NonexistentRequest(request_id=request_id)
            if consumer.address != req.consumer:
                raise InvalidConsumer(sub_id=req.sub_id, consumer=consumer.address)
            if len(words) == 0:
                words = derive_random_words(request_id, req.num_words)
            elif len(words) != req.num_words:
                raise CoordinatorError(
                    "invalid random words",
                    details={"expected": req.num_words, "got": len(words)},
                )
            sub = self._sub(req.sub_id)
            payment = self.payment_for(req)
            if sub.balance < payment:
                raise InsufficientBalance(sub_id=req.sub_id, balance=sub.balance, payment=payment)

            del self._requests[request_id]
            sub.balance -= payment

        words = [int(w) for w in words]
        try:
            consumer.raw_fulfill_random_words(request_id, words, caller=self.address)
        except Exception:
            log.error("consumer %s failed to handle request %d", consumer.address, request_id)
            self.events.emit(
                self.address,
                EV_RANDOM_WORDS_FULFILLED,
                request_id=request_id,
                output_seed=request_id,
                payment=payment,
                success=False,
            )
            raise

        self.events.emit(
            self.address,
            EV_RANDOM_WORDS_FULFILLED,
            request_id=request_id,
            output_seed=request_id,
            payment=payment,
            success=True,
        )
        return FulfillmentResult(request_id=request_id, random_words=words, payment=payment, success=True)


__all__ = ["LocalCoordinator", "Subscription", "FulfillmentResult", "derive_random_words"]
