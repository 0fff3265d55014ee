"""
raffle.coordinator
------------------

Randomness coordinator surface used by the raffle:

- `RandomnessCoordinator`: what a consumer needs from a coordinator
  (issue a randomness request, get back a request id).
- `RandomnessConsumer`: consumer-side base that gates callbacks so only the
  configured coordinator can deliver random words.
- `LocalCoordinator`: in-process coordinator for development networks and
  tests, with subscriptions and manual fulfillment.
"""

from __future__ import annotations

from .base import RandomnessConsumer, RandomnessCoordinator
from .local import FulfillmentResult, LocalCoordinator, Subscription, derive_random_words

__all__ = [
    "RandomnessCoordinator",
    "RandomnessConsumer",
    "LocalCoordinator",
    "Subscription",
    "FulfillmentResult",
    "derive_random_words",
]
