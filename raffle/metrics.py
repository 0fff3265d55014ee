"""
Prometheus metrics for the raffle.

This module defines counters and a histogram for the round lifecycle:
  • entries: entry attempts per outcome
  • upkeeps: perform_upkeep attempts per outcome
  • fulfillments: randomness callbacks per outcome
  • payout_amount: size of successful payouts (in ether)

Label cardinality is kept low: only an `outcome` label with a small, finite
vocabulary. Unknown outcomes are folded into "invalid".

Usage
-----
    from raffle.metrics import METRICS

    METRICS.record_entry("accepted")
    METRICS.observe_payout(40_000_000_000_000_000)

Tests construct their own `Metrics` with a fresh `CollectorRegistry` so that
repeated instantiation does not collide in the global registry.
"""

from __future__ import annotations

from typing import Iterable

from prometheus_client import REGISTRY, Counter, Histogram

from .constants import WEI_PER_ETHER

_ENTRY_OUTCOMES = (
    "accepted",
    "insufficient_payment",
    "not_open",
    "invalid",
)

_UPKEEP_OUTCOMES = (
    "requested",
    "not_needed",
    "invalid",
)

_FULFILL_OUTCOMES = (
    "paid",
    "transfer_failed",
    "no_players",
    "unknown_request",
    "invalid",
)

# Payout size buckets, in ether.
_PAYOUT_BUCKETS = (
    0.001, 0.01, 0.05,
    0.1, 0.5,
    1.0, 5.0, 10.0, 50.0, 100.0,
)


class Metrics:
    """
    Container for all raffle Prometheus instruments.

    Args:
        namespace: Prometheus metric namespace (prefix).
        subsystem: Prometheus metric subsystem.
        registry:  Prometheus registry to register the metrics with.
    """

    def __init__(
        self,
        *,
        namespace: str = "raffle",
        subsystem: str = "core",
        registry=REGISTRY,
        payout_buckets: Iterable[float] = _PAYOUT_BUCKETS,
    ) -> None:
        self.entries_total = Counter(
            "entries_total",
            "Number of raffle entry attempts, labeled by outcome.",
            labelnames=("outcome",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.upkeeps_total = Counter(
            "upkeeps_total",
            "Number of perform_upkeep attempts, labeled by outcome.",
            labelnames=("outcome",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.fulfillments_total = Counter(
            "fulfillments_total",
            "Number of randomness callbacks handled, labeled by outcome.",
            labelnames=("outcome",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.payout_amount = Histogram(
            "payout_amount_ether",
            "Size of successful winner payouts, in ether.",
            buckets=tuple(payout_buckets),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )

    # ----- Recording helpers -------------------------------------------------

    def record_entry(self, outcome: str) -> None:
        if outcome not in _ENTRY_OUTCOMES:
            outcome = "invalid"
        self.entries_total.labels(outcome=outcome).inc()

    def record_upkeep(self, outcome: str) -> None:
        if outcome not in _UPKEEP_OUTCOMES:
            outcome = "invalid"
        self.upkeeps_total.labels(outcome=outcome).inc()

    def record_fulfillment(self, outcome: str) -> None:
        if outcome not in _FULFILL_OUTCOMES:
            outcome = "invalid"
        self.fulfillments_total.labels(outcome=outcome).inc()

    def observe_payout(self, amount: int) -> None:
        """Record a payout given in the smallest unit."""
        self.payout_amount.observe(amount / WEI_PER_ETHER)


# Singleton used when no instance is injected
METRICS = Metrics()

__all__ = [
    "Metrics",
    "METRICS",
    "_ENTRY_OUTCOMES",
    "_UPKEEP_OUTCOMES",
    "_FULFILL_OUTCOMES",
]
