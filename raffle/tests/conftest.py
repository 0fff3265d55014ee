# -*- coding: utf-8 -*-
"""
raffle.tests.conftest
=====================

Pytest fixtures for the raffle:
- a manual clock (time only moves when a test advances it),
- a shared event log, value book and local coordinator,
- deterministic, funded accounts,
- a raffle deployed on the "hardhat" profile with an isolated Prometheus
  registry so metric assertions do not leak between tests.

Usage (inside a test file):
    def test_enter(raffle, accounts, fee):
        raffle.enter_raffle(accounts[0], fee)
        assert raffle.get_number_of_players() == 1
"""
from __future__ import annotations

import os
from typing import Callable, List

import pytest
from prometheus_client import CollectorRegistry

from raffle.clock import ManualClock
from raffle.config import RaffleConfig, get_network
from raffle.constants import WEI_PER_ETHER
from raffle.coordinator import LocalCoordinator
from raffle.deploy import Deployment, deploy_raffle
from raffle.events import EventLog
from raffle.ledger import Ledger
from raffle.machine import Raffle
from raffle.metrics import Metrics
from raffle.types import address_for

# Keep dict/set hash-iteration stable.
os.environ.setdefault("PYTHONHASHSEED", "0")

GENESIS_TS = 1_700_000_000
ACCOUNT_FUNDS = 10 * WEI_PER_ETHER
N_ACCOUNTS = 6


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=GENESIS_TS)


@pytest.fixture
def events() -> EventLog:
    return EventLog()


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> Metrics:
    return Metrics(registry=registry)


@pytest.fixture
def accounts() -> List[str]:
    return [address_for(f"account:{i}") for i in range(N_ACCOUNTS)]


@pytest.fixture
def ledger(accounts: List[str]) -> Ledger:
    return Ledger({a: ACCOUNT_FUNDS for a in accounts})


@pytest.fixture
def coordinator(events: EventLog) -> LocalCoordinator:
    return LocalCoordinator(events)


@pytest.fixture
def config(monkeypatch: pytest.MonkeyPatch) -> RaffleConfig:
    for key in list(os.environ):
        if key.startswith("RAFFLE_"):
            monkeypatch.delenv(key, raising=False)
    return RaffleConfig(network=get_network("hardhat"))


@pytest.fixture
def deployment(
    config: RaffleConfig,
    ledger: Ledger,
    clock: ManualClock,
    events: EventLog,
    coordinator: LocalCoordinator,
    metrics: Metrics,
    accounts: List[str],
) -> Deployment:
    return deploy_raffle(
        config,
        ledger=ledger,
        clock=clock,
        events=events,
        coordinator=coordinator,
        metrics=metrics,
        deployer=accounts[0],
    )


@pytest.fixture
def raffle(deployment: Deployment) -> Raffle:
    return deployment.raffle


@pytest.fixture
def fee(raffle: Raffle) -> int:
    return raffle.get_entrance_fee()


@pytest.fixture
def advance_past_interval(raffle: Raffle, clock: ManualClock) -> Callable[[], int]:
    """Move the clock one second beyond the raffle interval."""

    def _advance() -> int:
        return clock.advance(raffle.get_interval() + 1)

    return _advance


@pytest.fixture
def calculating(
    raffle: Raffle, accounts: List[str], fee: int, advance_past_interval: Callable[[], int]
) -> int:
    """Four entrants, interval elapsed, upkeep performed. Returns the request id."""
    for a in accounts[:4]:
        raffle.enter_raffle(a, fee)
    advance_past_interval()
    return raffle.perform_upkeep(b"")
