"""
Raffle deployment.

`deploy_raffle(config, ...)` wires a `Raffle` to a coordinator for the
configured network:

- development networks: a `LocalCoordinator` is created (unless one is
  passed in), a subscription is created and funded with
  `config.sub_fund_amount`, and the raffle is added as a consumer;
- live networks: the caller must pass a coordinator whose address matches
  the profile's `vrf_coordinator`; the profile's subscription id is used
  as-is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .clock import Clock
from .config import RaffleConfig
from .coordinator import LocalCoordinator, RandomnessCoordinator
from .events import EventLog
from .ledger import Ledger
from .machine import Raffle
from .metrics import Metrics

log = logging.getLogger(__name__)


@dataclass
class Deployment:
    raffle: Raffle
    coordinator: RandomnessCoordinator
    subscription_id: int
    config: RaffleConfig


def deploy_raffle(
    config: RaffleConfig,
    *,
    ledger: Ledger,
    clock: Optional[Clock] = None,
    events: Optional[EventLog] = None,
    coordinator: Optional[RandomnessCoordinator] = None,
    metrics: Optional[Metrics] = None,
    deployer: str = "",
) -> Deployment:
    config.validate()
    net = config.network
    events = events if events is not None else EventLog()

    if net.is_development:
        local = coordinator if coordinator is not None else LocalCoordinator(events)
        if not isinstance(local, LocalCoordinator):
            raise TypeError("development networks need a LocalCoordinator")
        sub_id = local.create_subscription(owner=deployer)
        local.fund_subscription(sub_id, config.sub_fund_amount)
        coordinator = local
        log.info("local coordinator %s, subscription %d funded", local.address, sub_id)
    else:
        if coordinator is None:
            raise ValueError(f"network {net.name!r} needs a coordinator client")
        if coordinator.address.lower() != str(net.vrf_coordinator).lower():
            raise ValueError(
                f"coordinator address {coordinator.address} does not match "
                f"{net.name} profile ({net.vrf_coordinator})"
            )
        sub_id = net.subscription_id

    raffle = Raffle(
        coordinator,
        net.entrance_fee,
        net.gas_lane,
        sub_id,
        net.callback_gas_limit,
        net.interval,
        ledger=ledger,
        clock=clock,
        events=events,
        metrics=metrics,
    )
    if isinstance(coordinator, LocalCoordinator):
        coordinator.add_consumer(sub_id, raffle.address)

    log.info(
        "raffle %s deployed on %s (fee=%d interval=%ds sub=%d)",
        raffle.address,
        net.name,
        net.entrance_fee,
        net.interval,
        sub_id,
    )
    return Deployment(raffle=raffle, coordinator=coordinator, subscription_id=sub_id, config=config)


__all__ = ["Deployment", "deploy_raffle"]
