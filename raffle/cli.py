"""
raffle.cli
----------

Command-line interface for the raffle.

Commands:
  - networks  : List the known network profiles.
  - params    : Show the resolved profile for one network (env overrides applied).
  - simulate  : Run one full round on a development network with a local
                coordinator and a manual clock, and print a JSON summary.

Environment:
  RAFFLE_NETWORK and the other RAFFLE_* variables documented in
  raffle.config.RaffleConfig.from_env override profile fields.

Example:
  python -m raffle networks
  python -m raffle params --network rinkeby
  python -m raffle simulate --players 4 --word 17
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Optional, Sequence

import typer
from prometheus_client import CollectorRegistry

from .clock import ManualClock
from .config import NETWORKS, RaffleConfig
from .coordinator import LocalCoordinator
from .deploy import deploy_raffle
from .errors import RaffleError
from .events import EventLog
from .ledger import Ledger
from .metrics import Metrics
from .types import address_for
from .upkeep import Keeper

__all__ = ["app", "main"]

app = typer.Typer(
    name="raffle",
    help="Raffle tooling: network profiles and local round simulation.",
    no_args_is_help=True,
    add_completion=False,
)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


@app.callback()
def _root(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")) -> None:
    setup_logging(verbose)


def _load(network: Optional[str]) -> RaffleConfig:
    try:
        return RaffleConfig.from_env(network=network)
    except ValueError as e:
        typer.echo(f"config error: {e}", err=True)
        raise typer.Exit(code=2)


@app.command("networks")
def cmd_networks() -> None:
    """List the known network profiles."""
    out = {name: net.to_dict() for name, net in sorted(NETWORKS.items())}
    typer.echo(json.dumps(out, indent=2))


@app.command("params")
def cmd_params(
    network: Optional[str] = typer.Option(None, "--network", "-n", help="Network profile (default: RAFFLE_NETWORK or hardhat)."),
) -> None:
    """Show the resolved profile for one network."""
    typer.echo(_load(network).to_json())


@app.command("simulate")
def cmd_simulate(
    network: Optional[str] = typer.Option(None, "--network", "-n", help="Development network profile."),
    players: int = typer.Option(4, "--players", "-p", min=1, max=1000, help="Number of entrants."),
    word: Optional[int] = typer.Option(None, "--word", "-w", min=0, help="Random word to deliver (default: derived)."),
) -> None:
    """Deploy locally, enter players, run one upkeep and fulfill it."""
    cfg = _load(network)
    if not cfg.network.is_development:
        typer.echo(f"simulate only runs on development networks, not {cfg.network.name!r}", err=True)
        raise typer.Exit(code=2)

    events = EventLog()
    ledger = Ledger()
    clock = ManualClock()
    coordinator = LocalCoordinator(events)
    dep = deploy_raffle(
        cfg,
        ledger=ledger,
        clock=clock,
        events=events,
        coordinator=coordinator,
        metrics=Metrics(registry=CollectorRegistry()),
        deployer=address_for("deployer"),
    )
    raffle = dep.raffle
    fee = raffle.get_entrance_fee()

    entrants = [address_for(f"player:{i}") for i in range(players)]
    try:
        for addr in entrants:
            ledger.credit(addr, fee)
            raffle.enter_raffle(addr, fee)

        clock.advance(raffle.get_interval() + 1)
        request_id = Keeper(raffle).tick()
        if request_id is None:
            typer.echo("upkeep was not needed after the interval elapsed", err=True)
            raise typer.Exit(code=1)

        pot = raffle.balance
        if word is None:
            result = coordinator.fulfill_random_words(request_id, raffle)
        else:
            result = coordinator.fulfill_random_words_with_override(request_id, raffle, [word])
    except RaffleError as e:
        typer.echo(json.dumps({"error": e.to_dict()}, indent=2), err=True)
        raise typer.Exit(code=1)

    winner = raffle.get_recent_winner()
    summary = {
        "network": cfg.network.name,
        "raffle": raffle.address,
        "coordinator": coordinator.address,
        "subscription_id": dep.subscription_id,
        "request_id": request_id,
        "random_word": str(result.random_words[0]),
        "winner_index": result.random_words[0] % len(entrants),
        "winner": winner,
        "payout": pot,
        "winner_balance": ledger.balance_of(winner) if winner else 0,
        "state": raffle.get_raffle_state().name,
        "players_after": raffle.get_number_of_players(),
        "events": events.names(),
    }
    typer.echo(json.dumps(summary, indent=2))


def main(argv: Optional[Sequence[str]] = None) -> None:  # pragma: no cover - thin wrapper
    """Entry-point for the `raffle` console script and `python -m raffle`."""
    try:
        app(args=list(argv) if argv is not None else None, prog_name="raffle")
    except KeyboardInterrupt:
        typer.echo("", err=True)
        sys.exit(130)


if __name__ == "__main__":  # pragma: no cover
    main()
