from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st
from prometheus_client import CollectorRegistry

from raffle.clock import ManualClock
from raffle.config import DEFAULT_GAS_LANE
from raffle.coordinator import LocalCoordinator
from raffle.events import EventLog
from raffle.ledger import Ledger
from raffle.machine import Raffle
from raffle.metrics import Metrics
from raffle.types import RaffleState, address_for

FEE = 10**16
INTERVAL = 30


def _fresh(n_accounts: int):
    clock = ManualClock()
    events = EventLog()
    accounts = [address_for(f"prop:{i}") for i in range(n_accounts)]
    ledger = Ledger({a: 10 * FEE for a in accounts})
    coord = LocalCoordinator(events)
    sub_id = coord.create_subscription()
    coord.fund_subscription(sub_id, 10**21)
    raffle = Raffle(
        coord,
        FEE,
        DEFAULT_GAS_LANE,
        sub_id,
        500_000,
        INTERVAL,
        ledger=ledger,
        clock=clock,
        events=events,
        metrics=Metrics(registry=CollectorRegistry()),
    )
    coord.add_consumer(sub_id, raffle.address)
    return raffle, coord, ledger, clock, accounts


@settings(max_examples=50, deadline=None)
@given(picks=st.lists(st.integers(min_value=0, max_value=4), min_size=1, max_size=12))
def test_player_list_follows_entries(picks):
    raffle, _, _, _, accounts = _fresh(5)
    for i in picks:
        raffle.enter_raffle(accounts[i], FEE)
    assert raffle.get_number_of_players() == len(picks)
    assert [raffle.get_player(k) for k in range(len(picks))] == [accounts[i] for i in picks]
    assert raffle.balance == FEE * len(picks)


@settings(max_examples=50, deadline=None)
@given(
    n=st.integers(min_value=1, max_value=8),
    word=st.integers(min_value=0, max_value=2**256 - 1),
)
def test_winner_is_word_mod_players_and_takes_the_pot(n, word):
    raffle, coord, ledger, clock, accounts = _fresh(n)
    for a in accounts:
        raffle.enter_raffle(a, FEE)
    clock.advance(INTERVAL + 1)
    request_id = raffle.perform_upkeep(b"")

    winner = accounts[word % n]
    before = ledger.balance_of(winner)
    coord.fulfill_random_words_with_override(request_id, raffle, [word])

    assert raffle.get_recent_winner() == winner
    assert ledger.balance_of(winner) == before + n * FEE
    assert raffle.balance == 0
    assert raffle.get_raffle_state() == RaffleState.OPEN
    assert raffle.get_number_of_players() == 0


@settings(max_examples=30, deadline=None)
@given(elapsed=st.integers(min_value=0, max_value=3 * INTERVAL))
def test_upkeep_due_only_strictly_after_interval(elapsed):
    raffle, _, _, clock, accounts = _fresh(1)
    raffle.enter_raffle(accounts[0], FEE)
    clock.advance(elapsed)
    assert raffle.check_upkeep(b"")[0] is (elapsed > INTERVAL)
