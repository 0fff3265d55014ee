"""
Winner selection: request → callback → payout.

The headline scenario mirrors a real round: four entrants at 0.01 ether each,
the interval elapses, upkeep issues request R, and the coordinator answers R
with the word 17. 17 % 4 == 1, so the second entrant wins 0.04 ether.
"""
from __future__ import annotations

import pytest

from raffle.constants import to_wei
from raffle.coordinator import derive_random_words
from raffle.errors import (
    NonexistentRequest,
    NoPlayers,
    OnlyCoordinatorCanFulfill,
    TransferFailed,
    UnknownRequest,
)
from raffle.events import EV_RANDOM_WORDS_FULFILLED, EV_WINNER_PICKED
from raffle.types import RaffleState

from .conftest import ACCOUNT_FUNDS, GENESIS_TS


def test_can_only_be_called_after_perform_upkeep(raffle, accounts, fee, advance_past_interval, coordinator):
    raffle.enter_raffle(accounts[0], fee)
    advance_past_interval()
    with pytest.raises(NonexistentRequest):
        coordinator.fulfill_random_words(0, raffle)
    with pytest.raises(NonexistentRequest) as ei:
        coordinator.fulfill_random_words(1, raffle)
    assert ei.value.message == "nonexistent request"


def test_scenario_word_17_four_players(calculating, raffle, accounts, ledger, coordinator, events, clock):
    pot = raffle.balance
    assert pot == to_wei("0.04")
    winner_before = ledger.balance_of(accounts[1])

    result = coordinator.fulfill_random_words_with_override(calculating, raffle, [17])

    assert result.success is True
    assert raffle.get_recent_winner() == accounts[1]
    assert raffle.get_raffle_state() == RaffleState.OPEN
    assert raffle.get_number_of_players() == 0
    assert raffle.get_latest_timestamp() == clock.now() > GENESIS_TS
    assert raffle.balance == 0
    assert raffle.get_pending_request() is None
    assert ledger.balance_of(accounts[1]) == winner_before + pot == ACCOUNT_FUNDS - to_wei("0.01") + to_wei("0.04")

    picked = events.last(EV_WINNER_PICKED)
    assert picked is not None and picked.arg("winner") == accounts[1]
    # WinnerPicked is emitted inside the callback, before the coordinator reports success
    names = events.names()
    assert names.index(EV_WINNER_PICKED) < names.index(EV_RANDOM_WORDS_FULFILLED)


def test_picks_winner_from_derived_words(calculating, raffle, accounts, coordinator):
    expected_index = derive_random_words(calculating, 1)[0] % 4
    result = coordinator.fulfill_random_words(calculating, raffle)
    assert result.random_words == derive_random_words(calculating, 1)
    assert raffle.get_recent_winner() == accounts[expected_index]


def test_winner_picked_listener_sees_reset_round(calculating, raffle, accounts, coordinator, events, ledger):
    seen = {}

    def _on_winner(ev):
        seen["winner"] = raffle.get_recent_winner()
        seen["state"] = raffle.get_raffle_state()
        seen["players"] = raffle.get_number_of_players()
        seen["balance"] = ledger.balance_of(ev.arg("winner"))

    events.once(EV_WINNER_PICKED, _on_winner)
    coordinator.fulfill_random_words_with_override(calculating, raffle, [2])
    assert seen == {
        "winner": accounts[2],
        "state": RaffleState.OPEN,
        "players": 0,
        "balance": ACCOUNT_FUNDS - to_wei("0.01") + to_wei("0.04"),
    }


def test_only_coordinator_can_deliver(calculating, raffle, accounts):
    with pytest.raises(OnlyCoordinatorCanFulfill):
        raffle.raw_fulfill_random_words(calculating, [1], caller=accounts[0])
    assert raffle.get_raffle_state() == RaffleState.CALCULATING
    assert raffle.get_number_of_players() == 4


def test_unknown_request_id_is_rejected(calculating, raffle, coordinator):
    with pytest.raises(UnknownRequest) as ei:
        raffle.raw_fulfill_random_words(calculating + 5, [3], caller=coordinator.address)
    assert ei.value.expected == calculating
    assert raffle.get_raffle_state() == RaffleState.CALCULATING
    assert raffle.get_number_of_players() == 4


def test_second_delivery_is_rejected(calculating, raffle, coordinator, registry):
    coordinator.fulfill_random_words_with_override(calculating, raffle, [17])
    # the coordinator forgets answered requests
    with pytest.raises(NonexistentRequest):
        coordinator.fulfill_random_words_with_override(calculating, raffle, [17])
    # and the raffle itself refuses a replay with nobody left to pick
    with pytest.raises(NoPlayers):
        raffle.raw_fulfill_random_words(calculating, [17], caller=coordinator.address)
    assert registry.get_sample_value("raffle_core_fulfillments_total", {"outcome": "no_players"}) == 1.0


def test_payout_refused_keeps_reset_and_strands_pot(calculating, raffle, accounts, ledger, coordinator, events, registry):
    ledger.reject_incoming(accounts[1])
    pot = raffle.balance

    with pytest.raises(TransferFailed) as ei:
        coordinator.fulfill_random_words_with_override(calculating, raffle, [17])

    assert ei.value.winner == accounts[1]
    assert ei.value.amount == pot
    # committed changes stay
    assert raffle.get_raffle_state() == RaffleState.OPEN
    assert raffle.get_number_of_players() == 0
    assert raffle.get_latest_timestamp() > GENESIS_TS
    assert raffle.get_recent_winner() == accounts[1]
    # funds are stranded
    assert raffle.balance == pot
    assert ledger.balance_of(accounts[1]) == ACCOUNT_FUNDS - to_wei("0.01")
    assert events.last(EV_WINNER_PICKED) is None
    fulfilled = events.last(EV_RANDOM_WORDS_FULFILLED)
    assert fulfilled is not None and fulfilled.arg("success") is False
    assert registry.get_sample_value("raffle_core_fulfillments_total", {"outcome": "transfer_failed"}) == 1.0


def test_next_round_starts_after_payout(calculating, raffle, accounts, fee, coordinator, advance_past_interval):
    coordinator.fulfill_random_words_with_override(calculating, raffle, [0])
    assert raffle.get_recent_winner() == accounts[0]
    assert raffle.check_upkeep(b"")[0] is False

    raffle.enter_raffle(accounts[5], fee)
    assert raffle.get_player(0) == accounts[5]
    advance_past_interval()
    second = raffle.perform_upkeep(b"")
    assert second == calculating + 1
    coordinator.fulfill_random_words(second, raffle)
    assert raffle.get_recent_winner() == accounts[5]


def test_subscription_is_charged(calculating, raffle, coordinator, deployment):
    before = coordinator.get_subscription(deployment.subscription_id)["balance"]
    result = coordinator.fulfill_random_words(calculating, raffle)
    after = coordinator.get_subscription(deployment.subscription_id)["balance"]
    assert result.payment == coordinator.base_fee + coordinator.gas_price_link * 500_000
    assert before - after == result.payment


def test_payout_metrics(calculating, raffle, coordinator, registry):
    coordinator.fulfill_random_words_with_override(calculating, raffle, [17])
    assert registry.get_sample_value("raffle_core_fulfillments_total", {"outcome": "paid"}) == 1.0
    assert registry.get_sample_value("raffle_core_payout_amount_ether_count") == 1.0
    assert registry.get_sample_value("raffle_core_payout_amount_ether_sum") == pytest.approx(0.04)


def test_callback_hook_is_not_public(raffle):
    public = [name for name in dir(raffle) if "fulfill" in name and not name.startswith("_")]
    assert public == ["raw_fulfill_random_words"]
    assert not hasattr(raffle, "fulfill_random_words")


def test_direct_hook_call_is_not_a_delivery_path(calculating, raffle, accounts):
    with pytest.raises(AttributeError):
        raffle.fulfill_random_words(calculating, [3])
    assert raffle.get_raffle_state() == RaffleState.CALCULATING
    assert raffle.get_recent_winner() is None
    assert raffle.get_number_of_players() == 4


@pytest.mark.parametrize("request_id", [None, 0, 1])
def test_callback_while_open_is_rejected(raffle, accounts, fee, coordinator, ledger, request_id):
    raffle.enter_raffle(accounts[0], fee)
    raffle.enter_raffle(accounts[1], fee)
    before = ledger.balance_of(accounts[1])

    with pytest.raises(UnknownRequest) as ei:
        raffle.raw_fulfill_random_words(request_id, [1], caller=coordinator.address)

    assert ei.value.expected is None
    assert raffle.get_recent_winner() is None
    assert raffle.get_raffle_state() == RaffleState.OPEN
    assert raffle.get_number_of_players() == 2
    assert raffle.balance == 2 * fee
    assert ledger.balance_of(accounts[1]) == before
    assert raffle.get_latest_timestamp() == GENESIS_TS


def test_callback_after_round_closed_is_rejected(calculating, raffle, accounts, fee, coordinator):
    coordinator.fulfill_random_words_with_override(calculating, raffle, [17])
    raffle.enter_raffle(accounts[4], fee)
    # a late replay of the answered id cannot draw from the new round
    with pytest.raises(UnknownRequest):
        raffle.raw_fulfill_random_words(calculating, [0], caller=coordinator.address)
    assert raffle.get_number_of_players() == 1
    assert raffle.get_recent_winner() == accounts[1]


def test_empty_round_rejects_any_id(raffle, coordinator):
    for request_id in (None, 1):
        with pytest.raises(NoPlayers):
            raffle.raw_fulfill_random_words(request_id, [1], caller=coordinator.address)
    assert raffle.get_recent_winner() is None
