"""Tests du cycle de vie des cartes de développement."""

from __future__ import annotations

from opencatan.engine import devcards
from opencatan.engine.actions import (
    BuyDevelopment,
    EndTurn,
    MoveRobber,
    PlaceRoad,
    PlayDevelopment,
    RollDice,
    SelectMonopoly,
    SelectYearOfPlenty,
)
from opencatan.engine.errors import RejectionReason
from opencatan.engine.phases import Phase
from opencatan.engine.rules import COSTS, DEFAULT_DEV_DECK_COMPOSITION

from game_test_utils import force_phase, grant_card, make_engine, put_building, put_roads, set_hand

DECK = ["KNIGHT", "MONOPOLY", "YEAR_OF_PLENTY", "ROAD_BUILDING", "VICTORY_POINT"] * 3


def card_engine(deck=DECK, **overrides):
    """Alice joue (tour 3) avec une colonie au centre et une route 20-21."""

    engine = make_engine(dev_deck=list(deck), **overrides)
    state = force_phase(engine, Phase.MAIN, "alice", turn_number=3)
    put_building(state, "alice", 20)
    put_roads(state, "alice", [29])
    return engine


def test_default_deck_composition_is_shuffled_once():
    engine = make_engine(seed=11)
    deck = engine.state.dev_deck
    assert len(deck) == sum(DEFAULT_DEV_DECK_COMPOSITION.values()) == 25
    for card_type, count in DEFAULT_DEV_DECK_COMPOSITION.items():
        assert deck.count(card_type) == count
    assert make_engine(seed=11).state.dev_deck == deck


def test_buy_draws_top_card_and_pays():
    engine = card_engine()
    state = engine.state
    set_hand(state, "alice", COSTS["development"])

    result = engine.submit_action("alice", BuyDevelopment())

    assert result.accepted
    card = state.players["alice"].dev_cards[0]
    assert card.card_type == "KNIGHT"
    assert card.purchased_turn == 3
    assert len(state.dev_deck) == len(DECK) - 1
    assert state.players["alice"].hand_size() == 0
    assert result.delta["dev_deck_size"] == len(DECK) - 1


def test_buy_requires_resources_and_cards():
    engine = card_engine()
    state = engine.state
    assert engine.submit_action("alice", BuyDevelopment()).reason == RejectionReason.INSUFFICIENT_RESOURCES

    state.dev_deck.clear()
    state.dev_cards_total = 0
    set_hand(state, "alice", COSTS["development"])
    assert engine.submit_action("alice", BuyDevelopment()).reason == RejectionReason.BANK_INSUFFICIENT


def test_card_bought_this_turn_is_not_playable():
    engine = card_engine()
    set_hand(engine.state, "alice", COSTS["development"])
    engine.submit_action("alice", BuyDevelopment())

    result = engine.submit_action("alice", PlayDevelopment("KNIGHT"))

    assert result.reason == RejectionReason.CARD_NOT_PLAYABLE


def test_card_becomes_playable_next_turn():
    engine = card_engine(deck=["KNIGHT"] * 5)
    state = engine.state
    set_hand(state, "alice", COSTS["development"])
    engine.submit_action("alice", BuyDevelopment())

    for player_id in ("alice", "bob", "carol"):
        assert engine.submit_action(player_id, EndTurn()).accepted
        engine.submit_action(state.turn.current_player_id, RollDice(forced_value=(2, 3)))
    assert state.turn.current_player_id == "alice"

    assert engine.submit_action("alice", PlayDevelopment("KNIGHT")).accepted


def test_only_one_card_per_turn():
    engine = card_engine()
    state = engine.state
    grant_card(state, "alice", "KNIGHT")
    grant_card(state, "alice", "MONOPOLY")

    assert engine.submit_action("alice", PlayDevelopment("KNIGHT")).accepted
    assert engine.submit_action("alice", MoveRobber(3)).accepted
    assert state.phase == Phase.MAIN

    result = engine.submit_action("alice", PlayDevelopment("MONOPOLY"))
    assert result.reason == RejectionReason.CARD_NOT_PLAYABLE


def test_victory_point_cards_are_never_playable():
    engine = card_engine()
    grant_card(engine.state, "alice", "VICTORY_POINT")
    result = engine.submit_action("alice", PlayDevelopment("VICTORY_POINT"))
    assert result.reason == RejectionReason.CARD_NOT_PLAYABLE


def test_victory_cards_and_deck_conservation():
    engine = card_engine()
    state = engine.state
    grant_card(state, "alice", "VICTORY_POINT")
    grant_card(state, "alice", "VICTORY_POINT")
    grant_card(state, "alice", "KNIGHT")

    alice = state.players["alice"]
    assert len(devcards.victory_cards(alice)) == 2
    assert devcards.victory_cards(state.players["bob"]) == []
    assert devcards.cards_in_play(state) == state.dev_cards_total == len(DECK)


def test_play_requires_main_phase_and_held_card():
    engine = card_engine()
    state = engine.state
    assert engine.submit_action("alice", PlayDevelopment("KNIGHT")).reason == RejectionReason.CARD_NOT_PLAYABLE
    assert engine.submit_action("alice", PlayDevelopment("JOKER")).reason == RejectionReason.INVALID_ACTION

    grant_card(state, "alice", "KNIGHT")
    state.turn.phase = Phase.ROLL
    assert engine.submit_action("alice", PlayDevelopment("KNIGHT")).reason == RejectionReason.ILLEGAL_PHASE


def test_knight_moves_robber_and_counts_army():
    engine = card_engine()
    state = engine.state
    grant_card(state, "alice", "KNIGHT")

    result = engine.submit_action("alice", PlayDevelopment("KNIGHT"))

    assert result.accepted
    assert state.phase == Phase.ROBBER_MOVE
    assert state.players["alice"].army_size == 1
    assert state.counters["knights_played"] == 1
    engine.submit_action("alice", MoveRobber(3))
    assert state.phase == Phase.MAIN


def test_monopoly_takes_every_card_of_a_type():
    engine = card_engine()
    state = engine.state
    grant_card(state, "alice", "MONOPOLY")
    set_hand(state, "bob", {"ORE": 3, "WOOL": 1})
    set_hand(state, "carol", {"ORE": 2})

    assert engine.submit_action("alice", PlayDevelopment("MONOPOLY")).accepted
    assert state.phase == Phase.MONOPOLY
    assert engine.submit_action("alice", SelectMonopoly("GOLD")).reason == RejectionReason.INVALID_ACTION

    result = engine.submit_action("alice", SelectMonopoly("ORE"))

    assert state.phase == Phase.MAIN
    assert state.players["alice"].resources["ORE"] == 5
    assert state.players["bob"].resources == {"BRICK": 0, "LUMBER": 0, "WOOL": 1, "GRAIN": 0, "ORE": 0}
    assert state.players["carol"].hand_size() == 0
    monopoly = [e for e in result.delta["events"] if e["type"] == "monopoly"][0]
    assert monopoly["taken"] == {"bob": 3, "carol": 2}


def test_year_of_plenty_takes_two_cards_from_bank():
    engine = card_engine()
    state = engine.state
    grant_card(state, "alice", "YEAR_OF_PLENTY")

    engine.submit_action("alice", PlayDevelopment("YEAR_OF_PLENTY"))
    assert state.phase == Phase.YEAR_OF_PLENTY

    assert engine.submit_action("alice", SelectYearOfPlenty({"ORE": 1})).reason == RejectionReason.INVALID_ACTION
    assert engine.submit_action("alice", SelectYearOfPlenty({"ORE": 1, "WOOL": 1})).accepted
    assert state.phase == Phase.MAIN
    assert state.players["alice"].resources["ORE"] == 1
    assert state.players["alice"].resources["WOOL"] == 1
    assert state.bank["ORE"] == 18


def test_year_of_plenty_is_bounded_by_bank_total():
    engine = card_engine()
    state = engine.state
    grant_card(state, "alice", "YEAR_OF_PLENTY")
    set_hand(state, "bob", {"BRICK": 19, "LUMBER": 19, "WOOL": 19, "GRAIN": 19, "ORE": 18})

    assert devcards.year_of_plenty_pick_size(state) == 1
    engine.submit_action("alice", PlayDevelopment("YEAR_OF_PLENTY"))

    assert engine.submit_action("alice", SelectYearOfPlenty({"ORE": 2})).reason == RejectionReason.INVALID_ACTION
    assert engine.submit_action("alice", SelectYearOfPlenty({"ORE": 1})).accepted
    assert state.bank["ORE"] == 0


def test_year_of_plenty_with_empty_bank_stays_in_main():
    engine = card_engine()
    state = engine.state
    grant_card(state, "alice", "YEAR_OF_PLENTY")
    set_hand(state, "bob", {resource: 19 for resource in state.bank})

    assert engine.submit_action("alice", PlayDevelopment("YEAR_OF_PLENTY")).accepted
    assert state.phase == Phase.MAIN
    assert state.turn.dev_card_played


def test_road_building_places_two_free_roads():
    engine = card_engine()
    state = engine.state
    grant_card(state, "alice", "ROAD_BUILDING")

    engine.submit_action("alice", PlayDevelopment("ROAD_BUILDING"))
    assert state.phase == Phase.ROAD_BUILDING
    assert state.turn.road_building_remaining == 2

    assert engine.submit_action("alice", PlaceRoad(0)).reason == RejectionReason.ILLEGAL_PLACEMENT
    assert engine.submit_action("alice", PlaceRoad(31)).accepted
    assert state.phase == Phase.ROAD_BUILDING
    assert engine.submit_action("alice", PlaceRoad(40)).accepted

    assert state.phase == Phase.MAIN
    assert state.roads[31] == state.roads[40] == "alice"
    assert state.players["alice"].hand_size() == 0


def test_road_building_limited_by_remaining_pieces():
    engine = card_engine()
    state = engine.state
    grant_card(state, "alice", "ROAD_BUILDING")
    put_roads(state, "alice", range(13))
    assert state.players["alice"].pieces["road"] == 1

    engine.submit_action("alice", PlayDevelopment("ROAD_BUILDING"))
    assert state.turn.road_building_remaining == 1

    engine.submit_action("alice", PlaceRoad(31))
    assert state.phase == Phase.MAIN
    assert state.players["alice"].pieces["road"] == 0
