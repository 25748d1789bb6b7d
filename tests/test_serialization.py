"""Tests des snapshots, vues expurgées et deltas."""

from __future__ import annotations

import json

from opencatan.engine.actions import BuyDevelopment, EndTurn
from opencatan.engine.phases import Phase
from opencatan.engine.rules import COSTS
from opencatan.engine.serialize import (
    EVENTS_KEY,
    SCHEMA_VERSION,
    apply_delta,
    diff_snapshots,
    redact,
    snapshot_for,
    state_to_snapshot,
)

from game_test_utils import force_phase, grant_card, make_engine, put_building, set_hand


def main_engine(**overrides):
    engine = make_engine(dev_deck=["KNIGHT", "VICTORY_POINT", "MONOPOLY"], **overrides)
    state = force_phase(engine, Phase.MAIN, "alice", turn_number=2)
    put_building(state, "alice", 20)
    return engine


def test_snapshot_is_json_serializable():
    engine = main_engine()
    snapshot = state_to_snapshot(engine.state)

    restored = json.loads(json.dumps(snapshot))

    assert restored == snapshot
    assert snapshot["schema_version"] == SCHEMA_VERSION
    assert snapshot["phase"] == "main"
    assert len(snapshot["board"]["tiles"]) == 19
    assert snapshot["buildings"] == {"20": {"owner": "alice", "kind": "settlement"}}


def test_opponent_view_hides_hand_and_cards():
    engine = main_engine()
    state = engine.state
    set_hand(state, "alice", {"ORE": 2, "WOOL": 1})
    grant_card(state, "alice", "VICTORY_POINT")
    grant_card(state, "alice", "KNIGHT")

    own = snapshot_for(state, "alice")["players"]["alice"]
    other = snapshot_for(state, "bob")["players"]["alice"]
    public = snapshot_for(state, None)["players"]["alice"]

    assert own["resources"]["ORE"] == 2
    assert own["victory_points"] == 2
    assert len(own["dev_cards"]) == 2

    assert "resources" not in other
    assert other["hand_size"] == 3
    assert other["dev_cards"] == []
    assert other["dev_card_count"] == 2
    assert other["victory_points"] == 1
    assert public == other


def test_played_cards_are_public():
    engine = main_engine()
    state = engine.state
    card = grant_card(state, "alice", "KNIGHT")
    card.played = True

    other = snapshot_for(state, "bob")["players"]["alice"]

    assert [c["card_type"] for c in other["dev_cards"]] == ["KNIGHT"]
    assert other["dev_card_count"] == 0


def test_hidden_bank():
    engine = main_engine(hide_bank_cards=True)
    assert snapshot_for(engine.state, "alice")["bank"] is None
    assert state_to_snapshot(engine.state)["bank"]["ORE"] == 19


def test_diff_and_apply_delta():
    before = {"a": 1, "b": {"x": 1}, "c": 3}
    after = {"a": 1, "b": {"x": 2}, "d": 4}

    delta = diff_snapshots(before, after)

    assert delta == {"b": {"x": 2}, "d": 4, "c": None}
    patched = apply_delta(before, {**delta, EVENTS_KEY: [{"type": "noop"}]})
    assert patched == {"a": 1, "b": {"x": 2}, "c": None, "d": 4}


def test_engine_delta_rebuilds_next_snapshot():
    engine = main_engine()
    state = engine.state
    before = state_to_snapshot(state)

    result = engine.submit_action("alice", EndTurn())

    assert apply_delta(before, result.delta) == state_to_snapshot(state)
    assert set(result.delta) >= {"version", "phase", "current_player_id", "turn_number"}
    assert "board" not in result.delta


def test_redacted_delta_hides_purchase():
    engine = main_engine()
    state = engine.state
    set_hand(state, "alice", COSTS["development"])

    result = engine.submit_action("alice", BuyDevelopment())
    seen_by_bob = redact(result.delta, "bob")

    assert seen_by_bob["players"]["alice"]["dev_cards"] == []
    assert seen_by_bob["players"]["alice"]["dev_card_count"] == 1
    assert result.delta["players"]["alice"]["dev_cards"][0]["card_type"] == "KNIGHT"
    assert seen_by_bob["dev_deck_size"] == 2
