"""Tests du service d'orchestration et du bus d'évènements."""

from __future__ import annotations

import threading

import pytest

from opencatan.app import EventBus, GameEndedEvent, GameService, GameStartedEvent, StateChangedEvent
from opencatan.engine.actions import BuyDevelopment, EndTurn, PlaceRoad, PlaceSettlement, RollDice, SetConnection
from opencatan.engine.errors import RejectionReason
from opencatan.engine.phases import Phase
from opencatan.engine.rules import COSTS
from opencatan.engine.settings import GameSettings

from game_test_utils import FakeClock, force_phase, put_building, set_hand


class Recorder:
    def __init__(self, bus):
        self.events = []
        self.unsubscribe = bus.subscribe(self.events.append)

    def of_type(self, event_type):
        return [event for event in self.events if isinstance(event, event_type)]


def make_service(**settings):
    clock = FakeClock()
    service = GameService(clock=clock, allow_forced_dice=True)
    recorder = Recorder(service.event_bus)
    settings.setdefault("seed", 3)
    service.start_new_game(["alice", "bob", "carol"], GameSettings(**settings))
    return service, recorder, clock


def test_event_bus_publish_and_unsubscribe():
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe(received.append)
    bus.subscribe(lambda event: received.append(("second", event)))

    bus.publish("a")
    unsubscribe()
    bus.publish("b")

    assert received == ["a", ("second", "a"), ("second", "b")]
    assert len(bus) == 1


def test_service_requires_a_game():
    service = GameService()
    with pytest.raises(RuntimeError):
        service.state
    with pytest.raises(RuntimeError):
        service.timer
    with pytest.raises(RuntimeError):
        service.process_pending()


def test_start_publishes_full_snapshot():
    service, recorder, _ = make_service()

    started = recorder.of_type(GameStartedEvent)

    assert len(started) == 1
    assert started[0].version == 0
    assert started[0].snapshot["phase"] == Phase.SETUP_SETTLEMENT_1.value
    assert started[0].snapshot["turn_order"] == ["alice", "bob", "carol"]
    assert service.state.players["alice"].name == "alice"


def test_accepted_actions_publish_consecutive_versions():
    service, recorder, _ = make_service()

    first = service.dispatch("alice", PlaceSettlement(20))
    second = service.dispatch("alice", PlaceRoad(29))

    changes = recorder.of_type(StateChangedEvent)
    assert [first.version, second.version] == [1, 2]
    assert [event.version for event in changes] == [1, 2]
    assert changes[0].player_id == "alice"
    assert changes[0].action == PlaceSettlement(20)
    assert changes[0].delta["buildings"] == {"20": {"owner": "alice", "kind": "settlement"}}


def test_rejection_is_reported_only_to_submitter():
    service, recorder, _ = make_service()
    before = len(recorder.events)

    result = service.dispatch("bob", PlaceSettlement(20))

    assert result.reason == RejectionReason.NOT_YOUR_TURN
    assert len(recorder.events) == before


def test_queue_is_processed_in_arrival_order():
    service, recorder, _ = make_service()
    replies = []

    service.submit("alice", PlaceSettlement(20), reply=replies.append)
    service.submit("bob", PlaceSettlement(0), reply=replies.append)
    service.submit("alice", PlaceRoad(29), reply=replies.append)
    assert service.pending_count() == 3

    results = service.process_pending()

    assert service.pending_count() == 0
    assert [result.accepted for result in results] == [True, False, True]
    assert replies == results
    assert service.state.turn.current_player_id == "bob"


def test_concurrent_submissions_are_serialized():
    service, recorder, _ = make_service()
    # Un seul des joueurs est actif: une seule colonie peut passer
    threads = [
        threading.Thread(target=service.submit, args=(pid, PlaceSettlement(20)))
        for pid in ("alice", "bob", "carol")
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    results = service.process_pending()

    assert sum(result.accepted for result in results) == 1
    assert service.state.version == 1


def test_dispatch_system_publishes_without_submitter():
    service, recorder, _ = make_service()

    result = service.dispatch_system(SetConnection("bob", False))

    assert result.accepted
    assert service.state.players["bob"].connected is False
    changed = recorder.of_type(StateChangedEvent)[-1]
    assert changed.player_id is None
    assert changed.action == SetConnection("bob", False)


def test_tick_forces_overdue_turn():
    service, recorder, clock = make_service(turn_timer=60)
    assert service.timer.deadline == 60.0

    assert service.tick(now=59.0) == []
    clock.advance(60.0)
    results = service.tick()

    assert len(results) == 1 and results[0].accepted
    assert service.state.count_built("alice", "settlement") == 1
    assert service.state.turn.current_player_id == "bob"
    assert service.timer.deadline == 120.0


def test_tick_forces_discards():
    service, recorder, clock = make_service(turn_timer=30)
    state = force_phase(service.engine, Phase.ROLL, "alice")
    set_hand(state, "bob", {"GRAIN": 10})
    service.dispatch("alice", RollDice(forced_value=(2, 5)))
    assert state.phase == Phase.DISCARD

    clock.advance(30.0)
    results = service.tick()

    assert [result.accepted for result in results] == [True]
    assert state.players["bob"].hand_size() == 5
    assert state.phase == Phase.ROBBER_MOVE


def test_game_end_publishes_summary():
    clock = FakeClock()
    service = GameService(clock=clock, allow_forced_dice=True)
    recorder = Recorder(service.event_bus)
    service.start_new_game(
        ["alice", "bob"], GameSettings(seed=1, victory_points=3), dev_deck=["VICTORY_POINT", "KNIGHT"]
    )
    state = force_phase(service.engine, Phase.MAIN, "alice")
    put_building(state, "alice", 20)
    put_building(state, "alice", 0)
    set_hand(state, "alice", COSTS["development"])

    service.dispatch("alice", BuyDevelopment())

    ended = recorder.of_type(GameEndedEvent)
    assert len(ended) == 1
    assert ended[0].winner_id == "alice"
    assert ended[0].summary["development_cards_bought"] == 1
    assert set(ended[0].summary["players"]) == {"alice", "bob"}

    assert service.dispatch("bob", EndTurn()).reason == RejectionReason.GAME_OVER
    assert len(recorder.of_type(GameEndedEvent)) == 1


def test_restart_drops_stale_submissions():
    service, recorder, _ = make_service()
    service.submit("alice", PlaceSettlement(20))

    service.start_new_game(["dave", "erin"], GameSettings(seed=5))

    assert service.pending_count() == 0
    assert service.state.turn_order == ["dave", "erin"]


def test_views_are_redacted():
    service, recorder, _ = make_service()
    set_hand(service.state, "bob", {"ORE": 2})

    assert service.snapshot_for("bob")["players"]["bob"]["resources"]["ORE"] == 2
    assert "resources" not in service.snapshot_for("alice")["players"]["bob"]
    assert service.legal_actions("alice")
