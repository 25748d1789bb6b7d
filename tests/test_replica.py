"""Tests des vues répliquées côté joueur."""

from __future__ import annotations

from opencatan.app import GameService, ReplicaView
from opencatan.engine.actions import PlaceRoad, PlaceSettlement
from opencatan.engine.settings import GameSettings

from game_test_utils import FakeClock


def started_service(replicas, **settings):
    service = GameService(clock=FakeClock(), allow_forced_dice=True)
    for replica in replicas:
        replica.attach(service.event_bus)
    settings.setdefault("seed", 9)
    service.start_new_game(["alice", "bob", "carol"], GameSettings(**settings))
    return service


def play_first_placements(service, count=6):
    for _ in range(count):
        player_id = service.state.turn.current_player_id
        action = service.legal_actions(player_id)[0]
        assert service.dispatch(player_id, action).accepted


def test_replicas_follow_authoritative_views():
    replicas = [ReplicaView(pid) for pid in ("alice", "bob")] + [ReplicaView(None)]
    service = started_service(replicas)

    play_first_placements(service, count=12)

    for replica in replicas:
        assert replica.version == service.state.version == 12
        assert not replica.needs_resync
        assert replica.snapshot == service.snapshot_for(replica.viewer_id)


def test_new_replica_waits_for_snapshot():
    replica = ReplicaView("alice")
    assert replica.needs_resync
    assert replica.apply(1, {"phase": "main"}) is False
    assert replica.version == -1


def test_gap_triggers_resync_callback():
    calls = []
    replica = ReplicaView("alice", on_resync=calls.append)
    service = started_service([])
    replica.resync(service.snapshot_for("alice"))

    service.dispatch("alice", PlaceSettlement(20))
    result = service.dispatch("alice", PlaceRoad(29))

    assert replica.apply(result.version, result.delta) is False
    assert replica.needs_resync
    assert calls == [replica]

    # Les deltas suivants sont ignorés jusqu'au snapshot
    assert replica.apply(result.version + 1, {}) is False

    replica.resync(service.snapshot_for("alice"))
    assert replica.version == 2
    assert replica.snapshot == service.snapshot_for("alice")


def test_duplicate_delta_is_ignored():
    replica = ReplicaView("bob")
    service = started_service([replica])

    result = service.dispatch("alice", PlaceSettlement(20))

    assert replica.version == 1
    assert replica.apply(result.version, result.delta) is False
    assert replica.version == 1
    assert replica.last_events == []


def test_events_are_kept_for_last_delta():
    replica = ReplicaView("carol")
    service = started_service([replica])

    # Seconde colonie d'Alice (dernière du serpent)
    play_first_placements(service, count=11)

    assert service.state.phase.value == "setup-road-2"
    assert replica.last_events[-1]["type"] == "starting_resources"
    assert replica.last_events[-1]["player_id"] == "alice"


def test_hidden_bank_stays_hidden():
    replica = ReplicaView("alice")
    service = started_service([replica], hide_bank_cards=True)

    play_first_placements(service, count=12)

    assert replica.snapshot["bank"] is None
    assert service.state.bank != {}


def test_detach():
    replica = ReplicaView("alice")
    service = GameService(clock=FakeClock())
    unsubscribe = replica.attach(service.event_bus)
    unsubscribe()

    service.start_new_game(["alice", "bob"], GameSettings(seed=1))

    assert replica.needs_resync
    assert replica.snapshot == {}
