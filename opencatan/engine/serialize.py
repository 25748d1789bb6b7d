"""Sérialisation de GameState.

- Snapshot JSON-friendly complet (vue hôte, non expurgée)
- Vue par joueur: cartes de développement et points cachés des adversaires
  masqués, contenu de la banque masqué si la partie l'exige
- Deltas: différence entre deux snapshots au niveau des clés de premier niveau
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from opencatan.engine.scoring import vp_breakdown
from opencatan.engine.state import DevCard, GameState, Player, TradeOffer

SCHEMA_VERSION = "1.0.0"

# Clé du delta portant les évènements ponctuels (lancer, production, résolution d'offre)
EVENTS_KEY = "events"


def state_to_snapshot(state: GameState) -> Dict[str, Any]:
    """Convertit un GameState en snapshot JSON-friendly (vue hôte)."""

    turn = state.turn
    return {
        "schema_version": SCHEMA_VERSION,
        "version": state.version,
        "settings": _serialize_settings(state),
        "board": _serialize_board(state),
        "phase": turn.phase.value,
        "current_player_id": turn.current_player_id,
        "turn_number": turn.turn_number,
        "setup_index": turn.setup_index,
        "dev_card_played": turn.dev_card_played,
        "road_building_remaining": turn.road_building_remaining,
        "last_roll": _serialize_roll(state),
        "turn_order": list(state.turn_order),
        "players": {pid: _serialize_player(state, state.players[pid]) for pid in state.turn_order},
        "bank": dict(state.bank),
        "dev_deck_size": len(state.dev_deck),
        "robber_tile_id": state.robber_tile_id,
        "pirate_tile_id": state.pirate_tile_id,
        "buildings": {
            str(vid): {"owner": b.owner, "kind": b.kind} for vid, b in sorted(state.buildings.items())
        },
        "roads": {str(eid): owner for eid, owner in sorted(state.roads.items())},
        "longest_road_holder": state.longest_road_holder,
        "largest_army_holder": state.largest_army_holder,
        "pending_discards": dict(state.pending_discards),
        "offers": {oid: serialize_offer(offer) for oid, offer in state.offers.items()},
        "barbarian_position": state.barbarian_position,
        "winner_id": state.winner_id,
    }


def snapshot_for(state: GameState, viewer_id: str | None) -> Dict[str, Any]:
    """Vue expurgée pour un joueur (None = observateur sans main)."""

    snapshot = state_to_snapshot(state)
    return redact(snapshot, viewer_id, hide_bank=state.settings.hide_bank_cards)


def redact(
    snapshot: Mapping[str, Any], viewer_id: str | None, *, hide_bank: bool = False
) -> Dict[str, Any]:
    """Expurge un snapshot ou un delta pour `viewer_id`.

    Les cartes point de victoire révélées en fin de partie restent visibles.
    """
    redacted = dict(snapshot)
    if "players" in redacted:
        redacted["players"] = {
            pid: data if pid == viewer_id else _redact_player(data)
            for pid, data in redacted["players"].items()
        }
    if hide_bank and "bank" in redacted:
        redacted["bank"] = None
    return redacted


def _redact_player(data: Mapping[str, Any]) -> Dict[str, Any]:
    hidden = dict(data)
    cards = data.get("dev_cards", [])
    hidden["dev_cards"] = [
        card for card in cards if card["played"] or card["revealed"]
    ]
    hidden["dev_card_count"] = sum(1 for card in cards if not card["played"])
    hidden["victory_points"] = data["public_victory_points"]
    hidden.pop("resources", None)
    return hidden


def diff_snapshots(before: Mapping[str, Any], after: Mapping[str, Any]) -> Dict[str, Any]:
    """Clés de premier niveau modifiées (une clé supprimée vaut None)."""

    delta: Dict[str, Any] = {}
    for key, value in after.items():
        if before.get(key) != value:
            delta[key] = value
    for key in before:
        if key not in after:
            delta[key] = None
    return delta


def apply_delta(snapshot: Mapping[str, Any], delta: Mapping[str, Any]) -> Dict[str, Any]:
    """Applique un delta produit par `diff_snapshots` (les évènements sont ignorés)."""

    updated = dict(snapshot)
    for key, value in delta.items():
        if key == EVENTS_KEY:
            continue
        updated[key] = value
    return updated


def serialize_offer(offer: TradeOffer) -> Dict[str, Any]:
    return {
        "offer_id": offer.offer_id,
        "from_player_id": offer.from_player_id,
        "to_player_id": offer.to_player_id,
        "offering": dict(offer.offering),
        "requesting": dict(offer.requesting),
        "created_at": offer.created_at,
        "timeout": offer.timeout,
        "status": offer.status,
        "parent_offer_id": offer.parent_offer_id,
        "responses": dict(offer.responses),
    }


def _serialize_player(state: GameState, player: Player) -> Dict[str, Any]:
    breakdown = vp_breakdown(state, player)
    return {
        "player_id": player.player_id,
        "name": player.name,
        "color": player.color,
        "connected": player.connected,
        "resources": dict(player.resources),
        "hand_size": player.hand_size(),
        "pieces": dict(player.pieces),
        "dev_cards": [_serialize_card(card) for card in player.dev_cards],
        "army_size": player.army_size,
        "longest_road_length": player.longest_road_length,
        "victory_points": breakdown["total"],
        "public_victory_points": breakdown["public"],
        "trades_made": player.trades_made,
        "times_robbed": player.times_robbed,
    }


def _serialize_card(card: DevCard) -> Dict[str, Any]:
    return {
        "card_id": card.card_id,
        "card_type": card.card_type,
        "purchased_turn": card.purchased_turn,
        "played": card.played,
        "revealed": card.revealed,
    }


def _serialize_roll(state: GameState) -> Dict[str, Any] | None:
    roll = state.turn.last_roll
    if roll is None:
        return None
    return {"dice": [roll.die1, roll.die2], "total": roll.total, "event": roll.event}


def _serialize_settings(state: GameState) -> Dict[str, Any]:
    settings = state.settings
    return {
        "mode": settings.mode,
        "victory_points": settings.victory_points,
        "turn_timer": settings.turn_timer,
        "discard_limit": settings.discard_limit,
        "friendly_robber": settings.friendly_robber,
        "friendly_robber_threshold": settings.friendly_robber_threshold,
        "offer_timeout": settings.offer_timeout,
        "hide_bank_cards": settings.hide_bank_cards,
    }


def _serialize_board(state: GameState) -> Dict[str, List[Dict[str, Any]]]:
    board = state.board
    return {
        "tiles": [
            {"tile_id": tile.tile_id, "resource": tile.resource, "number": tile.number}
            for tile in sorted(board.tiles.values(), key=lambda t: t.tile_id)
        ],
        "ports": [
            {"port_id": port.port_id, "kind": port.kind, "vertices": list(port.vertices)}
            for port in board.ports
        ],
    }


__all__ = [
    "SCHEMA_VERSION",
    "EVENTS_KEY",
    "state_to_snapshot",
    "snapshot_for",
    "redact",
    "diff_snapshots",
    "apply_delta",
    "serialize_offer",
]
