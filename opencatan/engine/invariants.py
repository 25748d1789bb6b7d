"""Vérifications de cohérence exécutées après chaque mutation acceptée.

Une violation signifie que l'état n'est plus digne de confiance: le moteur
s'arrête au lieu de continuer sur un état corrompu.
"""

from __future__ import annotations

from typing import List

from opencatan.engine.devcards import cards_in_play
from opencatan.engine.errors import InvariantViolation
from opencatan.engine.phases import Phase
from opencatan.engine.rules import LARGEST_ARMY_MIN, LONGEST_ROAD_MIN, PIECE_LIMITS, RESOURCE_TYPES
from opencatan.engine.scoring import longest_road_length, total_victory_points
from opencatan.engine.state import GameState


def collect_violations(state: GameState) -> List[str]:
    """Liste lisible de tous les invariants rompus (vide si l'état est sain)."""

    problems: List[str] = []

    # Conservation des ressources
    for resource in RESOURCE_TYPES:
        held = sum(player.resources.get(resource, 0) for player in state.players.values())
        if state.bank.get(resource, 0) < 0:
            problems.append(f"bank {resource} is negative")
        if held + state.bank.get(resource, 0) != state.total_supply[resource]:
            problems.append(
                f"{resource}: bank {state.bank.get(resource, 0)} + players {held} "
                f"!= supply {state.total_supply[resource]}"
            )
    for player in state.players.values():
        for resource, amount in player.resources.items():
            if amount < 0:
                problems.append(f"{player.player_id} holds {amount} {resource}")

    # Conservation des pièces (une ville a rendu sa colonie)
    for player in state.players.values():
        for kind, limit in PIECE_LIMITS.items():
            remaining = player.pieces.get(kind, 0)
            built = state.count_built(player.player_id, kind)
            if remaining < 0 or remaining + built != limit:
                problems.append(
                    f"{player.player_id} {kind}: {remaining} left + {built} built != {limit}"
                )

    # Paquet de développement
    if cards_in_play(state) != state.dev_cards_total:
        problems.append("development cards are not conserved")

    # Plateau
    if state.robber_tile_id not in state.board.tiles:
        problems.append(f"robber on unknown tile {state.robber_tile_id}")
    for vertex_id in state.buildings:
        for neighbor in state.board.neighbor_vertices(vertex_id):
            if neighbor in state.buildings:
                problems.append(f"buildings on adjacent vertices {vertex_id}/{neighbor}")
    for edge_id, owner in state.roads.items():
        if edge_id not in state.board.edges or owner not in state.players:
            problems.append(f"invalid road {edge_id} for {owner}")

    # Titres et points
    holder = state.longest_road_holder
    if holder is not None and longest_road_length(state, holder) < LONGEST_ROAD_MIN:
        problems.append(f"longest road holder {holder} is below the minimum")
    holder = state.largest_army_holder
    if holder is not None and state.players[holder].army_size < LARGEST_ARMY_MIN:
        problems.append(f"largest army holder {holder} is below the minimum")
    for player in state.players.values():
        expected = total_victory_points(state, player)
        if player.victory_points != expected:
            problems.append(
                f"{player.player_id} victory points {player.victory_points} != {expected}"
            )

    # Phase
    if state.pending_discards and state.phase != Phase.DISCARD:
        problems.append(f"pending discards outside discard phase ({state.phase.value})")
    if state.phase == Phase.ENDED and state.winner_id is None:
        problems.append("game ended without a winner")

    return problems


def verify(state: GameState) -> None:
    """Lève `InvariantViolation` si un invariant est rompu."""

    problems = collect_violations(state)
    if problems:
        raise InvariantViolation("; ".join(problems))


__all__ = ["collect_violations", "verify"]
