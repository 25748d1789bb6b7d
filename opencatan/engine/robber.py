"""Voleur et défausse.

Un 7 (ou une face d'évènement configurée) déclenche l'évènement voleur:
chaque joueur dont la main dépasse strictement la limite doit défausser la
moitié (arrondie à l'inférieur) de ses cartes, dans n'importe quel ordre,
puis le joueur actif déplace le voleur et peut voler une carte au hasard.
"""

from __future__ import annotations

import random
from typing import Dict, List, Mapping

from opencatan.engine.errors import ActionRejected, RejectionReason
from opencatan.engine.ledger import has_resources, validate_resource_map
from opencatan.engine.rules import RESOURCE_TYPES
from opencatan.engine.scoring import public_victory_points
from opencatan.engine.state import GameState, Player


def discard_requirements(state: GameState) -> Dict[str, int]:
    """Joueurs devant défausser et nombre de cartes exigé.

    Returns:
        {player_id: floor(main / 2)} pour les mains > `discard_limit`
    """
    limit = state.settings.discard_limit
    return {
        player.player_id: player.hand_size() // 2
        for player in state.iter_players()
        if player.hand_size() > limit
    }


def check_discard(player: Player, required: int, resources: Mapping[str, int]) -> None:
    """Vérifie une défausse: quantité exacte et cartes réellement détenues."""

    validate_resource_map(resources, allow_empty=True)
    if sum(resources.values()) != required:
        raise ActionRejected(
            RejectionReason.INVALID_ACTION,
            f"{player.player_id} must discard exactly {required} cards",
        )
    if not has_resources(player.resources, resources):
        raise ActionRejected(RejectionReason.INSUFFICIENT_RESOURCES, "discard")


def auto_discard(rng: random.Random, player: Player, amount: int) -> Dict[str, int]:
    """Choisit `amount` cartes au hasard dans la main (défausse forcée)."""

    remaining = dict(player.resources)
    chosen: Dict[str, int] = {}
    for _ in range(min(amount, player.hand_size())):
        resource = _pick_card(rng, remaining)
        remaining[resource] -= 1
        chosen[resource] = chosen.get(resource, 0) + 1
    return chosen


def _pick_card(rng: random.Random, holdings: Mapping[str, int]) -> str:
    # Tirage uniforme sur les cartes physiques
    total = sum(holdings.values())
    if total <= 0:
        raise ValueError("Cannot pick from an empty hand")
    index = rng.randrange(total)
    for resource in RESOURCE_TYPES:
        count = holdings.get(resource, 0)
        if index < count:
            return resource
        index -= count
    raise AssertionError("unreachable")


def steal_random(rng: random.Random, victim: Player) -> str:
    """Ressource volée: une carte uniforme parmi les cartes du joueur volé."""

    return _pick_card(rng, victim.resources)


def players_on_tile(state: GameState, tile_id: int) -> List[str]:
    """Propriétaires de bâtiments autour d'une tuile, dans l'ordre de tour."""

    owners = {
        state.buildings[vertex_id].owner
        for vertex_id in state.board.tiles[tile_id].vertices
        if vertex_id in state.buildings
    }
    return [pid for pid in state.turn_order if pid in owners]


def _is_protected(state: GameState, tile_id: int, actor_id: str) -> bool:
    others = [pid for pid in players_on_tile(state, tile_id) if pid != actor_id]
    if not others:
        return False
    threshold = state.settings.friendly_robber_threshold
    return all(public_victory_points(state, state.players[pid]) <= threshold for pid in others)


def valid_robber_tiles(state: GameState, actor_id: str) -> List[int]:
    """Tuiles où le voleur peut être déplacé.

    Toute tuile sauf la tuile actuelle. Avec le voleur amical, les tuiles dont
    tous les adversaires adjacents ont un score public sous le seuil sont
    exclues; si plus rien n'est possible on revient à l'ensemble complet.
    """
    candidates = [tid for tid in sorted(state.board.tiles) if tid != state.robber_tile_id]
    if not state.settings.friendly_robber:
        return candidates
    friendly = [tid for tid in candidates if not _is_protected(state, tid, actor_id)]
    return friendly or candidates


def check_robber_move(state: GameState, actor_id: str, tile_id: int) -> None:
    if tile_id not in state.board.tiles:
        raise ActionRejected(RejectionReason.ILLEGAL_PLACEMENT, "unknown tile")
    if tile_id == state.robber_tile_id:
        raise ActionRejected(RejectionReason.ILLEGAL_PLACEMENT, "robber must move")
    if tile_id not in valid_robber_tiles(state, actor_id):
        raise ActionRejected(RejectionReason.ILLEGAL_PLACEMENT, "tile protected by friendly robber")


def steal_targets(state: GameState, tile_id: int, actor_id: str) -> List[str]:
    """Adversaires avec un bâtiment sur la tuile et au moins une carte."""

    return [
        pid
        for pid in players_on_tile(state, tile_id)
        if pid != actor_id and state.players[pid].hand_size() > 0
    ]


__all__ = [
    "discard_requirements",
    "check_discard",
    "auto_discard",
    "steal_random",
    "players_on_tile",
    "valid_robber_tiles",
    "check_robber_move",
    "steal_targets",
]
