"""Registre des ressources et des constructions.

Toutes les fonctions `check_*` lèvent `ActionRejected` sans rien modifier;
les fonctions `apply_*` valident d'abord puis mutent l'état en une fois, ce
qui garantit qu'une action refusée ne laisse aucune trace.
"""

from __future__ import annotations

from typing import Dict, Mapping

from opencatan.engine.errors import ActionRejected, RejectionReason
from opencatan.engine.rules import BUILDING_TYPES, COSTS, RESOURCE_TYPES
from opencatan.engine.state import Building, GameState, Player


def validate_resource_map(resources: Mapping[str, int], *, allow_empty: bool = False) -> None:
    """Vérifie la forme d'un dictionnaire de ressources (types connus, quantités >= 0)."""

    if not isinstance(resources, Mapping):
        raise ActionRejected(RejectionReason.INVALID_ACTION, "resources must be a mapping")
    for resource, amount in resources.items():
        if resource not in RESOURCE_TYPES:
            raise ActionRejected(RejectionReason.INVALID_ACTION, f"unknown resource {resource!r}")
        if not isinstance(amount, int) or amount < 0:
            raise ActionRejected(RejectionReason.INVALID_ACTION, f"invalid amount for {resource}")
    if not allow_empty and sum(resources.values()) <= 0:
        raise ActionRejected(RejectionReason.INVALID_ACTION, "at least one resource is required")


def has_resources(holdings: Mapping[str, int], amounts: Mapping[str, int]) -> bool:
    return all(holdings.get(resource, 0) >= amount for resource, amount in amounts.items())


def can_afford(player: Player, building_type: str) -> bool:
    """Vrai si les ressources du joueur couvrent le coût fixe du type donné."""

    return has_resources(player.resources, COSTS[building_type])


def has_piece_available(player: Player, building_type: str) -> bool:
    """Vrai si le joueur a encore une pièce du type donné en réserve."""

    return player.pieces.get(building_type, 0) > 0


def pay_to_bank(state: GameState, player: Player, resources: Mapping[str, int]) -> None:
    """Transfère des ressources du joueur vers la banque."""

    if not has_resources(player.resources, resources):
        raise ActionRejected(RejectionReason.INSUFFICIENT_RESOURCES)
    for resource, amount in resources.items():
        if amount == 0:
            continue
        player.resources[resource] -= amount
        state.bank[resource] += amount


def take_from_bank(state: GameState, player: Player, resources: Mapping[str, int]) -> None:
    """Transfère des ressources de la banque vers le joueur."""

    if not has_resources(state.bank, resources):
        raise ActionRejected(RejectionReason.BANK_INSUFFICIENT)
    for resource, amount in resources.items():
        if amount == 0:
            continue
        state.bank[resource] -= amount
        player.resources[resource] += amount


def move_between_players(source: Player, target: Player, resources: Mapping[str, int]) -> None:
    """Transfère des ressources d'un joueur à un autre."""

    if not has_resources(source.resources, resources):
        raise ActionRejected(RejectionReason.INSUFFICIENT_RESOURCES)
    for resource, amount in resources.items():
        if amount == 0:
            continue
        source.resources[resource] -= amount
        target.resources[resource] += amount


def transfer(
    state: GameState,
    source: Player | None,
    target: Player | None,
    resources: Mapping[str, int],
) -> None:
    """Transfert générique; `None` désigne la banque."""

    if source is None and target is None:
        raise ValueError("transfer needs at least one player")
    if source is None:
        take_from_bank(state, target, resources)
    elif target is None:
        pay_to_bank(state, source, resources)
    else:
        move_between_players(source, target, resources)


# -- Production --


def production_claims(state: GameState, total: int) -> Dict[str, Dict[str, int]]:
    """Calcule les droits de production {ressource: {joueur: quantité}} pour un lancer.

    La tuile du voleur ne produit pas.
    """
    claims: Dict[str, Dict[str, int]] = {}
    for tile in state.board.producing_tiles(total):
        if tile.tile_id == state.robber_tile_id:
            continue
        for vertex_id in tile.vertices:
            building = state.buildings.get(vertex_id)
            if building is None:
                continue
            amount = 2 if building.kind == "city" else 1
            per_player = claims.setdefault(tile.resource, {})
            per_player[building.owner] = per_player.get(building.owner, 0) + amount
    return claims


def distribute_production(state: GameState, total: int) -> Dict[str, Dict[str, int]]:
    """Distribue la production d'un lancer depuis la banque.

    Pénurie: si la banque ne couvre pas toutes les demandes d'une ressource et
    que plusieurs joueurs la réclament, personne ne la reçoit; un demandeur
    unique reçoit ce qui reste.

    Returns:
        Gains effectifs {joueur: {ressource: quantité}}
    """
    gains: Dict[str, Dict[str, int]] = {}
    for resource, per_player in production_claims(state, total).items():
        demand = sum(per_player.values())
        available = state.bank[resource]
        if demand > available:
            if len(per_player) > 1:
                continue
            per_player = {owner: available for owner in per_player}
        for owner, amount in per_player.items():
            if amount <= 0:
                continue
            player = state.players[owner]
            take_from_bank(state, player, {resource: amount})
            player.resources_collected[resource] += amount
            gains.setdefault(owner, {})[resource] = amount
    return gains


def grant_starting_resources(state: GameState, player: Player, vertex_id: int) -> Dict[str, int]:
    """Une ressource par tuile productrice adjacente (colonie du second round).

    La banque n'est jamais à découvert: une ressource épuisée est ignorée.
    """
    granted: Dict[str, int] = {}
    for tile_id in state.board.vertices[vertex_id].adjacent_tiles:
        resource = state.board.tiles[tile_id].resource
        if resource is None or state.bank[resource] <= 0:
            continue
        take_from_bank(state, player, {resource: 1})
        player.resources_collected[resource] += 1
        granted[resource] = granted.get(resource, 0) + 1
    return granted


# -- Règles de placement --


def vertex_respects_distance_rule(state: GameState, vertex_id: int) -> bool:
    """Aucun bâtiment sur le sommet ni sur un sommet voisin."""

    if vertex_id in state.buildings:
        return False
    return all(neighbor not in state.buildings for neighbor in state.board.neighbor_vertices(vertex_id))


def vertex_touches_player_road(state: GameState, player_id: str, vertex_id: int) -> bool:
    vertex = state.board.vertices[vertex_id]
    return any(state.roads.get(edge_id) == player_id for edge_id in vertex.edges)


def edge_connected_to_player(state: GameState, player_id: str, edge_id: int) -> bool:
    """Vérifie qu'une arête prolonge le réseau du joueur.

    Une route adverse ne bloque pas, mais un bâtiment adverse sur le sommet
    commun coupe la continuité.
    """
    for vertex_id in state.board.edges[edge_id].vertices:
        building = state.buildings.get(vertex_id)
        if building is not None:
            if building.owner == player_id:
                return True
            continue
        for other in state.board.edges_sharing_vertex(edge_id, vertex_id):
            if state.roads.get(other) == player_id:
                return True
    return False


def check_placement(
    state: GameState,
    player_id: str,
    building_type: str,
    location: int,
    *,
    setup: bool = False,
    anchor_vertex: int | None = None,
) -> None:
    """Valide l'emplacement d'une construction.

    Args:
        setup: Placement initial (colonie sans route, route collée à `anchor_vertex`)
        anchor_vertex: Colonie posée juste avant pendant le setup

    Raises:
        ActionRejected: ILLEGAL_PLACEMENT
    """
    board = state.board
    if building_type == "settlement":
        if location not in board.vertices:
            raise ActionRejected(RejectionReason.ILLEGAL_PLACEMENT, "unknown vertex")
        if not vertex_respects_distance_rule(state, location):
            raise ActionRejected(RejectionReason.ILLEGAL_PLACEMENT, "distance rule")
        if not setup and not vertex_touches_player_road(state, player_id, location):
            raise ActionRejected(RejectionReason.ILLEGAL_PLACEMENT, "not connected to own road")
        return

    if building_type == "city":
        building = state.buildings.get(location)
        if building is None or building.owner != player_id or building.kind != "settlement":
            raise ActionRejected(RejectionReason.ILLEGAL_PLACEMENT, "city requires own settlement")
        return

    if building_type == "road":
        if location not in board.edges:
            raise ActionRejected(RejectionReason.ILLEGAL_PLACEMENT, "unknown edge")
        if location in state.roads:
            raise ActionRejected(RejectionReason.ILLEGAL_PLACEMENT, "edge occupied")
        if setup:
            if anchor_vertex is None or anchor_vertex not in board.edges[location].vertices:
                raise ActionRejected(
                    RejectionReason.ILLEGAL_PLACEMENT, "setup road must touch the new settlement"
                )
            return
        if not edge_connected_to_player(state, player_id, location):
            raise ActionRejected(RejectionReason.ILLEGAL_PLACEMENT, "not connected to own network")
        return

    raise ActionRejected(RejectionReason.INVALID_ACTION, f"unknown building type {building_type!r}")


def check_build(
    state: GameState,
    player: Player,
    building_type: str,
    location: int,
    *,
    free: bool = False,
    setup: bool = False,
    anchor_vertex: int | None = None,
) -> None:
    """Valide une construction complète: pièces, ressources puis emplacement."""

    if building_type not in BUILDING_TYPES:
        raise ActionRejected(RejectionReason.INVALID_ACTION, f"unknown building type {building_type!r}")
    if not has_piece_available(player, building_type):
        raise ActionRejected(RejectionReason.NO_PIECES_REMAINING, building_type)
    if not free and not can_afford(player, building_type):
        raise ActionRejected(RejectionReason.INSUFFICIENT_RESOURCES, building_type)
    check_placement(
        state,
        player.player_id,
        building_type,
        location,
        setup=setup,
        anchor_vertex=anchor_vertex,
    )


def apply_build(
    state: GameState,
    player: Player,
    building_type: str,
    location: int,
    *,
    free: bool = False,
    setup: bool = False,
    anchor_vertex: int | None = None,
) -> None:
    """Valide puis applique une construction de façon atomique.

    Le coût est versé à la banque, le compteur de pièces décrémenté et la
    structure ajoutée au plateau. Une ville rend la pièce de colonie.
    """
    check_build(
        state,
        player,
        building_type,
        location,
        free=free,
        setup=setup,
        anchor_vertex=anchor_vertex,
    )

    if not free:
        pay_to_bank(state, player, COSTS[building_type])

    player.pieces[building_type] -= 1
    if building_type == "road":
        state.roads[location] = player.player_id
    elif building_type == "settlement":
        state.buildings[location] = Building(owner=player.player_id, kind="settlement")
    else:
        player.pieces["settlement"] += 1
        state.buildings[location] = Building(owner=player.player_id, kind="city")


def legal_road_edges(state: GameState, player_id: str) -> list[int]:
    """Arêtes libres où le joueur peut prolonger son réseau."""

    return [
        edge_id
        for edge_id in state.board.edges
        if edge_id not in state.roads and edge_connected_to_player(state, player_id, edge_id)
    ]


def resource_totals(state: GameState) -> Dict[str, int]:
    """Banque + mains de tous les joueurs, par ressource."""

    totals = dict(state.bank)
    for player in state.players.values():
        for resource, amount in player.resources.items():
            totals[resource] = totals.get(resource, 0) + amount
    return totals


__all__ = [
    "validate_resource_map",
    "has_resources",
    "can_afford",
    "has_piece_available",
    "pay_to_bank",
    "take_from_bank",
    "move_between_players",
    "transfer",
    "production_claims",
    "distribute_production",
    "grant_starting_resources",
    "vertex_respects_distance_rule",
    "vertex_touches_player_road",
    "edge_connected_to_player",
    "check_placement",
    "check_build",
    "apply_build",
    "legal_road_edges",
    "resource_totals",
]
