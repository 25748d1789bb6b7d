"""Points de victoire, titres et détection de fin de partie.

Les titres (route la plus longue, armée la plus puissante) valent chacun 2
points et ne sont détenus que par un joueur à la fois. En cas d'égalité le
détenteur actuel garde le titre; un nouvel arrivant doit le dépasser.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Set

from opencatan.engine.devcards import victory_cards
from opencatan.engine.rules import (
    ACHIEVEMENT_VP,
    BUILDING_VP,
    LARGEST_ARMY_MIN,
    LONGEST_ROAD_MIN,
)
from opencatan.engine.state import GameState, Player


def longest_road_length(state: GameState, player_id: str) -> int:
    """Longueur du plus long chemin simple (sans réutiliser d'arête) du joueur.

    Un bâtiment adverse sur un sommet coupe la route à cet endroit.
    """
    roads = state.roads_of(player_id)
    if not roads:
        return 0

    edges_at_vertex: Dict[int, List[int]] = defaultdict(list)
    for edge_id in roads:
        for vertex_id in state.board.edges[edge_id].vertices:
            edges_at_vertex[vertex_id].append(edge_id)

    def blocked(vertex_id: int) -> bool:
        building = state.buildings.get(vertex_id)
        return building is not None and building.owner != player_id

    best = 0
    used: Set[int] = set()

    def dfs(vertex_id: int, length: int) -> None:
        nonlocal best
        best = max(best, length)
        if length and blocked(vertex_id):
            return
        for edge_id in edges_at_vertex[vertex_id]:
            if edge_id in used:
                continue
            a, b = state.board.edges[edge_id].vertices
            used.add(edge_id)
            dfs(b if a == vertex_id else a, length + 1)
            used.remove(edge_id)

    for vertex_id in edges_at_vertex:
        dfs(vertex_id, 0)
    return best


def _award(current: str | None, values: Dict[str, int], minimum: int) -> str | None:
    """Détenteur d'un titre après recalcul."""

    best_value = max(values.values(), default=0)
    if best_value < minimum:
        return None
    leaders = [pid for pid, value in values.items() if value == best_value]
    if current in leaders:
        return current
    if len(leaders) == 1:
        return leaders[0]
    return None


def update_longest_road(state: GameState) -> str | None:
    """Recalcule les longueurs de route et le détenteur du titre."""

    lengths = {pid: longest_road_length(state, pid) for pid in state.turn_order}
    for pid, length in lengths.items():
        state.players[pid].longest_road_length = length
    state.longest_road_holder = _award(state.longest_road_holder, lengths, LONGEST_ROAD_MIN)
    refresh_victory_points(state)
    return state.longest_road_holder


def update_largest_army(state: GameState) -> str | None:
    """Recalcule le détenteur de l'armée la plus puissante."""

    sizes = {pid: state.players[pid].army_size for pid in state.turn_order}
    state.largest_army_holder = _award(state.largest_army_holder, sizes, LARGEST_ARMY_MIN)
    refresh_victory_points(state)
    return state.largest_army_holder


def vp_breakdown(state: GameState, player: Player) -> Dict[str, int]:
    """Détail des points d'un joueur.

    Returns:
        settlements, cities, longest_road, largest_army, victory_cards,
        total (cartes cachées incluses) et public (cartes cachées exclues)
    """
    settlements = state.count_built(player.player_id, "settlement")
    cities = state.count_built(player.player_id, "city")
    cards = victory_cards(player)
    breakdown = {
        "settlements": settlements * BUILDING_VP["settlement"],
        "cities": cities * BUILDING_VP["city"],
        "longest_road": ACHIEVEMENT_VP if state.longest_road_holder == player.player_id else 0,
        "largest_army": ACHIEVEMENT_VP if state.largest_army_holder == player.player_id else 0,
        "victory_cards": len(cards),
    }
    hidden = sum(1 for card in cards if not card.revealed)
    breakdown["total"] = sum(breakdown.values())
    breakdown["public"] = breakdown["total"] - hidden
    return breakdown


def total_victory_points(state: GameState, player: Player) -> int:
    return vp_breakdown(state, player)["total"]


def public_victory_points(state: GameState, player: Player) -> int:
    return vp_breakdown(state, player)["public"]


def refresh_victory_points(state: GameState) -> None:
    for player in state.players.values():
        player.victory_points = total_victory_points(state, player)


def check_victory(state: GameState, actor_id: str | None = None) -> str | None:
    """Retourne le vainqueur s'il existe.

    Les cartes cachées comptent pour leur détenteur. Si plusieurs joueurs
    atteignent le seuil en même temps, l'acteur puis le joueur actif ont la
    priorité, puis l'ordre de tour.
    """
    target = state.settings.victory_points
    reached = [
        pid for pid in state.turn_order
        if total_victory_points(state, state.players[pid]) >= target
    ]
    if not reached:
        return None
    for preferred in (actor_id, state.turn.current_player_id):
        if preferred in reached:
            return preferred
    return reached[0]


__all__ = [
    "longest_road_length",
    "update_longest_road",
    "update_largest_army",
    "vp_breakdown",
    "total_victory_points",
    "public_victory_points",
    "refresh_victory_points",
    "check_victory",
]
