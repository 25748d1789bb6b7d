"""Statistiques de partie (dés, production, échanges).

Les calculs sur les séries de lancers passent par numpy: histogramme via
`bincount`, distribution attendue via la convolution de deux dés équilibrés.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable

import numpy as np

from opencatan.engine.scoring import vp_breakdown
from opencatan.engine.state import GameState, Player

DICE_TOTALS = range(2, 13)

_D6 = np.full(6, 1.0 / 6.0)
# Index 0 correspond au total 2
_TWO_D6 = np.convolve(_D6, _D6)


def dice_histogram(rolls: Iterable[int]) -> Dict[int, int]:
    """Nombre d'occurrences de chaque total 2..12."""

    values = np.asarray(list(rolls), dtype=np.int64)
    if values.size and (values.min() < 2 or values.max() > 12):
        raise ValueError("dice totals must be within 2..12")
    counts = np.bincount(values, minlength=13)
    return {total: int(counts[total]) for total in DICE_TOTALS}


def expected_distribution(total_rolls: int) -> Dict[int, float]:
    """Nombre attendu d'occurrences de chaque total pour `total_rolls` lancers."""

    if total_rolls < 0:
        raise ValueError("total_rolls must be >= 0")
    expected = _TWO_D6 * total_rolls
    return {total: float(expected[total - 2]) for total in DICE_TOTALS}


def dice_streaks(rolls: Iterable[int]) -> Dict[str, Any]:
    """Séries remarquables: même total consécutif, plus longue série sans 7, 7 consécutifs."""

    values = np.asarray(list(rolls), dtype=np.int64)
    if values.size == 0:
        return {"longest_same_roll": {"roll": 0, "length": 0}, "longest_without_7": 0, "sevens_in_a_row": 0}

    # Découpage en plages de valeurs identiques
    boundaries = np.flatnonzero(np.diff(values)) + 1
    starts = np.concatenate(([0], boundaries))
    lengths = np.diff(np.concatenate((starts, [values.size])))
    best = int(np.argmax(lengths))

    sevens = values == 7
    return {
        "longest_same_roll": {"roll": int(values[starts[best]]), "length": int(lengths[best])},
        "longest_without_7": _longest_run(~sevens),
        "sevens_in_a_row": _longest_run(sevens),
    }


def _longest_run(mask: np.ndarray) -> int:
    if not mask.any():
        return 0
    padded = np.concatenate(([0], mask.astype(np.int8), [0]))
    edges = np.diff(padded)
    run_starts = np.flatnonzero(edges == 1)
    run_ends = np.flatnonzero(edges == -1)
    return int((run_ends - run_starts).max())


def player_stats(state: GameState, player: Player) -> Dict[str, Any]:
    collected = dict(player.resources_collected)
    return {
        "player_id": player.player_id,
        "resources_collected": collected,
        "total_resources_collected": sum(collected.values()),
        "trades_made": player.trades_made,
        "times_robbed": player.times_robbed,
        "roads_built": state.count_built(player.player_id, "road"),
        "settlements_built": state.count_built(player.player_id, "settlement"),
        "cities_built": state.count_built(player.player_id, "city"),
        "dev_cards_bought": len(player.dev_cards),
        "dev_cards_played": sum(1 for card in player.dev_cards if card.played),
        "knights_played": player.army_size,
        "longest_road_length": player.longest_road_length,
        "victory_points": vp_breakdown(state, player),
    }


def game_stats(state: GameState) -> Dict[str, Any]:
    """Résumé de la partie pour l'écran de fin."""

    histogram = dice_histogram(state.roll_history)
    most_common = max(DICE_TOTALS, key=lambda total: (histogram[total], -total))
    return {
        "total_turns": state.turn.turn_number,
        "dice_rolls": histogram,
        "expected_dice_rolls": expected_distribution(len(state.roll_history)),
        "most_common_roll": {"value": most_common, "count": histogram[most_common]},
        "dice_streaks": dice_streaks(state.roll_history),
        "trades_completed": state.counters["trades_completed"],
        "development_cards_bought": state.counters["dev_cards_bought"],
        "knights_played": state.counters["knights_played"],
        "robber_moves": state.counters["robber_moves"],
        "longest_road_length": max(
            (player.longest_road_length for player in state.players.values()), default=0
        ),
        "players": {pid: player_stats(state, state.players[pid]) for pid in state.turn_order},
    }


__all__ = [
    "DICE_TOTALS",
    "dice_histogram",
    "expected_distribution",
    "dice_streaks",
    "player_stats",
    "game_stats",
]
