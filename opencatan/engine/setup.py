"""Ordre de tour et séquenceur du setup (ordre serpent).

Round 1 dans l'ordre de tour, round 2 en ordre inverse: pour [A, B, C, D]
l'ordre des placements est A, B, C, D, D, C, B, A. Chaque joueur pose une
colonie puis une route par round, soit deux placements par joueur et par round.
"""

from __future__ import annotations

from typing import List, Sequence

from opencatan.engine.phases import Phase


def snake_order(turn_order: Sequence[str]) -> List[str]:
    """Retourne l'ordre serpent des joueurs pour les deux rounds."""

    forward = list(turn_order)
    return forward + forward[::-1]


def next_player(turn_order: Sequence[str], player_id: str) -> str:
    """Joueur suivant dans l'ordre cyclique."""

    index = list(turn_order).index(player_id)
    return turn_order[(index + 1) % len(turn_order)]


class SetupSequencer:
    """Position courante dans la séquence de setup.

    `placement_index` compte les placements (colonie puis route) depuis 0; il
    y a `2 * len(turn_order)` placements par round.
    """

    def __init__(self, turn_order: Sequence[str], placement_index: int = 0) -> None:
        if not turn_order:
            raise ValueError("turn_order must not be empty")
        self._turn_order = list(turn_order)
        self._order = snake_order(turn_order)
        self._index = placement_index

    @property
    def order(self) -> List[str]:
        return list(self._order)

    @property
    def placement_index(self) -> int:
        return self._index

    @property
    def total_placements(self) -> int:
        return 2 * len(self._order)

    @property
    def is_complete(self) -> bool:
        return self._index >= self.total_placements

    @property
    def round(self) -> int:
        """Round actif (1 ou 2)."""

        return 1 if self._index < len(self._turn_order) * 2 else 2

    @property
    def expects(self) -> str:
        """Type de pièce attendu: "settlement" ou "road"."""

        return "settlement" if self._index % 2 == 0 else "road"

    @property
    def current_player(self) -> str:
        if self.is_complete:
            raise RuntimeError("Setup is already complete")
        return self._order[self._index // 2]

    @property
    def phase(self) -> Phase:
        """Phase correspondant à la position courante (ROLL une fois terminé)."""

        if self.is_complete:
            return Phase.ROLL
        if self.round == 1:
            return Phase.SETUP_SETTLEMENT_1 if self.expects == "settlement" else Phase.SETUP_ROAD_1
        return Phase.SETUP_SETTLEMENT_2 if self.expects == "settlement" else Phase.SETUP_ROAD_2

    def advance(self) -> None:
        if self.is_complete:
            raise RuntimeError("Setup is already complete")
        self._index += 1


__all__ = ["snake_order", "next_player", "SetupSequencer"]
