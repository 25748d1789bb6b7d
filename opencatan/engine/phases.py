"""Variante fermée des phases et table de transitions.

Toute transition effectuée par le moteur est vérifiée contre `TRANSITIONS`;
une transition absente de la table est un invariant rompu.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet


class Phase(Enum):
    """Phase courante de la partie."""

    SETUP_SETTLEMENT_1 = "setup-settlement-1"
    SETUP_ROAD_1 = "setup-road-1"
    SETUP_SETTLEMENT_2 = "setup-settlement-2"
    SETUP_ROAD_2 = "setup-road-2"
    ROLL = "roll"
    MAIN = "main"
    DISCARD = "discard"
    ROBBER_MOVE = "robber-move"
    ROBBER_STEAL = "robber-steal"
    ROAD_BUILDING = "road-building"
    YEAR_OF_PLENTY = "year-of-plenty"
    MONOPOLY = "monopoly"
    ENDED = "ended"

    @property
    def is_setup(self) -> bool:
        return self in SETUP_PHASES


SETUP_PHASES: FrozenSet[Phase] = frozenset(
    {
        Phase.SETUP_SETTLEMENT_1,
        Phase.SETUP_ROAD_1,
        Phase.SETUP_SETTLEMENT_2,
        Phase.SETUP_ROAD_2,
    }
)

# Transitions valides. Chaque phase peut aussi rester sur place et toute phase
# non terminale peut basculer vers ENDED (victoire).
TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.SETUP_SETTLEMENT_1: frozenset({Phase.SETUP_ROAD_1}),
    Phase.SETUP_ROAD_1: frozenset({Phase.SETUP_SETTLEMENT_1, Phase.SETUP_SETTLEMENT_2}),
    Phase.SETUP_SETTLEMENT_2: frozenset({Phase.SETUP_ROAD_2}),
    Phase.SETUP_ROAD_2: frozenset({Phase.SETUP_SETTLEMENT_2, Phase.ROLL}),
    Phase.ROLL: frozenset({Phase.MAIN, Phase.DISCARD, Phase.ROBBER_MOVE}),
    Phase.MAIN: frozenset(
        {
            Phase.ROLL,
            Phase.ROBBER_MOVE,
            Phase.ROAD_BUILDING,
            Phase.YEAR_OF_PLENTY,
            Phase.MONOPOLY,
        }
    ),
    Phase.DISCARD: frozenset({Phase.ROBBER_MOVE}),
    Phase.ROBBER_MOVE: frozenset({Phase.ROBBER_STEAL, Phase.MAIN}),
    Phase.ROBBER_STEAL: frozenset({Phase.MAIN}),
    Phase.ROAD_BUILDING: frozenset({Phase.MAIN}),
    Phase.YEAR_OF_PLENTY: frozenset({Phase.MAIN}),
    Phase.MONOPOLY: frozenset({Phase.MAIN}),
    Phase.ENDED: frozenset(),
}


def can_transition(source: Phase, target: Phase) -> bool:
    """Indique si la transition `source -> target` est autorisée."""

    if source == target:
        return source != Phase.ENDED
    if target == Phase.ENDED:
        return source != Phase.ENDED
    return target in TRANSITIONS.get(source, frozenset())


__all__ = [
    "Phase",
    "SETUP_PHASES",
    "TRANSITIONS",
    "can_transition",
]
