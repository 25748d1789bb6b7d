"""Règles et constantes du jeu de base.

Ce module expose les constantes fixes du règlement:
- coûts de construction `COSTS`
- inventaires de pièces par joueur `PIECE_LIMITS`
- réserve de la banque et composition du paquet de développement
- seuils des titres (route la plus longue, armée la plus puissante)

Les valeurs configurables par le lobby vivent dans `opencatan.engine.settings`.
"""

from typing import Dict, Tuple

RESOURCE_TYPES: Tuple[str, ...] = ("BRICK", "LUMBER", "WOOL", "GRAIN", "ORE")

DEV_CARD_TYPES: Tuple[str, ...] = (
    "KNIGHT",
    "ROAD_BUILDING",
    "YEAR_OF_PLENTY",
    "MONOPOLY",
    "VICTORY_POINT",
)

BUILDING_TYPES: Tuple[str, ...] = ("road", "settlement", "city")

# Coûts de construction (contrat: mapping str -> dict[str, int])
COSTS: Dict[str, Dict[str, int]] = {
    "road": {"BRICK": 1, "LUMBER": 1},
    "settlement": {"BRICK": 1, "LUMBER": 1, "WOOL": 1, "GRAIN": 1},
    "city": {"GRAIN": 2, "ORE": 3},
    "development": {"WOOL": 1, "GRAIN": 1, "ORE": 1},
}

# Limites de pièces par joueur
PIECE_LIMITS: Dict[str, int] = {
    "road": 15,
    "settlement": 5,
    "city": 4,
}

BANK_STARTING_RESOURCES: Dict[str, int] = {resource: 19 for resource in RESOURCE_TYPES}

DEFAULT_DEV_DECK_COMPOSITION: Dict[str, int] = {
    "KNIGHT": 14,
    "VICTORY_POINT": 5,
    "ROAD_BUILDING": 2,
    "YEAR_OF_PLENTY": 2,
    "MONOPOLY": 2,
}

BUILDING_VP: Dict[str, int] = {"settlement": 1, "city": 2}
ACHIEVEMENT_VP: int = 2

LONGEST_ROAD_MIN: int = 5
LARGEST_ARMY_MIN: int = 3

ROBBER_ROLL: int = 7
ROAD_BUILDING_ROADS: int = 2
YEAR_OF_PLENTY_PICKS: int = 2

# Faces du dé d'évènement (Villes & Chevaliers): 3 faces barbare sur 6
EVENT_DIE_FACES: Tuple[str, ...] = (
    "barbarian",
    "barbarian",
    "barbarian",
    "trade",
    "politics",
    "science",
)

# Longueur de la piste des barbares (Villes & Chevaliers)
BARBARIAN_TRACK_LENGTH: int = 7

__all__ = [
    "RESOURCE_TYPES",
    "DEV_CARD_TYPES",
    "BUILDING_TYPES",
    "COSTS",
    "PIECE_LIMITS",
    "BANK_STARTING_RESOURCES",
    "DEFAULT_DEV_DECK_COMPOSITION",
    "BUILDING_VP",
    "ACHIEVEMENT_VP",
    "LONGEST_ROAD_MIN",
    "LARGEST_ARMY_MIN",
    "ROBBER_ROLL",
    "ROAD_BUILDING_ROADS",
    "YEAR_OF_PLENTY_PICKS",
    "EVENT_DIE_FACES",
    "BARBARIAN_TRACK_LENGTH",
]
