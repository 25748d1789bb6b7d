"""Paramètres de partie fournis par le lobby.

`GameSettings` est figé au lancement de la partie: le moteur ne le modifie
jamais. Les valeurs par défaut correspondent au jeu de base à 4 joueurs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from opencatan.engine.rules import DEFAULT_DEV_DECK_COMPOSITION, DEV_CARD_TYPES

GAME_MODES: Tuple[str, ...] = (
    "base",
    "base-5-6",
    "cities-knights",
    "cities-knights-5-6",
    "seafarers",
    "seafarers-5-6",
)


@dataclass(frozen=True)
class GameSettings:
    """Configuration immuable d'une partie.

    Args:
        mode: Mode de jeu (les extensions ne sont que de la configuration)
        victory_points: Seuil de victoire
        turn_timer: Durée d'un tour en secondes (0 = illimité)
        discard_limit: Main maximale avant défausse sur un 7
        friendly_robber: Interdit le voleur chez les joueurs à faible score
        friendly_robber_threshold: Score public protégé (inclus)
        offer_timeout: Durée de vie d'une offre d'échange en secondes
        hide_bank_cards: Masque le contenu de la banque dans les vues joueurs
        seed: Graine du générateur (None = graine aléatoire)
        dev_deck: Composition du paquet de développement
        robber_event_faces: Faces du dé d'évènement déclenchant le voleur
    """

    mode: str = "base"
    victory_points: int = 10
    turn_timer: int = 90
    discard_limit: int = 7
    friendly_robber: bool = False
    friendly_robber_threshold: int = 2
    offer_timeout: float = 30.0
    hide_bank_cards: bool = False
    seed: int | None = None
    dev_deck: Dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_DEV_DECK_COMPOSITION)
    )
    robber_event_faces: Tuple[str, ...] = ("barbarian",)

    def __post_init__(self) -> None:
        if self.mode not in GAME_MODES:
            raise ValueError(f"Unknown game mode: {self.mode!r}")
        if self.victory_points <= 0:
            raise ValueError("victory_points must be positive")
        if self.turn_timer < 0:
            raise ValueError("turn_timer must be >= 0")
        if self.discard_limit < 0:
            raise ValueError("discard_limit must be >= 0")
        if self.offer_timeout <= 0:
            raise ValueError("offer_timeout must be positive")
        for card_type, count in self.dev_deck.items():
            if card_type not in DEV_CARD_TYPES:
                raise ValueError(f"Unknown development card type: {card_type!r}")
            if count < 0:
                raise ValueError(f"Negative count for {card_type}")

    @property
    def uses_event_die(self) -> bool:
        """Vrai si le mode lance le dé d'évènement (Villes & Chevaliers)."""

        return self.mode.startswith("cities-knights")


__all__ = ["GAME_MODES", "GameSettings"]
