"""Actions du jeu.

Chaque action est une dataclass figée transportée telle quelle depuis la
couche transport. Le joueur qui soumet l'action est fourni séparément à
`GameEngine.submit_action()`; les actions synthétiques (minuteurs, hôte)
passent par `GameEngine.submit_system_action()`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Dict


@dataclass(frozen=True)
class Action:
    """Action de base."""

    synthetic: ClassVar[bool] = False


@dataclass(frozen=True)
class PlaceSettlement(Action):
    """Place une colonie sur un sommet (gratuite pendant le setup).

    Args:
        vertex_id: ID du sommet
    """

    vertex_id: int


@dataclass(frozen=True)
class PlaceRoad(Action):
    """Place une route sur une arête (gratuite pendant le setup et Construction de routes).

    Args:
        edge_id: ID de l'arête
    """

    edge_id: int


@dataclass(frozen=True)
class BuildCity(Action):
    """Améliore une colonie en ville.

    Args:
        vertex_id: ID du sommet avec la colonie à améliorer
    """

    vertex_id: int


@dataclass(frozen=True)
class RollDice(Action):
    """Lance les dés.

    Args:
        forced_value: Valeur forcée pour les tests (refusée sauf si le moteur l'autorise)
        forced_event: Face forcée du dé d'évènement (Villes & Chevaliers)
    """

    forced_value: tuple[int, int] | None = None
    forced_event: str | None = None


@dataclass(frozen=True)
class EndTurn(Action):
    """Termine le tour du joueur actuel."""

    pass


@dataclass(frozen=True)
class DiscardResources(Action):
    """Défausse des ressources lors d'un évènement voleur.

    Args:
        resources: Quantités à défausser par ressource.
    """

    resources: Dict[str, int]


@dataclass(frozen=True)
class MoveRobber(Action):
    """Déplace le voleur.

    Args:
        tile_id: ID de la tuile cible
    """

    tile_id: int


@dataclass(frozen=True)
class StealResource(Action):
    """Vole une carte au hasard à un joueur adjacent au voleur.

    Args:
        victim_id: ID du joueur volé
    """

    victim_id: str


@dataclass(frozen=True)
class BuyDevelopment(Action):
    """Achète une carte de développement."""

    pass


@dataclass(frozen=True)
class PlayDevelopment(Action):
    """Joue une carte de développement du type donné.

    Args:
        card_type: KNIGHT, ROAD_BUILDING, YEAR_OF_PLENTY ou MONOPOLY
    """

    card_type: str


@dataclass(frozen=True)
class SelectYearOfPlenty(Action):
    """Choisit les ressources prises à la banque (Invention)."""

    resources: Dict[str, int]


@dataclass(frozen=True)
class SelectMonopoly(Action):
    """Choisit la ressource monopolisée."""

    resource: str


@dataclass(frozen=True)
class TradeBank(Action):
    """Échange avec la banque ou un port.

    Args:
        give: Ressource donnée (un seul type)
        receive: Ressources reçues
    """

    give: Dict[str, int]
    receive: Dict[str, int]


@dataclass(frozen=True)
class OfferTrade(Action):
    """Propose un échange aux autres joueurs.

    Args:
        offering: Ressources proposées
        requesting: Ressources demandées
        to_player_id: Destinataire unique (None = tous les joueurs)
    """

    offering: Dict[str, int]
    requesting: Dict[str, int]
    to_player_id: str | None = None


@dataclass(frozen=True)
class AcceptOffer(Action):
    offer_id: str


@dataclass(frozen=True)
class DeclineOffer(Action):
    offer_id: str


@dataclass(frozen=True)
class CounterOffer(Action):
    """Contre-proposition adressée à l'auteur de l'offre d'origine.

    `offering`/`requesting` sont exprimés du point de vue du contre-proposant.
    """

    offer_id: str
    offering: Dict[str, int]
    requesting: Dict[str, int]


@dataclass(frozen=True)
class WithdrawOffer(Action):
    offer_id: str


# -- Actions synthétiques (minuteurs et hôte) --


@dataclass(frozen=True)
class ForceEndTurn(Action):
    """Expiration du minuteur de tour: résout les étapes obligatoires puis passe la main."""

    synthetic: ClassVar[bool] = True


@dataclass(frozen=True)
class ForceDiscard(Action):
    """Défausse automatique pour un joueur qui n'a pas défaussé à temps."""

    synthetic: ClassVar[bool] = True

    player_id: str


@dataclass(frozen=True)
class ExpireOffer(Action):
    """Expiration d'une offre d'échange."""

    synthetic: ClassVar[bool] = True

    offer_id: str


@dataclass(frozen=True)
class SetConnection(Action):
    """Mise à jour du statut de connexion remontée par la couche transport."""

    synthetic: ClassVar[bool] = True

    player_id: str
    connected: bool


__all__ = [
    "Action",
    "PlaceSettlement",
    "PlaceRoad",
    "BuildCity",
    "RollDice",
    "EndTurn",
    "DiscardResources",
    "MoveRobber",
    "StealResource",
    "BuyDevelopment",
    "PlayDevelopment",
    "SelectYearOfPlenty",
    "SelectMonopoly",
    "TradeBank",
    "OfferTrade",
    "AcceptOffer",
    "DeclineOffer",
    "CounterOffer",
    "WithdrawOffer",
    "ForceEndTurn",
    "ForceDiscard",
    "ExpireOffer",
    "SetConnection",
]
