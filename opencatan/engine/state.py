"""État canonique d'une partie.

Les entités `Player` et le plateau sont créés une fois au lancement puis
modifiés sur place pendant toute la partie. `TurnRecord` porte la phase et
les drapeaux éphémères du tour; `GameState.version` est l'unique point de
sérialisation des mutations (incrémenté par le moteur à chaque action acceptée).
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Sequence

from opencatan.engine.board import Board
from opencatan.engine.phases import Phase
from opencatan.engine.rules import (
    BANK_STARTING_RESOURCES,
    PIECE_LIMITS,
    RESOURCE_TYPES,
)
from opencatan.engine.settings import GameSettings


def empty_resources() -> Dict[str, int]:
    return {resource: 0 for resource in RESOURCE_TYPES}


@dataclass
class DevCard:
    """Carte de développement détenue par un joueur."""

    card_id: int
    card_type: str
    purchased_turn: int
    played: bool = False
    revealed: bool = False


@dataclass
class Player:
    """Représentation d'un joueur."""

    player_id: str
    name: str
    color: str | None = None
    connected: bool = True
    resources: Dict[str, int] = field(default_factory=empty_resources)
    pieces: Dict[str, int] = field(default_factory=lambda: dict(PIECE_LIMITS))
    dev_cards: List[DevCard] = field(default_factory=list)
    army_size: int = 0
    longest_road_length: int = 0
    victory_points: int = 0
    # Statistiques cumulées
    resources_collected: Dict[str, int] = field(default_factory=empty_resources)
    trades_made: int = 0
    times_robbed: int = 0

    def hand_size(self) -> int:
        return sum(self.resources.values())

    def held_cards(self, card_type: str | None = None) -> List[DevCard]:
        """Cartes non jouées, éventuellement filtrées par type."""

        return [
            card
            for card in self.dev_cards
            if not card.played and (card_type is None or card.card_type == card_type)
        ]


@dataclass(frozen=True)
class Building:
    """Colonie ou ville posée sur un sommet."""

    owner: str
    kind: str  # "settlement" | "city"


@dataclass(frozen=True)
class DiceRoll:
    die1: int
    die2: int
    event: str | None = None

    @property
    def total(self) -> int:
        return self.die1 + self.die2


@dataclass
class TurnRecord:
    """Phase courante et drapeaux éphémères du tour.

    Les drapeaux sont remis à zéro une seule fois, lors de la fin de tour.
    """

    phase: Phase = Phase.SETUP_SETTLEMENT_1
    current_player_id: str = ""
    turn_number: int = 0
    setup_index: int = 0
    setup_vertex_id: int | None = None
    dev_card_played: bool = False
    road_building_remaining: int = 0
    robber_return_phase: Phase | None = None
    last_roll: DiceRoll | None = None


@dataclass
class TradeOffer:
    """Offre d'échange joueur↔joueur.

    `offering` et `requesting` sont exprimés du point de vue de l'auteur.
    """

    offer_id: str
    from_player_id: str
    to_player_id: str | None
    offering: Dict[str, int]
    requesting: Dict[str, int]
    created_at: float
    timeout: float
    status: str = "pending"
    parent_offer_id: str | None = None
    responses: Dict[str, str] = field(default_factory=dict)

    @property
    def expires_at(self) -> float:
        return self.created_at + self.timeout

    def recipients(self, turn_order: Sequence[str]) -> List[str]:
        if self.to_player_id is not None:
            return [self.to_player_id]
        return [pid for pid in turn_order if pid != self.from_player_id]


@dataclass
class GameState:
    """État complet et mutable de la partie."""

    settings: GameSettings
    board: Board
    players: Dict[str, Player]
    turn_order: List[str]
    turn: TurnRecord
    bank: Dict[str, int] = field(default_factory=lambda: dict(BANK_STARTING_RESOURCES))
    total_supply: Dict[str, int] = field(
        default_factory=lambda: dict(BANK_STARTING_RESOURCES)
    )
    dev_deck: List[str] = field(default_factory=list)
    dev_cards_total: int = 0
    robber_tile_id: int = 0
    pirate_tile_id: int | None = None
    buildings: Dict[int, Building] = field(default_factory=dict)
    roads: Dict[int, str] = field(default_factory=dict)
    longest_road_holder: str | None = None
    largest_army_holder: str | None = None
    pending_discards: Dict[str, int] = field(default_factory=dict)
    offers: Dict[str, TradeOffer] = field(default_factory=dict)
    version: int = 0
    winner_id: str | None = None
    barbarian_position: int = 0
    roll_history: List[int] = field(default_factory=list)
    counters: Dict[str, int] = field(
        default_factory=lambda: {
            "trades_completed": 0,
            "dev_cards_bought": 0,
            "knights_played": 0,
            "robber_moves": 0,
        }
    )
    next_offer_seq: int = 1
    next_card_id: int = 1
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    @classmethod
    def new_game(
        cls,
        players: Sequence[Player],
        settings: GameSettings | None = None,
        *,
        board: Board | None = None,
        dev_deck: Sequence[str] | None = None,
    ) -> "GameState":
        """Crée l'état initial en phase `setup-settlement-1`.

        Args:
            players: Joueurs dans l'ordre de tour (fourni par le lobby)
            settings: Paramètres de partie (défaut: jeu de base)
            board: Plateau (défaut: disposition standard)
            dev_deck: Ordre forcé du paquet de développement (tests)

        Returns:
            État initial
        """
        settings = settings or GameSettings()
        if not 2 <= len(players) <= 6:
            raise ValueError("Game requires 2-6 players")
        ids = [player.player_id for player in players]
        if len(set(ids)) != len(ids):
            raise ValueError("Player ids must be unique")

        board = board or Board.standard()
        rng = random.Random(settings.seed)

        if dev_deck is None:
            deck = [
                card_type
                for card_type, count in settings.dev_deck.items()
                for _ in range(count)
            ]
            rng.shuffle(deck)
        else:
            deck = list(dev_deck)

        return cls(
            settings=settings,
            board=board,
            players={player.player_id: player for player in players},
            turn_order=ids,
            turn=TurnRecord(current_player_id=ids[0]),
            dev_deck=deck,
            dev_cards_total=len(deck),
            robber_tile_id=board.desert_tile_id(),
            pirate_tile_id=None,
            rng=rng,
        )

    # -- Accès pratiques --
    @property
    def phase(self) -> Phase:
        return self.turn.phase

    @property
    def current_player(self) -> Player:
        return self.players[self.turn.current_player_id]

    def iter_players(self) -> Iterator[Player]:
        """Joueurs dans l'ordre de tour."""

        for player_id in self.turn_order:
            yield self.players[player_id]

    def vertices_of(self, player_id: str) -> List[int]:
        return [vid for vid, b in self.buildings.items() if b.owner == player_id]

    def roads_of(self, player_id: str) -> List[int]:
        return [eid for eid, owner in self.roads.items() if owner == player_id]

    def count_built(self, player_id: str, kind: str) -> int:
        if kind == "road":
            return len(self.roads_of(player_id))
        return sum(
            1 for b in self.buildings.values() if b.owner == player_id and b.kind == kind
        )

    @property
    def is_game_over(self) -> bool:
        return self.turn.phase == Phase.ENDED


__all__ = [
    "DevCard",
    "Player",
    "Building",
    "DiceRoll",
    "TurnRecord",
    "TradeOffer",
    "GameState",
    "empty_resources",
]
