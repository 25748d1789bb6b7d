"""Cycle de vie des cartes de développement.

Achat depuis le paquet mélangé une fois en début de partie, jouabilité (une
carte par tour, pas la carte achetée ce tour, jamais un point de victoire)
et effets des cartes. Les transitions de phase restent du ressort du moteur.
"""

from __future__ import annotations

from typing import Dict, List, Mapping

from opencatan.engine.errors import ActionRejected, RejectionReason
from opencatan.engine.ledger import can_afford, pay_to_bank, take_from_bank, validate_resource_map
from opencatan.engine.phases import Phase
from opencatan.engine.rules import (
    COSTS,
    DEV_CARD_TYPES,
    RESOURCE_TYPES,
    ROAD_BUILDING_ROADS,
    YEAR_OF_PLENTY_PICKS,
)
from opencatan.engine.state import DevCard, GameState, Player


def check_buy(state: GameState, player: Player) -> None:
    if not state.dev_deck:
        raise ActionRejected(RejectionReason.BANK_INSUFFICIENT, "development deck is empty")
    if not can_afford(player, "development"):
        raise ActionRejected(RejectionReason.INSUFFICIENT_RESOURCES, "development")


def buy(state: GameState, player: Player) -> DevCard:
    """Pioche la carte du dessus du paquet et paie son coût.

    Raises:
        ActionRejected: BANK_INSUFFICIENT (paquet vide) ou INSUFFICIENT_RESOURCES
    """
    check_buy(state, player)
    pay_to_bank(state, player, COSTS["development"])
    card = DevCard(
        card_id=state.next_card_id,
        card_type=state.dev_deck.pop(0),
        purchased_turn=state.turn.turn_number,
    )
    state.next_card_id += 1
    player.dev_cards.append(card)
    state.counters["dev_cards_bought"] += 1
    return card


def is_playable(state: GameState, player: Player, card: DevCard) -> bool:
    """Vrai si cette carte précise peut être jouée maintenant."""

    if card.played or card.card_type == "VICTORY_POINT":
        return False
    if card.purchased_turn == state.turn.turn_number:
        return False
    if state.turn.dev_card_played:
        return False
    return state.phase == Phase.MAIN and player.player_id == state.turn.current_player_id


def playability(state: GameState, player: Player, card_type: str) -> RejectionReason | None:
    """Motif de refus pour jouer une carte du type donné, ou None si jouable."""

    if card_type not in DEV_CARD_TYPES:
        return RejectionReason.INVALID_ACTION
    if state.phase != Phase.MAIN:
        return RejectionReason.ILLEGAL_PHASE
    if player.player_id != state.turn.current_player_id:
        return RejectionReason.NOT_YOUR_TURN
    if card_type == "VICTORY_POINT":
        return RejectionReason.CARD_NOT_PLAYABLE
    if state.turn.dev_card_played:
        return RejectionReason.CARD_NOT_PLAYABLE
    if not any(is_playable(state, player, card) for card in player.held_cards(card_type)):
        return RejectionReason.CARD_NOT_PLAYABLE
    return None


def consume(state: GameState, player: Player, card_type: str) -> DevCard:
    """Marque comme jouée la plus ancienne carte jouable du type et pose le drapeau du tour."""

    reason = playability(state, player, card_type)
    if reason is not None:
        raise ActionRejected(reason, card_type)
    card = next(c for c in player.held_cards(card_type) if is_playable(state, player, c))
    card.played = True
    state.turn.dev_card_played = True
    if card_type == "KNIGHT":
        player.army_size += 1
        state.counters["knights_played"] += 1
    return card


# -- Effets --


def road_building_allowance(player: Player) -> int:
    """Nombre de routes gratuites accordées (borné par les pièces restantes)."""

    return min(ROAD_BUILDING_ROADS, player.pieces.get("road", 0))


def year_of_plenty_pick_size(state: GameState) -> int:
    """Deux cartes, ou le contenu total de la banque s'il est inférieur."""

    return min(YEAR_OF_PLENTY_PICKS, sum(state.bank.values()))


def check_year_of_plenty(state: GameState, resources: Mapping[str, int]) -> None:
    validate_resource_map(resources, allow_empty=True)
    expected = year_of_plenty_pick_size(state)
    if sum(resources.values()) != expected:
        raise ActionRejected(
            RejectionReason.INVALID_ACTION, f"must pick exactly {expected} resources"
        )
    for resource, amount in resources.items():
        if state.bank[resource] < amount:
            raise ActionRejected(RejectionReason.BANK_INSUFFICIENT, resource)


def apply_year_of_plenty(state: GameState, player: Player, resources: Mapping[str, int]) -> None:
    check_year_of_plenty(state, resources)
    take_from_bank(state, player, resources)


def first_year_of_plenty_pick(state: GameState) -> Dict[str, int]:
    """Choix déterministe: premières ressources disponibles dans l'ordre canonique."""

    remaining = year_of_plenty_pick_size(state)
    picks: Dict[str, int] = {}
    for resource in RESOURCE_TYPES:
        if remaining == 0:
            break
        amount = min(remaining, state.bank[resource])
        if amount:
            picks[resource] = amount
            remaining -= amount
    return picks


def apply_monopoly(state: GameState, player: Player, resource: str) -> Dict[str, int]:
    """Transfère toutes les cartes `resource` des adversaires vers le joueur.

    Returns:
        Quantité prise à chaque adversaire
    """
    if resource not in RESOURCE_TYPES:
        raise ActionRejected(RejectionReason.INVALID_ACTION, f"unknown resource {resource!r}")
    taken: Dict[str, int] = {}
    for other in state.iter_players():
        if other.player_id == player.player_id:
            continue
        amount = other.resources[resource]
        if amount:
            other.resources[resource] = 0
            player.resources[resource] += amount
            taken[other.player_id] = amount
    return taken


def victory_cards(player: Player) -> List[DevCard]:
    return [card for card in player.dev_cards if card.card_type == "VICTORY_POINT"]


def reveal_victory_cards(state: GameState) -> None:
    """Révèle les cartes point de victoire (fin de partie)."""

    for player in state.players.values():
        for card in victory_cards(player):
            card.revealed = True


def cards_in_play(state: GameState) -> int:
    """Paquet + cartes détenues (conservation du paquet)."""

    return len(state.dev_deck) + sum(len(p.dev_cards) for p in state.players.values())


__all__ = [
    "check_buy",
    "buy",
    "is_playable",
    "playability",
    "consume",
    "road_building_allowance",
    "year_of_plenty_pick_size",
    "check_year_of_plenty",
    "apply_year_of_plenty",
    "first_year_of_plenty_pick",
    "apply_monopoly",
    "victory_cards",
    "reveal_victory_cards",
    "cards_in_play",
]
