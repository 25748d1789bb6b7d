"""Échanges avec la banque (ports) et négociation entre joueurs.

Les offres vivent dans `GameState.offers` tant qu'elles sont en attente;
toute résolution (acceptation, refus général, contre-proposition ciblée,
retrait, expiration) fixe le statut final et retire l'offre.
"""

from __future__ import annotations

from typing import Dict, List, Mapping

from opencatan.engine.errors import ActionRejected, RejectionReason
from opencatan.engine.ledger import (
    has_resources,
    transfer,
    validate_resource_map,
)
from opencatan.engine.rules import RESOURCE_TYPES
from opencatan.engine.state import GameState, Player, TradeOffer

BANK_RATE = 4
GENERIC_PORT_RATE = 3
SPECIFIC_PORT_RATE = 2


def trade_rate(state: GameState, player_id: str, resource: str) -> int:
    """Meilleur taux banque pour une ressource: 4:1, 3:1 (port générique) ou 2:1."""

    kinds = state.board.port_kinds_at(state.vertices_of(player_id))
    if resource in kinds:
        return SPECIFIC_PORT_RATE
    if "ANY" in kinds:
        return GENERIC_PORT_RATE
    return BANK_RATE


def trade_rates(state: GameState, player_id: str) -> Dict[str, int]:
    return {resource: trade_rate(state, player_id, resource) for resource in RESOURCE_TYPES}


def _nonzero(resources: Mapping[str, int]) -> Dict[str, int]:
    return {resource: amount for resource, amount in resources.items() if amount}


def check_bank_trade(
    state: GameState,
    player: Player,
    give: Mapping[str, int],
    receive: Mapping[str, int],
) -> None:
    """Valide un échange banque.

    Raises:
        ActionRejected: INVALID_ACTION (forme, taux), INSUFFICIENT_RESOURCES
            ou BANK_INSUFFICIENT
    """
    validate_resource_map(give)
    validate_resource_map(receive)
    given = _nonzero(give)
    if len(given) != 1:
        raise ActionRejected(RejectionReason.INVALID_ACTION, "bank trades give exactly one type")
    (give_type, give_amount), = given.items()
    if receive.get(give_type, 0):
        raise ActionRejected(RejectionReason.INVALID_ACTION, "cannot trade a resource for itself")

    rate = trade_rate(state, player.player_id, give_type)
    if give_amount % rate != 0 or sum(receive.values()) != give_amount // rate:
        raise ActionRejected(
            RejectionReason.INVALID_ACTION,
            f"rate {rate}:1 for {give_type} does not match {give_amount} -> {sum(receive.values())}",
        )
    if not has_resources(player.resources, given):
        raise ActionRejected(RejectionReason.INSUFFICIENT_RESOURCES, "bank trade")
    if not has_resources(state.bank, receive):
        raise ActionRejected(RejectionReason.BANK_INSUFFICIENT, "bank trade")


def apply_bank_trade(
    state: GameState,
    player: Player,
    give: Mapping[str, int],
    receive: Mapping[str, int],
) -> None:
    check_bank_trade(state, player, give, receive)
    transfer(state, player, None, give)
    transfer(state, None, player, receive)
    player.trades_made += 1
    state.counters["trades_completed"] += 1


# -- Offres entre joueurs --


def _check_terms(player: Player, offering: Mapping[str, int], requesting: Mapping[str, int]) -> None:
    validate_resource_map(offering)
    validate_resource_map(requesting)
    if not has_resources(player.resources, offering):
        raise ActionRejected(RejectionReason.INSUFFICIENT_RESOURCES, "offer")


def _register(
    state: GameState,
    author: Player,
    offering: Mapping[str, int],
    requesting: Mapping[str, int],
    to_player_id: str | None,
    now: float,
    parent_offer_id: str | None = None,
) -> TradeOffer:
    offer = TradeOffer(
        offer_id=f"offer-{state.next_offer_seq}",
        from_player_id=author.player_id,
        to_player_id=to_player_id,
        offering=_nonzero(offering),
        requesting=_nonzero(requesting),
        created_at=now,
        timeout=state.settings.offer_timeout,
        parent_offer_id=parent_offer_id,
    )
    state.next_offer_seq += 1
    state.offers[offer.offer_id] = offer
    return offer


def check_offer(
    state: GameState,
    author: Player,
    offering: Mapping[str, int],
    requesting: Mapping[str, int],
    to_player_id: str | None,
) -> None:
    if to_player_id is not None and (
        to_player_id not in state.players or to_player_id == author.player_id
    ):
        raise ActionRejected(RejectionReason.INVALID_ACTION, f"invalid recipient {to_player_id!r}")
    _check_terms(author, offering, requesting)


def create_offer(
    state: GameState,
    author: Player,
    offering: Mapping[str, int],
    requesting: Mapping[str, int],
    to_player_id: str | None,
    now: float,
) -> TradeOffer:
    """Publie une offre (le moteur vérifie joueur actif et phase `main`)."""

    check_offer(state, author, offering, requesting, to_player_id)
    return _register(state, author, offering, requesting, to_player_id, now)


def pending_offer(state: GameState, offer_id: str) -> TradeOffer:
    offer = state.offers.get(offer_id)
    if offer is None or offer.status != "pending":
        raise ActionRejected(RejectionReason.OFFER_EXPIRED_OR_RESOLVED, offer_id)
    return offer


def _check_recipient(state: GameState, offer: TradeOffer, player_id: str) -> None:
    if player_id not in offer.recipients(state.turn_order):
        raise ActionRejected(RejectionReason.INVALID_ACTION, "offer is not addressed to this player")
    if player_id in offer.responses:
        raise ActionRejected(RejectionReason.INVALID_ACTION, "already responded to this offer")


def _resolve(state: GameState, offer: TradeOffer, status: str) -> TradeOffer:
    offer.status = status
    del state.offers[offer.offer_id]
    return offer


def check_accept(state: GameState, offer_id: str, acceptor_id: str) -> TradeOffer:
    offer = pending_offer(state, offer_id)
    _check_recipient(state, offer, acceptor_id)
    author = state.players[offer.from_player_id]
    acceptor = state.players[acceptor_id]
    if not has_resources(acceptor.resources, offer.requesting):
        raise ActionRejected(RejectionReason.INSUFFICIENT_RESOURCES, "cannot pay requested resources")
    if not has_resources(author.resources, offer.offering):
        raise ActionRejected(RejectionReason.INSUFFICIENT_RESOURCES, "offerer no longer holds the offer")
    return offer


def accept_offer(state: GameState, offer_id: str, acceptor_id: str) -> TradeOffer:
    """Première acceptation gagnante: transfert exact des deux côtés."""

    offer = check_accept(state, offer_id, acceptor_id)
    author = state.players[offer.from_player_id]
    acceptor = state.players[acceptor_id]
    transfer(state, author, acceptor, offer.offering)
    transfer(state, acceptor, author, offer.requesting)
    offer.responses[acceptor_id] = "accepted"
    author.trades_made += 1
    acceptor.trades_made += 1
    state.counters["trades_completed"] += 1
    return _resolve(state, offer, "accepted")


def _all_responded(state: GameState, offer: TradeOffer) -> bool:
    return all(pid in offer.responses for pid in offer.recipients(state.turn_order))


def check_decline(state: GameState, offer_id: str, player_id: str) -> TradeOffer:
    offer = pending_offer(state, offer_id)
    _check_recipient(state, offer, player_id)
    return offer


def decline_offer(state: GameState, offer_id: str, player_id: str) -> TradeOffer | None:
    """Enregistre un refus; l'offre est close quand tous les destinataires ont répondu.

    Returns:
        L'offre résolue, ou None si elle reste en attente
    """
    offer = check_decline(state, offer_id, player_id)
    offer.responses[player_id] = "declined"
    if _all_responded(state, offer):
        final = "countered" if "countered" in offer.responses.values() else "declined"
        return _resolve(state, offer, final)
    return None


def check_counter(
    state: GameState,
    offer_id: str,
    player_id: str,
    offering: Mapping[str, int],
    requesting: Mapping[str, int],
) -> TradeOffer:
    original = pending_offer(state, offer_id)
    _check_recipient(state, original, player_id)
    _check_terms(state.players[player_id], offering, requesting)
    return original


def counter_offer(
    state: GameState,
    offer_id: str,
    player_id: str,
    offering: Mapping[str, int],
    requesting: Mapping[str, int],
    now: float,
) -> tuple[TradeOffer, TradeOffer | None]:
    """Contre-proposition adressée à l'auteur de l'offre d'origine.

    Returns:
        (nouvelle offre, offre d'origine si elle vient d'être close)
    """
    original = check_counter(state, offer_id, player_id, offering, requesting)
    counterer = state.players[player_id]

    counter = _register(
        state,
        counterer,
        offering,
        requesting,
        original.from_player_id,
        now,
        parent_offer_id=original.offer_id,
    )
    original.responses[player_id] = "countered"
    resolved = None
    if original.to_player_id == player_id or _all_responded(state, original):
        resolved = _resolve(state, original, "countered")
    return counter, resolved


def check_withdraw(state: GameState, offer_id: str, player_id: str) -> TradeOffer:
    offer = pending_offer(state, offer_id)
    if offer.from_player_id != player_id:
        raise ActionRejected(RejectionReason.INVALID_ACTION, "only the author can withdraw an offer")
    return offer


def withdraw_offer(state: GameState, offer_id: str, player_id: str) -> TradeOffer:
    return _resolve(state, check_withdraw(state, offer_id, player_id), "withdrawn")


def expire_offer(state: GameState, offer_id: str) -> TradeOffer:
    return _resolve(state, pending_offer(state, offer_id), "expired")


def expire_all_offers(state: GameState) -> List[TradeOffer]:
    """Fin de tour: toutes les offres en attente expirent."""

    return [expire_offer(state, offer_id) for offer_id in list(state.offers)]


__all__ = [
    "BANK_RATE",
    "GENERIC_PORT_RATE",
    "SPECIFIC_PORT_RATE",
    "trade_rate",
    "trade_rates",
    "check_bank_trade",
    "apply_bank_trade",
    "check_offer",
    "create_offer",
    "pending_offer",
    "check_accept",
    "accept_offer",
    "check_decline",
    "decline_offer",
    "check_counter",
    "counter_offer",
    "check_withdraw",
    "withdraw_offer",
    "expire_offer",
    "expire_all_offers",
]
