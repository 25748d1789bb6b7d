"""Taxonomie des erreurs du moteur.

Deux familles:
- `ActionRejected`: refus récupérable, l'état n'est jamais modifié et le
  soumetteur peut renvoyer une action corrigée.
- `InvariantViolation`: incohérence interne (conservation des ressources,
  pièces, points). Fatale: le moteur cesse d'accepter des mutations.
"""

from __future__ import annotations

from enum import Enum


class RejectionReason(Enum):
    """Motif typé d'un refus d'action."""

    ILLEGAL_PHASE = "IllegalPhase"
    NOT_YOUR_TURN = "NotYourTurn"
    INSUFFICIENT_RESOURCES = "InsufficientResources"
    NO_PIECES_REMAINING = "NoPiecesRemaining"
    ILLEGAL_PLACEMENT = "IllegalPlacement"
    CARD_NOT_PLAYABLE = "CardNotPlayable"
    OFFER_EXPIRED_OR_RESOLVED = "OfferExpiredOrResolved"
    BANK_INSUFFICIENT = "BankInsufficient"
    INVALID_ACTION = "InvalidAction"
    GAME_OVER = "GameOver"


class ActionRejected(Exception):
    """Levée par les sous-systèmes quand une action est illégale."""

    def __init__(self, reason: RejectionReason, message: str = "") -> None:
        super().__init__(f"{reason.value}: {message}" if message else reason.value)
        self.reason = reason
        self.message = message


class InvariantViolation(RuntimeError):
    """Invariant interne rompu: l'état n'est plus digne de confiance."""


__all__ = ["RejectionReason", "ActionRejected", "InvariantViolation"]
