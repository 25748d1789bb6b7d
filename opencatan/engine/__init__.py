"""Moteur de règles: état, actions, sous-systèmes et point d'entrée `GameEngine`."""

from . import rules  # re-export for convenience
from .engine import ActionResult, GameEngine
from .errors import ActionRejected, InvariantViolation, RejectionReason
from .settings import GameSettings
from .state import GameState, Player

__all__ = [
    "rules",
    "ActionResult",
    "GameEngine",
    "ActionRejected",
    "InvariantViolation",
    "RejectionReason",
    "GameSettings",
    "GameState",
    "Player",
]
