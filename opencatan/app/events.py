"""Évènements publiés par la couche application (`opencatan.app`)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from opencatan.engine.actions import Action


@dataclass(frozen=True)
class GameStartedEvent:
    """Émis lorsqu'une nouvelle partie est initialisée.

    `snapshot` est la vue hôte complète à la version 0.
    """

    version: int
    snapshot: Dict[str, Any]


@dataclass(frozen=True)
class StateChangedEvent:
    """Émis après chaque action acceptée: `{version, delta}` diffusé aux vues."""

    version: int
    delta: Dict[str, Any]
    action: Action
    player_id: Optional[str] = None


@dataclass(frozen=True)
class GameEndedEvent:
    """Émis quand la partie atteint la phase `ended`."""

    version: int
    winner_id: Optional[str]
    summary: Dict[str, Any] = field(default_factory=dict)


__all__ = [
    "GameStartedEvent",
    "StateChangedEvent",
    "GameEndedEvent",
]
