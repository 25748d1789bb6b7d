"""Services d'application pour orchestrer le moteur OpenCatan."""

from .event_bus import EventBus
from .events import GameEndedEvent, GameStartedEvent, StateChangedEvent
from .game_service import GameService
from .replica import ReplicaView
from .timers import TurnTimer

__all__ = [
    "EventBus",
    "GameService",
    "ReplicaView",
    "TurnTimer",
    "GameStartedEvent",
    "StateChangedEvent",
    "GameEndedEvent",
]
