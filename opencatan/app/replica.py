"""Vue répliquée (non autoritaire) côté joueur.

Applique les `{version, delta}` dans l'ordre. Un saut de version signale un
message perdu: la vue se marque `needs_resync`, ignore les deltas suivants et
appelle le callback de resynchronisation jusqu'à réception d'un snapshot.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping

from opencatan.app.event_bus import EventBus
from opencatan.app.events import GameStartedEvent, StateChangedEvent
from opencatan.engine.serialize import EVENTS_KEY, apply_delta, redact
from opencatan.logging_config import get_logger

logger = get_logger(__name__)


class ReplicaView:
    """Copie locale d'un snapshot expurgé pour `viewer_id`.

    Args:
        viewer_id: Joueur observateur (None = vue publique)
        on_resync: Appelé avec la vue quand un trou de version est détecté
    """

    def __init__(
        self,
        viewer_id: str | None = None,
        *,
        on_resync: Callable[["ReplicaView"], None] | None = None,
    ) -> None:
        self.viewer_id = viewer_id
        self._on_resync = on_resync
        self._snapshot: Dict[str, Any] = {}
        self._version = -1
        self._needs_resync = True
        self.last_events: list = []

    @property
    def snapshot(self) -> Dict[str, Any]:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._version

    @property
    def needs_resync(self) -> bool:
        return self._needs_resync

    def resync(self, snapshot: Mapping[str, Any]) -> None:
        """Remplace la vue par un snapshot complet (déjà expurgé ou non)."""

        self._snapshot = redact(snapshot, self.viewer_id, hide_bank=self._hide_bank(snapshot))
        self._version = int(snapshot["version"])
        self._needs_resync = False
        self.last_events = []

    def apply(self, version: int, delta: Mapping[str, Any]) -> bool:
        """Applique un delta; retourne False s'il est ignoré (doublon ou trou)."""

        if self._needs_resync:
            return False
        if version <= self._version:
            return False
        if version != self._version + 1:
            logger.warning(
                "replica_gap_detected",
                viewer_id=self.viewer_id,
                expected=self._version + 1,
                received=version,
            )
            self._needs_resync = True
            if self._on_resync is not None:
                self._on_resync(self)
            return False

        visible = redact(delta, self.viewer_id, hide_bank=self._hide_bank(self._snapshot))
        self._snapshot = apply_delta(self._snapshot, visible)
        self._version = version
        self.last_events = list(delta.get(EVENTS_KEY, []))
        return True

    def handle_event(self, event: object) -> None:
        if isinstance(event, GameStartedEvent):
            self.resync(event.snapshot)
        elif isinstance(event, StateChangedEvent):
            self.apply(event.version, event.delta)

    def attach(self, bus: EventBus) -> Callable[[], None]:
        """Abonne la vue à un bus; retourne la fonction de désabonnement."""

        return bus.subscribe(self.handle_event)

    @staticmethod
    def _hide_bank(snapshot: Mapping[str, Any]) -> bool:
        settings = snapshot.get("settings") or {}
        return bool(settings.get("hide_bank_cards"))


__all__ = ["ReplicaView"]
