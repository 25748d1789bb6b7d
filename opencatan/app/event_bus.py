"""Bus d'évènements synchrone pour la couche application."""

from __future__ import annotations

import threading
from typing import Callable, List

Subscriber = Callable[[object], None]


class EventBus:
    """Publie des évènements aux observateurs enregistrés.

    Chaque publication appelle les abonnés dans l'ordre d'enregistrement, sur
    le thread qui publie (la boucle du service). Une exception levée par un
    abonné interrompt la diffusion.
    """

    __slots__ = ("_subscribers", "_lock")

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Enregistre un abonné et retourne une fonction d'unsubscribe."""

        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: object) -> None:
        """Diffuse l'évènement à tous les abonnés courants."""

        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(event)

    def __len__(self) -> int:
        return len(self._subscribers)


__all__ = ["EventBus", "Subscriber"]
