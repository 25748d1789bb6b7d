"""Service d'orchestration d'une partie OpenCatan.

Toutes les soumissions (joueurs et minuteurs) passent par une file
thread-safe; `process_pending()` la vide sur un seul thread, ce qui
sérialise les mutations. Chaque action acceptée publie un
`StateChangedEvent(version, delta)`; un refus n'est rapporté qu'au soumetteur.
"""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence

from opencatan.app.event_bus import EventBus
from opencatan.app.events import GameEndedEvent, GameStartedEvent, StateChangedEvent
from opencatan.app.timers import TurnTimer
from opencatan.engine.actions import Action
from opencatan.engine.board import Board
from opencatan.engine.engine import ActionResult, GameEngine
from opencatan.engine.serialize import snapshot_for, state_to_snapshot
from opencatan.engine.settings import GameSettings
from opencatan.engine.state import GameState, Player
from opencatan.engine.stats import game_stats
from opencatan.logging_config import get_logger

logger = get_logger(__name__)

Reply = Callable[[ActionResult], None]


@dataclass(frozen=True)
class Submission:
    """Entrée de la file: `player_id` vaut None pour une action synthétique."""

    player_id: str | None
    action: Action
    reply: Reply | None = None


class GameService:
    """Wrappe `GameEngine` et publie les évènements nécessaires aux vues."""

    def __init__(
        self,
        *,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.monotonic,
        allow_forced_dice: bool = False,
    ) -> None:
        self._event_bus = event_bus or EventBus()
        self._clock = clock
        self._allow_forced_dice = allow_forced_dice
        self._inbox: "queue.Queue[Submission]" = queue.Queue()
        self._apply_lock = threading.Lock()
        self._engine: GameEngine | None = None
        self._timer: TurnTimer | None = None

    @property
    def event_bus(self) -> EventBus:
        """Retourne le bus d'évènements utilisé par le service."""

        return self._event_bus

    @property
    def engine(self) -> GameEngine:
        if self._engine is None:
            raise RuntimeError("No game in progress. Call start_new_game() first.")
        return self._engine

    @property
    def state(self) -> GameState:
        """État courant de la partie (erreur si aucune partie lancée)."""

        return self.engine.get_snapshot()

    @property
    def timer(self) -> TurnTimer:
        if self._timer is None:
            raise RuntimeError("No game in progress. Call start_new_game() first.")
        return self._timer

    def start_new_game(
        self,
        players: Sequence[Player | str],
        settings: GameSettings | None = None,
        *,
        board: Board | None = None,
        dev_deck: Sequence[str] | None = None,
    ) -> GameState:
        """Initialise une nouvelle partie à partir de la configuration du lobby."""

        roster = [p if isinstance(p, Player) else Player(player_id=p, name=p) for p in players]
        self._engine = GameEngine.new_game(
            roster,
            settings,
            board=board,
            dev_deck=dev_deck,
            allow_forced_dice=self._allow_forced_dice,
            clock=self._clock,
        )
        state = self._engine.state
        self._timer = TurnTimer(state.settings.turn_timer)
        self._timer.observe(state, self._clock())
        self._drain_stale()
        self._event_bus.publish(GameStartedEvent(version=state.version, snapshot=state_to_snapshot(state)))
        return state

    # -- File d'entrée --
    def submit(self, player_id: str, action: Action, reply: Reply | None = None) -> None:
        """Place une action joueur dans la file (appelable depuis n'importe quel thread)."""

        self._inbox.put(Submission(player_id, action, reply))

    def submit_system(self, action: Action, reply: Reply | None = None) -> None:
        self._inbox.put(Submission(None, action, reply))

    def pending_count(self) -> int:
        return self._inbox.qsize()

    def process_pending(self) -> List[ActionResult]:
        """Applique toutes les soumissions en attente, dans l'ordre d'arrivée."""

        engine = self.engine
        results: List[ActionResult] = []
        with self._apply_lock:
            while True:
                try:
                    submission = self._inbox.get_nowait()
                except queue.Empty:
                    break
                try:
                    results.append(self._apply(engine, submission))
                finally:
                    self._inbox.task_done()
        return results

    def dispatch(self, player_id: str, action: Action) -> ActionResult:
        """Soumet puis traite immédiatement; retourne le résultat de cette action."""

        outcome: List[ActionResult] = []
        self.submit(player_id, action, reply=outcome.append)
        self.process_pending()
        return outcome[0]

    def dispatch_system(self, action: Action) -> ActionResult:
        outcome: List[ActionResult] = []
        self.submit_system(action, reply=outcome.append)
        self.process_pending()
        return outcome[0]

    def tick(self, now: float | None = None) -> List[ActionResult]:
        """Place les actions synthétiques échues dans la file puis traite la file."""

        now = self._clock() if now is None else now
        for action in self.timer.due_actions(self.state, now):
            logger.info("timer_expired", action=type(action).__name__, now=now)
            self.submit_system(action)
        return self.process_pending()

    # -- Lecture --
    def legal_actions(self, player_id: str) -> List[Action]:
        return self.engine.legal_actions(player_id)

    def snapshot_for(self, viewer_id: str | None) -> Dict[str, Any]:
        return snapshot_for(self.state, viewer_id)

    # -- Interne --
    def _apply(self, engine: GameEngine, submission: Submission) -> ActionResult:
        if submission.player_id is None:
            result = engine.submit_system_action(submission.action)
        else:
            result = engine.submit_action(submission.player_id, submission.action)

        if result.accepted:
            state = engine.state
            self.timer.observe(state, self._clock())
            self._event_bus.publish(
                StateChangedEvent(
                    version=result.version,
                    delta=result.delta,
                    action=submission.action,
                    player_id=submission.player_id,
                )
            )
            if state.is_game_over and "winner_id" in result.delta:
                self._event_bus.publish(
                    GameEndedEvent(
                        version=result.version,
                        winner_id=state.winner_id,
                        summary=game_stats(state),
                    )
                )
        if submission.reply is not None:
            submission.reply(result)
        return result

    def _drain_stale(self) -> None:
        # Les soumissions visant une partie précédente sont abandonnées
        while True:
            try:
                self._inbox.get_nowait()
            except queue.Empty:
                return
            self._inbox.task_done()


__all__ = ["GameService", "Submission"]
