"""Minuteurs de tour et d'offres.

Les minuteurs ne modifient jamais l'état: à l'échéance ils produisent des
actions synthétiques que le service place dans la file d'entrée, au même
titre que les actions des joueurs.

Le délai de tour couvre tout le tour (lancer, actions, voleur...). La phase
de défausse ouvre sa propre fenêtre et suspend le délai du tour jusqu'à la
dernière défausse.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from opencatan.engine.actions import Action, ExpireOffer, ForceDiscard, ForceEndTurn
from opencatan.engine.phases import Phase
from opencatan.engine.state import GameState

# (joueur actif, numéro de tour, paire colonie/route du setup)
TurnKey = Tuple[str, int, int]


def _key_of(state: GameState) -> TurnKey:
    turn = state.turn
    return (turn.current_player_id, turn.turn_number, turn.setup_index // 2)


class TurnTimer:
    """Échéances du tour courant, de la défausse et des offres en attente.

    Args:
        turn_seconds: Durée d'un tour et de la fenêtre de défausse (0 = illimité)
    """

    def __init__(self, turn_seconds: float) -> None:
        if turn_seconds < 0:
            raise ValueError("turn_seconds must be >= 0")
        self._turn_seconds = turn_seconds
        self._turn_key: TurnKey | None = None
        self._deadline: float | None = None
        self._fired = False
        self._discard_started: float | None = None
        self._discard_deadline: float | None = None
        self._discard_fired = False
        self._offer_deadlines: Dict[str, float] = {}

    @property
    def deadline(self) -> float | None:
        """Échéance du tour (None si illimité ou partie terminée)."""

        return self._deadline

    @property
    def discard_deadline(self) -> float | None:
        return self._discard_deadline

    def remaining(self, now: float) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - now)

    def observe(self, state: GameState, now: float) -> None:
        """Synchronise les échéances après une mutation.

        Le délai de tour ne repart qu'au changement de tour; un changement de
        phase à l'intérieur du tour le conserve.
        """
        key = _key_of(state)
        if key != self._turn_key:
            self._turn_key = key
            self._fired = False
            self._discard_started = None
            self._discard_deadline = None
            if state.is_game_over or not self._turn_seconds:
                self._deadline = None
            else:
                self._deadline = now + self._turn_seconds
        elif state.is_game_over:
            self._deadline = None

        in_discard = state.phase == Phase.DISCARD and self._deadline is not None
        if in_discard and self._discard_started is None:
            self._discard_started = now
            self._discard_deadline = now + self._turn_seconds
            self._discard_fired = False
        elif not in_discard and self._discard_started is not None:
            # Le temps passé en défausse est rendu au joueur actif
            if self._deadline is not None:
                self._deadline += now - self._discard_started
            self._discard_started = None
            self._discard_deadline = None

        self._offer_deadlines = {
            offer_id: offer.expires_at for offer_id, offer in state.offers.items()
        }

    def due_actions(self, state: GameState, now: float) -> List[Action]:
        """Actions synthétiques échues à `now` (chacune n'est produite qu'une fois)."""

        if state.is_game_over:
            return []

        actions: List[Action] = []
        for offer_id, expires_at in sorted(self._offer_deadlines.items(), key=lambda item: item[1]):
            if expires_at <= now:
                actions.append(ExpireOffer(offer_id))
                del self._offer_deadlines[offer_id]

        if self._discard_deadline is not None:
            if not self._discard_fired and now >= self._discard_deadline:
                self._discard_fired = True
                actions += [ForceDiscard(player_id) for player_id in state.pending_discards]
            return actions

        if self._deadline is not None and not self._fired and now >= self._deadline:
            self._fired = True
            actions.append(ForceEndTurn())
        return actions


__all__ = ["TurnTimer"]
