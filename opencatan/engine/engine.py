"""Moteur de règles faisant autorité.

`GameEngine` est l'unique point d'entrée des mutations. Chaque action est
d'abord validée à blanc (aucune écriture), puis appliquée; une action
refusée ne modifie jamais l'état ni la version. Après chaque action acceptée:

1. les points de victoire sont recalculés et la victoire vérifiée
2. `version` est incrémentée d'exactement 1
3. les invariants sont vérifiés (arrêt définitif du moteur en cas d'échec)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Sequence

from opencatan.engine import devcards, ledger, robber, scoring, trade
from opencatan.engine.actions import (
    AcceptOffer,
    Action,
    BuildCity,
    BuyDevelopment,
    CounterOffer,
    DeclineOffer,
    DiscardResources,
    EndTurn,
    ExpireOffer,
    ForceDiscard,
    ForceEndTurn,
    MoveRobber,
    OfferTrade,
    PlaceRoad,
    PlaceSettlement,
    PlayDevelopment,
    RollDice,
    SelectMonopoly,
    SelectYearOfPlenty,
    SetConnection,
    StealResource,
    TradeBank,
    WithdrawOffer,
)
from opencatan.engine.board import Board
from opencatan.engine.errors import ActionRejected, InvariantViolation, RejectionReason
from opencatan.engine.invariants import verify
from opencatan.engine.phases import Phase, can_transition
from opencatan.engine.rules import (
    BARBARIAN_TRACK_LENGTH,
    DEV_CARD_TYPES,
    EVENT_DIE_FACES,
    RESOURCE_TYPES,
    ROBBER_ROLL,
)
from opencatan.engine.serialize import EVENTS_KEY, diff_snapshots, state_to_snapshot
from opencatan.engine.settings import GameSettings
from opencatan.engine.setup import SetupSequencer, next_player
from opencatan.engine.state import DiceRoll, GameState, Player
from opencatan.logging_config import get_logger

logger = get_logger(__name__)

Events = List[Dict[str, Any]]

# Garde-fou sur la résolution forcée d'un tour
_MAX_FORCED_STEPS = 64


@dataclass(frozen=True)
class ActionResult:
    """Réponse renvoyée au soumetteur d'une action.

    Args:
        accepted: Action appliquée
        version: Version de l'état après traitement (inchangée si refus)
        delta: Clés de snapshot modifiées (+ `events`), vide si refus
        reason: Motif typé du refus
        message: Détail lisible du refus
    """

    accepted: bool
    version: int
    delta: Dict[str, Any] = field(default_factory=dict)
    reason: RejectionReason | None = None
    message: str = ""


class GameEngine:
    """Applique les actions sur un `GameState` mutable.

    Args:
        state: État initial (voir `GameState.new_game`)
        allow_forced_dice: Autorise `RollDice(forced_value=...)` (tests, outils hôte)
        clock: Horloge monotone utilisée pour horodater les offres
    """

    def __init__(
        self,
        state: GameState,
        *,
        allow_forced_dice: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._state = state
        self._allow_forced_dice = allow_forced_dice
        self._clock = clock
        self._halted = False
        self._handlers: Dict[type, Callable[[Player | None, Any, bool], Events | None]] = {
            PlaceSettlement: self._place_settlement,
            PlaceRoad: self._place_road,
            BuildCity: self._build_city,
            RollDice: self._roll_dice,
            EndTurn: self._end_turn,
            DiscardResources: self._discard,
            MoveRobber: self._move_robber,
            StealResource: self._steal,
            BuyDevelopment: self._buy_development,
            PlayDevelopment: self._play_development,
            SelectYearOfPlenty: self._select_year_of_plenty,
            SelectMonopoly: self._select_monopoly,
            TradeBank: self._trade_bank,
            OfferTrade: self._offer_trade,
            AcceptOffer: self._accept_offer,
            DeclineOffer: self._decline_offer,
            CounterOffer: self._counter_offer,
            WithdrawOffer: self._withdraw_offer,
            ForceEndTurn: self._force_end_turn,
            ForceDiscard: self._force_discard,
            ExpireOffer: self._expire_offer,
            SetConnection: self._set_connection,
        }

    @classmethod
    def new_game(
        cls,
        players: Sequence[Player],
        settings: GameSettings | None = None,
        *,
        board: Board | None = None,
        dev_deck: Sequence[str] | None = None,
        allow_forced_dice: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> "GameEngine":
        state = GameState.new_game(players, settings, board=board, dev_deck=dev_deck)
        logger.info(
            "game_created",
            players=list(state.turn_order),
            mode=state.settings.mode,
            victory_points=state.settings.victory_points,
        )
        return cls(state, allow_forced_dice=allow_forced_dice, clock=clock)

    # -- API publique --
    @property
    def state(self) -> GameState:
        return self._state

    @property
    def version(self) -> int:
        return self._state.version

    @property
    def halted(self) -> bool:
        return self._halted

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    def get_snapshot(self) -> GameState:
        """État canonique courant (lecture seule par convention)."""

        return self._state

    def snapshot(self) -> Dict[str, Any]:
        return state_to_snapshot(self._state)

    def submit_action(self, player_id: str, action: Action) -> ActionResult:
        """Soumet l'action d'un joueur.

        Raises:
            InvariantViolation: Si le moteur est arrêté ou si l'action corrompt l'état
        """
        if getattr(action, "synthetic", False):
            self._ensure_running()
            return self._rejected(
                player_id,
                action,
                ActionRejected(RejectionReason.INVALID_ACTION, "synthetic actions are host-only"),
            )
        return self._submit(player_id, action)

    def submit_system_action(self, action: Action) -> ActionResult:
        """Soumet une action synthétique (minuteurs, hôte)."""

        if not getattr(action, "synthetic", False):
            self._ensure_running()
            return self._rejected(
                None,
                action,
                ActionRejected(RejectionReason.INVALID_ACTION, "player actions need a player id"),
            )
        return self._submit(None, action)

    def check_action(self, player_id: str | None, action: Action) -> RejectionReason | None:
        """Motif de refus de l'action, ou None si elle serait acceptée."""

        self._ensure_running()
        try:
            self._dispatch(player_id, action, dry_run=True)
        except ActionRejected as exc:
            return exc.reason
        return None

    def legal_actions(self, player_id: str) -> List[Action]:
        """Énumère les actions concrètes légales pour un joueur.

        Les offres entre joueurs sont limitées aux échanges unitaires et les
        contre-propositions ne sont pas énumérées.
        """
        state = self._state
        if self._halted or state.is_game_over or player_id not in state.players:
            return []
        candidates = self._candidate_actions(state.players[player_id])
        return [action for action in candidates if self.check_action(player_id, action) is None]

    # -- Boucle de traitement --
    def _ensure_running(self) -> None:
        if self._halted:
            raise InvariantViolation("engine halted after an invariant violation")

    def _submit(self, player_id: str | None, action: Action) -> ActionResult:
        self._ensure_running()
        state = self._state
        try:
            self._dispatch(player_id, action, dry_run=True)
        except ActionRejected as exc:
            return self._rejected(player_id, action, exc)

        before = state_to_snapshot(state)
        try:
            events = self._dispatch(player_id, action, dry_run=False)
            self._after_action(player_id, events)
            state.version += 1
            verify(state)
        except (InvariantViolation, ActionRejected) as exc:
            self._halted = True
            logger.critical(
                "invariant_violation",
                error=str(exc),
                version=state.version,
                player_id=player_id,
                action=type(action).__name__,
            )
            if isinstance(exc, InvariantViolation):
                raise
            raise InvariantViolation(f"action rejected after validation: {exc}") from exc

        delta = diff_snapshots(before, state_to_snapshot(state))
        if events:
            delta[EVENTS_KEY] = events
        logger.debug(
            "action_applied",
            version=state.version,
            player_id=player_id,
            action=type(action).__name__,
        )
        return ActionResult(accepted=True, version=state.version, delta=delta)

    def _rejected(self, player_id: str | None, action: Action, exc: ActionRejected) -> ActionResult:
        logger.info(
            "action_rejected",
            player_id=player_id,
            action=type(action).__name__,
            reason=exc.reason.value,
            detail=exc.message,
        )
        return ActionResult(
            accepted=False,
            version=self._state.version,
            reason=exc.reason,
            message=exc.message,
        )

    def _dispatch(self, player_id: str | None, action: Action, *, dry_run: bool) -> Events:
        state = self._state
        handler = self._handlers.get(type(action))
        if handler is None:
            raise ActionRejected(RejectionReason.INVALID_ACTION, f"unknown action {action!r}")
        if state.is_game_over and not isinstance(action, SetConnection):
            raise ActionRejected(RejectionReason.GAME_OVER)

        player: Player | None = None
        if not action.synthetic:
            if player_id not in state.players:
                raise ActionRejected(RejectionReason.INVALID_ACTION, f"unknown player {player_id!r}")
            player = state.players[player_id]
        return handler(player, action, dry_run) or []

    def _after_action(self, player_id: str | None, events: Events) -> None:
        state = self._state
        scoring.refresh_victory_points(state)
        if state.is_game_over:
            return
        winner = scoring.check_victory(state, player_id)
        if winner is not None:
            self._end_game(winner, events)

    # -- Helpers de phase --
    def _require_phase(self, *phases: Phase) -> None:
        if self._state.phase not in phases:
            raise ActionRejected(
                RejectionReason.ILLEGAL_PHASE, f"not allowed during {self._state.phase.value}"
            )

    def _require_turn_holder(self, player: Player) -> None:
        if player.player_id != self._state.turn.current_player_id:
            raise ActionRejected(RejectionReason.NOT_YOUR_TURN)

    def _set_phase(self, target: Phase) -> None:
        turn = self._state.turn
        source = turn.phase
        if not can_transition(source, target):
            raise InvariantViolation(f"illegal transition {source.value} -> {target.value}")
        turn.phase = target
        if source != target:
            logger.info(
                "phase_changed",
                source=source.value,
                target=target.value,
                player_id=turn.current_player_id,
                turn_number=turn.turn_number,
            )

    def _advance_setup(self) -> None:
        state = self._state
        sequencer = SetupSequencer(state.turn_order, state.turn.setup_index)
        sequencer.advance()
        state.turn.setup_index = sequencer.placement_index
        if sequencer.is_complete:
            state.turn.current_player_id = state.turn_order[0]
            state.turn.turn_number = 1
            state.turn.setup_vertex_id = None
        else:
            state.turn.current_player_id = sequencer.current_player
        self._set_phase(sequencer.phase)

    def _finish_turn(self) -> Events:
        state = self._state
        turn = state.turn
        events = [_offer_event(offer) for offer in trade.expire_all_offers(state)]
        turn.current_player_id = next_player(state.turn_order, turn.current_player_id)
        turn.turn_number += 1
        turn.dev_card_played = False
        turn.road_building_remaining = 0
        turn.robber_return_phase = None
        turn.last_roll = None
        self._set_phase(Phase.ROLL)
        return events

    def _end_game(self, winner_id: str, events: Events) -> None:
        state = self._state
        state.winner_id = winner_id
        state.pending_discards.clear()
        events.extend(_offer_event(offer) for offer in trade.expire_all_offers(state))
        devcards.reveal_victory_cards(state)
        self._set_phase(Phase.ENDED)
        events.append({"type": "game_ended", "winner_id": winner_id})
        logger.info(
            "game_ended",
            winner_id=winner_id,
            turn_number=state.turn.turn_number,
            victory_points=scoring.total_victory_points(state, state.players[winner_id]),
        )

    def _start_robber_sequence(self) -> None:
        state = self._state
        state.turn.robber_return_phase = Phase.MAIN
        requirements = robber.discard_requirements(state)
        if requirements:
            state.pending_discards = requirements
            self._set_phase(Phase.DISCARD)
        else:
            self._set_phase(Phase.ROBBER_MOVE)

    def _leave_robber_sequence(self) -> None:
        turn = self._state.turn
        target = turn.robber_return_phase or Phase.MAIN
        turn.robber_return_phase = None
        self._set_phase(target)

    # -- Constructions --
    def _place_settlement(self, player: Player, action: PlaceSettlement, dry_run: bool) -> Events | None:
        state = self._state
        if state.phase in (Phase.SETUP_SETTLEMENT_1, Phase.SETUP_SETTLEMENT_2):
            self._require_turn_holder(player)
            ledger.check_build(state, player, "settlement", action.vertex_id, free=True, setup=True)
            if dry_run:
                return None
            round_two = state.phase == Phase.SETUP_SETTLEMENT_2
            ledger.apply_build(state, player, "settlement", action.vertex_id, free=True, setup=True)
            state.turn.setup_vertex_id = action.vertex_id
            events: Events = []
            if round_two:
                granted = ledger.grant_starting_resources(state, player, action.vertex_id)
                events.append(
                    {"type": "starting_resources", "player_id": player.player_id, "resources": granted}
                )
            self._advance_setup()
            scoring.update_longest_road(state)
            return events

        self._require_phase(Phase.MAIN)
        self._require_turn_holder(player)
        ledger.check_build(state, player, "settlement", action.vertex_id)
        if dry_run:
            return None
        ledger.apply_build(state, player, "settlement", action.vertex_id)
        scoring.update_longest_road(state)
        return None

    def _place_road(self, player: Player, action: PlaceRoad, dry_run: bool) -> Events | None:
        state = self._state
        if state.phase in (Phase.SETUP_ROAD_1, Phase.SETUP_ROAD_2):
            self._require_turn_holder(player)
            ledger.check_build(
                state,
                player,
                "road",
                action.edge_id,
                free=True,
                setup=True,
                anchor_vertex=state.turn.setup_vertex_id,
            )
            if dry_run:
                return None
            ledger.apply_build(
                state,
                player,
                "road",
                action.edge_id,
                free=True,
                setup=True,
                anchor_vertex=state.turn.setup_vertex_id,
            )
            self._advance_setup()
            scoring.update_longest_road(state)
            return None

        if state.phase == Phase.ROAD_BUILDING:
            self._require_turn_holder(player)
            ledger.check_build(state, player, "road", action.edge_id, free=True)
            if dry_run:
                return None
            ledger.apply_build(state, player, "road", action.edge_id, free=True)
            turn = state.turn
            turn.road_building_remaining -= 1
            if (
                turn.road_building_remaining <= 0
                or not ledger.has_piece_available(player, "road")
                or not ledger.legal_road_edges(state, player.player_id)
            ):
                turn.road_building_remaining = 0
                self._set_phase(Phase.MAIN)
            scoring.update_longest_road(state)
            return None

        self._require_phase(Phase.MAIN)
        self._require_turn_holder(player)
        ledger.check_build(state, player, "road", action.edge_id)
        if dry_run:
            return None
        ledger.apply_build(state, player, "road", action.edge_id)
        scoring.update_longest_road(state)
        return None

    def _build_city(self, player: Player, action: BuildCity, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.MAIN)
        self._require_turn_holder(player)
        ledger.check_build(state, player, "city", action.vertex_id)
        if dry_run:
            return None
        ledger.apply_build(state, player, "city", action.vertex_id)
        return None

    # -- Dés et voleur --
    def _check_forced_roll(self, action: RollDice) -> None:
        settings = self._state.settings
        if action.forced_value is not None:
            if not self._allow_forced_dice:
                raise ActionRejected(RejectionReason.INVALID_ACTION, "forced dice are disabled")
            values = tuple(action.forced_value)
            if len(values) != 2 or not all(isinstance(v, int) and 1 <= v <= 6 for v in values):
                raise ActionRejected(RejectionReason.INVALID_ACTION, f"invalid dice {values!r}")
        if action.forced_event is not None:
            if not self._allow_forced_dice:
                raise ActionRejected(RejectionReason.INVALID_ACTION, "forced dice are disabled")
            if not settings.uses_event_die or action.forced_event not in EVENT_DIE_FACES:
                raise ActionRejected(
                    RejectionReason.INVALID_ACTION, f"invalid event face {action.forced_event!r}"
                )

    def _roll_dice(self, player: Player, action: RollDice, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.ROLL)
        self._require_turn_holder(player)
        self._check_forced_roll(action)
        if dry_run:
            return None

        settings = state.settings
        if action.forced_value is not None:
            die1, die2 = action.forced_value
        else:
            die1, die2 = state.rng.randint(1, 6), state.rng.randint(1, 6)
        event = None
        if settings.uses_event_die:
            event = action.forced_event or state.rng.choice(EVENT_DIE_FACES)

        roll = DiceRoll(die1=die1, die2=die2, event=event)
        state.turn.last_roll = roll
        state.roll_history.append(roll.total)
        events: Events = [
            {
                "type": "dice_rolled",
                "player_id": player.player_id,
                "dice": [die1, die2],
                "total": roll.total,
                "event": event,
            }
        ]

        if event == "barbarian":
            state.barbarian_position += 1
            if state.barbarian_position >= BARBARIAN_TRACK_LENGTH:
                state.barbarian_position = 0
                events.append({"type": "barbarian_attack"})

        if roll.total != ROBBER_ROLL:
            gains = ledger.distribute_production(state, roll.total)
            events.append({"type": "production", "gains": gains})

        robber_event = roll.total == ROBBER_ROLL or (
            settings.uses_event_die and event in settings.robber_event_faces
        )
        if robber_event:
            self._start_robber_sequence()
        else:
            self._set_phase(Phase.MAIN)
        return events

    def _discard(self, player: Player, action: DiscardResources, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.DISCARD)
        required = state.pending_discards.get(player.player_id)
        if required is None:
            raise ActionRejected(RejectionReason.NOT_YOUR_TURN, "no discard pending for this player")
        robber.check_discard(player, required, action.resources)
        if dry_run:
            return None
        return self._apply_discard(player, action.resources)

    def _force_discard(self, _player: None, action: ForceDiscard, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.DISCARD)
        if action.player_id not in state.pending_discards:
            raise ActionRejected(RejectionReason.INVALID_ACTION, "no discard pending for this player")
        if dry_run:
            return None
        player = state.players[action.player_id]
        chosen = robber.auto_discard(state.rng, player, state.pending_discards[action.player_id])
        return self._apply_discard(player, chosen, forced=True)

    def _apply_discard(self, player: Player, resources: Dict[str, int], *, forced: bool = False) -> Events:
        state = self._state
        ledger.transfer(state, player, None, resources)
        del state.pending_discards[player.player_id]
        if not state.pending_discards:
            self._set_phase(Phase.ROBBER_MOVE)
        return [
            {
                "type": "discarded",
                "player_id": player.player_id,
                "amount": sum(resources.values()),
                "forced": forced,
            }
        ]

    def _move_robber(self, player: Player, action: MoveRobber, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.ROBBER_MOVE)
        self._require_turn_holder(player)
        robber.check_robber_move(state, player.player_id, action.tile_id)
        if dry_run:
            return None
        state.robber_tile_id = action.tile_id
        state.counters["robber_moves"] += 1
        if robber.steal_targets(state, action.tile_id, player.player_id):
            self._set_phase(Phase.ROBBER_STEAL)
        else:
            self._leave_robber_sequence()
        return [{"type": "robber_moved", "player_id": player.player_id, "tile_id": action.tile_id}]

    def _steal(self, player: Player, action: StealResource, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.ROBBER_STEAL)
        self._require_turn_holder(player)
        if action.victim_id not in robber.steal_targets(state, state.robber_tile_id, player.player_id):
            raise ActionRejected(RejectionReason.INVALID_ACTION, f"cannot steal from {action.victim_id!r}")
        if dry_run:
            return None
        victim = state.players[action.victim_id]
        resource = robber.steal_random(state.rng, victim)
        ledger.transfer(state, victim, player, {resource: 1})
        victim.times_robbed += 1
        self._leave_robber_sequence()
        return [{"type": "resource_stolen", "thief_id": player.player_id, "victim_id": victim.player_id}]

    # -- Cartes de développement --
    def _buy_development(self, player: Player, action: BuyDevelopment, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.MAIN)
        self._require_turn_holder(player)
        devcards.check_buy(state, player)
        if dry_run:
            return None
        devcards.buy(state, player)
        return None

    def _play_development(self, player: Player, action: PlayDevelopment, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.MAIN)
        self._require_turn_holder(player)
        reason = devcards.playability(state, player, action.card_type)
        if reason is not None:
            raise ActionRejected(reason, action.card_type)
        if dry_run:
            return None

        devcards.consume(state, player, action.card_type)
        card_type = action.card_type
        if card_type == "KNIGHT":
            scoring.update_largest_army(state)
            state.turn.robber_return_phase = Phase.MAIN
            self._set_phase(Phase.ROBBER_MOVE)
        elif card_type == "ROAD_BUILDING":
            allowance = devcards.road_building_allowance(player)
            if allowance and ledger.legal_road_edges(state, player.player_id):
                state.turn.road_building_remaining = allowance
                self._set_phase(Phase.ROAD_BUILDING)
        elif card_type == "YEAR_OF_PLENTY":
            if devcards.year_of_plenty_pick_size(state) > 0:
                self._set_phase(Phase.YEAR_OF_PLENTY)
        elif card_type == "MONOPOLY":
            self._set_phase(Phase.MONOPOLY)
        return [{"type": "development_played", "player_id": player.player_id, "card_type": card_type}]

    def _select_year_of_plenty(
        self, player: Player, action: SelectYearOfPlenty, dry_run: bool
    ) -> Events | None:
        state = self._state
        self._require_phase(Phase.YEAR_OF_PLENTY)
        self._require_turn_holder(player)
        devcards.check_year_of_plenty(state, action.resources)
        if dry_run:
            return None
        devcards.apply_year_of_plenty(state, player, action.resources)
        self._set_phase(Phase.MAIN)
        return None

    def _select_monopoly(self, player: Player, action: SelectMonopoly, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.MONOPOLY)
        self._require_turn_holder(player)
        if action.resource not in RESOURCE_TYPES:
            raise ActionRejected(RejectionReason.INVALID_ACTION, f"unknown resource {action.resource!r}")
        if dry_run:
            return None
        taken = devcards.apply_monopoly(state, player, action.resource)
        self._set_phase(Phase.MAIN)
        return [
            {
                "type": "monopoly",
                "player_id": player.player_id,
                "resource": action.resource,
                "taken": taken,
            }
        ]

    # -- Échanges --
    def _trade_bank(self, player: Player, action: TradeBank, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.MAIN)
        self._require_turn_holder(player)
        trade.check_bank_trade(state, player, action.give, action.receive)
        if dry_run:
            return None
        trade.apply_bank_trade(state, player, action.give, action.receive)
        return None

    def _offer_trade(self, player: Player, action: OfferTrade, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.MAIN)
        self._require_turn_holder(player)
        trade.check_offer(state, player, action.offering, action.requesting, action.to_player_id)
        if dry_run:
            return None
        offer = trade.create_offer(
            state, player, action.offering, action.requesting, action.to_player_id, self._clock()
        )
        return [{"type": "offer_created", "offer_id": offer.offer_id}]

    def _accept_offer(self, player: Player, action: AcceptOffer, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.MAIN)
        trade.check_accept(state, action.offer_id, player.player_id)
        if dry_run:
            return None
        offer = trade.accept_offer(state, action.offer_id, player.player_id)
        return [_offer_event(offer, by=player.player_id)]

    def _decline_offer(self, player: Player, action: DeclineOffer, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.MAIN)
        trade.check_decline(state, action.offer_id, player.player_id)
        if dry_run:
            return None
        resolved = trade.decline_offer(state, action.offer_id, player.player_id)
        return [_offer_event(resolved)] if resolved is not None else None

    def _counter_offer(self, player: Player, action: CounterOffer, dry_run: bool) -> Events | None:
        state = self._state
        self._require_phase(Phase.MAIN)
        trade.check_counter(state, action.offer_id, player.player_id, action.offering, action.requesting)
        if dry_run:
            return None
        counter, resolved = trade.counter_offer(
            state,
            action.offer_id,
            player.player_id,
            action.offering,
            action.requesting,
            self._clock(),
        )
        events: Events = [{"type": "offer_created", "offer_id": counter.offer_id}]
        if resolved is not None:
            events.append(_offer_event(resolved))
        return events

    def _withdraw_offer(self, player: Player, action: WithdrawOffer, dry_run: bool) -> Events | None:
        state = self._state
        trade.check_withdraw(state, action.offer_id, player.player_id)
        if dry_run:
            return None
        return [_offer_event(trade.withdraw_offer(state, action.offer_id, player.player_id))]

    def _expire_offer(self, _player: None, action: ExpireOffer, dry_run: bool) -> Events | None:
        state = self._state
        trade.pending_offer(state, action.offer_id)
        if dry_run:
            return None
        return [_offer_event(trade.expire_offer(state, action.offer_id))]

    # -- Fin de tour --
    def _end_turn(self, player: Player, action: EndTurn, dry_run: bool) -> Events | None:
        self._require_phase(Phase.MAIN)
        self._require_turn_holder(player)
        if dry_run:
            return None
        return self._finish_turn()

    def _force_end_turn(self, _player: None, action: ForceEndTurn, dry_run: bool) -> Events | None:
        """Résout les étapes obligatoires du tour de façon déterministe puis passe la main."""

        if dry_run:
            return None
        state = self._state
        actor = state.current_player
        events: Events = []
        for _ in range(_MAX_FORCED_STEPS):
            phase = state.phase
            if phase in (Phase.SETUP_SETTLEMENT_1, Phase.SETUP_SETTLEMENT_2):
                vertex_id = self._first_setup_vertex(actor)
                if vertex_id is None:
                    raise InvariantViolation("no legal setup vertex left")
                events += self._place_settlement(actor, PlaceSettlement(vertex_id), False) or []
            elif phase in (Phase.SETUP_ROAD_1, Phase.SETUP_ROAD_2):
                edge_id = self._first_setup_edge(actor)
                if edge_id is None:
                    raise InvariantViolation("no legal setup edge left")
                events += self._place_road(actor, PlaceRoad(edge_id), False) or []
                break
            elif phase == Phase.ROLL:
                events += self._roll_dice(actor, RollDice(), False) or []
            elif phase == Phase.DISCARD:
                for player_id in list(state.pending_discards):
                    events += self._force_discard(None, ForceDiscard(player_id), False) or []
            elif phase == Phase.ROBBER_MOVE:
                tile_id = robber.valid_robber_tiles(state, actor.player_id)[0]
                events += self._move_robber(actor, MoveRobber(tile_id), False) or []
            elif phase == Phase.ROBBER_STEAL:
                victim_id = robber.steal_targets(state, state.robber_tile_id, actor.player_id)[0]
                events += self._steal(actor, StealResource(victim_id), False) or []
            elif phase == Phase.ROAD_BUILDING:
                state.turn.road_building_remaining = 0
                self._set_phase(Phase.MAIN)
            elif phase == Phase.YEAR_OF_PLENTY:
                picks = devcards.first_year_of_plenty_pick(state)
                events += self._select_year_of_plenty(actor, SelectYearOfPlenty(picks), False) or []
            elif phase == Phase.MONOPOLY:
                events += self._select_monopoly(actor, SelectMonopoly(RESOURCE_TYPES[0]), False) or []
            elif phase == Phase.MAIN:
                events += self._finish_turn()
                break
            else:
                break
        else:
            raise InvariantViolation("forced end of turn did not converge")
        events.append({"type": "turn_forced", "player_id": actor.player_id})
        return events

    def _first_setup_vertex(self, player: Player) -> int | None:
        for vertex_id in sorted(self._state.board.vertices):
            if self._passes(player, PlaceSettlement(vertex_id)):
                return vertex_id
        return None

    def _first_setup_edge(self, player: Player) -> int | None:
        anchor = self._state.turn.setup_vertex_id
        if anchor is None:
            return None
        for edge_id in sorted(self._state.board.vertices[anchor].edges):
            if self._passes(player, PlaceRoad(edge_id)):
                return edge_id
        return None

    def _passes(self, player: Player, action: Action) -> bool:
        try:
            self._dispatch(player.player_id, action, dry_run=True)
        except ActionRejected:
            return False
        return True

    def _set_connection(self, _player: None, action: SetConnection, dry_run: bool) -> Events | None:
        state = self._state
        if action.player_id not in state.players:
            raise ActionRejected(RejectionReason.INVALID_ACTION, f"unknown player {action.player_id!r}")
        if dry_run:
            return None
        state.players[action.player_id].connected = action.connected
        logger.info("connection_changed", player_id=action.player_id, connected=action.connected)
        return None

    # -- Énumération --
    def _candidate_actions(self, player: Player) -> List[Action]:
        state = self._state
        phase = state.phase
        pid = player.player_id
        candidates: List[Action] = []

        if phase in (Phase.SETUP_SETTLEMENT_1, Phase.SETUP_SETTLEMENT_2, Phase.MAIN):
            candidates += [PlaceSettlement(vid) for vid in sorted(state.board.vertices)]
        if phase in (Phase.SETUP_ROAD_1, Phase.SETUP_ROAD_2):
            anchor = state.turn.setup_vertex_id
            if anchor is not None:
                candidates += [PlaceRoad(eid) for eid in state.board.vertices[anchor].edges]
        if phase in (Phase.MAIN, Phase.ROAD_BUILDING):
            candidates += [PlaceRoad(eid) for eid in ledger.legal_road_edges(state, pid)]

        if phase == Phase.ROLL:
            candidates.append(RollDice())
        elif phase == Phase.DISCARD and pid in state.pending_discards:
            candidates += [
                DiscardResources(split)
                for split in _discard_splits(player.resources, state.pending_discards[pid])
            ]
        elif phase == Phase.ROBBER_MOVE:
            candidates += [MoveRobber(tid) for tid in sorted(state.board.tiles)]
        elif phase == Phase.ROBBER_STEAL:
            candidates += [StealResource(other) for other in state.turn_order if other != pid]
        elif phase == Phase.YEAR_OF_PLENTY:
            candidates += [SelectYearOfPlenty(pick) for pick in _year_of_plenty_picks(state)]
        elif phase == Phase.MONOPOLY:
            candidates += [SelectMonopoly(resource) for resource in RESOURCE_TYPES]
        elif phase == Phase.MAIN:
            candidates += [BuildCity(vid) for vid in state.vertices_of(pid)]
            candidates.append(BuyDevelopment())
            candidates += [PlayDevelopment(card_type) for card_type in DEV_CARD_TYPES]
            rates = trade.trade_rates(state, pid)
            for give, rate in rates.items():
                for receive in RESOURCE_TYPES:
                    if receive != give:
                        candidates.append(TradeBank({give: rate}, {receive: 1}))
                        candidates.append(OfferTrade({give: 1}, {receive: 1}))
            for offer in state.offers.values():
                candidates += [AcceptOffer(offer.offer_id), DeclineOffer(offer.offer_id)]
                candidates.append(WithdrawOffer(offer.offer_id))
            candidates.append(EndTurn())
        return candidates


def _offer_event(offer, by: str | None = None) -> Dict[str, Any]:
    event: Dict[str, Any] = {
        "type": "offer_resolved",
        "offer_id": offer.offer_id,
        "status": offer.status,
    }
    if by is not None:
        event["by"] = by
    return event


def _discard_splits(resource_counts: Dict[str, int], total: int) -> List[Dict[str, int]]:
    """Génère toutes les combinaisons de défausse possibles."""

    results: List[Dict[str, int]] = []

    def backtrack(index: int, remaining: int, current: Dict[str, int]) -> None:
        if remaining == 0:
            results.append(dict(current))
            return
        if index >= len(RESOURCE_TYPES):
            return
        resource = RESOURCE_TYPES[index]
        for amount in range(min(resource_counts.get(resource, 0), remaining) + 1):
            if amount:
                current[resource] = amount
            else:
                current.pop(resource, None)
            backtrack(index + 1, remaining - amount, current)
        current.pop(resource, None)

    backtrack(0, total, {})
    return results


def _year_of_plenty_picks(state: GameState) -> List[Dict[str, int]]:
    size = devcards.year_of_plenty_pick_size(state)
    if size == 1:
        return [{resource: 1} for resource in RESOURCE_TYPES]
    picks: List[Dict[str, int]] = []
    for index, first in enumerate(RESOURCE_TYPES):
        for second in RESOURCE_TYPES[index:]:
            picks.append({first: 2} if first == second else {first: 1, second: 1})
    return picks


__all__ = ["ActionResult", "GameEngine"]
