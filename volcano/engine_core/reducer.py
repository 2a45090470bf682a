"""
Reducer - Applies actions to session state.

The reducer is the single point of state mutation.
All state changes must go through apply_action().

Design principles:
- Pure function: (state, action) -> (new_state, effects)
- Validates before applying
- Returns ActionResult with success/failure
- Never performs I/O: device commands, timers, leaderboard writes and
  audio cues come back as effect records for the controller
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import logging
import uuid

from .state import (
    GameState,
    GamePhase,
    PlayerState,
    TURN_PHASES,
    RUNNING_PHASES,
    temperature_ready,
)
from .action import Action, ActionType, ActionResult
from . import scoring
from .effects import (
    ADVANCE_TIMER,
    PRIMING_TIMER,
    WAIT_POLL_TIMER,
    ELIMINATION_DISPLAY_DELAY,
    HEATER_RETRY_EVERY_POLLS,
    PRIMING_PULSE_SECONDS,
    RESULT_DISPLAY_DELAY,
    WAIT_POLL_INTERVAL,
    CancelTimer,
    CancelTimers,
    DeviceCommand,
    DeviceIntent,
    RequestOpponentTurn,
    ScheduleTimer,
    transition_effects,
)

logger = logging.getLogger(__name__)


OPPONENT_NAME = "Snoop"

# Phases that show a cycle result before the display delay elapses
RESULT_PHASES = frozenset({GamePhase.COMPLETED, GamePhase.FAILED, GamePhase.ELIMINATED})

# Tolerance for float countdowns (0.1 s ticks never land exactly on zero)
_EPSILON = 1e-9


@dataclass
class _Step:
    """Effects, transitions and change notes collected while handling one action."""
    effects: list[Any] = field(default_factory=list)
    transitions: list[tuple[GamePhase, GamePhase]] = field(default_factory=list)
    changes: list[str] = field(default_factory=list)


class _Rejected(Exception):
    """Raised inside a handler to reject the action without touching state."""

    def __init__(self, error: str, error_code: str):
        super().__init__(error)
        self.error = error
        self.error_code = error_code


@dataclass
class Reducer:
    """
    Reducer applies actions to session state.

    Stateless - all state is in GameState. Handlers work on a clone, so a
    rejected or failing action leaves the caller's state untouched.
    """

    def apply(self, state: GameState, action: Action) -> ActionResult:
        """
        Apply an action to the session state.

        Returns ActionResult with new state and effects, or error.
        """
        validation_error = self._validate_action(state, action)
        if validation_error:
            return ActionResult.failure(validation_error, error_code="INVALID_PHASE")

        handler = self._get_handler(action.action_type)
        if not handler:
            return ActionResult.failure(
                f"No handler for action type: {action.action_type}",
                error_code="NO_HANDLER",
            )

        new_state = state.clone()
        step = _Step()
        try:
            handler(new_state, action, step)
        except _Rejected as e:
            return ActionResult.failure(e.error, error_code=e.error_code)
        except ValueError as e:
            return ActionResult.failure(str(e), error_code="VALIDATION_ERROR")
        except Exception as e:
            logger.exception("Handler for %s failed", action.action_type.value)
            return ActionResult.failure(str(e), error_code="HANDLER_ERROR")

        return ActionResult.success_with_state(
            new_state,
            effects=step.effects,
            transitions=step.transitions,
            changes=step.changes,
        )

    def _validate_action(self, state: GameState, action: Action) -> str | None:
        """
        Validate that an action is legal in the current phase.

        Returns error message if invalid, None if valid.
        """
        setup_actions = {
            ActionType.ADD_PLAYER,
            ActionType.REMOVE_PLAYER,
            ActionType.UPDATE_SETTINGS,
            ActionType.START_GAME,
        }
        if action.action_type in setup_actions and state.phase != GamePhase.SETUP:
            return f"{action.action_type.value} is only allowed during setup"

        input_actions = {ActionType.HOLD, ActionType.COMPLETE_TURN}
        if action.action_type in input_actions and state.phase not in TURN_PHASES:
            return f"No turn in progress (phase: {state.phase.value})"

        if action.action_type == ActionType.EMERGENCY_STOP and state.phase not in RUNNING_PHASES:
            return "Emergency stop is only available during a game"

        return None

    def _get_handler(self, action_type: ActionType) -> Callable | None:
        """Get the handler function for an action type."""
        handlers = {
            ActionType.ADD_PLAYER: self._handle_add_player,
            ActionType.REMOVE_PLAYER: self._handle_remove_player,
            ActionType.UPDATE_SETTINGS: self._handle_update_settings,
            ActionType.START_GAME: self._handle_start_game,
            ActionType.HOLD: self._handle_hold,
            ActionType.COMPLETE_TURN: self._handle_complete_turn,
            ActionType.TICK: self._handle_tick,
            ActionType.ADVANCE: self._handle_advance,
            ActionType.PRIMING_DONE: self._handle_priming_done,
            ActionType.WAIT_POLL: self._handle_wait_poll,
            ActionType.TEMPERATURE_SAMPLE: self._handle_temperature_sample,
            ActionType.DEVICE_CONNECTED: self._handle_device_connected,
            ActionType.DEVICE_DISCONNECTED: self._handle_device_disconnected,
            ActionType.RESET: self._handle_reset,
            ActionType.EMERGENCY_STOP: self._handle_emergency_stop,
        }
        return handlers.get(action_type)

    # =========================================================================
    # Setup
    # =========================================================================

    def _handle_add_player(self, state: GameState, action: Action, step: _Step) -> None:
        name = (action.payload.name or "").strip()
        if not name:
            raise ValueError("Player name must not be empty")
        player = PlayerState.create(
            name, is_synthetic=bool(action.payload.params.get("is_synthetic", False))
        )
        state.players.append(player)
        step.changes.append(f"{name} joined")

    def _handle_remove_player(self, state: GameState, action: Action, step: _Step) -> None:
        player = state.get_player(action.payload.player_id)
        if not player:
            raise _Rejected(f"Player {action.payload.player_id} not found", "PLAYER_NOT_FOUND")
        state.players.remove(player)
        state.current_player_idx = 0
        step.changes.append(f"{player.name} left")

    def _handle_update_settings(self, state: GameState, action: Action, step: _Step) -> None:
        state.settings = state.settings.with_changes(**action.payload.params)
        step.changes.append("Settings updated")

    def _handle_start_game(self, state: GameState, action: Action, step: _Step) -> None:
        """
        Build the roster and start the first cycle.

        The simulated opponent joins when there is exactly one human or
        single-player mode is on. A human always plays first.
        """
        state.players = [p for p in state.players if not p.is_synthetic]
        if not state.players:
            raise _Rejected("At least one human player is required", "NO_PLAYERS")

        for player in state.players:
            player.reset_stats()

        if state.settings.single_player_mode or len(state.players) == 1:
            state.players.append(PlayerState.create(OPPONENT_NAME, is_synthetic=True))
            step.changes.append(f"{OPPONENT_NAME} joined the game")

        state.game_id = uuid.uuid4().hex
        state.current_player_idx = next(
            i for i, p in enumerate(state.players) if p.is_human
        )
        state.current_cycle = 1
        state.current_round = 1
        state.turns_in_round = 0
        state.round_size = len(state.players)
        state.wait_polls = 0
        state.priming = False
        state.last_hold_seconds = 0.0
        state.last_points_earned = 0
        state.eliminated_player_name = None

        if state.device_connected and temperature_ready(
            state.current_temperature, state.settings.temperature
        ):
            self._begin_preparation(state, step)
        else:
            self._set_phase(state, step, GamePhase.WAITING_FOR_TEMPERATURE)
        step.changes.append(
            f"Game started: {state.settings.total_rounds} rounds, {len(state.players)} players"
        )

    # =========================================================================
    # Player input
    # =========================================================================

    def _handle_hold(self, state: GameState, action: Action, step: _Step) -> None:
        """
        Record the hold signal.

        The flag is what the next tick reads, so the latest input wins.
        Releasing during ACTIVE ends the cycle immediately as a failure.
        """
        player = state.current_player
        if player is None or player.is_synthetic:
            raise _Rejected("Not a human player's turn", "INVALID_PHASE")

        pressed = bool(action.payload.pressed)
        state.hold_pressed = pressed

        if state.phase != GamePhase.ACTIVE or pressed:
            return

        held = self._held_seconds(state)
        state.hold_started_at = None
        if state.time_remaining > _EPSILON:
            step.changes.append(f"Early release after {held:.1f}s")
            self._complete_cycle(state, step, success=False, hold_seconds=held)

    def _handle_complete_turn(self, state: GameState, action: Action, step: _Step) -> None:
        """Apply a turn outcome reported by the input layer or the opponent."""
        player = state.current_player
        if player is None:
            raise _Rejected("No current player", "INVALID_PHASE")
        if player.is_eliminated:
            raise _Rejected(f"{player.name} is already eliminated", "ALREADY_ELIMINATED")

        hold_seconds = float(action.payload.hold_seconds or 0.0)
        if hold_seconds < 0:
            raise ValueError("hold_seconds must not be negative")

        self._complete_cycle(
            state, step, success=bool(action.payload.success), hold_seconds=hold_seconds
        )

    # =========================================================================
    # Clock
    # =========================================================================

    def _handle_tick(self, state: GameState, action: Action, step: _Step) -> None:
        dt = float(action.payload.dt or 0.0)
        if dt <= 0:
            raise ValueError("Tick interval must be positive")

        state.clock += dt
        if state.phase not in TURN_PHASES:
            return

        state.time_remaining -= dt
        if state.time_remaining > _EPSILON:
            return

        if state.phase == GamePhase.PREPARATION:
            player = state.current_player
            if state.hold_pressed and player is not None and player.is_human:
                state.time_remaining = state.cycle_duration
                state.hold_started_at = state.clock
                self._set_phase(state, step, GamePhase.ACTIVE)
                step.effects.append(DeviceCommand(DeviceIntent.PUMP_ON))
                step.changes.append("Hold started")
            else:
                step.changes.append("Never pressed")
                self._complete_cycle(state, step, success=False, hold_seconds=0.0)

        elif state.phase == GamePhase.ACTIVE:
            if state.hold_pressed:
                self._complete_cycle(
                    state, step, success=True, hold_seconds=state.cycle_duration
                )
            else:
                self._complete_cycle(
                    state, step, success=False, hold_seconds=self._held_seconds(state)
                )

    def _handle_advance(self, state: GameState, action: Action, step: _Step) -> None:
        """
        The result display delay elapsed: move on to the next player.

        Ends the game when fewer than two players remain or the last round
        is complete.
        """
        if state.phase not in RESULT_PHASES:
            raise _Rejected(f"Nothing to advance from {state.phase.value}", "STALE_TIMER")

        state.eliminated_player_name = None
        self._set_phase(state, step, GamePhase.PAUSED)

        if len(state.active_players) < 2:
            self._finish(state, step, "fewer than two players left")
            return

        if self._next_player(state, step):
            return

        state.current_cycle += 1
        self._begin_preparation(state, step)

    def _handle_priming_done(self, state: GameState, action: Action, step: _Step) -> None:
        if state.phase != GamePhase.WAITING_FOR_TEMPERATURE or not state.priming:
            raise _Rejected("No priming pulse in progress", "STALE_TIMER")

        state.priming = False
        step.effects.append(DeviceCommand(DeviceIntent.PUMP_OFF))
        if not state.device_connected:
            return
        self._begin_preparation(state, step)

    def _handle_wait_poll(self, state: GameState, action: Action, step: _Step) -> None:
        """
        Periodic check while waiting for temperature.

        Requests a reading for transports without push notifications, and
        re-requests heating every few polls (or while there is no reading at
        all). The coordinator coalesces the repeats.
        """
        if state.phase != GamePhase.WAITING_FOR_TEMPERATURE:
            raise _Rejected("Not waiting for temperature", "STALE_TIMER")

        state.wait_polls += 1
        step.effects.append(DeviceCommand(DeviceIntent.READ_TEMPERATURE))
        if state.wait_polls % HEATER_RETRY_EVERY_POLLS == 0 or state.current_temperature == 0:
            step.effects.append(DeviceCommand(DeviceIntent.HEATER_ON))
            step.effects.append(
                DeviceCommand(DeviceIntent.SET_TEMPERATURE, state.settings.temperature)
            )
        step.effects.append(ScheduleTimer(WAIT_POLL_TIMER, WAIT_POLL_INTERVAL, Action.wait_poll()))
        self._check_temperature(state, step)

    # =========================================================================
    # Device
    # =========================================================================

    def _handle_temperature_sample(self, state: GameState, action: Action, step: _Step) -> None:
        state.current_temperature = max(0, int(action.payload.celsius or 0))
        self._check_temperature(state, step)

    def _handle_device_connected(self, state: GameState, action: Action, step: _Step) -> None:
        state.device_connected = True
        self._check_temperature(state, step)

    def _handle_device_disconnected(self, state: GameState, action: Action, step: _Step) -> None:
        """
        The appliance went away.

        A running turn is abandoned without scoring and the session falls
        back to waiting for temperature; the same player resumes once the
        device reports ready again. A finished cycle still counts.
        """
        state.device_connected = False
        state.current_temperature = 0

        if state.priming:
            state.priming = False
            step.effects.append(CancelTimer(PRIMING_TIMER))

        if state.phase not in RUNNING_PHASES or state.phase == GamePhase.WAITING_FOR_TEMPERATURE:
            return

        step.effects.append(CancelTimers())
        step.effects.append(DeviceCommand(DeviceIntent.FORCE_STOP_PUMP))
        self._clear_hold(state)
        state.time_remaining = 0.0
        step.changes.append("Device lost, turn abandoned")

        if state.phase in RESULT_PHASES or state.phase == GamePhase.PAUSED:
            state.eliminated_player_name = None
            if len(state.active_players) < 2:
                self._finish(state, step, "fewer than two players left")
                return
            if self._next_player(state, step):
                return
            state.current_cycle += 1

        self._set_phase(state, step, GamePhase.WAITING_FOR_TEMPERATURE)

    # =========================================================================
    # Operator commands
    # =========================================================================

    def _handle_reset(self, state: GameState, action: Action, step: _Step) -> None:
        """Cancel everything and return to setup with a clean roster."""
        step.effects.append(CancelTimers())
        step.effects.append(DeviceCommand(DeviceIntent.FORCE_STOP_PUMP))

        state.players = [p for p in state.players if not p.is_synthetic]
        for player in state.players:
            player.reset_stats()
        self._reset_counters(state)
        self._set_phase(state, step, GamePhase.SETUP)
        step.changes.append("Game reset")

    def _handle_emergency_stop(self, state: GameState, action: Action, step: _Step) -> None:
        """
        Stop the game now.

        The active player pays for it; totals stay visible until the next
        game starts.
        """
        step.effects.append(CancelTimers())
        step.effects.append(DeviceCommand(DeviceIntent.FORCE_STOP_PUMP))

        player = state.current_player
        if player is not None:
            player.points -= scoring.EMERGENCY_STOP_PENALTY
            step.changes.append(
                f"Emergency stop: {player.name} -{scoring.EMERGENCY_STOP_PENALTY} pts"
            )

        self._reset_counters(state)
        self._set_phase(state, step, GamePhase.SETUP)

    # =========================================================================
    # Transitions
    # =========================================================================

    def _set_phase(self, state: GameState, step: _Step, phase: GamePhase) -> None:
        old = state.phase
        if old == phase:
            return
        state.phase = phase
        step.transitions.append((old, phase))
        step.effects.extend(transition_effects(old, phase, state))

    def _begin_preparation(self, state: GameState, step: _Step) -> None:
        """Start a cycle for the current player."""
        player = state.current_player
        if player is None or player.is_eliminated:
            self._finish(state, step, "no playable player", violation=True)
            return

        state.cycle_duration = scoring.cycle_duration(
            state.settings,
            state.current_cycle,
            state.current_round,
            player.skipped_last_turn,
        )
        state.time_remaining = scoring.preparation_time(state.settings, state.current_round)
        self._clear_hold(state)
        self._set_phase(state, step, GamePhase.PREPARATION)

        if player.is_synthetic:
            step.effects.append(
                RequestOpponentTurn(
                    player_id=player.player_id,
                    cycle_duration=state.cycle_duration,
                    reference_success=state.last_success,
                    reference_hold=state.last_hold_seconds,
                )
            )

    def _complete_cycle(
        self,
        state: GameState,
        step: _Step,
        success: bool,
        hold_seconds: float,
    ) -> None:
        """
        Score the current player's cycle and schedule the next turn.

        The pump is force-stopped here, once per cycle, however the cycle
        ended.
        """
        player = state.current_player
        if player is None or player.is_eliminated:
            self._finish(state, step, "cycle completed without a playable player", violation=True)
            return

        step.effects.append(DeviceCommand(DeviceIntent.FORCE_STOP_PUMP))

        result = scoring.score_turn(success, hold_seconds, state.cycle_duration)
        state.last_hold_seconds = hold_seconds
        state.last_points_earned = result.points
        state.last_success = success
        self._clear_hold(state)
        state.time_remaining = 0.0

        eliminated = False
        if success:
            player.completed_cycles += 1
            player.consecutive_failures = 0
            player.skipped_last_turn = False
            player.points += result.points
            self._set_phase(state, step, GamePhase.COMPLETED)
        else:
            player.failed_cycles += 1
            player.consecutive_failures += 1
            player.skipped_last_turn = result.skipped
            player.points += result.points
            self._set_phase(state, step, GamePhase.FAILED)

            if scoring.should_eliminate(state.settings.hardcore_mode, player.consecutive_failures):
                player.is_eliminated = True
                player.points -= scoring.ELIMINATION_PENALTY
                state.eliminated_player_name = player.name
                eliminated = True
                self._set_phase(state, step, GamePhase.ELIMINATED)
                step.changes.append(
                    f"{player.name} eliminated -{scoring.ELIMINATION_PENALTY} pts"
                )

        step.changes.append(
            f"{player.name}: {'SUCCESS' if success else 'FAILED'} "
            f"held {hold_seconds:.1f}s, +{result.points} (total {player.points})"
        )

        delay = ELIMINATION_DISPLAY_DELAY if eliminated else RESULT_DISPLAY_DELAY
        step.effects.append(ScheduleTimer(ADVANCE_TIMER, delay, Action.advance()))

    def _next_player(self, state: GameState, step: _Step) -> bool:
        """
        Count the finished turn and rotate to the next active player.

        A round is as many turns as there were active players when it
        began, so a player eliminated mid-round does not shorten it.

        Returns True if the game finished instead.
        """
        state.turns_in_round += 1
        if state.turns_in_round >= state.round_size:
            state.current_round += 1
            state.turns_in_round = 0
            state.round_size = len(state.active_players)
            step.changes.append(f"Round {state.current_round - 1} complete")
            if state.current_round > state.settings.total_rounds:
                self._finish(state, step, "all rounds played")
                return True

        idx = state.current_player_idx
        for _ in range(len(state.players)):
            idx = (idx + 1) % len(state.players)
            if not state.players[idx].is_eliminated:
                state.current_player_idx = idx
                return False

        self._finish(state, step, "no active players", violation=True)
        return True

    def _finish(
        self, state: GameState, step: _Step, reason: str, violation: bool = False
    ) -> None:
        """Move to FINISHED once per game."""
        if state.phase == GamePhase.FINISHED:
            return
        if violation:
            logger.error("Invariant violated (%s); finishing game %s", reason, state.game_id)
        state.time_remaining = 0.0
        self._clear_hold(state)
        self._set_phase(state, step, GamePhase.FINISHED)
        step.changes.append(f"Game finished: {reason}")

    def _check_temperature(self, state: GameState, step: _Step) -> None:
        """Start the priming pulse once the appliance is within tolerance."""
        if state.phase != GamePhase.WAITING_FOR_TEMPERATURE or state.priming:
            return
        if not state.device_connected:
            return
        if not temperature_ready(state.current_temperature, state.settings.temperature):
            return

        state.priming = True
        step.effects.append(DeviceCommand(DeviceIntent.PUMP_ON))
        step.effects.append(
            ScheduleTimer(PRIMING_TIMER, PRIMING_PULSE_SECONDS, Action.priming_done())
        )
        step.changes.append(
            f"Temperature reached ({state.current_temperature}C), priming for "
            f"{PRIMING_PULSE_SECONDS:.0f}s"
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _held_seconds(state: GameState) -> float:
        if state.hold_started_at is None:
            return 0.0
        return max(0.0, state.clock - state.hold_started_at)

    @staticmethod
    def _clear_hold(state: GameState) -> None:
        state.hold_pressed = False
        state.hold_started_at = None

    @staticmethod
    def _reset_counters(state: GameState) -> None:
        state.current_player_idx = 0
        state.current_cycle = 1
        state.current_round = 1
        state.turns_in_round = 0
        state.round_size = 0
        state.time_remaining = 0.0
        state.cycle_duration = state.settings.initial_cycle_duration
        state.priming = False
        state.wait_polls = 0
        state.eliminated_player_name = None
        Reducer._clear_hold(state)


def apply_action(state: GameState, action: Action) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates a Reducer and applies the action.
    """
    reducer = Reducer()
    return reducer.apply(state, action)
