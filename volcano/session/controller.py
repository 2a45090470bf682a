"""
Session Controller - The single-writer boundary around a game session.

Everything that can change the session goes through here:
- Public calls from the UI/API (roster, settings, hold input, commands)
- Ticks from the game loop, and the timers they fire
- Callbacks from the device transport (readings, connection changes)

Each entry point takes one re-entrant lock, runs the action through the
reducer, then executes the returned effects in order. Actions raised while
effects are executing (a transport error, an opponent turn, a reading
pushed during a read) are queued and applied after the current action's
effects, so effects always run against the state that produced them.
"""

from __future__ import annotations
from collections import deque
from dataclasses import asdict
from typing import Any
import logging
import threading

from ..engine_core.state import GameSettings, GameState, GamePhase, PlayerState, temperature_ready
from ..engine_core.action import Action, ActionResult
from ..engine_core.reducer import Reducer
from ..engine_core.effects import (
    CancelTimer,
    CancelTimers,
    DeviceCommand,
    PhaseGate,
    PlayCue,
    RequestOpponentTurn,
    ScheduleTimer,
    SetPhaseGate,
    SubmitScores,
)
from ..device.coordinator import CommandOutcome, DeviceCoordinator
from ..device.protocol import DeviceCommandId
from ..bots.policy import OpponentPolicy, SimulatedOpponent
from ..leaderboard import InMemoryLeaderboard, Leaderboard
from ..audio import AudioCues, NullAudioCues
from .scheduler import TimerScheduler

logger = logging.getLogger(__name__)


MAX_EVENTS = 50


class SessionController:
    """
    Owns the GameState and the collaborators that act on it.

    Usage:
        controller = SessionController(DeviceCoordinator(link))
        controller.add_player("Ada")
        controller.start_game()

        # from the game loop, every 100 ms
        controller.tick(0.1)

        # from key/button input
        controller.set_hold(True)

    Args:
        coordinator: Device command coordinator (wired to its link here)
        leaderboard: Receives scores when a game finishes
        audio: Receives cue names on phase changes
        opponent: Policy for the simulated opponent's turns
        settings: Initial game settings
    """

    def __init__(
        self,
        coordinator: DeviceCoordinator,
        leaderboard: Leaderboard | None = None,
        audio: AudioCues | None = None,
        opponent: OpponentPolicy | None = None,
        settings: GameSettings | None = None,
    ):
        self._lock = threading.RLock()
        self._queue: deque[Action] = deque()
        self._draining = False

        self.reducer = Reducer()
        self.scheduler = TimerScheduler()
        self.coordinator = coordinator
        self.leaderboard = leaderboard if leaderboard is not None else InMemoryLeaderboard()
        self.audio = audio if audio is not None else NullAudioCues()
        self.opponent = opponent if opponent is not None else SimulatedOpponent()

        if settings is not None:
            settings.validate()
        self.state = GameState(
            settings=settings or GameSettings(),
            device_connected=coordinator.connected,
        )
        self.events: deque[str] = deque(maxlen=MAX_EVENTS)

        coordinator.set_phase_gate(PhaseGate.for_phase(self.state.phase))
        coordinator.set_connection_listener(self._on_connection_lost)
        coordinator.link.set_notify_handler(self.on_device_notify)
        coordinator.link.set_connection_handler(self.on_device_connection)

    # =========================================================================
    # Session boundary
    # =========================================================================

    def add_player(self, name: str) -> ActionResult:
        return self.dispatch(Action.add_player(name))

    def remove_player(self, player_id: str) -> ActionResult:
        return self.dispatch(Action.remove_player(player_id))

    def update_settings(self, **changes: Any) -> ActionResult:
        return self.dispatch(Action.update_settings(**changes))

    def start_game(self) -> ActionResult:
        return self.dispatch(Action.start_game())

    def set_hold(self, pressed: bool) -> ActionResult:
        return self.dispatch(Action.hold(pressed))

    def complete_turn(self, success: bool, hold_seconds: float) -> ActionResult:
        return self.dispatch(Action.complete_turn(success, hold_seconds))

    def reset(self) -> ActionResult:
        return self.dispatch(Action.reset())

    def emergency_stop(self) -> ActionResult:
        return self.dispatch(Action.emergency_stop())

    def tick(self, dt: float) -> ActionResult:
        """Advance the logical clock and fire every timer now due."""
        with self._lock:
            result = self.dispatch(Action.tick(dt))
            timer = self.scheduler.pop_due(self.state.clock)
            while timer is not None:
                self.dispatch(timer.action)
                timer = self.scheduler.pop_due(self.state.clock)
            return result

    # =========================================================================
    # Device pass-throughs (gated by the coordinator)
    # =========================================================================

    def request_temperature(self, celsius: int) -> CommandOutcome:
        with self._lock:
            return self._drain_after(self.coordinator.request_temperature, celsius)

    def increase_temperature(self) -> CommandOutcome:
        with self._lock:
            return self._drain_after(self.coordinator.increase_temperature)

    def decrease_temperature(self) -> CommandOutcome:
        with self._lock:
            return self._drain_after(self.coordinator.decrease_temperature)

    def request_brightness(self, percent: int) -> CommandOutcome:
        with self._lock:
            return self._drain_after(self.coordinator.request_brightness, percent)

    # =========================================================================
    # Transport callbacks
    # =========================================================================

    def on_device_notify(self, command: DeviceCommandId, payload: bytes) -> None:
        """Called from the transport's thread with a pushed or read value."""
        with self._lock:
            celsius = self.coordinator.handle_notification(command, payload)
            if celsius is not None:
                self.dispatch(Action.temperature_sample(celsius))

    def on_device_connection(self, connected: bool) -> None:
        with self._lock:
            if connected:
                self.coordinator.on_connected()
                self.dispatch(Action.device_connected())
            else:
                self.coordinator.on_disconnected()
                self.dispatch(Action.device_disconnected())

    def _on_connection_lost(self, connected: bool) -> None:
        if not connected:
            self.dispatch(Action.device_disconnected())

    # =========================================================================
    # Dispatch
    # =========================================================================

    def dispatch(self, action: Action) -> ActionResult:
        """
        Apply an action and execute its effects.

        Re-entrant calls (from inside effect execution) are queued and
        applied once the current effects are done; they return a success
        result carrying the current state.
        """
        with self._lock:
            if self._draining:
                self._queue.append(action)
                return ActionResult.success_with_state(self.state)

            self._draining = True
            try:
                result = self._apply(action)
                while self._queue:
                    self._apply(self._queue.popleft())
            finally:
                self._draining = False
            return result

    def _drain_after(self, call, *args) -> Any:
        """Run a coordinator call, then apply any actions it raised."""
        if self._draining:
            return call(*args)
        self._draining = True
        try:
            outcome = call(*args)
        finally:
            self._draining = False
        while self._queue:
            self.dispatch(self._queue.popleft())
        return outcome

    def _apply(self, action: Action) -> ActionResult:
        result = self.reducer.apply(self.state, action)
        if not result.success:
            if result.error_code == "STALE_TIMER":
                logger.debug("[timer-abort] %s: %s", action.action_type.value, result.error)
            else:
                logger.info(
                    "Rejected %s: %s (%s)", action.action_type.value, result.error, result.error_code
                )
            return result

        self.state = result.new_state
        for old, new in result.transitions:
            logger.info("Phase %s -> %s", old.value, new.value)
        for change in result.state_changes:
            logger.info(change)
            self.events.append(change)

        for effect in result.effects:
            self._execute(effect)
        return result

    def _execute(self, effect: Any) -> None:
        if isinstance(effect, DeviceCommand):
            outcome = self.coordinator.execute(effect.intent, effect.value)
            logger.debug("%s -> %s", effect.intent.value, outcome.value)

        elif isinstance(effect, SetPhaseGate):
            self.coordinator.set_phase_gate(effect.gate)

        elif isinstance(effect, ScheduleTimer):
            self.scheduler.schedule(effect.key, self.state.clock + effect.delay, effect.action)

        elif isinstance(effect, CancelTimer):
            self.scheduler.cancel(effect.key)

        elif isinstance(effect, CancelTimers):
            self.scheduler.cancel_all()

        elif isinstance(effect, SubmitScores):
            for name, score, rounds in effect.entries:
                try:
                    self.leaderboard.add_score(name, score, rounds)
                except Exception:
                    logger.exception("Leaderboard rejected score for %s", name)

        elif isinstance(effect, PlayCue):
            try:
                self.audio.play(effect.cue)
            except Exception:
                logger.exception("Audio cue %s failed", effect.cue)

        elif isinstance(effect, RequestOpponentTurn):
            outcome = self.opponent.play_turn(effect)
            logger.info("%s: %s", self.opponent.get_name(), outcome.explanation)
            self._queue.append(Action.complete_turn(outcome.success, outcome.hold_seconds))

        else:
            logger.error("Unknown effect %r", effect)

    # =========================================================================
    # Read accessors
    # =========================================================================

    @property
    def phase(self) -> GamePhase:
        return self.state.phase

    @property
    def time_remaining(self) -> float:
        return max(0.0, self.state.time_remaining)

    @property
    def cycle_duration(self) -> float:
        return self.state.cycle_duration

    @property
    def current_player(self) -> PlayerState | None:
        return self.state.current_player

    @property
    def upcoming_player(self) -> PlayerState | None:
        return self.state.upcoming_player

    def rankings(self) -> list[PlayerState]:
        with self._lock:
            return self.state.ranked_players()

    def snapshot(self) -> dict[str, Any]:
        """A consistent, JSON-friendly view of the session."""
        with self._lock:
            state = self.state
            settings = state.settings
            current = state.current_player
            upcoming = state.upcoming_player
            return {
                "game_id": state.game_id,
                "phase": state.phase.value,
                "time_remaining": round(max(0.0, state.time_remaining), 3),
                "cycle_duration": state.cycle_duration,
                "current_round": state.current_round,
                "total_rounds": settings.total_rounds,
                "current_cycle": state.current_cycle,
                "current_player": _player_dict(current) if current else None,
                "upcoming_player": _player_dict(upcoming) if upcoming else None,
                "players": [_player_dict(p) for p in state.players],
                "settings": asdict(settings),
                "temperature": {
                    "current": state.current_temperature,
                    "target": settings.temperature,
                    "ready": temperature_ready(state.current_temperature, settings.temperature),
                },
                "device_connected": state.device_connected,
                "priming": state.priming,
                "hold_pressed": state.hold_pressed,
                "last_hold_seconds": state.last_hold_seconds,
                "last_points_earned": state.last_points_earned,
                "eliminated_player_name": state.eliminated_player_name,
                "events": list(self.events),
            }

    def device_state(self) -> dict[str, Any]:
        with self._lock:
            return self.coordinator.state.to_dict()


def _player_dict(player: PlayerState) -> dict[str, Any]:
    return asdict(player)
