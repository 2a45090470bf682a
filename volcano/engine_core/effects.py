"""
Effects - Side effects requested by the reducer.

The reducer never talks to the appliance, the leaderboard, or the clock.
It returns effect records; the session controller executes them in order
inside its single-writer boundary. This keeps phase side effects testable
without any device attached.

transition_effects() is the explicit (old_phase, new_phase) -> effects
table. Everything that used to hang off "phase changed" hooks lives there.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .state import GamePhase
from .scoring import normalized_score
from .action import Action

if TYPE_CHECKING:
    from .state import GameState


# Timer keys (rescheduling a key replaces the pending timer)
ADVANCE_TIMER = "advance"
PRIMING_TIMER = "priming"
WAIT_POLL_TIMER = "wait_poll"

RESULT_DISPLAY_DELAY = 2.0  # seconds
ELIMINATION_DISPLAY_DELAY = 4.0
PRIMING_PULSE_SECONDS = 5.0
WAIT_POLL_INTERVAL = 2.0
HEATER_RETRY_EVERY_POLLS = 5  # re-request heater every 10 s while waiting


class PhaseGate(Enum):
    """
    Which device commands the current phase permits.

    Consulted by the coordinator at the point of command issuance.
    """
    OPEN = "open"  # menu and temperature wait: heater/temperature writes allowed
    TURN = "turn"  # a turn is running: heater/temperature writes dropped
    HOLD = "hold"  # player holding: as TURN, and a normal pump stop is locked

    @classmethod
    def for_phase(cls, phase: GamePhase) -> PhaseGate:
        if phase in {GamePhase.SETUP, GamePhase.FINISHED, GamePhase.WAITING_FOR_TEMPERATURE}:
            return cls.OPEN
        if phase == GamePhase.ACTIVE:
            return cls.HOLD
        return cls.TURN

    @property
    def heater_allowed(self) -> bool:
        return self is PhaseGate.OPEN

    @property
    def pump_stop_locked(self) -> bool:
        return self is PhaseGate.HOLD


class DeviceIntent(Enum):
    """Semantic device requests, translated to wire writes by the coordinator."""
    PUMP_ON = "pump_on"
    PUMP_OFF = "pump_off"
    FORCE_STOP_PUMP = "force_stop_pump"
    HEATER_ON = "heater_on"
    HEATER_OFF = "heater_off"
    SET_TEMPERATURE = "set_temperature"
    READ_TEMPERATURE = "read_temperature"


# =============================================================================
# Effect records
# =============================================================================

@dataclass(frozen=True)
class DeviceCommand:
    intent: DeviceIntent
    value: int | None = None


@dataclass(frozen=True)
class SetPhaseGate:
    gate: PhaseGate


@dataclass(frozen=True)
class ScheduleTimer:
    """Fire `action` after `delay` seconds of logical time."""
    key: str
    delay: float
    action: Any  # engine_core.action.Action


@dataclass(frozen=True)
class CancelTimer:
    key: str


@dataclass(frozen=True)
class CancelTimers:
    """Cancel every pending timer."""


@dataclass(frozen=True)
class SubmitScores:
    """Leaderboard entries as (name, normalized score, rounds)."""
    entries: tuple[tuple[str, int, int], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PlayCue:
    cue: str


@dataclass(frozen=True)
class RequestOpponentTurn:
    """
    Ask the simulated opponent for an outcome.

    The reference_* fields describe the previous turn, which the opponent
    uses to pitch its own performance.
    """
    player_id: str
    cycle_duration: float
    reference_success: bool
    reference_hold: float


# =============================================================================
# Transition table
# =============================================================================

_RESULT_CUES = {
    GamePhase.COMPLETED: "success",
    GamePhase.FAILED: "failure",
    GamePhase.ELIMINATED: "elimination",
}


def leaderboard_entries(state: GameState) -> tuple[tuple[str, int, int], ...]:
    """Entries for every non-synthetic player at game end."""
    rounds = state.settings.total_rounds
    return tuple(
        (p.name, normalized_score(p.points, rounds), rounds)
        for p in state.players
        if not p.is_synthetic
    )


def transition_effects(old: GamePhase, new: GamePhase, state: GameState) -> list[Any]:
    """
    Side effects of moving from `old` to `new`.

    `state` is the state after the transition.
    """
    effects: list[Any] = []

    if PhaseGate.for_phase(old) != PhaseGate.for_phase(new):
        effects.append(SetPhaseGate(PhaseGate.for_phase(new)))

    if new == GamePhase.WAITING_FOR_TEMPERATURE:
        effects.append(DeviceCommand(DeviceIntent.HEATER_ON))
        effects.append(DeviceCommand(DeviceIntent.SET_TEMPERATURE, state.settings.temperature))
        effects.append(ScheduleTimer(WAIT_POLL_TIMER, WAIT_POLL_INTERVAL, Action.wait_poll()))

    elif new == GamePhase.PREPARATION and old in {
        GamePhase.SETUP,
        GamePhase.WAITING_FOR_TEMPERATURE,
    }:
        effects.append(PlayCue("game_start"))

    elif new == GamePhase.ACTIVE:
        effects.append(PlayCue("countdown"))

    elif new in _RESULT_CUES:
        effects.append(PlayCue(_RESULT_CUES[new]))

    elif new == GamePhase.FINISHED:
        effects.append(CancelTimers())
        effects.append(SubmitScores(leaderboard_entries(state)))
        effects.append(PlayCue("winner"))

    elif new == GamePhase.SETUP:
        effects.append(CancelTimers())

    if old == GamePhase.WAITING_FOR_TEMPERATURE and new != old:
        effects.append(CancelTimer(WAIT_POLL_TIMER))

    return effects
