"""
Game State - The session data model.

Design principles:
- Immutable-friendly: the reducer works on a clone and returns it
- Serializable: plain dataclasses and enums only
- Device-agnostic: the session only sees the last temperature sample
  and the connection flag, never the appliance itself
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from copy import deepcopy
from enum import Enum
import uuid


# Temperature domain for the user-adjustable target (inclusive)
MIN_TEMPERATURE = 40
MAX_TEMPERATURE = 230

# Readiness band around the target
TEMPERATURE_TOLERANCE = 5


class GamePhase(Enum):
    """Phases of a game session."""
    SETUP = "setup"
    WAITING_FOR_TEMPERATURE = "waiting_for_temperature"
    PREPARATION = "preparation"  # countdown before the hold starts
    ACTIVE = "active"  # player holding
    COMPLETED = "completed"
    FAILED = "failed"
    ELIMINATED = "eliminated"
    PAUSED = "paused"  # between cycles
    FINISHED = "finished"


# Phases in which a player's turn is running (input is meaningful)
TURN_PHASES = frozenset({GamePhase.PREPARATION, GamePhase.ACTIVE})

# Phases that belong to a running game
RUNNING_PHASES = frozenset(set(GamePhase) - {GamePhase.SETUP, GamePhase.FINISHED})


@dataclass(frozen=True)
class GameSettings:
    """
    Game configuration.

    Settings are frozen: a running game always sees the values it started
    with. Changes go through UPDATE_SETTINGS, which is only legal in SETUP.
    """
    initial_cycle_duration: float = 5.0  # seconds
    cycle_increment: float = 2.0  # seconds added per cycle (hardcore) or round
    preparation_time: float = 5.0  # seconds before the hold starts
    temperature: int = 200  # target in Celsius
    total_rounds: int = 3  # 1 round = every active player plays once
    hardcore_mode: bool = False  # any failure eliminates
    single_player_mode: bool = False  # always add the simulated opponent

    def validate(self) -> None:
        """Raise ValueError if any setting is outside its domain."""
        if not 3.0 <= self.initial_cycle_duration <= 15.0:
            raise ValueError("initial_cycle_duration must be between 3 and 15 seconds")
        if not 0.5 <= self.cycle_increment <= 5.0:
            raise ValueError("cycle_increment must be between 0.5 and 5 seconds")
        if not 2.0 <= self.preparation_time <= 10.0:
            raise ValueError("preparation_time must be between 2 and 10 seconds")
        if not MIN_TEMPERATURE <= self.temperature <= MAX_TEMPERATURE:
            raise ValueError(
                f"temperature must be between {MIN_TEMPERATURE} and {MAX_TEMPERATURE} C"
            )
        if self.total_rounds < 1:
            raise ValueError("total_rounds must be at least 1")

    def with_changes(self, **changes) -> GameSettings:
        """Return validated settings with some fields replaced."""
        unknown = set(changes) - set(self.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
        settings = replace(self, **changes)
        settings.validate()
        return settings


def clamp_temperature(celsius: int) -> int:
    """Clamp a target temperature into the adjustable domain."""
    return max(MIN_TEMPERATURE, min(MAX_TEMPERATURE, int(celsius)))


def temperature_ready(current: int, target: int) -> bool:
    """
    Check the readiness tolerance.

    A zero reading means "no reading yet" and is never ready.
    """
    return current > 0 and abs(current - target) <= TEMPERATURE_TOLERANCE


@dataclass
class PlayerState:
    """
    State for a single player.

    Players are created at roster-build time and are only mutated by the
    reducer at cycle completion. Elimination is a flag, not removal.
    """
    player_id: str
    name: str
    points: int = 0
    is_eliminated: bool = False
    is_synthetic: bool = False

    completed_cycles: int = 0
    failed_cycles: int = 0
    consecutive_failures: int = 0
    skipped_last_turn: bool = False  # shortens the next cycle

    @classmethod
    def create(cls, name: str, is_synthetic: bool = False) -> PlayerState:
        return cls(player_id=uuid.uuid4().hex, name=name, is_synthetic=is_synthetic)

    @property
    def is_human(self) -> bool:
        return not self.is_synthetic

    def reset_stats(self) -> None:
        self.points = 0
        self.is_eliminated = False
        self.completed_cycles = 0
        self.failed_cycles = 0
        self.consecutive_failures = 0
        self.skipped_last_turn = False


@dataclass
class GameState:
    """
    Complete session state at a point in time.

    This is the canonical state that the reducer operates on.
    All state changes go through the reducer.
    """
    game_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    settings: GameSettings = field(default_factory=GameSettings)

    # Game phase
    phase: GamePhase = GamePhase.SETUP
    time_remaining: float = 0.0
    cycle_duration: float = 5.0

    # Turn tracking
    players: list[PlayerState] = field(default_factory=list)
    current_player_idx: int = 0
    current_round: int = 1
    turns_in_round: int = 0
    round_size: int = 0  # active players when the round began
    current_cycle: int = 1  # monotonic across the whole game

    # Logical clock (seconds, advanced by TICK)
    clock: float = 0.0

    # Input: most recent hold flag, read when the tick resolves a transition
    hold_pressed: bool = False
    hold_started_at: float | None = None

    # Device readiness as seen by the session
    current_temperature: int = 0
    device_connected: bool = False
    priming: bool = False
    wait_polls: int = 0

    # Last cycle results (for display)
    last_hold_seconds: float = 0.0
    last_points_earned: int = 0
    last_success: bool = False
    eliminated_player_name: str | None = None

    @property
    def current_player(self) -> PlayerState | None:
        """Get the current player."""
        if not self.players or self.current_player_idx >= len(self.players):
            return None
        return self.players[self.current_player_idx]

    @property
    def active_players(self) -> list[PlayerState]:
        return [p for p in self.players if not p.is_eliminated]

    @property
    def upcoming_player(self) -> PlayerState | None:
        """The player who will play after the current one, if any."""
        if len(self.active_players) <= 1:
            return None
        idx = self.current_player_idx
        for _ in range(len(self.players)):
            idx = (idx + 1) % len(self.players)
            if not self.players[idx].is_eliminated:
                return self.players[idx]
        return None

    def get_player(self, player_id: str) -> PlayerState | None:
        """Get player by ID."""
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None

    def ranked_players(self) -> list[PlayerState]:
        """Players sorted by points, highest first (stable for ties)."""
        return sorted(self.players, key=lambda p: p.points, reverse=True)

    def clone(self) -> GameState:
        """Deep copy the state."""
        return deepcopy(self)
