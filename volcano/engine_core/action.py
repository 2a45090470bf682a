"""
Action System - Actions, payloads, and results.

Actions represent:
1. Roster and settings edits (setup only)
2. Player input (hold signal, reported turn outcome)
3. Clock events (periodic tick, fired delay timers)
4. Device events (temperature samples, connection changes)
5. Operator commands (reset, emergency stop)

All session state changes flow through actions.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActionType(Enum):
    """Types of actions in the system."""
    # Setup actions
    ADD_PLAYER = "add_player"
    REMOVE_PLAYER = "remove_player"
    UPDATE_SETTINGS = "update_settings"
    START_GAME = "start_game"

    # Player input
    HOLD = "hold"
    COMPLETE_TURN = "complete_turn"

    # Clock actions
    TICK = "tick"
    ADVANCE = "advance"  # display delay elapsed
    PRIMING_DONE = "priming_done"
    WAIT_POLL = "wait_poll"

    # Device actions
    TEMPERATURE_SAMPLE = "temperature_sample"
    DEVICE_CONNECTED = "device_connected"
    DEVICE_DISCONNECTED = "device_disconnected"

    # Operator actions
    RESET = "reset"
    EMERGENCY_STOP = "emergency_stop"


@dataclass
class ActionPayload:
    """
    Payload for an action - contains the action parameters.

    Different action types use different fields.
    This is a generic container; validation happens in the reducer.
    """
    player_id: str | None = None
    name: str | None = None

    # Input
    pressed: bool | None = None
    success: bool | None = None
    hold_seconds: float | None = None

    # Clock
    dt: float | None = None

    # Device
    celsius: int | None = None

    # Generic params
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class Action:
    """
    A complete action to be applied to the session state.

    Actions are:
    - Validated before application
    - Applied atomically by the reducer
    """
    action_type: ActionType
    payload: ActionPayload = field(default_factory=ActionPayload)

    @classmethod
    def add_player(cls, name: str, is_synthetic: bool = False) -> Action:
        return cls(
            action_type=ActionType.ADD_PLAYER,
            payload=ActionPayload(name=name, params={"is_synthetic": is_synthetic}),
        )

    @classmethod
    def remove_player(cls, player_id: str) -> Action:
        return cls(
            action_type=ActionType.REMOVE_PLAYER,
            payload=ActionPayload(player_id=player_id),
        )

    @classmethod
    def update_settings(cls, **changes: Any) -> Action:
        return cls(
            action_type=ActionType.UPDATE_SETTINGS,
            payload=ActionPayload(params=changes),
        )

    @classmethod
    def start_game(cls) -> Action:
        return cls(action_type=ActionType.START_GAME)

    @classmethod
    def hold(cls, pressed: bool) -> Action:
        """Factory for the player's hold signal (pressed or released)."""
        return cls(
            action_type=ActionType.HOLD,
            payload=ActionPayload(pressed=pressed),
        )

    @classmethod
    def complete_turn(cls, success: bool, hold_seconds: float) -> Action:
        """Factory for a turn outcome reported by the input layer."""
        return cls(
            action_type=ActionType.COMPLETE_TURN,
            payload=ActionPayload(success=success, hold_seconds=hold_seconds),
        )

    @classmethod
    def tick(cls, dt: float) -> Action:
        return cls(action_type=ActionType.TICK, payload=ActionPayload(dt=dt))

    @classmethod
    def advance(cls) -> Action:
        return cls(action_type=ActionType.ADVANCE)

    @classmethod
    def priming_done(cls) -> Action:
        return cls(action_type=ActionType.PRIMING_DONE)

    @classmethod
    def wait_poll(cls) -> Action:
        return cls(action_type=ActionType.WAIT_POLL)

    @classmethod
    def temperature_sample(cls, celsius: int) -> Action:
        return cls(
            action_type=ActionType.TEMPERATURE_SAMPLE,
            payload=ActionPayload(celsius=celsius),
        )

    @classmethod
    def device_connected(cls) -> Action:
        return cls(action_type=ActionType.DEVICE_CONNECTED)

    @classmethod
    def device_disconnected(cls) -> Action:
        return cls(action_type=ActionType.DEVICE_DISCONNECTED)

    @classmethod
    def reset(cls) -> Action:
        return cls(action_type=ActionType.RESET)

    @classmethod
    def emergency_stop(cls) -> Action:
        return cls(action_type=ActionType.EMERGENCY_STOP)


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether action succeeded
    - New state (if succeeded)
    - Errors (if failed)
    - Side effects for the controller to execute
    - Phase transitions taken, in order
    """
    success: bool
    new_state: Any | None = None  # GameState
    error: str | None = None
    error_code: str | None = None

    # For the controller
    effects: list[Any] = field(default_factory=list)  # engine_core.effects records
    transitions: list[tuple[Any, Any]] = field(default_factory=list)  # (old, new) GamePhase

    # For UI/presentation
    state_changes: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        effects: list[Any] | None = None,
        transitions: list[tuple[Any, Any]] | None = None,
        changes: list[str] | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            effects=effects or [],
            transitions=transitions or [],
            state_changes=changes or [],
        )
