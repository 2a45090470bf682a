"""
Engine Core - Deterministic session state management.

The engine is the part of the game that never touches hardware:
1. Holds GameState
2. Scores cycles and computes timings
3. Applies actions via the reducer
4. Describes side effects as records for the controller to run
"""

from .state import GamePhase, GameSettings, GameState, PlayerState, temperature_ready
from .action import Action, ActionType, ActionPayload, ActionResult
from .effects import (
    PhaseGate,
    DeviceIntent,
    DeviceCommand,
    SetPhaseGate,
    ScheduleTimer,
    CancelTimer,
    CancelTimers,
    SubmitScores,
    PlayCue,
    RequestOpponentTurn,
    transition_effects,
)
from .reducer import Reducer, apply_action

__all__ = [
    "GamePhase",
    "GameSettings",
    "GameState",
    "PlayerState",
    "temperature_ready",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "PhaseGate",
    "DeviceIntent",
    "DeviceCommand",
    "SetPhaseGate",
    "ScheduleTimer",
    "CancelTimer",
    "CancelTimers",
    "SubmitScores",
    "PlayCue",
    "RequestOpponentTurn",
    "transition_effects",
    "Reducer",
    "apply_action",
]
