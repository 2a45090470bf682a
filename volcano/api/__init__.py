"""
API Module - HTTP interface to the session.

Exposes the SessionController via REST for front ends:
1. Set up the roster and settings
2. Start the game and send hold input
3. Poll the snapshot for phase, timers and temperature
4. Read rankings and the leaderboard

All state lives in one in-process session.
"""

from .schemas import (
    # Requests
    AddPlayerRequest,
    SettingsRequest,
    HoldRequest,
    CompleteTurnRequest,
    TemperatureRequest,
    BrightnessRequest,
    # Responses
    ActionResponse,
    GameStateResponse,
    RankingsResponse,
    LeaderboardResponse,
    DeviceStateResponse,
    CommandResponse,
    ErrorResponse,
    ErrorCode,
    # Shared
    PlayerInfo,
)
from .service import GameService, ServiceError
from .app import create_app

__all__ = [
    # Requests
    "AddPlayerRequest",
    "SettingsRequest",
    "HoldRequest",
    "CompleteTurnRequest",
    "TemperatureRequest",
    "BrightnessRequest",
    # Responses
    "ActionResponse",
    "GameStateResponse",
    "RankingsResponse",
    "LeaderboardResponse",
    "DeviceStateResponse",
    "CommandResponse",
    "ErrorResponse",
    "ErrorCode",
    # Shared
    "PlayerInfo",
    # Service
    "GameService",
    "ServiceError",
    "create_app",
]
