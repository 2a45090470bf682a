"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between a front end (TV screen, phone
remote, kiosk) and the session controller.

Error Codes:
- PLAYER_NOT_FOUND: No player with that id
- INVALID_PHASE: The request is not legal in the current game phase
- VALIDATION_ERROR: A value is out of range or malformed
- NOT_CONNECTED: The appliance is not connected
- NO_PLAYERS: A game cannot start without a human player
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field

from ..device.coordinator import CommandOutcome


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Structured error codes."""
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    INVALID_PHASE = "INVALID_PHASE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_CONNECTED = "NOT_CONNECTED"
    NO_PLAYERS = "NO_PLAYERS"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class PlayerInfo(BaseModel):
    """Player information for display."""
    player_id: str
    name: str
    points: int = 0
    is_eliminated: bool = False
    is_synthetic: bool = False
    completed_cycles: int = 0
    failed_cycles: int = 0
    consecutive_failures: int = 0
    skipped_last_turn: bool = False

    model_config = {"from_attributes": True}


class SettingsInfo(BaseModel):
    """Current game settings."""
    initial_cycle_duration: float
    cycle_increment: float
    preparation_time: float
    temperature: int
    total_rounds: int
    hardcore_mode: bool
    single_player_mode: bool

    model_config = {"from_attributes": True}


class TemperatureInfo(BaseModel):
    current: int = Field(description="Last reading in Celsius, 0 if none yet")
    target: int
    ready: bool = Field(description="Within 5 C of the target")


# =============================================================================
# Request Models
# =============================================================================

class AddPlayerRequest(BaseModel):
    """Add a player to the roster (setup only)."""
    name: str = Field(..., min_length=1, max_length=40)


class SettingsRequest(BaseModel):
    """
    Partial settings update (setup only).

    Omitted fields keep their current value.
    """
    initial_cycle_duration: Optional[float] = Field(None, ge=3.0, le=15.0)
    cycle_increment: Optional[float] = Field(None, ge=0.5, le=5.0)
    preparation_time: Optional[float] = Field(None, ge=2.0, le=10.0)
    temperature: Optional[int] = Field(None, ge=40, le=230)
    total_rounds: Optional[int] = Field(None, ge=1)
    hardcore_mode: Optional[bool] = None
    single_player_mode: Optional[bool] = None


class HoldRequest(BaseModel):
    pressed: bool = Field(..., description="True while the hold button is down")


class CompleteTurnRequest(BaseModel):
    """A turn outcome measured by the client."""
    success: bool
    hold_seconds: float = Field(..., ge=0.0)


class TemperatureRequest(BaseModel):
    celsius: int = Field(..., ge=40, le=230)


class BrightnessRequest(BaseModel):
    percent: int = Field(..., ge=0, le=100)


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class GameStateResponse(BaseModel):
    """Complete session snapshot for display."""
    game_id: str
    phase: str
    time_remaining: float
    cycle_duration: float
    current_round: int
    total_rounds: int
    current_cycle: int
    current_player: Optional[PlayerInfo] = None
    upcoming_player: Optional[PlayerInfo] = None
    players: list[PlayerInfo] = Field(default_factory=list)
    settings: SettingsInfo
    temperature: TemperatureInfo
    device_connected: bool
    priming: bool = False
    hold_pressed: bool = False
    last_hold_seconds: float = 0.0
    last_points_earned: int = 0
    eliminated_player_name: Optional[str] = None
    events: list[str] = Field(default_factory=list)
    api_version: str = "v1"


class ActionResponse(BaseModel):
    """Result of a session command."""
    success: bool
    phase: str
    state_changes: list[str] = Field(default_factory=list)
    player: Optional[PlayerInfo] = Field(None, description="Player added, if any")
    api_version: str = "v1"


class RankingEntry(BaseModel):
    rank: int
    player_id: str
    name: str
    points: int
    is_eliminated: bool
    is_synthetic: bool


class RankingsResponse(BaseModel):
    rankings: list[RankingEntry] = Field(default_factory=list)


class LeaderboardEntry(BaseModel):
    player_name: str
    score: int
    rounds: int
    date: str

    model_config = {"from_attributes": True}


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry] = Field(default_factory=list)
    count: int = 0


class DeviceStateResponse(BaseModel):
    """The coordinator's view of the appliance."""
    connected: bool
    heater_on: bool
    pump_on: bool
    heater_confirmed: Optional[bool] = None
    pump_confirmed: Optional[bool] = None
    target_temperature: int
    last_read_temperature: Optional[int] = None
    brightness: Optional[int] = None
    gate: str
    temperature_falling: bool = False


class CommandResponse(BaseModel):
    """Result of a device request."""
    outcome: CommandOutcome
    accepted: bool
    device: DeviceStateResponse


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
