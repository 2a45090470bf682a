"""
API Service - Business logic layer between API and session.

The service:
1. Translates API requests to SessionController calls
2. Maps reducer/coordinator rejections to error codes
3. Formats snapshots and rankings as response models
4. Owns the background game loop

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import logging

from .schemas import (
    ActionResponse,
    CommandResponse,
    DeviceStateResponse,
    ErrorCode,
    GameStateResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    PlayerInfo,
    RankingEntry,
    RankingsResponse,
)
from ..bots import SimulatedOpponent
from ..config import AppConfig
from ..device import CommandOutcome, DeviceCoordinator, SimulatedAppliance
from ..engine_core.action import ActionResult
from ..leaderboard import InMemoryLeaderboard
from ..session import GameLoop, SessionController

logger = logging.getLogger(__name__)


# Reducer error codes -> API error codes and HTTP status
_ERROR_MAP: dict[str, tuple[ErrorCode, int]] = {
    "PLAYER_NOT_FOUND": (ErrorCode.PLAYER_NOT_FOUND, 404),
    "INVALID_PHASE": (ErrorCode.INVALID_PHASE, 409),
    "ALREADY_ELIMINATED": (ErrorCode.INVALID_PHASE, 409),
    "NO_PLAYERS": (ErrorCode.NO_PLAYERS, 409),
    "VALIDATION_ERROR": (ErrorCode.VALIDATION_ERROR, 400),
}


class ServiceError(Exception):
    """A request the session refused, with the code to report."""

    def __init__(self, error_code: ErrorCode, message: str, status_code: int = 400):
        super().__init__(message)
        self.error_code = error_code
        self.message = message
        self.status_code = status_code


def build_controller(config: AppConfig | None = None) -> tuple[SessionController, SimulatedAppliance]:
    """
    Wire a controller to a simulated appliance.

    Real transports are provided by the host; the simulator lets the API run
    standalone.
    """
    config = config or AppConfig()
    appliance = SimulatedAppliance()
    coordinator = DeviceCoordinator(appliance)
    controller = SessionController(
        coordinator,
        leaderboard=InMemoryLeaderboard(),
        opponent=SimulatedOpponent(seed=config.seed),
    )
    return controller, appliance


@dataclass
class GameService:
    """
    Main API service.

    Usage:
        service = GameService()
        service.add_player("Ada")
        service.start_game()
        snapshot = service.get_state()
    """
    config: AppConfig = field(default_factory=AppConfig)
    controller: SessionController | None = None
    appliance: SimulatedAppliance | None = None

    _loop: GameLoop | None = field(default=None, repr=False)

    def __post_init__(self):
        if self.controller is None:
            self.controller, self.appliance = build_controller(self.config)

    # =========================================================================
    # Game loop
    # =========================================================================

    def start_loop(self) -> None:
        if self._loop is None:
            on_tick = self.appliance.advance if self.appliance is not None else None
            self._loop = GameLoop(self.controller, self.config.tick_interval, on_tick=on_tick)
        self._loop.start()

    def stop_loop(self) -> None:
        if self._loop is not None:
            self._loop.stop()

    # =========================================================================
    # Session commands
    # =========================================================================

    def add_player(self, name: str) -> ActionResponse:
        result = self._check(self.controller.add_player(name))
        player = result.new_state.players[-1]
        return self._action_response(result, player=PlayerInfo.model_validate(player))

    def remove_player(self, player_id: str) -> ActionResponse:
        return self._action_response(self._check(self.controller.remove_player(player_id)))

    def update_settings(self, changes: dict[str, Any]) -> ActionResponse:
        changes = {k: v for k, v in changes.items() if v is not None}
        return self._action_response(self._check(self.controller.update_settings(**changes)))

    def start_game(self) -> ActionResponse:
        return self._action_response(self._check(self.controller.start_game()))

    def set_hold(self, pressed: bool) -> ActionResponse:
        return self._action_response(self._check(self.controller.set_hold(pressed)))

    def complete_turn(self, success: bool, hold_seconds: float) -> ActionResponse:
        return self._action_response(
            self._check(self.controller.complete_turn(success, hold_seconds))
        )

    def reset(self) -> ActionResponse:
        return self._action_response(self._check(self.controller.reset()))

    def emergency_stop(self) -> ActionResponse:
        return self._action_response(self._check(self.controller.emergency_stop()))

    # =========================================================================
    # Device commands
    # =========================================================================

    def request_temperature(self, celsius: int) -> CommandResponse:
        return self._command_response(self.controller.request_temperature(celsius))

    def request_brightness(self, percent: int) -> CommandResponse:
        return self._command_response(self.controller.request_brightness(percent))

    # =========================================================================
    # Queries
    # =========================================================================

    def get_state(self) -> GameStateResponse:
        return GameStateResponse.model_validate(self.controller.snapshot())

    def get_rankings(self) -> RankingsResponse:
        return RankingsResponse(
            rankings=[
                RankingEntry(
                    rank=i + 1,
                    player_id=p.player_id,
                    name=p.name,
                    points=p.points,
                    is_eliminated=p.is_eliminated,
                    is_synthetic=p.is_synthetic,
                )
                for i, p in enumerate(self.controller.rankings())
            ]
        )

    def get_leaderboard(self) -> LeaderboardResponse:
        entries = [
            LeaderboardEntry(
                player_name=s.player_name,
                score=s.score,
                rounds=s.rounds,
                date=s.date.isoformat(),
            )
            for s in self.controller.leaderboard.entries()
        ]
        return LeaderboardResponse(entries=entries, count=len(entries))

    def get_device(self) -> DeviceStateResponse:
        return DeviceStateResponse.model_validate(self.controller.device_state())

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check(self, result: ActionResult) -> ActionResult:
        if result.success:
            return result
        error_code, status = _ERROR_MAP.get(
            result.error_code or "", (ErrorCode.INTERNAL_ERROR, 500)
        )
        raise ServiceError(error_code, result.error or "Request failed", status)

    def _action_response(
        self, result: ActionResult, player: PlayerInfo | None = None
    ) -> ActionResponse:
        return ActionResponse(
            success=True,
            phase=self.controller.phase.value,
            state_changes=result.state_changes,
            player=player,
        )

    def _command_response(self, outcome: CommandOutcome) -> CommandResponse:
        if outcome == CommandOutcome.NOT_CONNECTED:
            raise ServiceError(ErrorCode.NOT_CONNECTED, "Device is not connected", 503)
        return CommandResponse(
            outcome=outcome,
            accepted=outcome.accepted,
            device=self.get_device(),
        )
