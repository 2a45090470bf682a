"""
FastAPI Application - REST API for game front ends.

Endpoints:
    GET    /health                         Health check
    GET    /api/v1/game                    Session snapshot
    POST   /api/v1/players                 Add player (setup)
    DELETE /api/v1/players/{player_id}     Remove player (setup)
    PUT    /api/v1/settings                Update settings (setup)
    POST   /api/v1/game/start              Start game
    POST   /api/v1/game/hold               Hold pressed/released
    POST   /api/v1/game/turn               Report a turn outcome
    POST   /api/v1/game/reset              Reset to setup
    POST   /api/v1/game/emergency-stop     Emergency stop
    GET    /api/v1/rankings                Current game rankings
    GET    /api/v1/leaderboard             Best scores across games
    GET    /api/v1/device                  Appliance state
    POST   /api/v1/device/temperature      Request target temperature
    POST   /api/v1/device/brightness       Request LED brightness

All responses are JSON with explicit Pydantic schemas. Rejections use the
ErrorResponse body.
"""

from contextlib import asynccontextmanager

from ..config import AppConfig


def create_app(service=None, config: AppConfig | None = None, run_loop: bool = False):
    """
    Create the FastAPI application.

    Args:
        service: Optional GameService instance (creates new if not provided)
        config: Optional AppConfig (read from the environment if not provided)
        run_loop: Tick the session in the background while the app runs

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Request
        from fastapi.exceptions import RequestValidationError
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import GameService, ServiceError
    from .schemas import (
        # Request models
        AddPlayerRequest,
        SettingsRequest,
        HoldRequest,
        CompleteTurnRequest,
        TemperatureRequest,
        BrightnessRequest,
        # Response models
        ActionResponse,
        GameStateResponse,
        RankingsResponse,
        LeaderboardResponse,
        DeviceStateResponse,
        CommandResponse,
        ErrorResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )

    config = config or AppConfig.from_env()
    game_service = service or GameService(config=config)

    @asynccontextmanager
    async def lifespan(app):
        if run_loop:
            game_service.start_loop()
        try:
            yield
        finally:
            game_service.stop_loop()

    app = FastAPI(
        title="Volcano Party API",
        description="""
Party game session controller for a heating/air-pump appliance.

## Error Codes

| Code | Description |
|------|-------------|
| `PLAYER_NOT_FOUND` | No player with that id |
| `INVALID_PHASE` | Not legal in the current game phase |
| `VALIDATION_ERROR` | Value out of range or malformed |
| `NOT_CONNECTED` | Appliance not connected |
| `NO_PLAYERS` | A game needs at least one human player |
        """,
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.service = game_service

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: dict | None = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        return make_error_response(exc.error_code, exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return make_error_response(
            ErrorCode.VALIDATION_ERROR,
            "Invalid request",
            status_code=422,
            details={"errors": [str(e.get("msg", e)) for e in exc.errors()]},
        )

    errors = {
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    }

    # Endpoints are plain functions: the service blocks on the controller lock,
    # so they run in the threadpool instead of on the event loop.

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/game",
        response_model=GameStateResponse,
        tags=["Game"],
        summary="Get the session snapshot",
    )
    def get_game() -> GameStateResponse:
        return game_service.get_state()

    @app.post(
        "/api/v1/players",
        response_model=ActionResponse,
        responses=errors,
        tags=["Setup"],
        summary="Add a player",
    )
    def add_player(body: AddPlayerRequest) -> ActionResponse:
        return game_service.add_player(body.name)

    @app.delete(
        "/api/v1/players/{player_id}",
        response_model=ActionResponse,
        responses=errors,
        tags=["Setup"],
        summary="Remove a player",
    )
    def remove_player(player_id: str) -> ActionResponse:
        return game_service.remove_player(player_id)

    @app.put(
        "/api/v1/settings",
        response_model=ActionResponse,
        responses=errors,
        tags=["Setup"],
        summary="Update game settings",
    )
    def update_settings(body: SettingsRequest) -> ActionResponse:
        """Only fields present in the body change. Setup phase only."""
        return game_service.update_settings(body.model_dump(exclude_none=True))

    @app.post(
        "/api/v1/game/start",
        response_model=ActionResponse,
        responses=errors,
        tags=["Game"],
        summary="Start the game",
    )
    def start_game() -> ActionResponse:
        return game_service.start_game()

    @app.post(
        "/api/v1/game/hold",
        response_model=ActionResponse,
        responses=errors,
        tags=["Game"],
        summary="Hold button pressed or released",
    )
    def hold(body: HoldRequest) -> ActionResponse:
        return game_service.set_hold(body.pressed)

    @app.post(
        "/api/v1/game/turn",
        response_model=ActionResponse,
        responses=errors,
        tags=["Game"],
        summary="Report a turn outcome",
    )
    def complete_turn(body: CompleteTurnRequest) -> ActionResponse:
        return game_service.complete_turn(body.success, body.hold_seconds)

    @app.post(
        "/api/v1/game/reset",
        response_model=ActionResponse,
        tags=["Game"],
        summary="Reset to setup",
    )
    def reset() -> ActionResponse:
        return game_service.reset()

    @app.post(
        "/api/v1/game/emergency-stop",
        response_model=ActionResponse,
        responses=errors,
        tags=["Game"],
        summary="Stop the running game",
    )
    def emergency_stop() -> ActionResponse:
        """Stops the pump and returns to setup; the current player loses 10 points."""
        return game_service.emergency_stop()

    @app.get(
        "/api/v1/rankings",
        response_model=RankingsResponse,
        tags=["Scores"],
        summary="Rankings for the current game",
    )
    def rankings() -> RankingsResponse:
        return game_service.get_rankings()

    @app.get(
        "/api/v1/leaderboard",
        response_model=LeaderboardResponse,
        tags=["Scores"],
        summary="Best score per player",
    )
    def leaderboard() -> LeaderboardResponse:
        return game_service.get_leaderboard()

    # =========================================================================
    # Device Endpoints
    # =========================================================================

    @app.get(
        "/api/v1/device",
        response_model=DeviceStateResponse,
        tags=["Device"],
        summary="Appliance state as seen by the coordinator",
    )
    def device() -> DeviceStateResponse:
        return game_service.get_device()

    @app.post(
        "/api/v1/device/temperature",
        response_model=CommandResponse,
        responses={503: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
        tags=["Device"],
        summary="Request a target temperature",
    )
    def request_temperature(body: TemperatureRequest) -> CommandResponse:
        """Suppressed outcomes are not errors; check `outcome`."""
        return game_service.request_temperature(body.celsius)

    @app.post(
        "/api/v1/device/brightness",
        response_model=CommandResponse,
        responses={503: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
        tags=["Device"],
        summary="Request LED brightness",
    )
    def request_brightness(body: BrightnessRequest) -> CommandResponse:
        return game_service.request_brightness(body.percent)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="volcano-party",
            version="1.0.0",
        )

    @app.get("/", tags=["System"])
    def root():
        """Root endpoint with API info."""
        return {
            "name": "Volcano Party API",
            "version": "1.0.0",
            "docs": "/api/docs",
            "health": "/health",
        }

    return app
