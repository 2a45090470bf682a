"""
Pytest fixtures for Volcano tests.
"""

import pytest

from ..engine_core.state import GameSettings, GameState, GamePhase, PlayerState
from ..engine_core.action import Action
from ..engine_core.reducer import apply_action
from ..device.coordinator import DeviceCoordinator
from ..device.simulator import SimulatedAppliance
from ..bots.policy import OpponentOutcome, ScriptedOpponent
from ..leaderboard import InMemoryLeaderboard
from ..audio import RecordingAudioCues
from ..session.controller import SessionController


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def apply_all(state: GameState, *actions: Action) -> tuple[GameState, list]:
    """Apply actions in order, asserting each succeeds. Returns state and all effects."""
    effects = []
    for action in actions:
        result = apply_action(state, action)
        assert result.success, f"{action.action_type.value}: {result.error}"
        state = result.new_state
        effects.extend(result.effects)
    return state, effects


@pytest.fixture
def ready_state() -> GameState:
    """Two humans in setup, device connected and at temperature."""
    state = GameState(
        game_id="test_game",
        settings=GameSettings(),
        device_connected=True,
        current_temperature=200,
    )
    state.players = [
        PlayerState(player_id="p1", name="Ada"),
        PlayerState(player_id="p2", name="Bo"),
    ]
    return state


@pytest.fixture
def preparing_state(ready_state: GameState) -> GameState:
    """Ready state with the game started: Ada is preparing."""
    state, _ = apply_all(ready_state, Action.start_game())
    assert state.phase == GamePhase.PREPARATION
    return state


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def appliance() -> SimulatedAppliance:
    """A connected appliance already at the default target."""
    return SimulatedAppliance(temperature=200.0)


@pytest.fixture
def coordinator(appliance: SimulatedAppliance, clock: FakeClock) -> DeviceCoordinator:
    return DeviceCoordinator(appliance, clock=clock)


@pytest.fixture
def audio() -> RecordingAudioCues:
    return RecordingAudioCues()


@pytest.fixture
def leaderboard() -> InMemoryLeaderboard:
    return InMemoryLeaderboard()


@pytest.fixture
def controller(appliance, audio, leaderboard) -> SessionController:
    """
    Controller wired to the simulated appliance.

    Rate limits run on the controller's logical clock, and the opponent
    always completes its cycle.
    """
    ctrl = None
    coordinator = DeviceCoordinator(appliance, clock=lambda: ctrl.state.clock)
    ctrl = SessionController(
        coordinator,
        leaderboard=leaderboard,
        audio=audio,
        opponent=ScriptedOpponent([OpponentOutcome(True, 5.0, "scripted")]),
    )
    return ctrl


@pytest.fixture
def run_until():
    """Tick a controller until a condition holds (or fail after `limit` seconds)."""

    def _run(controller: SessionController, condition, dt: float = 0.1, limit: float = 120.0):
        start = controller.state.clock
        while not condition(controller):
            assert controller.state.clock - start < limit, (
                f"Condition not reached; phase={controller.phase.value}"
            )
            controller.tick(dt)

    return _run
