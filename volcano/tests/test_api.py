"""
Tests for API layer.

Tests:
- GameService methods and error mapping
- HTTP endpoints via the FastAPI test client
- Session lifecycle via API
"""

import pytest

from ..api.schemas import ErrorCode
from ..api.service import GameService, ServiceError
from ..config import AppConfig
from ..engine_core.state import GamePhase


@pytest.fixture
def service(controller, appliance):
    """A service around the test controller (hot appliance, logical clock)."""
    return GameService(config=AppConfig(), controller=controller, appliance=appliance)


@pytest.fixture
def client(service):
    from fastapi.testclient import TestClient
    from ..api.app import create_app

    app = create_app(service=service, config=AppConfig())
    with TestClient(app) as client:
        yield client


class TestGameService:
    """Tests for GameService."""

    def test_add_player_returns_player(self, service):
        response = service.add_player("Ada")
        assert response.success
        assert response.phase == "setup"
        assert response.player.name == "Ada"
        assert response.player.player_id

    def test_remove_unknown_player(self, service):
        with pytest.raises(ServiceError) as exc:
            service.remove_player("nope")
        assert exc.value.error_code == ErrorCode.PLAYER_NOT_FOUND
        assert exc.value.status_code == 404

    def test_start_without_players(self, service):
        with pytest.raises(ServiceError) as exc:
            service.start_game()
        assert exc.value.error_code == ErrorCode.NO_PLAYERS
        assert exc.value.status_code == 409

    def test_settings_locked_during_game(self, service):
        service.add_player("Ada")
        service.start_game()
        with pytest.raises(ServiceError) as exc:
            service.update_settings({"total_rounds": 5})
        assert exc.value.error_code == ErrorCode.INVALID_PHASE

    def test_bad_setting_value(self, service):
        with pytest.raises(ServiceError) as exc:
            service.update_settings({"preparation_time": 60.0})
        assert exc.value.error_code == ErrorCode.VALIDATION_ERROR
        assert exc.value.status_code == 400

    def test_none_settings_ignored(self, service):
        service.update_settings({"total_rounds": 2, "hardcore_mode": None})
        state = service.get_state()
        assert state.settings.total_rounds == 2
        assert state.settings.hardcore_mode is False

    def test_hold_outside_turn(self, service):
        with pytest.raises(ServiceError) as exc:
            service.set_hold(True)
        assert exc.value.status_code == 409

    def test_complete_turn_reported_by_client(self, service, controller, run_until):
        service.add_player("Ada")
        service.add_player("Bo")
        service.start_game()
        run_until(controller, lambda c: c.phase == GamePhase.PREPARATION)

        response = service.complete_turn(True, 5.0)
        assert response.phase == "completed"
        assert service.get_rankings().rankings[0].points == 22

    def test_suppressed_device_request_is_not_an_error(self, service, controller, run_until):
        service.add_player("Ada")
        service.add_player("Bo")
        service.start_game()
        run_until(controller, lambda c: c.phase == GamePhase.PREPARATION)

        response = service.request_temperature(190)
        assert response.outcome.value == "suppressed_gate"
        assert not response.accepted
        assert response.device.gate == "turn"

    def test_disconnected_device_request(self, service, appliance):
        appliance.disconnect()
        with pytest.raises(ServiceError) as exc:
            service.request_brightness(50)
        assert exc.value.error_code == ErrorCode.NOT_CONNECTED
        assert exc.value.status_code == 503

    def test_leaderboard_after_game(self, service, controller, run_until):
        service.update_settings({"total_rounds": 1})
        service.add_player("Ada")
        service.start_game()
        run_until(controller, lambda c: c.phase == GamePhase.PREPARATION)
        service.complete_turn(True, 5.0)
        run_until(controller, lambda c: c.phase == GamePhase.FINISHED)

        board = service.get_leaderboard()
        assert board.count == 1
        assert board.entries[0].player_name == "Ada"


class TestEndpoints:
    """Tests for the HTTP surface."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_add_and_list_players(self, client):
        response = client.post("/api/v1/players", json={"name": "Ada"})
        assert response.status_code == 200
        player_id = response.json()["player"]["player_id"]

        game = client.get("/api/v1/game").json()
        assert [p["player_id"] for p in game["players"]] == [player_id]
        assert game["phase"] == "setup"

    def test_empty_name_rejected(self, client):
        response = client.post("/api/v1/players", json={"name": ""})
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_remove_unknown_player(self, client):
        response = client.delete("/api/v1/players/nope")
        assert response.status_code == 404
        assert response.json()["error_code"] == "PLAYER_NOT_FOUND"

    def test_remove_player(self, client):
        player_id = client.post("/api/v1/players", json={"name": "Ada"}).json()["player"]["player_id"]
        response = client.delete(f"/api/v1/players/{player_id}")
        assert response.status_code == 200
        assert client.get("/api/v1/game").json()["players"] == []

    def test_start_without_players(self, client):
        response = client.post("/api/v1/game/start")
        assert response.status_code == 409
        assert response.json()["error_code"] == "NO_PLAYERS"

    def test_update_settings(self, client):
        response = client.put("/api/v1/settings", json={"total_rounds": 2, "hardcore_mode": True})
        assert response.status_code == 200
        settings = client.get("/api/v1/game").json()["settings"]
        assert settings["total_rounds"] == 2
        assert settings["hardcore_mode"] is True
        assert settings["temperature"] == 200

    def test_settings_out_of_range(self, client):
        response = client.put("/api/v1/settings", json={"initial_cycle_duration": 1.0})
        assert response.status_code == 422

    def test_start_and_hold(self, client):
        client.post("/api/v1/players", json={"name": "Ada"})
        response = client.post("/api/v1/game/start")
        assert response.status_code == 200
        assert response.json()["phase"] == "waiting_for_temperature"

        # no turn yet while waiting
        response = client.post("/api/v1/game/hold", json={"pressed": True})
        assert response.status_code == 409

    def test_emergency_stop_outside_game(self, client):
        response = client.post("/api/v1/game/emergency-stop")
        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_PHASE"

    def test_reset(self, client):
        client.post("/api/v1/players", json={"name": "Ada"})
        client.post("/api/v1/game/start")
        response = client.post("/api/v1/game/reset")
        assert response.status_code == 200
        assert response.json()["phase"] == "setup"

    def test_temperature_request(self, client):
        response = client.post("/api/v1/device/temperature", json={"celsius": 210})
        assert response.status_code == 200
        body = response.json()
        assert body["outcome"] == "accepted"
        assert body["device"]["target_temperature"] == 210

    def test_temperature_out_of_range(self, client):
        response = client.post("/api/v1/device/temperature", json={"celsius": 300})
        assert response.status_code == 422

    def test_brightness_when_disconnected(self, client, appliance):
        appliance.disconnect()
        response = client.post("/api/v1/device/brightness", json={"percent": 50})
        assert response.status_code == 503
        assert response.json()["error_code"] == "NOT_CONNECTED"

    def test_device_state(self, client):
        body = client.get("/api/v1/device").json()
        assert body["connected"] is True
        assert body["gate"] == "open"

    def test_rankings_and_leaderboard_empty(self, client):
        assert client.get("/api/v1/rankings").json() == {"rankings": []}
        assert client.get("/api/v1/leaderboard").json() == {"entries": [], "count": 0}

    def test_endpoints_run_in_threadpool(self, client):
        """Endpoints block on the controller lock, so none may be a coroutine."""
        import inspect
        from fastapi.routing import APIRoute

        routes = [r for r in client.app.routes if isinstance(r, APIRoute)]
        assert routes
        for route in routes:
            assert not inspect.iscoroutinefunction(route.endpoint), route.path
