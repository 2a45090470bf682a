"""
Tests for the device command coordinator.

Tests:
- Pump de-duplication and the hold lock
- Heater gate, belief, cooldown, fallback
- Temperature clamping, gating and duplicate suppression
- Notifications and divergence
- Transport errors
"""

import pytest

from ..device.coordinator import CommandOutcome, DeviceCoordinator
from ..device.protocol import DeviceCommandId
from ..device.simulator import SimulatedAppliance
from ..engine_core.effects import DeviceIntent, PhaseGate
from ..engine_core.state import GamePhase


class TestPump:
    """Tests for pump requests."""

    def test_start_then_redundant_start(self, coordinator, appliance):
        assert coordinator.request_pump(True) == CommandOutcome.ACCEPTED
        assert coordinator.request_pump(True) == CommandOutcome.SUPPRESSED_REDUNDANT
        assert appliance.commands_sent(DeviceCommandId.PUMP_ON) == 1

    def test_stop_when_believed_off_is_redundant(self, coordinator, appliance):
        assert coordinator.request_pump(False) == CommandOutcome.SUPPRESSED_REDUNDANT
        assert appliance.writes == []

    def test_hold_gate_locks_normal_stop(self, coordinator):
        coordinator.request_pump(True)
        coordinator.set_phase_gate(PhaseGate.HOLD)
        assert coordinator.request_pump(False) == CommandOutcome.SUPPRESSED_GATE
        assert coordinator.state.pump_on

    def test_force_stop_bypasses_lock_and_belief(self, coordinator, appliance):
        coordinator.set_phase_gate(PhaseGate.HOLD)
        assert coordinator.force_stop_pump() == CommandOutcome.ACCEPTED
        assert coordinator.force_stop_pump() == CommandOutcome.ACCEPTED
        assert appliance.commands_sent(DeviceCommandId.PUMP_OFF) == 2
        assert not coordinator.state.pump_on

    def test_not_connected(self, clock):
        link = SimulatedAppliance(connected=False)
        coordinator = DeviceCoordinator(link, clock=clock)
        assert coordinator.request_pump(True) == CommandOutcome.NOT_CONNECTED
        assert coordinator.force_stop_pump() == CommandOutcome.NOT_CONNECTED
        assert not coordinator.state.pump_on


class TestHeater:
    """Tests for heater requests."""

    def test_start_within_cooldown_sends_once(self, coordinator, appliance, clock):
        assert coordinator.request_heater(True) == CommandOutcome.ACCEPTED
        assert coordinator.request_heater(True) == CommandOutcome.SUPPRESSED_REDUNDANT
        # firmware auto-off
        coordinator.state.heater_on = False
        clock.advance(3.0)
        assert coordinator.request_heater(True) == CommandOutcome.SUPPRESSED_RATE_LIMIT
        assert appliance.commands_sent(DeviceCommandId.HEATER_ON) == 1

    def test_start_allowed_after_cooldown(self, coordinator, appliance, clock):
        coordinator.request_heater(True)
        coordinator.state.heater_on = False
        clock.advance(8.0)
        assert coordinator.request_heater(True) == CommandOutcome.ACCEPTED
        assert appliance.commands_sent(DeviceCommandId.HEATER_ON) == 2

    @pytest.mark.parametrize("gate", [PhaseGate.TURN, PhaseGate.HOLD])
    def test_heater_and_temperature_gated_outside_open(self, coordinator, appliance, gate):
        coordinator.set_phase_gate(gate)
        assert coordinator.request_heater(True) == CommandOutcome.SUPPRESSED_GATE
        assert coordinator.request_heater(False) == CommandOutcome.SUPPRESSED_GATE
        assert coordinator.request_temperature(190) == CommandOutcome.SUPPRESSED_GATE
        assert appliance.writes == []

    def test_stop_not_deduplicated(self, coordinator, appliance):
        assert coordinator.request_heater(False) == CommandOutcome.ACCEPTED
        assert coordinator.request_heater(False) == CommandOutcome.ACCEPTED
        assert appliance.commands_sent(DeviceCommandId.HEATER_OFF) == 2

    def test_fallback_to_temperature_write(self, clock):
        link = SimulatedAppliance(has_heater_switch=False)
        coordinator = DeviceCoordinator(link, clock=clock, target_temperature=185)
        assert coordinator.request_heater(True) == CommandOutcome.ACCEPTED
        assert link.writes == [(DeviceCommandId.SET_TEMPERATURE, (1850).to_bytes(4, "little"))]
        assert coordinator.state.heater_on


OPEN_PHASES = {GamePhase.SETUP, GamePhase.FINISHED, GamePhase.WAITING_FOR_TEMPERATURE}


class TestPhaseGates:
    """Heater and temperature requests under the gate each phase maps to."""

    @pytest.mark.parametrize("phase", list(GamePhase))
    def test_gate_for_phase(self, coordinator, appliance, phase):
        gate = PhaseGate.for_phase(phase)
        assert (gate == PhaseGate.OPEN) == (phase in OPEN_PHASES)

        coordinator.set_phase_gate(gate)
        if gate == PhaseGate.OPEN:
            assert coordinator.request_heater(True) == CommandOutcome.ACCEPTED
            assert coordinator.request_temperature(190) == CommandOutcome.ACCEPTED
        else:
            assert coordinator.request_heater(True) == CommandOutcome.SUPPRESSED_GATE
            assert coordinator.request_temperature(190) == CommandOutcome.SUPPRESSED_GATE
            assert appliance.writes == []


class TestTemperature:
    """Tests for target temperature writes."""

    def test_write_encodes_tenths(self, coordinator, appliance):
        assert coordinator.request_temperature(200) == CommandOutcome.ACCEPTED
        assert appliance.writes[-1] == (DeviceCommandId.SET_TEMPERATURE, bytes([0xD0, 0x07, 0, 0]))
        assert coordinator.state.target_temperature == 200

    def test_identical_write_within_window_suppressed(self, coordinator, clock):
        coordinator.request_temperature(200)
        clock.advance(7.9)
        assert coordinator.request_temperature(200) == CommandOutcome.SUPPRESSED_REDUNDANT
        clock.advance(0.1)
        assert coordinator.request_temperature(200) == CommandOutcome.ACCEPTED

    def test_different_value_not_suppressed(self, coordinator):
        coordinator.request_temperature(200)
        assert coordinator.request_temperature(205) == CommandOutcome.ACCEPTED

    def test_clamped(self, coordinator):
        coordinator.request_temperature(500)
        assert coordinator.state.target_temperature == 230
        coordinator.request_temperature(0)
        assert coordinator.state.target_temperature == 40

    def test_step_up_and_down(self, coordinator):
        coordinator.request_temperature(225)
        coordinator.increase_temperature()
        assert coordinator.state.target_temperature == 230
        coordinator.increase_temperature()
        assert coordinator.state.target_temperature == 230
        coordinator.decrease_temperature()
        assert coordinator.state.target_temperature == 225

    def test_brightness_never_gated(self, coordinator, appliance):
        coordinator.set_phase_gate(PhaseGate.HOLD)
        assert coordinator.request_brightness(120) == CommandOutcome.ACCEPTED
        assert coordinator.state.brightness == 100
        assert appliance.brightness == 100


class TestNotifications:
    """Tests for inbound values."""

    def test_temperature_notification(self, coordinator):
        celsius = coordinator.handle_notification(
            DeviceCommandId.READ_TEMPERATURE, (1987).to_bytes(4, "little")
        )
        assert celsius == 198
        assert coordinator.state.last_read_temperature == 198

    def test_short_payload_dropped(self, coordinator):
        assert coordinator.handle_notification(DeviceCommandId.READ_TEMPERATURE, b"\x01") is None
        assert coordinator.state.last_read_temperature is None

    def test_falling_temperature_with_heater_on(self, coordinator):
        coordinator.request_heater(True)
        coordinator.on_temperature_sample(200)
        coordinator.on_temperature_sample(195)
        assert coordinator.state.temperature_falling
        coordinator.on_temperature_sample(196)
        assert not coordinator.state.temperature_falling

    def test_status_overwrites_belief(self, coordinator):
        coordinator.request_heater(True)
        coordinator.handle_notification(DeviceCommandId.HEATER_ON, b"\x00")
        assert coordinator.state.heater_confirmed is False
        assert not coordinator.state.heater_on

    def test_confirmed_unknown_until_reported(self, coordinator):
        assert coordinator.state.heater_confirmed is None
        assert coordinator.state.pump_confirmed is None


class TestTransportErrors:

    def test_write_error_marks_disconnected(self, coordinator, appliance):
        lost = []
        coordinator.set_connection_listener(lost.append)
        coordinator.request_pump(True)
        appliance.fail_writes = True
        assert coordinator.force_stop_pump() == CommandOutcome.NOT_CONNECTED
        assert not coordinator.connected
        assert not coordinator.state.pump_on
        assert lost == [False]

    def test_reconnect_resets_belief(self, coordinator):
        coordinator.request_heater(True)
        coordinator.on_disconnected()
        coordinator.on_connected()
        assert coordinator.connected
        assert not coordinator.state.heater_on


class TestExecute:

    def test_intents_map_to_requests(self, coordinator, appliance):
        coordinator.execute(DeviceIntent.HEATER_ON)
        coordinator.execute(DeviceIntent.SET_TEMPERATURE, 190)
        coordinator.execute(DeviceIntent.PUMP_ON)
        coordinator.execute(DeviceIntent.FORCE_STOP_PUMP)
        assert [c for c, _ in appliance.writes] == [
            DeviceCommandId.HEATER_ON,
            DeviceCommandId.SET_TEMPERATURE,
            DeviceCommandId.PUMP_ON,
            DeviceCommandId.PUMP_OFF,
        ]

    def test_read_goes_through_link(self, coordinator, appliance):
        assert coordinator.execute(DeviceIntent.READ_TEMPERATURE) == CommandOutcome.ACCEPTED
        assert appliance.reads == [DeviceCommandId.READ_TEMPERATURE]
