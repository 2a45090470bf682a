"""
Device Command Coordinator - Safe command issuance to the appliance.

The appliance is physically stateful and command-based: a heater start
sent while the heater is already running toggles it off again, and a pump
stop/start burst during a draw can power-cycle the heater in firmware.
The coordinator sits between the session and the transport and decides,
per request, whether a write may go out:

1. Phase gate - heater and temperature writes only in OPEN phases,
   normal pump stops locked while a player holds
2. Belief - redundant pump starts/stops and heater starts are dropped
3. Rate limit - heater starts and identical temperature writes are
   spaced at least 8 seconds apart
4. Connection - nothing is written while disconnected

Every request returns a CommandOutcome; nothing here raises on policy.
Believed state is what we last told the appliance; confirmed state is what
the appliance last told us. The two are kept apart because they diverge
(front-panel buttons, firmware auto-off).
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Callable
import logging
import time

from ..engine_core.effects import PhaseGate, DeviceIntent
from ..engine_core.state import MIN_TEMPERATURE, MAX_TEMPERATURE, clamp_temperature
from .link import DeviceLink, DeviceLinkError
from .protocol import (
    DeviceCommandId,
    MIN_BRIGHTNESS,
    MAX_BRIGHTNESS,
    decode_brightness,
    decode_switch,
    decode_temperature,
    encode_brightness,
    encode_switch,
    encode_temperature,
)

logger = logging.getLogger(__name__)


HEATER_START_COOLDOWN = 8.0  # seconds between accepted heater starts
TEMPERATURE_REPEAT_WINDOW = 8.0  # identical temperature writes inside this are dropped
TEMPERATURE_STEP = 5


class CommandOutcome(Enum):
    """What happened to a device request."""
    ACCEPTED = "accepted"
    SUPPRESSED_GATE = "suppressed_gate"
    SUPPRESSED_RATE_LIMIT = "suppressed_rate_limit"
    SUPPRESSED_REDUNDANT = "suppressed_redundant"
    NOT_CONNECTED = "not_connected"

    @property
    def accepted(self) -> bool:
        return self is CommandOutcome.ACCEPTED


@dataclass
class DeviceState:
    """
    The coordinator's view of the appliance.

    heater_on / pump_on are beliefs; *_confirmed stay None until the
    transport reports status.
    """
    connected: bool = False
    heater_on: bool = False
    pump_on: bool = False
    heater_confirmed: bool | None = None
    pump_confirmed: bool | None = None

    target_temperature: int = 200
    last_read_temperature: int | None = None
    brightness: int | None = None
    gate: PhaseGate = PhaseGate.OPEN

    last_heater_start_at: float | None = None
    last_temperature_write: tuple[int, float] | None = None  # (celsius, when)
    temperature_falling: bool = False

    def reset_belief(self) -> None:
        self.heater_on = False
        self.pump_on = False
        self.heater_confirmed = None
        self.pump_confirmed = None
        self.temperature_falling = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["gate"] = self.gate.value
        return data


class DeviceCoordinator:
    """
    Gatekeeper for every command sent to the appliance.

    Not thread-safe on its own: the session controller calls it with its
    lock held, including for transport callbacks.

    Args:
        link: Transport to the appliance
        clock: Monotonic time source in seconds (injectable for tests)
        target_temperature: Initial target, also used for the heater fallback
    """

    def __init__(
        self,
        link: DeviceLink,
        clock: Callable[[], float] = time.monotonic,
        target_temperature: int = 200,
    ):
        self.link = link
        self._clock = clock
        self.state = DeviceState(
            connected=link.connected,
            target_temperature=clamp_temperature(target_temperature),
        )
        self._connection_listener: Callable[[bool], None] | None = None

    def set_connection_listener(self, listener: Callable[[bool], None] | None) -> None:
        """Called with False when a transport error drops the connection."""
        self._connection_listener = listener

    @property
    def connected(self) -> bool:
        return self.state.connected

    # =========================================================================
    # Session-facing dispatch
    # =========================================================================

    def execute(self, intent: DeviceIntent, value: int | None = None) -> CommandOutcome:
        """Run a DeviceCommand effect produced by the reducer."""
        if intent == DeviceIntent.PUMP_ON:
            return self.request_pump(True)
        if intent == DeviceIntent.PUMP_OFF:
            return self.request_pump(False)
        if intent == DeviceIntent.FORCE_STOP_PUMP:
            return self.force_stop_pump()
        if intent == DeviceIntent.HEATER_ON:
            return self.request_heater(True)
        if intent == DeviceIntent.HEATER_OFF:
            return self.request_heater(False)
        if intent == DeviceIntent.SET_TEMPERATURE:
            return self.request_temperature(
                self.state.target_temperature if value is None else value
            )
        if intent == DeviceIntent.READ_TEMPERATURE:
            return self.read_temperature()
        raise ValueError(f"Unknown device intent: {intent}")

    def set_phase_gate(self, gate: PhaseGate) -> None:
        if gate != self.state.gate:
            logger.debug("Phase gate %s -> %s", self.state.gate.value, gate.value)
        self.state.gate = gate

    # =========================================================================
    # Pump
    # =========================================================================

    def request_pump(self, on: bool) -> CommandOutcome:
        """Start or stop the air pump, idempotent on belief."""
        if not on and self.state.gate.pump_stop_locked:
            logger.info("Pump stop blocked while a player is holding")
            return CommandOutcome.SUPPRESSED_GATE

        if self.state.pump_on == on:
            logger.debug("Pump already %s, request skipped", "on" if on else "off")
            return CommandOutcome.SUPPRESSED_REDUNDANT

        command = DeviceCommandId.PUMP_ON if on else DeviceCommandId.PUMP_OFF
        outcome = self._transmit(command, encode_switch(on))
        if outcome.accepted:
            self.state.pump_on = on
        return outcome

    def force_stop_pump(self) -> CommandOutcome:
        """
        Stop the pump regardless of belief and hold lock.

        Used at the end of every cycle and on reset/emergency stop, where
        a stale "already off" belief must not leave the pump running.
        """
        outcome = self._transmit(DeviceCommandId.PUMP_OFF, encode_switch(False))
        self.state.pump_on = False
        return outcome

    # =========================================================================
    # Heater
    # =========================================================================

    def request_heater(self, on: bool) -> CommandOutcome:
        if not self.state.gate.heater_allowed:
            logger.info(
                "Heater %s ignored (gate %s)", "start" if on else "stop", self.state.gate.value
            )
            return CommandOutcome.SUPPRESSED_GATE

        if not on:
            outcome = self._transmit(DeviceCommandId.HEATER_OFF, encode_switch(False))
            if outcome.accepted:
                self.state.heater_on = False
            return outcome

        if self.state.heater_on:
            logger.debug("Heater believed on, start skipped")
            return CommandOutcome.SUPPRESSED_REDUNDANT

        now = self._clock()
        last = self.state.last_heater_start_at
        if last is not None and now - last < HEATER_START_COOLDOWN:
            logger.debug("Heater start rate limited (%.1fs since last)", now - last)
            return CommandOutcome.SUPPRESSED_RATE_LIMIT

        if not self.state.connected:
            return CommandOutcome.NOT_CONNECTED

        if self.link.supports(DeviceCommandId.HEATER_ON):
            outcome = self._transmit(DeviceCommandId.HEATER_ON, encode_switch(True))
        else:
            # Writing the target starts heating on firmware without a heater switch
            logger.info("No heater characteristic, writing target temperature instead")
            outcome = self._write_temperature(self.state.target_temperature, now)

        if outcome.accepted:
            self.state.last_heater_start_at = now
            self.state.heater_on = True
        return outcome

    # =========================================================================
    # Temperature
    # =========================================================================

    def request_temperature(self, celsius: int) -> CommandOutcome:
        """Write a new target temperature, clamped to the adjustable range."""
        celsius = clamp_temperature(celsius)
        if not self.state.gate.heater_allowed:
            logger.info(
                "Temperature write %dC ignored (gate %s)", celsius, self.state.gate.value
            )
            return CommandOutcome.SUPPRESSED_GATE

        now = self._clock()
        last = self.state.last_temperature_write
        if last is not None and last[0] == celsius and now - last[1] < TEMPERATURE_REPEAT_WINDOW:
            logger.debug("Duplicate temperature write %dC skipped", celsius)
            return CommandOutcome.SUPPRESSED_REDUNDANT

        return self._write_temperature(celsius, now)

    def increase_temperature(self) -> CommandOutcome:
        return self.request_temperature(
            min(self.state.target_temperature + TEMPERATURE_STEP, MAX_TEMPERATURE)
        )

    def decrease_temperature(self) -> CommandOutcome:
        return self.request_temperature(
            max(self.state.target_temperature - TEMPERATURE_STEP, MIN_TEMPERATURE)
        )

    def _write_temperature(self, celsius: int, now: float) -> CommandOutcome:
        outcome = self._transmit(DeviceCommandId.SET_TEMPERATURE, encode_temperature(celsius))
        if outcome.accepted:
            self.state.target_temperature = celsius
            self.state.last_temperature_write = (celsius, now)
        return outcome

    def read_temperature(self) -> CommandOutcome:
        """Ask for a reading; it comes back through handle_notification."""
        if not self.state.connected:
            return CommandOutcome.NOT_CONNECTED
        try:
            self.link.read(DeviceCommandId.READ_TEMPERATURE)
        except DeviceLinkError as e:
            self._lose_connection(e)
            return CommandOutcome.NOT_CONNECTED
        return CommandOutcome.ACCEPTED

    # =========================================================================
    # Brightness
    # =========================================================================

    def request_brightness(self, percent: int) -> CommandOutcome:
        """Set the display LED brightness. Never gated."""
        percent = max(MIN_BRIGHTNESS, min(MAX_BRIGHTNESS, int(percent)))
        outcome = self._transmit(DeviceCommandId.SET_BRIGHTNESS, encode_brightness(percent))
        if outcome.accepted:
            self.state.brightness = percent
        return outcome

    # =========================================================================
    # Inbound
    # =========================================================================

    def handle_notification(self, command: DeviceCommandId, payload: bytes) -> int | None:
        """
        Apply a value pushed (or read back) by the appliance.

        Returns the temperature in Celsius when the notification was a
        valid temperature reading, None otherwise.
        """
        if command == DeviceCommandId.READ_TEMPERATURE:
            celsius = decode_temperature(payload)
            if celsius is None:
                logger.warning("Dropped short temperature payload (%d bytes)", len(payload))
                return None
            self.on_temperature_sample(celsius)
            return celsius

        if command == DeviceCommandId.SET_BRIGHTNESS:
            brightness = decode_brightness(payload)
            if brightness is None:
                logger.warning("Dropped short brightness payload (%d bytes)", len(payload))
            else:
                self.state.brightness = brightness
            return None

        if command in (DeviceCommandId.HEATER_ON, DeviceCommandId.HEATER_OFF):
            status = decode_switch(payload)
            if status is not None:
                if status != self.state.heater_on:
                    logger.warning("Heater reported %s, believed %s", status, self.state.heater_on)
                self.state.heater_confirmed = status
                self.state.heater_on = status
            return None

        if command in (DeviceCommandId.PUMP_ON, DeviceCommandId.PUMP_OFF):
            status = decode_switch(payload)
            if status is not None:
                if status != self.state.pump_on:
                    logger.warning("Pump reported %s, believed %s", status, self.state.pump_on)
                self.state.pump_confirmed = status
                self.state.pump_on = status
            return None

        logger.debug("Ignored notification from %s", command.name)
        return None

    def on_temperature_sample(self, celsius: int) -> None:
        """
        Record a reading.

        A falling temperature while the heater is believed on means the
        appliance switched its heater off behind our back.
        """
        previous = self.state.last_read_temperature
        if self.state.heater_on and previous is not None and celsius < previous:
            if not self.state.temperature_falling:
                logger.warning(
                    "Temperature falling (%dC -> %dC) with heater believed on",
                    previous,
                    celsius,
                )
            self.state.temperature_falling = True
        elif previous is None or celsius >= previous:
            self.state.temperature_falling = False
        self.state.last_read_temperature = celsius

    # =========================================================================
    # Connection
    # =========================================================================

    def on_connected(self) -> None:
        logger.info("Device connected via %s", self.link.get_name())
        self.state.connected = True
        self.state.reset_belief()

    def on_disconnected(self) -> None:
        if self.state.connected:
            logger.warning("Device disconnected")
        self.state.connected = False
        self.state.reset_belief()
        self.state.last_read_temperature = None

    def _transmit(self, command: DeviceCommandId, payload: bytes) -> CommandOutcome:
        if not self.state.connected:
            logger.debug("%s not sent, device not connected", command.name)
            return CommandOutcome.NOT_CONNECTED
        try:
            self.link.write(command, payload)
        except DeviceLinkError as e:
            self._lose_connection(e)
            return CommandOutcome.NOT_CONNECTED
        logger.info("%s sent: 0x%s", command.name, payload.hex())
        return CommandOutcome.ACCEPTED

    def _lose_connection(self, error: Exception) -> None:
        logger.error("Transport error, treating device as disconnected: %s", error)
        self.on_disconnected()
        if self._connection_listener:
            self._connection_listener(False)
