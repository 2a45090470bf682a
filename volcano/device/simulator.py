"""
Simulated Appliance - An in-memory DeviceLink.

Models just enough of the real appliance to run a game headless:
- A heater that warms towards the target and cools when off
- The firmware quirk that a heater start while already heating toggles
  the heater off
- Temperature pushed through the notify handler, or returned on read

Also records every write, so tests can assert on exactly what went out.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from .link import ConnectionHandler, DeviceLink, DeviceLinkError, NotifyHandler
from .protocol import DeviceCommandId, decode_temperature


logger = logging.getLogger(__name__)


@dataclass
class ThermalModel:
    """Linear heating/cooling rates, in degrees per second."""
    ambient: float = 22.0
    heat_rate: float = 15.0
    cool_rate: float = 2.0


class SimulatedAppliance(DeviceLink):
    """
    A fake appliance that speaks the wire protocol.

    Args:
        temperature: Starting temperature in Celsius
        connected: Start connected
        notify: Push temperature changes (False models pull-only firmware)
        has_heater_switch: Expose HEATER_ON/HEATER_OFF characteristics
        thermal: Heating/cooling model
    """

    def __init__(
        self,
        temperature: float = 22.0,
        connected: bool = True,
        notify: bool = True,
        has_heater_switch: bool = True,
        thermal: ThermalModel | None = None,
    ):
        self.temperature = float(temperature)
        self.target = 0
        self.heater_on = False
        self.pump_on = False
        self.brightness = 70
        self.notify = notify
        self.has_heater_switch = has_heater_switch
        self.thermal = thermal or ThermalModel()

        self.fail_writes = False
        self.writes: list[tuple[DeviceCommandId, bytes]] = []
        self.reads: list[DeviceCommandId] = []

        self._connected = connected
        self._notify_handler: NotifyHandler | None = None
        self._connection_handler: ConnectionHandler | None = None
        self._last_reported: int | None = None

    # =========================================================================
    # DeviceLink
    # =========================================================================

    @property
    def connected(self) -> bool:
        return self._connected

    def supports(self, command: DeviceCommandId) -> bool:
        if command in (DeviceCommandId.HEATER_ON, DeviceCommandId.HEATER_OFF):
            return self.has_heater_switch
        return True

    def write(self, command: DeviceCommandId, payload: bytes) -> None:
        if not self._connected:
            raise DeviceLinkError(f"{command.name}: not connected")
        if self.fail_writes:
            raise DeviceLinkError(f"{command.name}: write failed")
        if not self.supports(command):
            raise DeviceLinkError(f"{command.name}: characteristic not available")

        self.writes.append((command, payload))
        on = payload[:1] == b"\x01"

        if command == DeviceCommandId.PUMP_ON or command == DeviceCommandId.PUMP_OFF:
            self.pump_on = on
        elif command == DeviceCommandId.HEATER_ON:
            # Real firmware treats heater-on as a toggle
            self.heater_on = not self.heater_on
        elif command == DeviceCommandId.HEATER_OFF:
            self.heater_on = False
        elif command == DeviceCommandId.SET_TEMPERATURE:
            self.target = int.from_bytes(payload[:4], "little") // 10
            self.heater_on = True
        elif command == DeviceCommandId.SET_BRIGHTNESS:
            self.brightness = int.from_bytes(payload[:2], "little")

    def read(self, command: DeviceCommandId) -> None:
        if not self._connected:
            raise DeviceLinkError(f"{command.name}: not connected")
        self.reads.append(command)
        if command == DeviceCommandId.READ_TEMPERATURE and self._notify_handler:
            self._notify_handler(command, self.temperature_payload())

    def set_notify_handler(self, handler: NotifyHandler | None) -> None:
        self._notify_handler = handler

    def set_connection_handler(self, handler: ConnectionHandler | None) -> None:
        self._connection_handler = handler

    # =========================================================================
    # Simulation controls
    # =========================================================================

    def temperature_payload(self) -> bytes:
        return (int(self.temperature) * 10).to_bytes(4, "little")

    def advance(self, seconds: float) -> None:
        """Run the thermal model forward and push a reading if it changed."""
        if self.heater_on and self.target:
            if self.temperature < self.target:
                self.temperature = min(
                    float(self.target), self.temperature + self.thermal.heat_rate * seconds
                )
            elif self.temperature > self.target:
                self.temperature = max(
                    float(self.target), self.temperature - self.thermal.cool_rate * seconds
                )
        else:
            self.temperature = max(
                self.thermal.ambient, self.temperature - self.thermal.cool_rate * seconds
            )

        reading = decode_temperature(self.temperature_payload())
        if self.notify and self._connected and reading != self._last_reported:
            self._last_reported = reading
            if self._notify_handler:
                self._notify_handler(DeviceCommandId.READ_TEMPERATURE, self.temperature_payload())

    def connect(self) -> None:
        self._connected = True
        self._last_reported = None
        logger.info("Simulated appliance connected")
        if self._connection_handler:
            self._connection_handler(True)

    def disconnect(self) -> None:
        self._connected = False
        self.pump_on = False
        logger.info("Simulated appliance disconnected")
        if self._connection_handler:
            self._connection_handler(False)

    def commands_sent(self, command: DeviceCommandId) -> int:
        return sum(1 for c, _ in self.writes if c == command)
