"""
Device Module - Talking to the heating/air-pump appliance.

Provides:
- protocol: command ids, characteristic UUIDs, payload codecs
- DeviceLink: transport interface (real transports live outside this package)
- DeviceCoordinator: gating, rate limiting and de-duplication of commands
- SimulatedAppliance: in-memory appliance for demos and tests
"""

from .protocol import DeviceCommandId
from .link import DeviceLink, DeviceLinkError
from .coordinator import CommandOutcome, DeviceCoordinator, DeviceState
from .simulator import SimulatedAppliance, ThermalModel

__all__ = [
    "DeviceCommandId",
    "DeviceLink",
    "DeviceLinkError",
    "CommandOutcome",
    "DeviceCoordinator",
    "DeviceState",
    "SimulatedAppliance",
    "ThermalModel",
]
