"""
Wire Protocol - Command ids, characteristic UUIDs and payload codecs.

Every command is a write (or read) of a small little-endian payload to one
GATT characteristic of the appliance:

    PUMP_ON / PUMP_OFF        single byte 0x01 / 0x00
    HEATER_ON / HEATER_OFF    single byte 0x01 / 0x00
    SET_TEMPERATURE           uint32 LE, Celsius x 10
    SET_BRIGHTNESS            uint16 LE, percent 0..100
    READ_TEMPERATURE          uint32 LE (legacy firmware: uint16 LE), Celsius x 10

Decoders never raise on malformed input; they return None and the caller
logs and drops the sample.
"""

from __future__ import annotations
from enum import Enum
import struct


UUID_SUFFIX = "-5354-4F52-5A26-4249434B454C"

MIN_BRIGHTNESS = 0
MAX_BRIGHTNESS = 100

_UINT32_LE = struct.Struct("<I")
_UINT16_LE = struct.Struct("<H")


class DeviceCommandId(Enum):
    """Appliance characteristics, valued by their UUID."""
    PUMP_ON = "10110013" + UUID_SUFFIX
    PUMP_OFF = "10110014" + UUID_SUFFIX
    HEATER_ON = "1011000F" + UUID_SUFFIX
    HEATER_OFF = "10110010" + UUID_SUFFIX
    SET_TEMPERATURE = "10110003" + UUID_SUFFIX
    READ_TEMPERATURE = "10110001" + UUID_SUFFIX
    SET_BRIGHTNESS = "10110005" + UUID_SUFFIX

    @property
    def uuid(self) -> str:
        return self.value

    @classmethod
    def from_uuid(cls, uuid: str) -> DeviceCommandId | None:
        """Look up a command by characteristic UUID (case-insensitive)."""
        wanted = uuid.upper()
        for command in cls:
            if command.value == wanted:
                return command
        return None


def encode_switch(on: bool) -> bytes:
    return b"\x01" if on else b"\x00"


def encode_temperature(celsius: int) -> bytes:
    """Target temperature as tenths of a degree, uint32 little-endian."""
    if celsius < 0:
        raise ValueError(f"Temperature must not be negative: {celsius}")
    return _UINT32_LE.pack(int(celsius) * 10)


def decode_temperature(payload: bytes) -> int | None:
    """
    Decode a temperature reading in whole degrees Celsius.

    Four bytes is the current format; two bytes is what older firmware
    sends. Anything shorter is not a reading.
    """
    if len(payload) >= 4:
        raw = _UINT32_LE.unpack_from(payload)[0]
    elif len(payload) >= 2:
        raw = _UINT16_LE.unpack_from(payload)[0]
    else:
        return None
    return raw // 10


def encode_brightness(percent: int) -> bytes:
    percent = max(MIN_BRIGHTNESS, min(MAX_BRIGHTNESS, int(percent)))
    return _UINT16_LE.pack(percent)


def decode_brightness(payload: bytes) -> int | None:
    if len(payload) < 2:
        return None
    return _UINT16_LE.unpack_from(payload)[0]


def decode_switch(payload: bytes) -> bool | None:
    """Status byte for heater/pump notifications."""
    if not payload:
        return None
    return payload[0] != 0
