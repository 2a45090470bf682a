"""
Tests for the wire protocol codecs.
"""

import pytest

from ..device.protocol import (
    DeviceCommandId,
    decode_brightness,
    decode_switch,
    decode_temperature,
    encode_brightness,
    encode_switch,
    encode_temperature,
)


class TestEncoding:

    def test_temperature_is_tenths_uint32_le(self):
        assert encode_temperature(200) == bytes([0xD0, 0x07, 0x00, 0x00])

    def test_negative_temperature_rejected(self):
        with pytest.raises(ValueError):
            encode_temperature(-1)

    def test_brightness_uint16_le(self):
        assert encode_brightness(70) == bytes([0x46, 0x00])

    def test_brightness_clamped(self):
        assert encode_brightness(150) == bytes([0x64, 0x00])
        assert encode_brightness(-5) == bytes([0x00, 0x00])

    def test_switch(self):
        assert encode_switch(True) == b"\x01"
        assert encode_switch(False) == b"\x00"


class TestDecoding:

    def test_four_byte_temperature(self):
        assert decode_temperature(bytes([0xD0, 0x07, 0x00, 0x00])) == 200

    def test_legacy_two_byte_temperature(self):
        assert decode_temperature(bytes([0xA8, 0x07])) == 196

    def test_tenths_are_truncated(self):
        assert decode_temperature((1999).to_bytes(4, "little")) == 199

    @pytest.mark.parametrize("payload", [b"", b"\x07"])
    def test_short_temperature_payload(self, payload):
        assert decode_temperature(payload) is None

    def test_brightness(self):
        assert decode_brightness(bytes([0x32, 0x00])) == 50
        assert decode_brightness(b"\x32") is None

    def test_switch_status(self):
        assert decode_switch(b"\x01") is True
        assert decode_switch(b"\x00") is False
        assert decode_switch(b"") is None


class TestCommandIds:

    def test_uuids(self):
        assert DeviceCommandId.PUMP_ON.uuid == "10110013-5354-4F52-5A26-4249434B454C"
        assert DeviceCommandId.HEATER_ON.uuid.startswith("1011000F")
        assert DeviceCommandId.SET_TEMPERATURE.uuid.startswith("10110003")

    def test_lookup_is_case_insensitive(self):
        uuid = "10110001-5354-4f52-5a26-4249434b454c"
        assert DeviceCommandId.from_uuid(uuid) == DeviceCommandId.READ_TEMPERATURE
        assert DeviceCommandId.from_uuid("00000000-0000") is None
