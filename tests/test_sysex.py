import pytest

from synthlink.errors import MalformedInputError
from synthlink.protocol.sysex import (
    ARTURIA_PROFILE,
    ROLAND_SE02_PROFILE,
    InvalidEnvelope,
    SysexEnvelope,
    build_envelope,
    coerce_bytes,
    format_sysex_bytes,
    parse_envelope,
)


class TestBuildEnvelope:
    def test_arturia_layout(self):
        msg = build_envelope(ARTURIA_PROFILE, 0x07, 0x19, [0x00, 0x05, 0x00], sub=[0x01, 0x00, 0x01])
        assert msg == [0xF0, 0x00, 0x20, 0x6B, 0x07, 0x01, 0x00, 0x01, 0x19, 0x00, 0x05, 0x00, 0xF7]

    def test_roland_layout(self):
        msg = build_envelope(ROLAND_SE02_PROFILE, 0x10, 0x11, [0x05, 0x00, 0x00, 0x00, 0x40, 0x3B])
        assert msg == [0xF0, 0x41, 0x10, 0x00, 0x00, 0x00, 0x44, 0x11, 0x05, 0x00, 0x00, 0x00, 0x40, 0x3B, 0xF7]

    def test_rejects_foreign_device_id(self):
        with pytest.raises(MalformedInputError):
            build_envelope(ARTURIA_PROFILE, 0x08, 0x19, sub=[1, 0, 1])
        with pytest.raises(MalformedInputError):
            build_envelope(ROLAND_SE02_PROFILE, 0x20, 0x11)

    def test_rejects_eight_bit_data(self):
        with pytest.raises(MalformedInputError):
            build_envelope(ROLAND_SE02_PROFILE, 0x10, 0x11, [0x80])

    def test_rejects_wrong_sub_header_length(self):
        with pytest.raises(MalformedInputError):
            build_envelope(ARTURIA_PROFILE, 0x07, 0x19, sub=[0x01])


class TestParseEnvelope:
    def test_parses_arturia_frame(self):
        raw = bytes([0xF0, 0x00, 0x20, 0x6B, 0x07, 0x01, 0x03, 0x01, 0x52, 0xAA & 0x7F, 0x01, 0xF7])
        env = parse_envelope(raw, ARTURIA_PROFILE)

        assert isinstance(env, SysexEnvelope)
        assert env.vendor_id == bytes([0x00, 0x20, 0x6B])
        assert env.device_id == 0x07
        assert env.sub == bytes([0x01, 0x03, 0x01])
        assert env.command == 0x52
        assert env.payload == bytes([0x2A, 0x01])

    def test_parses_roland_frame(self):
        raw = [0xF0, 0x41, 0x12, 0x00, 0x00, 0x00, 0x44, 0x12, 0x05, 0x00, 0xF7]
        env = parse_envelope(raw, ROLAND_SE02_PROFILE)

        assert env
        assert env.device_id == 0x12
        assert env.model_id == bytes([0x00, 0x00, 0x00, 0x44])
        assert env.command == 0x12
        assert env.payload == bytes([0x05, 0x00])

    def test_missing_end_byte_is_invalid(self):
        raw = [0xF0, 0x00, 0x20, 0x6B, 0x07, 0x01, 0x00, 0x01, 0x52, 0x00, 0x00]
        result = parse_envelope(raw, ARTURIA_PROFILE)

        assert isinstance(result, InvalidEnvelope)
        assert not result
        assert "0xF7" in result.reason

    @pytest.mark.parametrize(
        "raw",
        [
            [],
            [0xF0, 0xF7],
            [0xF1, 0x00, 0x20, 0x6B, 0x07, 0x01, 0x00, 0x01, 0x52, 0xF7],
            [0xF0, 0x00, 0x20, 0x6C, 0x07, 0x01, 0x00, 0x01, 0x52, 0xF7],
            [0xF0, 0x00, 0x20, 0x6B, 0x08, 0x01, 0x00, 0x01, 0x52, 0xF7],
        ],
    )
    def test_invalid_arturia_frames(self, raw):
        assert isinstance(parse_envelope(raw, ARTURIA_PROFILE), InvalidEnvelope)

    def test_roland_model_mismatch(self):
        raw = [0xF0, 0x41, 0x10, 0x00, 0x00, 0x00, 0x45, 0x12, 0x00, 0xF7]
        result = parse_envelope(raw, ROLAND_SE02_PROFILE)
        assert isinstance(result, InvalidEnvelope)
        assert "model" in result.reason

    def test_roland_device_outside_range(self):
        raw = [0xF0, 0x41, 0x0F, 0x00, 0x00, 0x00, 0x44, 0x12, 0x00, 0xF7]
        assert isinstance(parse_envelope(raw, ROLAND_SE02_PROFILE), InvalidEnvelope)

    def test_never_raises_on_garbage(self):
        assert isinstance(parse_envelope(object(), ARTURIA_PROFILE), InvalidEnvelope)
        assert isinstance(parse_envelope([0xF0, 999, 0xF7], ARTURIA_PROFILE), InvalidEnvelope)

    def test_round_trip_through_builder(self):
        msg = build_envelope(ARTURIA_PROFILE, 0x07, 0x18, [0x00], sub=[0x01, 0x2A, 0x01])
        env = parse_envelope(msg, ARTURIA_PROFILE)
        assert env.command == 0x18
        assert env.sub[1] == 0x2A
        assert env.payload == b"\x00"


class _MidoLikeSysex:
    type = "sysex"

    def __init__(self, data):
        self.data = tuple(data)


def test_coerce_bytes_reframes_mido_sysex():
    msg = _MidoLikeSysex([0x41, 0x10])
    assert coerce_bytes(msg) == bytes([0xF0, 0x41, 0x10, 0xF7])


def test_format_sysex_bytes_truncates():
    assert format_sysex_bytes([0xF0, 0x7F, 0xF7]) == "F0 7F F7"
    assert format_sysex_bytes(bytes(10), max_len=4) == "00 00 00 00 ...(+6 bytes)"
