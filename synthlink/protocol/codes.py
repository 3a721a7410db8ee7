from __future__ import annotations

"""MicroFreak (Arturia) and SE-02 (Roland) SysEx constants.

These values come from captures of Arturia MIDI Control Center traffic and the
Roland Boutique SysEx notes. Keep protocol constants here so the rest of the
codebase doesn't duplicate them.
"""


SYSEX_START = 0xF0
SYSEX_END = 0xF7


class ArturiaSysexCodes:
    MANUFACTURER_ID = (0x00, 0x20, 0x6B)
    MICROFREAK_DEVICE_ID = 0x07

    # Requests
    REQUEST_PRESET_DATA = 0x18
    REQUEST_PRESET_NAME = 0x19

    # Responses (the unit answers chunk requests with either data code)
    RESPONSE_DATA = (0x16, 0x17)
    RESPONSE_NAME = 0x52

    # Trailing byte of a 0x19 request: 0x00 = name only, 0x01 = start full dump
    NAME_ONLY = 0x00
    FULL_DUMP = 0x01


class RolandSysexCodes:
    MANUFACTURER_ID = 0x41
    MODEL_ID_SE02 = (0x00, 0x00, 0x00, 0x44)
    DEFAULT_DEVICE_ID = 0x10
    DEVICE_ID_RANGE = range(0x10, 0x20)

    RQ1 = 0x11  # data request
    DT1 = 0x12  # data set / response


class MicroFreakLayout:
    """Fixed sizes of a MicroFreak preset dump."""

    CHUNK_SIZE = 32
    METADATA_CHUNKS = 40
    SEQUENCE_READ_CHUNKS = 106
    FULL_PRESET_CHUNKS = 146
    MAX_CHUNK_INDEX = FULL_PRESET_CHUNKS - 1

    # Sequence region inside a full read
    SEQUENCE_FIRST_CHUNK = 40
    SEQUENCE_STEPS_FIRST_CHUNK = 70
    SEQUENCE_LAST_CHUNK = 145

    SLOT_COUNT = 256
    PRESETS_PER_BANK = 128

    # F0 00 20 6B 07 01 <n> 01 <type> <32 bytes> F7
    DATA_RESPONSE_LENGTH = 42


class SE02Layout:
    PRESET_NAME_LENGTH = 16

    # Edit buffer is read in four parts: (address, size)
    EDIT_BUFFER_PARTS = (
        ((0x05, 0x00, 0x00, 0x00), 0x40),
        ((0x05, 0x00, 0x00, 0x40), 0x7B),
        ((0x05, 0x00, 0x01, 0x00), 0x3A),
        ((0x05, 0x00, 0x01, 0x40), 0x0A),
    )


MAX_DATA_BYTE = 0x7F
