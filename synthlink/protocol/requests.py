from __future__ import annotations

from collections.abc import Sequence

from synthlink.errors import MalformedInputError
from synthlink.protocol.checksum import append_checksum
from synthlink.protocol.codes import ArturiaSysexCodes, MicroFreakLayout, RolandSysexCodes
from synthlink.protocol.sysex import ARTURIA_PROFILE, ROLAND_SE02_PROFILE, build_envelope


def _check_range(label: str, value: int, low: int, high: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or not low <= value <= high:
        raise MalformedInputError(f"{label} must be {low}..{high}, got {value!r}")


def build_name_request(bank: int, preset: int, sequence: int = 0x00) -> list[int]:
    """Request the name and category of a preset.

    Output is: F0 00 20 6B 07 01 <seq> 01 19 <bank> <preset> 00 F7
    """

    _check_range("bank", bank, 0, 1)
    _check_range("preset", preset, 0, MicroFreakLayout.PRESETS_PER_BANK - 1)
    _check_range("sequence", sequence, 0, 127)

    return build_envelope(
        ARTURIA_PROFILE,
        ArturiaSysexCodes.MICROFREAK_DEVICE_ID,
        ArturiaSysexCodes.REQUEST_PRESET_NAME,
        [bank, preset, ArturiaSysexCodes.NAME_ONLY],
        sub=[0x01, sequence, 0x01],
    )


def build_dump_request(bank: int, preset: int) -> list[int]:
    """Ask the unit to prepare a full dump of a preset.

    Same command as the name request, with the trailing byte set to 0x01.
    The chunks are then fetched one by one with `build_chunk_request`.
    """

    _check_range("bank", bank, 0, 1)
    _check_range("preset", preset, 0, MicroFreakLayout.PRESETS_PER_BANK - 1)

    return build_envelope(
        ARTURIA_PROFILE,
        ArturiaSysexCodes.MICROFREAK_DEVICE_ID,
        ArturiaSysexCodes.REQUEST_PRESET_NAME,
        [bank, preset, ArturiaSysexCodes.FULL_DUMP],
        sub=[0x01, 0x01, 0x01],
    )


def build_chunk_request(chunk_index: int) -> list[int]:
    """Request one 32-byte chunk (0..145) of the dump started by `build_dump_request`.

    The unit hands out chunks in order; the counter byte only has 7 bits, so
    it wraps for chunks 128..145.
    """

    _check_range("chunk_index", chunk_index, 0, MicroFreakLayout.MAX_CHUNK_INDEX)

    return build_envelope(
        ARTURIA_PROFILE,
        ArturiaSysexCodes.MICROFREAK_DEVICE_ID,
        ArturiaSysexCodes.REQUEST_PRESET_DATA,
        [0x00],
        sub=[0x01, chunk_index & 0x7F, 0x01],
    )


def build_device_info_request(
    address: Sequence[int],
    size: int,
    *,
    device_id: int = RolandSysexCodes.DEFAULT_DEVICE_ID,
) -> list[int]:
    """Build a Roland RQ1 request.

    Output is: F0 41 <dev> 00 00 00 44 11 <a0 a1 a2 a3> <size> <checksum> F7

    The SE-02 takes a single size byte rather than the usual four.
    """

    addr = list(address)
    if len(addr) != 4:
        raise MalformedInputError(f"address must be 4 bytes, got {len(addr)}")
    for b in addr:
        _check_range("address byte", b, 0, 0x7F)
    _check_range("size", size, 0, 0x7F)
    _check_range("device_id", device_id, RolandSysexCodes.DEVICE_ID_RANGE.start, RolandSysexCodes.DEVICE_ID_RANGE.stop - 1)

    return build_envelope(
        ROLAND_SE02_PROFILE,
        device_id,
        RolandSysexCodes.RQ1,
        append_checksum([*addr, size]),
    )
