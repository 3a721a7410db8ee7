from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from synthlink.protocol.checksum import verify_checksum
from synthlink.protocol.codes import ArturiaSysexCodes, MicroFreakLayout, RolandSysexCodes, SE02Layout
from synthlink.protocol.sysex import (
    ARTURIA_PROFILE,
    ROLAND_SE02_PROFILE,
    SysexEnvelope,
    coerce_bytes,
    parse_envelope,
)


# Name response body: <bank> <preset> <?> <?> <name...> <category> ...
# The name is a NUL-terminated ASCII run; it can't extend past the category byte.
NAME_OFFSET = 4
CATEGORY_OFFSET = 11

# Roland response payload: <a0 a1 a2 a3> <data...> <checksum>
ROLAND_MIN_PAYLOAD_LENGTH = 5


class ResponseKind(Enum):
    NAME = "name"
    DATA_CHUNK = "data_chunk"
    DEVICE_INFO = "device_info"


@dataclass(frozen=True)
class NameResponse:
    name: str
    category: int


@dataclass(frozen=True)
class DeviceInfoResponse:
    device_id: int
    command: int
    address: tuple[int, int, int, int]
    data: bytes
    checksum: int
    valid: bool


def _arturia_envelope(message: Any) -> SysexEnvelope | None:
    envelope = parse_envelope(message, ARTURIA_PROFILE)
    if not envelope:
        return None
    return envelope


def classify_response(message: Any) -> ResponseKind | None:
    """Tell which response shape `message` has, or None if it isn't ours.

    Only the header is inspected (envelope + discriminator); whether the body is
    well formed is left to the matching parser.
    """

    envelope = _arturia_envelope(message)
    if envelope is not None:
        if envelope.command == ArturiaSysexCodes.RESPONSE_NAME:
            return ResponseKind.NAME
        if envelope.command in ArturiaSysexCodes.RESPONSE_DATA:
            return ResponseKind.DATA_CHUNK
        return None

    # RQ1 frames are our own requests echoed back (MIDI thru); only DT1 answers.
    roland = parse_envelope(message, ROLAND_SE02_PROFILE)
    if roland and roland.command == RolandSysexCodes.DT1:
        return ResponseKind.DEVICE_INFO
    return None


def name_response_slot(message: Any) -> tuple[int, int] | None:
    """(bank, preset) a name response answers, or None if it can't tell."""

    envelope = _arturia_envelope(message)
    if envelope is None or envelope.command != ArturiaSysexCodes.RESPONSE_NAME or len(envelope.payload) < 2:
        return None
    return envelope.payload[0], envelope.payload[1]


def data_chunk_counter(message: Any) -> int | None:
    """The 7-bit chunk counter echoed back in a chunk response."""

    envelope = _arturia_envelope(message)
    if envelope is None or envelope.command not in ArturiaSysexCodes.RESPONSE_DATA:
        return None
    return envelope.sub[1]


def device_info_address(message: Any) -> tuple[int, int, int, int] | None:
    envelope = parse_envelope(message, ROLAND_SE02_PROFILE)
    if not envelope or len(envelope.payload) < ROLAND_MIN_PAYLOAD_LENGTH:
        return None
    p = envelope.payload
    return p[0], p[1], p[2], p[3]


def parse_name_response(message: Any) -> NameResponse | None:
    """Decode a preset name response (0x52).

    Only the 7 bytes between the name offset and the category byte are read,
    so names longer than 7 characters come back truncated.

    Returns None when the frame is not a name response at all.
    """

    envelope = _arturia_envelope(message)
    if envelope is None or envelope.command != ArturiaSysexCodes.RESPONSE_NAME:
        return None

    body = envelope.payload
    chars: list[str] = []
    for b in body[NAME_OFFSET:CATEGORY_OFFSET]:
        if b == 0 or not 0x20 <= b <= 0x7E:
            break
        chars.append(chr(b))

    category = body[CATEGORY_OFFSET] if len(body) > CATEGORY_OFFSET else 0
    return NameResponse(name="".join(chars), category=category)


def parse_data_chunk_response(message: Any) -> bytes | None:
    """Return the 32 data bytes of a chunk response (0x16 or 0x17).

    The frame must be exactly 42 bytes on the wire; anything else is rejected
    regardless of content.
    """

    envelope = _arturia_envelope(message)
    if envelope is None or envelope.command not in ArturiaSysexCodes.RESPONSE_DATA:
        return None

    if len(coerce_bytes(message)) != MicroFreakLayout.DATA_RESPONSE_LENGTH:
        return None

    return bytes(envelope.payload)


def parse_device_info_response(message: Any) -> DeviceInfoResponse | None:
    """Decode a Roland DT1-style response.

    A bad checksum does not reject the frame: it is reported through `valid`
    so callers can decide whether to keep the data.
    """

    envelope = parse_envelope(message, ROLAND_SE02_PROFILE)
    if not envelope:
        return None
    payload = envelope.payload
    if len(payload) < ROLAND_MIN_PAYLOAD_LENGTH:
        return None

    address = (payload[0], payload[1], payload[2], payload[3])
    data = bytes(payload[4:-1])
    checksum = payload[-1]

    return DeviceInfoResponse(
        device_id=envelope.device_id,
        command=envelope.command,
        address=address,
        data=data,
        checksum=checksum,
        valid=verify_checksum(bytes(address) + data, checksum),
    )


def encode_preset_name(name: str, *, width: int = SE02Layout.PRESET_NAME_LENGTH) -> bytes:
    """Encode a preset name as 7-bit ASCII, zero padded to `width` bytes."""

    raw = bytearray(width)
    for i, ch in enumerate(name[:width]):
        raw[i] = ord(ch) & 0x7F
    return bytes(raw)


def decode_preset_name(raw: bytes | bytearray | list[int]) -> str:
    return "".join(chr(b) for b in bytes(raw) if b != 0).strip()
