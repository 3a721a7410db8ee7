from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from synthlink.errors import MalformedInputError
from synthlink.protocol.codes import (
    MAX_DATA_BYTE,
    SYSEX_END,
    SYSEX_START,
    ArturiaSysexCodes,
    RolandSysexCodes,
)


@dataclass(frozen=True)
class SysexProfile:
    """Header layout of one vendor dialect.

    Arturia: F0 <00 20 6B> <dev> <sub x3> <cmd> <payload...> F7
    Roland:  F0 <41> <dev> <00 00 00 44> <cmd> <payload...> F7
    """

    name: str
    vendor_id: bytes
    device_ids: frozenset[int]
    model_id: bytes = b""
    sub_length: int = 0

    @property
    def header_length(self) -> int:
        # F0 + vendor + device + model + sub + command
        return 1 + len(self.vendor_id) + 1 + len(self.model_id) + self.sub_length + 1

    @property
    def min_length(self) -> int:
        return self.header_length + 1


ARTURIA_PROFILE = SysexProfile(
    name="arturia",
    vendor_id=bytes(ArturiaSysexCodes.MANUFACTURER_ID),
    device_ids=frozenset({ArturiaSysexCodes.MICROFREAK_DEVICE_ID}),
    sub_length=3,
)

ROLAND_SE02_PROFILE = SysexProfile(
    name="roland-se02",
    vendor_id=bytes([RolandSysexCodes.MANUFACTURER_ID]),
    device_ids=frozenset(RolandSysexCodes.DEVICE_ID_RANGE),
    model_id=bytes(RolandSysexCodes.MODEL_ID_SE02),
)


@dataclass(frozen=True)
class SysexEnvelope:
    vendor_id: bytes
    device_id: int
    command: int
    payload: bytes
    model_id: bytes = b""
    sub: bytes = b""


@dataclass(frozen=True)
class InvalidEnvelope:
    reason: str
    raw: bytes = field(default=b"", repr=False)

    def __bool__(self) -> bool:
        return False


def coerce_bytes(data: Any) -> bytes:
    """Normalize inbound data to framed bytes.

    Accepts bytes, bytearray, a list of ints, or a mido sysex message. mido
    SysEx messages contain the data bytes WITHOUT 0xF0/0xF7, so they are
    re-framed here.
    """

    if getattr(data, "type", None) == "sysex":
        return bytes([SYSEX_START, *data.data, SYSEX_END])
    return bytes(data)


def build_envelope(
    profile: SysexProfile,
    device_id: int,
    command: int,
    payload: bytes | bytearray | Sequence[int] = b"",
    *,
    sub: bytes | bytearray | Sequence[int] = b"",
) -> list[int]:
    """Build a *framed* SysEx message for `profile` as a list of ints."""

    if device_id not in profile.device_ids:
        raise MalformedInputError(
            f"device_id 0x{device_id:02X} is not valid for the {profile.name} dialect"
        )

    sub_bytes = bytes(sub)
    if len(sub_bytes) != profile.sub_length:
        raise MalformedInputError(
            f"{profile.name} messages need {profile.sub_length} sub-header bytes, got {len(sub_bytes)}"
        )

    body = [command, *sub_bytes, *bytes(payload)]
    bad = next((b for b in body if b < 0 or b > MAX_DATA_BYTE), None)
    if bad is not None:
        raise MalformedInputError(f"SysEx data byte out of range (0-127): {bad}")

    return [
        SYSEX_START,
        *profile.vendor_id,
        device_id,
        *profile.model_id,
        *sub_bytes,
        command,
        *bytes(payload),
        SYSEX_END,
    ]


def parse_envelope(data: Any, profile: SysexProfile) -> SysexEnvelope | InvalidEnvelope:
    """Validate the outer frame against `profile`.

    This never raises: anything that is not a well-formed frame of this dialect
    comes back as an `InvalidEnvelope` with a reason.
    """

    try:
        raw = coerce_bytes(data)
    except (TypeError, ValueError) as exc:
        return InvalidEnvelope(reason=f"not a byte sequence: {exc}")

    if len(raw) < profile.min_length:
        return InvalidEnvelope(reason=f"too short ({len(raw)} < {profile.min_length})", raw=raw)
    if raw[0] != SYSEX_START:
        return InvalidEnvelope(reason="missing 0xF0 start byte", raw=raw)
    if raw[-1] != SYSEX_END:
        return InvalidEnvelope(reason="missing 0xF7 end byte", raw=raw)

    pos = 1
    vendor_id = raw[pos : pos + len(profile.vendor_id)]
    if vendor_id != profile.vendor_id:
        return InvalidEnvelope(reason="vendor ID mismatch", raw=raw)
    pos += len(profile.vendor_id)

    device_id = raw[pos]
    if device_id not in profile.device_ids:
        return InvalidEnvelope(reason=f"unexpected device ID 0x{device_id:02X}", raw=raw)
    pos += 1

    model_id = raw[pos : pos + len(profile.model_id)]
    if model_id != profile.model_id:
        return InvalidEnvelope(reason="model ID mismatch", raw=raw)
    pos += len(profile.model_id)

    sub = raw[pos : pos + profile.sub_length]
    pos += profile.sub_length

    return SysexEnvelope(
        vendor_id=vendor_id,
        device_id=device_id,
        command=raw[pos],
        payload=raw[pos + 1 : -1],
        model_id=model_id,
        sub=sub,
    )


def format_sysex_bytes(data: bytes | bytearray | list[int], *, max_len: int = 64) -> str:
    """Format SysEx bytes as hex, truncated for logs.

    Accepts framed (F0..F7) or unframed payloads.
    """

    raw = bytes(data)
    truncated = raw[:max_len]
    hex_part = " ".join(f"{b:02X}" for b in truncated)
    if len(raw) > max_len:
        return f"{hex_part} ...(+{len(raw) - max_len} bytes)"
    return hex_part
