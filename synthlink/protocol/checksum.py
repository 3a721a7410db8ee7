"""Roland-style SysEx checksum.

The checksum byte is chosen so that the low 7 bits of
`sum(data) + checksum` are zero. Roland covers `address ++ size` on requests
and `address ++ data` on responses; the Arturia dialect carries no checksum.
"""

from __future__ import annotations

from collections.abc import Sequence


def compute_checksum(data: bytes | bytearray | Sequence[int]) -> int:
    """Return the checksum byte (0..127) for `data`.

    An empty span yields 0.
    """

    total = sum(bytes(data))
    return (128 - (total % 128)) % 128


def verify_checksum(data: bytes | bytearray | Sequence[int], claimed: int) -> bool:
    return compute_checksum(data) == claimed


def append_checksum(data: bytes | bytearray | Sequence[int]) -> bytes:
    raw = bytes(data)
    return raw + bytes([compute_checksum(raw)])
