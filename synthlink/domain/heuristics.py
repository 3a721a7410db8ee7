"""Best-effort fields derived from raw preset data.

None of these are protocol fields. They are pattern matches over fixed
offsets, observed on real dumps, and may be wrong for presets we haven't
seen. Patterns live in named constants so they can be revised without
touching the transfer code.
"""

from __future__ import annotations

from collections.abc import Sequence

from synthlink.domain.categories import PRESET_CATEGORIES, TEMPLATE_CATEGORY


# Firmware 1 presets carry 0x0C at chunk 0, byte 12.
FIRMWARE1_MARKER_CHUNK = 0
FIRMWARE1_MARKER_OFFSET = 12
FIRMWARE1_MARKER_VALUE = 0x0C
DEFAULT_FIRMWARE = 2

# Old factory presets with a mod matrix layout we can't read:
# chunk 16 ends with "EPanelc" and chunk 17 starts with 00 03 00 00.
UNSUPPORTED_TAIL_CHUNK = 16
UNSUPPORTED_TAIL = bytes([0x45, 0x50, 0x61, 0x6E, 0x65, 0x6C, 0x63])
UNSUPPORTED_HEAD_CHUNK = 17
UNSUPPORTED_HEAD = bytes([0x00, 0x03, 0x00, 0x00])

# Names the unit (or the editor) gives to slots nobody has saved into.
PLACEHOLDER_NAMES = frozenset({"", "init", "init preset", "empty", "new preset"})
DEFAULT_CATEGORIES = frozenset({TEMPLATE_CATEGORY})


def detect_firmware(chunks: Sequence[bytes]) -> int:
    if len(chunks) > FIRMWARE1_MARKER_CHUNK and len(chunks[FIRMWARE1_MARKER_CHUNK]) > FIRMWARE1_MARKER_OFFSET:
        marker = chunks[FIRMWARE1_MARKER_CHUNK][FIRMWARE1_MARKER_OFFSET]
        return 1 if marker == FIRMWARE1_MARKER_VALUE else DEFAULT_FIRMWARE
    return DEFAULT_FIRMWARE


def is_format_supported(chunks: Sequence[bytes]) -> bool:
    """Return False for the known-unsupported mod matrix layout.

    Reads shorter than 18 chunks can't be checked and count as supported.
    """

    if len(chunks) <= UNSUPPORTED_HEAD_CHUNK:
        return True

    tail = bytes(chunks[UNSUPPORTED_TAIL_CHUNK][-len(UNSUPPORTED_TAIL) :])
    head = bytes(chunks[UNSUPPORTED_HEAD_CHUNK][: len(UNSUPPORTED_HEAD)])
    return not (tail == UNSUPPORTED_TAIL and head == UNSUPPORTED_HEAD)


def is_empty_slot(name: str, category: int) -> bool:
    if name.strip().lower() in PLACEHOLDER_NAMES:
        return True
    return category in DEFAULT_CATEGORIES or not 0 <= category < len(PRESET_CATEGORIES)
