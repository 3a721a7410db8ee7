"""MicroFreak sequencer step layout.

Each 32-byte chunk in the sequence region of a preset dump holds one step.
What we know, from diffing dumps of hand-programmed sequences:

- byte 9:  gate (0 = step on, 127 = step off)
- byte 10: lane B, the main note (only 36..96 observed as notes)
- byte 1, 19, 28: lanes A, C, D (modulation, target unknown)
- byte 0, 24: flags; 0 / 112 accompany active steps

Lane values 127 and 1 are what the unit writes for an unused lane. They are
read back as "absent", so a lane really set to 1 or 127 is lost; we keep that
behaviour rather than guess. Velocity, slide and ties have not been located.
Chunks 40..69 of a dump are filled with 127 and their purpose is unknown;
they are carried as inert padding.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from synthlink.domain.preset import MicroFreakPreset
from synthlink.errors import ChunkLengthError, MalformedInputError
from synthlink.protocol.codes import MicroFreakLayout


CHUNK_SIZE = MicroFreakLayout.CHUNK_SIZE

FLAG_A_OFFSET = 0
LANE_A_OFFSET = 1
GATE_OFFSET = 9
NOTE_OFFSET = 10
LANE_C_OFFSET = 19
FLAG_B_OFFSET = 24
LANE_D_OFFSET = 28

GATE_ON = 0
GATE_OFF = 127

NOTE_MIN = 36
NOTE_MAX = 96

LANE_UNUSED = 127
LANE_MINIMAL = 1
LANE_SENTINELS = frozenset({LANE_UNUSED, LANE_MINIMAL})

# Written when the step is active
ACTIVE_FLAG_A = 0
ACTIVE_FLAG_B = 112
NO_NOTE = LANE_MINIMAL
LANE_D_DEFAULT = LANE_MINIMAL

PADDING_BYTE = 127
MAX_STEPS = 64

# Offsets relative to the 106-chunk sequence read (preset chunks 40..145)
PADDING_CHUNKS = MicroFreakLayout.SEQUENCE_STEPS_FIRST_CHUNK - MicroFreakLayout.SEQUENCE_FIRST_CHUNK
SEQUENCE_CHUNKS = MicroFreakLayout.SEQUENCE_READ_CHUNKS

# Bytes seen in steps nobody programmed
EMPTY_STEP_BYTES = frozenset({0, 100, 123, 127})


@dataclass(frozen=True)
class SequenceStep:
    note: int | None = None
    gate: bool = False
    lane_a: int | None = None
    lane_c: int | None = None
    lane_d: int | None = None


@dataclass(frozen=True)
class MicroFreakSequence:
    """Raw sequence chunks plus the best-effort decoded steps."""

    chunks: tuple[bytes, ...]
    steps: tuple[SequenceStep, ...] = field(default_factory=tuple)

    @property
    def length(self) -> int:
        return len(self.steps)


def _check_chunk(chunk: bytes | bytearray | Sequence[int]) -> bytes:
    raw = bytes(chunk)
    if len(raw) != CHUNK_SIZE:
        raise ChunkLengthError(len(raw), CHUNK_SIZE)
    return raw


def _lane(value: int) -> int | None:
    return None if value in LANE_SENTINELS else value


def _clamp(value: int) -> int:
    return max(0, min(127, int(round(value))))


def decode_step(chunk: bytes | bytearray | Sequence[int]) -> SequenceStep:
    raw = _check_chunk(chunk)

    note = raw[NOTE_OFFSET]
    return SequenceStep(
        note=note if NOTE_MIN <= note <= NOTE_MAX else None,
        gate=raw[GATE_OFFSET] == GATE_ON,
        lane_a=_lane(raw[LANE_A_OFFSET]),
        lane_c=_lane(raw[LANE_C_OFFSET]),
        lane_d=_lane(raw[LANE_D_OFFSET]),
    )


def encode_step(step: SequenceStep) -> bytes:
    chunk = bytearray([PADDING_BYTE] * CHUNK_SIZE)

    if step.gate:
        chunk[GATE_OFFSET] = GATE_ON
        chunk[FLAG_A_OFFSET] = ACTIVE_FLAG_A
        chunk[FLAG_B_OFFSET] = ACTIVE_FLAG_B
    else:
        chunk[GATE_OFFSET] = GATE_OFF

    chunk[NOTE_OFFSET] = _clamp(step.note) if step.note is not None else NO_NOTE

    # Ungated steps keep the padding byte in unused lanes.
    if step.lane_a is not None:
        chunk[LANE_A_OFFSET] = _clamp(step.lane_a)
    elif step.gate:
        chunk[LANE_A_OFFSET] = LANE_UNUSED

    if step.lane_c is not None:
        chunk[LANE_C_OFFSET] = _clamp(step.lane_c)
    elif step.gate:
        chunk[LANE_C_OFFSET] = LANE_UNUSED

    if step.lane_d is not None:
        chunk[LANE_D_OFFSET] = _clamp(step.lane_d)
    elif step.gate:
        chunk[LANE_D_OFFSET] = LANE_D_DEFAULT

    return bytes(chunk)


def _padding_chunk() -> bytes:
    return bytes([PADDING_BYTE] * CHUNK_SIZE)


def encode_sequence(steps: Sequence[SequenceStep], active_count: int) -> list[bytes]:
    """Encode steps into the 106 chunks of the sequence region (preset chunks 40..145).

    Only the first `active_count` steps are encoded; later step slots and the
    unknown regions before and after are padding.
    """

    if not 1 <= active_count <= MAX_STEPS:
        raise MalformedInputError(f"active_count must be 1..{MAX_STEPS}, got {active_count}")

    encoded = min(len(steps), active_count, MAX_STEPS)
    chunks = [_padding_chunk() for _ in range(PADDING_CHUNKS)]
    for i in range(MAX_STEPS):
        chunks.append(encode_step(steps[i]) if i < encoded else _padding_chunk())

    while len(chunks) < SEQUENCE_CHUNKS:
        chunks.append(_padding_chunk())
    return chunks


def _is_blank(step: SequenceStep, raw: bytes) -> bool:
    if step.gate or step.note is not None:
        return False
    if step.lane_a is not None or step.lane_c is not None or step.lane_d is not None:
        return False
    return all(b in EMPTY_STEP_BYTES for b in raw)


def decode_sequence(chunks: Sequence[bytes | bytearray | Sequence[int]]) -> MicroFreakSequence:
    """Decode a sequence read.

    Takes the 106-chunk sequence region or a full 146-chunk dump. Decoding
    stops at the first blank step after step 0; that end-of-sequence rule is a
    guess that holds for the dumps we have.
    """

    if len(chunks) == MicroFreakLayout.FULL_PRESET_CHUNKS:
        chunks = chunks[MicroFreakLayout.SEQUENCE_FIRST_CHUNK : MicroFreakLayout.SEQUENCE_LAST_CHUNK + 1]
    if len(chunks) != SEQUENCE_CHUNKS:
        raise MalformedInputError(
            f"expected {SEQUENCE_CHUNKS} or {MicroFreakLayout.FULL_PRESET_CHUNKS} chunks, got {len(chunks)}"
        )

    raw_chunks = tuple(_check_chunk(c) for c in chunks)
    steps: list[SequenceStep] = []
    for i in range(MAX_STEPS):
        raw = raw_chunks[PADDING_CHUNKS + i]
        step = decode_step(raw)
        if i > 0 and _is_blank(step, raw):
            break
        steps.append(step)

    return MicroFreakSequence(chunks=raw_chunks, steps=tuple(steps))


def sequence_from_preset(preset: MicroFreakPreset) -> MicroFreakSequence:
    if len(preset.chunks) != MicroFreakLayout.FULL_PRESET_CHUNKS:
        raise MalformedInputError(
            f"sequence needs a full {MicroFreakLayout.FULL_PRESET_CHUNKS}-chunk read, "
            f"preset has {len(preset.chunks)} chunks"
        )
    return decode_sequence(preset.chunks)
