from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from synthlink.domain.categories import category_name
from synthlink.domain.heuristics import is_empty_slot
from synthlink.errors import FailureReason, MalformedInputError
from synthlink.protocol.codes import MicroFreakLayout


def split_slot(slot: int) -> tuple[int, int]:
    """Map a 0..255 slot to (bank, preset_number)."""

    if not isinstance(slot, int) or isinstance(slot, bool) or not 0 <= slot < MicroFreakLayout.SLOT_COUNT:
        raise MalformedInputError(f"slot must be 0..{MicroFreakLayout.SLOT_COUNT - 1}, got {slot!r}")
    bank = 1 if slot >= MicroFreakLayout.PRESETS_PER_BANK else 0
    return bank, slot % MicroFreakLayout.PRESETS_PER_BANK


class TransferPhase(Enum):
    IDLE = "idle"
    AWAITING_NAME = "awaiting_name"
    AWAITING_DUMP_ACK = "awaiting_dump_ack"
    AWAITING_CHUNK = "awaiting_chunk"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class PresetTransfer:
    """State of one dump or name read.

    Only the transfer orchestrator mutates this. `chunks` grows by exactly one
    per accepted chunk response; while in AWAITING_CHUNK the index being waited
    for is `len(chunks)`.
    """

    slot: int
    chunk_count: int = 0
    phase: TransferPhase = TransferPhase.IDLE
    chunks: list[bytes] = field(default_factory=list)
    name: str = ""
    category: int = 0
    failure: FailureReason | None = None
    failure_message: str | None = None

    # Best-effort, filled in on COMPLETE
    firmware: int | None = None
    supported: bool | None = None

    @property
    def bank(self) -> int:
        return split_slot(self.slot)[0]

    @property
    def preset_number(self) -> int:
        return split_slot(self.slot)[1]

    @property
    def awaiting_chunk(self) -> int | None:
        if self.phase is not TransferPhase.AWAITING_CHUNK:
            return None
        return len(self.chunks)

    @property
    def name_only(self) -> bool:
        return self.chunk_count == 0


@dataclass(frozen=True)
class PresetMetadata:
    slot: int
    bank: int
    preset_number: int
    name: str
    category: int
    category_name: str
    is_empty: bool

    @classmethod
    def from_transfer(cls, transfer: PresetTransfer) -> PresetMetadata:
        return cls(
            slot=transfer.slot,
            bank=transfer.bank,
            preset_number=transfer.preset_number,
            name=transfer.name,
            category=transfer.category,
            category_name=category_name(transfer.category),
            is_empty=is_empty_slot(transfer.name, transfer.category),
        )


@dataclass(frozen=True)
class MicroFreakPreset:
    """A preset read from the unit.

    `firmware` and `supported` are heuristics over fixed offsets (see
    `synthlink.domain.heuristics`), not fields the protocol reports.
    """

    slot: int
    bank: int
    preset_number: int
    name: str
    category: int
    category_name: str
    firmware: int
    supported: bool
    chunks: tuple[bytes, ...] = ()

    @classmethod
    def from_transfer(cls, transfer: PresetTransfer) -> MicroFreakPreset:
        return cls(
            slot=transfer.slot,
            bank=transfer.bank,
            preset_number=transfer.preset_number,
            name=transfer.name,
            category=transfer.category,
            category_name=category_name(transfer.category),
            firmware=transfer.firmware if transfer.firmware is not None else 2,
            supported=transfer.supported if transfer.supported is not None else True,
            chunks=tuple(transfer.chunks),
        )
