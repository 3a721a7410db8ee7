"""Shared fixtures: a scripted in-memory transport and a fake MicroFreak.

Responses are delivered synchronously from inside `send()`, the same way a
fast device would answer before the orchestrator starts waiting.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from synthlink.protocol.checksum import compute_checksum
from synthlink.protocol.codes import MicroFreakLayout
from synthlink.transfer.orchestrator import TransferOrchestrator, TransferTimings


FAST_TIMINGS = TransferTimings(name_timeout_s=0.05, exchange_timeout_s=0.05, pacing_s=0.0)

ARTURIA_HEADER = [0xF0, 0x00, 0x20, 0x6B, 0x07]


def name_response(name: str, category: int, *, bank: int = 0, preset: int = 0) -> bytes:
    name_field = list(name.encode("ascii")[:7]) + [0] * (7 - min(len(name), 7))
    body = [bank, preset, 0x00, 0x00, *name_field, category, 0x00, 0x00]
    return bytes([*ARTURIA_HEADER, 0x01, 0x00, 0x01, 0x52, *body, 0xF7])


def chunk_response(index: int, data: bytes, *, code: int = 0x16) -> bytes:
    return bytes([*ARTURIA_HEADER, 0x01, index & 0x7F, 0x01, code, *data, 0xF7])


def roland_response(
    address: tuple[int, int, int, int],
    data: bytes,
    *,
    device_id: int = 0x10,
    command: int = 0x12,
    checksum: int | None = None,
) -> bytes:
    if checksum is None:
        checksum = compute_checksum(bytes(address) + data)
    return bytes([0xF0, 0x41, device_id, 0x00, 0x00, 0x00, 0x44, command, *address, *data, checksum, 0xF7])


def make_chunk(index: int) -> bytes:
    return bytes((index + i) % 128 for i in range(MicroFreakLayout.CHUNK_SIZE))


# Something else on the same cable: a Roland identity reply.
UNRELATED_FRAME = bytes([0xF0, 0x7E, 0x10, 0x06, 0x02, 0x41, 0xF7])


class FakeTransport:
    def __init__(self, responder: Callable[[bytes], list[bytes]] | None = None) -> None:
        self.responder = responder
        self.sent: list[bytes] = []
        self.program_changes: list[tuple[int, int]] = []
        self.send_ok = True
        self.opened = False
        self._callbacks: list[Callable[[bytes], None]] = []

    def open(self) -> bool:
        self.opened = True
        return True

    def close(self) -> None:
        self.opened = False

    def on_message(self, callback: Callable[[bytes], None]) -> None:
        self._callbacks.append(callback)

    def send(self, data: bytes) -> bool:
        self.sent.append(bytes(data))
        if not self.send_ok:
            return False
        if self.responder is not None:
            for frame in self.responder(bytes(data)):
                self.deliver(frame)
        return True

    def send_program_change(self, program: int, channel: int = 0) -> bool:
        self.program_changes.append((program, channel))
        return self.send_ok

    def deliver(self, frame: bytes) -> None:
        for callback in list(self._callbacks):
            callback(bytes(frame))


@dataclass
class StoredPreset:
    name: str
    category: int
    chunks: list[bytes] = field(default_factory=lambda: [make_chunk(i) for i in range(MicroFreakLayout.FULL_PRESET_CHUNKS)])


@dataclass
class FakeMicroFreak:
    """Answers name, dump and chunk requests like the unit does."""

    presets: dict[int, StoredPreset] = field(default_factory=dict)
    silent_slots: set[int] = field(default_factory=set)
    max_chunks: int | None = None
    noise: bool = False
    chunks_served: int = 0
    _dump_slot: int | None = None
    _next_chunk: int = 0

    def preset(self, slot: int) -> StoredPreset:
        return self.presets.get(slot, StoredPreset(name=f"P{slot}", category=slot % 10))

    def __call__(self, request: bytes) -> list[bytes]:
        out = [UNRELATED_FRAME] if self.noise else []
        command = request[8]

        if command == 0x19:
            bank, number, mode = request[9], request[10], request[11]
            slot = bank * 128 + number
            if slot in self.silent_slots:
                return out
            stored = self.preset(slot)
            if mode == 0x01:
                self._dump_slot = slot
                self._next_chunk = 0
            out.append(name_response(stored.name, stored.category, bank=bank, preset=number))
            return out

        if command == 0x18 and self._dump_slot is not None:
            if self.max_chunks is not None and self.chunks_served >= self.max_chunks:
                return out
            index = self._next_chunk
            self._next_chunk += 1
            self.chunks_served += 1
            out.append(chunk_response(index, self.preset(self._dump_slot).chunks[index]))
            return out

        return out


@pytest.fixture
def microfreak():
    return FakeMicroFreak()


@pytest.fixture
def transport(microfreak):
    return FakeTransport(responder=microfreak)


@pytest.fixture
def orchestrator(transport):
    return TransferOrchestrator(transport, timings=FAST_TIMINGS, sleep=lambda _s: None)
