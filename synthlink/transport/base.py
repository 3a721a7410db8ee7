from __future__ import annotations

from collections.abc import Callable
from typing import Protocol


MessageCallback = Callable[[bytes], None]


class SysexTransport(Protocol):
    """What the transfer layer needs from a MIDI endpoint.

    `on_message` callbacks receive whole framed SysEx messages (F0 .. F7),
    once per frame; no reassembly is done above this layer. Callbacks may run
    on the transport's own thread.
    """

    def open(self) -> bool: ...

    def close(self) -> None: ...

    def send(self, data: bytes) -> bool: ...

    def send_program_change(self, program: int, channel: int = 0) -> bool: ...

    def on_message(self, callback: MessageCallback) -> None: ...
