from __future__ import annotations

from dataclasses import dataclass
import logging
import threading
from typing import Any, cast

import mido

from midi import SynthMidi
from synthlink.protocol.sysex import coerce_bytes, format_sysex_bytes
from synthlink.transport.base import MessageCallback


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionInfo:
    output_name: str
    input_name: str | None


class MidiTransport:
    """`SysexTransport` over a `SynthMidi` port pair.

    Incoming SysEx is re-framed (F0 .. F7) and fanned out to every registered
    listener on mido's input thread. Non-SysEx traffic is dropped here.
    """

    def __init__(self, midi: SynthMidi) -> None:
        self._midi = midi
        self._listeners: list[MessageCallback] = []
        self._listeners_lock = threading.Lock()
        self.connection: ConnectionInfo | None = None

    def open(self) -> bool:
        try:
            output_name = self._midi.connect(callback=self._dispatch)
        except (OSError, RuntimeError) as exc:
            logger.error("Failed to open MIDI ports: %s", exc)
            return False

        wanted = self._midi.device_prefix.lower()
        ports = self._midi.list_ports()
        input_name = next((name for name in ports.inputs if wanted in name.lower()), None)
        if input_name is None:
            logger.warning("No MIDI input matches %r; responses will not be received", self._midi.device_prefix)
        self.connection = ConnectionInfo(output_name=output_name, input_name=input_name)
        logger.info("Connected MIDI: output=%r input=%r", output_name, input_name)
        return True

    def close(self) -> None:
        logger.info("Closing MIDI transport")
        self._midi.close()
        self.connection = None

    def send(self, data: bytes | bytearray | list[int]) -> bool:
        raw = bytes(data)
        if len(raw) < 2 or raw[0] != 0xF0 or raw[-1] != 0xF7:
            logger.warning("Refusing to send unframed SysEx: %s", format_sysex_bytes(raw))
            return False

        logger.debug("TX sysex: %s", format_sysex_bytes(raw))
        try:
            self._midi.send_sysex(raw)
        except (OSError, RuntimeError, ValueError) as exc:
            logger.error("Failed to send SysEx: %s", exc)
            return False
        return True

    def send_program_change(self, program: int, channel: int = 0) -> bool:
        if not 0 <= program <= 127:
            raise ValueError("program must be 0..127")
        if not 0 <= channel <= 15:
            raise ValueError("channel must be 0..15")

        logger.debug("TX program change: program=%d channel=%d", program, channel)
        try:
            self._midi.send_program_change(program, channel=channel)
        except (OSError, RuntimeError, ValueError) as exc:
            logger.error("Failed to send program change: %s", exc)
            return False
        return True

    def on_message(self, callback: MessageCallback) -> None:
        with self._listeners_lock:
            self._listeners.append(callback)

    def remove_listener(self, callback: MessageCallback) -> None:
        with self._listeners_lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def _dispatch(self, message: mido.Message) -> None:
        m = cast(Any, message)
        if getattr(m, "type", None) != "sysex":
            return

        frame = coerce_bytes(m)
        logger.debug("RX sysex: %s", format_sysex_bytes(frame))
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(frame)
            except Exception:
                # Runs on mido's input thread; one bad listener must not stop the others.
                logger.exception("SysEx listener failed")
