from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Optional
from typing import Any, cast

import mido


@dataclass(frozen=True)
class MidiPorts:
    inputs: list[str]
    outputs: list[str]


class SynthMidi:
    """MIDI ports for talking SysEx to a synth.

    - Lists available MIDI ports.
    - Connects to the first port whose name contains `device_prefix`
      (case-insensitive; e.g. "microfreak" or "se-02").
    - Sends SysEx messages created by the protocol layer.
    - Delivers incoming messages to a callback on mido's input thread.

    Notes on mido SysEx:
    - `mido.Message('sysex', data=...)` expects data WITHOUT 0xF0 and 0xF7.
    - This class accepts either framed (F0...F7) or unframed payloads.
    """

    def __init__(
        self,
        device_prefix: str = "MicroFreak",
        *,
        backend: str = "mido.backends.rtmidi",
        input_enabled: bool = True,
    ) -> None:
        self.device_prefix = device_prefix
        self.backend = backend
        self.input_enabled = input_enabled

        # No-op if the backend is already set.
        mido.set_backend(self.backend)

        self._out: Optional[mido.ports.BaseOutput] = None
        self._in: Optional[mido.ports.BaseInput] = None

    def list_ports(self) -> MidiPorts:
        m = cast(Any, mido)
        return MidiPorts(inputs=m.get_input_names(), outputs=m.get_output_names())

    def _match(self, names: list[str]) -> str | None:
        wanted = self.device_prefix.lower()
        return next((name for name in names if wanted in name.lower()), None)

    def connect(self, callback: Callable[[mido.Message], None] | None = None) -> str:
        """Connect to the first matching output (and input, if enabled).

        Returns the output port name. `callback` receives incoming messages on
        mido's input thread.
        """
        m = cast(Any, mido)
        outputs = m.get_output_names()
        output_name = self._match(outputs)
        if output_name is None:
            raise RuntimeError(
                f"No MIDI output port matches {self.device_prefix!r}. "
                f"Available outputs: {outputs}"
            )

        self._out = m.open_output(output_name)

        if self.input_enabled:
            input_name = self._match(m.get_input_names())
            if input_name is not None:
                self._in = m.open_input(input_name, callback=callback)

        return output_name

    def close(self) -> None:
        if self._in is not None:
            self._in.close()
            self._in = None
        if self._out is not None:
            self._out.close()
            self._out = None

    def send_sysex(self, data: Sequence[int] | bytes | bytearray) -> None:
        """Send a SysEx message.

        Accepts either:
        - Full framed message: [0xF0, ..., 0xF7]
        - Unframed data payload for mido: [...]
        """
        if self._out is None:
            raise RuntimeError("MIDI output not connected. Call connect() first.")

        data_list = self._to_int_list(data)

        # Strip F0/F7 if present.
        if data_list and data_list[0] == 0xF0:
            data_list = data_list[1:]
        if data_list and data_list[-1] == 0xF7:
            data_list = data_list[:-1]

        msg = mido.Message("sysex", data=data_list)
        self._out.send(msg)

    def send_program_change(self, program: int, channel: int = 0) -> None:
        if self._out is None:
            raise RuntimeError("MIDI output not connected. Call connect() first.")

        msg = mido.Message("program_change", program=program, channel=channel)
        self._out.send(msg)

    @staticmethod
    def _to_int_list(data: Sequence[int] | bytes | bytearray) -> list[int]:
        if isinstance(data, (bytes, bytearray)):
            return list(data)

        if isinstance(data, Iterable):
            out: list[int] = []
            for b in data:
                if not isinstance(b, int):
                    raise TypeError(f"SysEx data items must be ints (0-255); got {type(b)}")
                if b < 0 or b > 255:
                    raise ValueError(f"SysEx byte out of range (0-255): {b}")
                out.append(b)
            return out

        raise TypeError(f"Unsupported SysEx data type: {type(data)}")
