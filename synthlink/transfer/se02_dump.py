from __future__ import annotations

import logging
import time
from collections.abc import Callable

from synthlink.errors import ProtocolParseError
from synthlink.protocol.codes import RolandSysexCodes, SE02Layout
from synthlink.transfer.orchestrator import TransferOrchestrator


logger = logging.getLogger(__name__)

# The SE-02 needs a moment after a program change before the edit buffer holds the new patch.
LOAD_SETTLE_S = 0.1


def dump_se02_edit_buffer(
    orchestrator: TransferOrchestrator,
    *,
    device_id: int = RolandSysexCodes.DEFAULT_DEVICE_ID,
    program: int | None = None,
    channel: int = 0,
    sleep: Callable[[float], None] = time.sleep,
) -> bytes:
    """Read the SE-02 edit buffer as one byte string.

    With `program` (0..127) the stored preset is loaded first with a program
    change on `channel`, so the dump is of that preset rather than of whatever
    is being edited.

    The buffer comes back in four DT1 parts. A part with a bad checksum, an
    unexpected command or another address aborts the dump; nothing partial is
    returned.

    Needs a 5-pin DIN connection; the SE-02 does not answer SysEx over USB.
    """

    if program is not None:
        orchestrator.select_program(program, channel=channel)
        sleep(LOAD_SETTLE_S)

    parts: list[bytes] = []
    for i, (address, size) in enumerate(SE02Layout.EDIT_BUFFER_PARTS, start=1):
        response = orchestrator.request_device_info(address, size, device_id=device_id)
        if not response.valid:
            raise ProtocolParseError(f"SE-02 part {i}: invalid checksum 0x{response.checksum:02X}")
        if response.command != RolandSysexCodes.DT1:
            raise ProtocolParseError(f"SE-02 part {i}: unexpected command 0x{response.command:02X}")
        if response.address != tuple(address):
            raise ProtocolParseError(
                f"SE-02 part {i}: answer is for {bytes(response.address).hex(' ')}, asked {bytes(address).hex(' ')}"
            )

        logger.debug("SE-02 part %d: %d bytes from %s", i, len(response.data), bytes(address).hex(" "))
        parts.append(response.data)

    buffer = b"".join(parts)
    logger.info("SE-02 edit buffer: %d bytes", len(buffer))
    return buffer
