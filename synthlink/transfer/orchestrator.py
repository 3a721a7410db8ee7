from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any

from synthlink.domain.heuristics import detect_firmware, is_format_supported
from synthlink.domain.preset import MicroFreakPreset, PresetMetadata, PresetTransfer, TransferPhase, split_slot
from synthlink.errors import (
    FailureReason,
    MalformedInputError,
    TransferBusyError,
    TransferFailedError,
    TransferTimeoutError,
    TransportFailureError,
)
from synthlink.protocol.codes import MicroFreakLayout, RolandSysexCodes
from synthlink.protocol.requests import (
    build_chunk_request,
    build_device_info_request,
    build_dump_request,
    build_name_request,
)
from synthlink.protocol.responses import (
    DeviceInfoResponse,
    ResponseKind,
    classify_response,
    data_chunk_counter,
    device_info_address,
    name_response_slot,
    parse_data_chunk_response,
    parse_device_info_response,
    parse_name_response,
)
from synthlink.protocol.sysex import format_sysex_bytes
from synthlink.transport.base import SysexTransport


ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class TransferTimings:
    """Fixed timing constants observed to work with the hardware.

    The unit answers in about 2 ms but needs settling time between requests.
    """

    name_timeout_s: float = 2.0
    exchange_timeout_s: float = 1.0
    pacing_s: float = 0.015
    # Sequence-chunk writes; the write path is not supported, kept for reference.
    write_pacing_s: float = 0.002


class ExpectedResponse(Enum):
    NAME = "name"
    DUMP_ACK = "dump_ack"
    CHUNK = "chunk"
    DEVICE_INFO = "device_info"


@dataclass(frozen=True)
class _ResponseShape:
    kind: ResponseKind
    parse: Callable[[Any], Any]
    # Which request a frame answers: (bank, preset), chunk counter or address
    tag: Callable[[Any], Any]


# The dump request is answered with a name-shaped frame.
_RESPONSE_SHAPES: dict[ExpectedResponse, _ResponseShape] = {
    ExpectedResponse.NAME: _ResponseShape(ResponseKind.NAME, parse_name_response, name_response_slot),
    ExpectedResponse.DUMP_ACK: _ResponseShape(ResponseKind.NAME, parse_name_response, name_response_slot),
    ExpectedResponse.CHUNK: _ResponseShape(ResponseKind.DATA_CHUNK, parse_data_chunk_response, data_chunk_counter),
    ExpectedResponse.DEVICE_INFO: _ResponseShape(
        ResponseKind.DEVICE_INFO, parse_device_info_response, device_info_address
    ),
}


class _PendingExchange:
    """The single outstanding request and the response it is waiting for.

    A frame matches when it has the expected shape and carries the tag of the
    request that was sent. Resolves exactly once: by a matching frame or by
    expiring.
    """

    def __init__(self, expected: ExpectedResponse, tag: Any) -> None:
        self.expected = expected
        self.tag = tag
        self._shape = _RESPONSE_SHAPES[expected]
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._expired = False
        self.result: Any = None
        self.error: str | None = None

    def offer(self, frame: bytes) -> bool:
        """Try to resolve with `frame`; False means the frame isn't ours."""

        if classify_response(frame) is not self._shape.kind:
            return False
        if self._shape.tag(frame) != self.tag:
            return False

        parsed = self._shape.parse(frame)
        with self._lock:
            if self._expired or self._event.is_set():
                return False
            if parsed is None:
                self.error = f"undecodable {self.expected.value} response: {format_sysex_bytes(frame)}"
            else:
                self.result = parsed
            self._event.set()
        return True

    def wait(self, timeout_s: float) -> bool:
        if self._event.wait(timeout_s):
            return True
        with self._lock:
            if self._event.is_set():
                return True
            self._expired = True
        return False


class TransferOrchestrator:
    """Runs request/response exchanges against one synth.

    - one outstanding request at a time, enforced by a session lock
    - inbound frames are matched against the expected response shape and the
      tag of the request sent (slot, chunk counter or address);
      anything else on the wire is ignored
    - every exchange has a timeout and failures are never retried
    """

    def __init__(
        self,
        transport: SysexTransport,
        *,
        timings: TransferTimings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._transport = transport
        self.timings = timings or TransferTimings()
        self._sleep = sleep

        self._logger = logging.getLogger(self.__class__.__name__)

        self._session_lock = threading.Lock()
        self._pending_lock = threading.Lock()
        self._pending: _PendingExchange | None = None
        self._cancel = threading.Event()
        self._sent_in_session = 0

        transport.on_message(self.handle_message)

    @property
    def busy(self) -> bool:
        return self._session_lock.locked()

    def cancel(self) -> None:
        """Abandon the running transfer.

        The exchange in flight still resolves (response or timeout); after that
        the transfer fails with `cancelled` and nothing more is sent.
        """

        self._cancel.set()

    def handle_message(self, frame: bytes) -> None:
        """Inbound callback registered with the transport."""

        with self._pending_lock:
            pending = self._pending

        if pending is None:
            self._logger.debug("RX with no request outstanding, ignored: %s", format_sysex_bytes(frame))
            return

        if not pending.offer(bytes(frame)):
            self._logger.debug(
                "RX not the %s response for %r, ignored: %s", pending.expected.value, pending.tag, format_sysex_bytes(frame)
            )

    def read_preset(
        self,
        slot: int,
        chunk_count: int = MicroFreakLayout.FULL_PRESET_CHUNKS,
        on_progress: ProgressCallback | None = None,
    ) -> MicroFreakPreset:
        """Read name, category and `chunk_count` data chunks of a preset.

        40 chunks cover the patch itself, 146 include the sequence.
        """

        if not isinstance(chunk_count, int) or not 1 <= chunk_count <= MicroFreakLayout.FULL_PRESET_CHUNKS:
            raise MalformedInputError(
                f"chunk_count must be 1..{MicroFreakLayout.FULL_PRESET_CHUNKS}, got {chunk_count!r}"
            )
        split_slot(slot)

        transfer = PresetTransfer(slot=slot, chunk_count=chunk_count)
        self.run_transfer(transfer, on_progress=on_progress)
        return MicroFreakPreset.from_transfer(transfer)

    def read_preset_name(self, slot: int) -> PresetMetadata:
        split_slot(slot)
        transfer = PresetTransfer(slot=slot)
        self.run_transfer(transfer)
        return PresetMetadata.from_transfer(transfer)

    def run_transfer(self, transfer: PresetTransfer, *, on_progress: ProgressCallback | None = None) -> PresetTransfer:
        """Drive `transfer` from IDLE to COMPLETE.

        Raises `TransferFailedError` (or a subclass) after moving it to FAILED.
        Anything else raised on the way, e.g. by `on_progress`, also leaves the
        transfer FAILED before it propagates.
        """

        if transfer.phase is not TransferPhase.IDLE:
            raise MalformedInputError(f"transfer for slot {transfer.slot} is not idle ({transfer.phase.value})")
        bank, preset_number = split_slot(transfer.slot)

        with self._session():
            try:
                return self._run(transfer, bank, preset_number, on_progress)
            except TransferFailedError:
                raise
            except Exception as exc:
                transfer.phase = TransferPhase.FAILED
                transfer.failure_message = f"Slot {transfer.slot}: aborted by {type(exc).__name__}: {exc}"
                self._logger.warning("Transfer aborted: %s", transfer.failure_message)
                raise

    def _run(
        self,
        transfer: PresetTransfer,
        bank: int,
        preset_number: int,
        on_progress: ProgressCallback | None,
    ) -> PresetTransfer:
        self._logger.info(
            "Reading slot %d (bank %d, preset %d), %d chunks",
            transfer.slot,
            bank,
            preset_number,
            transfer.chunk_count,
        )

        transfer.phase = TransferPhase.AWAITING_NAME
        name = self._exchange(
            transfer,
            build_name_request(bank, preset_number),
            ExpectedResponse.NAME,
            (bank, preset_number),
            timeout_s=self.timings.name_timeout_s,
        )
        transfer.name = name.name
        transfer.category = name.category
        self._logger.debug("Slot %d name=%r category=%d", transfer.slot, transfer.name, transfer.category)

        if transfer.name_only:
            transfer.phase = TransferPhase.COMPLETE
            return transfer

        transfer.phase = TransferPhase.AWAITING_DUMP_ACK
        self._exchange(
            transfer,
            build_dump_request(bank, preset_number),
            ExpectedResponse.DUMP_ACK,
            (bank, preset_number),
            timeout_s=self.timings.exchange_timeout_s,
        )

        transfer.phase = TransferPhase.AWAITING_CHUNK
        for index in range(transfer.chunk_count):
            chunk = self._exchange(
                transfer,
                build_chunk_request(index),
                ExpectedResponse.CHUNK,
                index & 0x7F,
                timeout_s=self.timings.exchange_timeout_s,
            )
            transfer.chunks.append(chunk)

            done = len(transfer.chunks)
            if on_progress is not None:
                on_progress(done, transfer.chunk_count)
            if done % 20 == 0:
                self._logger.info("Slot %d: %d/%d chunks", transfer.slot, done, transfer.chunk_count)

        transfer.firmware = detect_firmware(transfer.chunks)
        transfer.supported = is_format_supported(transfer.chunks)
        transfer.phase = TransferPhase.COMPLETE
        self._logger.info(
            "Read slot %d %r: firmware=%d supported=%s",
            transfer.slot,
            transfer.name,
            transfer.firmware,
            transfer.supported,
        )
        return transfer

    def request_device_info(
        self,
        address: Sequence[int],
        size: int,
        *,
        device_id: int = RolandSysexCodes.DEFAULT_DEVICE_ID,
    ) -> DeviceInfoResponse:
        """One Roland RQ1 -> DT1 exchange; only a DT1 for `address` answers it."""

        request = build_device_info_request(address, size, device_id=device_id)
        with self._session():
            return self._exchange(
                None,
                request,
                ExpectedResponse.DEVICE_INFO,
                tuple(address),
                timeout_s=self.timings.exchange_timeout_s,
            )

    def select_program(self, program: int, *, channel: int = 0) -> None:
        """Send a program change, e.g. to load a preset into the edit buffer."""

        if not isinstance(program, int) or isinstance(program, bool) or not 0 <= program <= 127:
            raise MalformedInputError(f"program must be 0..127, got {program!r}")
        if not isinstance(channel, int) or isinstance(channel, bool) or not 0 <= channel <= 15:
            raise MalformedInputError(f"channel must be 0..15, got {channel!r}")

        with self._session():
            self._logger.info("Program change %d on channel %d", program, channel)
            if not self._transport.send_program_change(program, channel):
                raise self._fail(None, FailureReason.TRANSPORT_FAILURE, f"Transport failed to send program change {program}")

    @contextmanager
    def _session(self) -> Iterator[None]:
        if not self._session_lock.acquire(blocking=False):
            raise TransferBusyError("Another transfer is already running on this transport")
        self._cancel.clear()
        self._sent_in_session = 0
        try:
            yield
        finally:
            with self._pending_lock:
                self._pending = None
            self._session_lock.release()

    def _exchange(
        self,
        transfer: PresetTransfer | None,
        request: Sequence[int],
        expected: ExpectedResponse,
        tag: Any,
        *,
        timeout_s: float,
    ) -> Any:
        if self._cancel.is_set():
            raise self._fail(transfer, FailureReason.CANCELLED, "Transfer cancelled by caller")

        if self._sent_in_session:
            self._sleep(self.timings.pacing_s)

        pending = _PendingExchange(expected, tag)
        with self._pending_lock:
            self._pending = pending

        try:
            data = bytes(request)
            self._logger.debug("TX %s request: %s", expected.value, format_sysex_bytes(data))
            if not self._transport.send(data):
                raise self._fail(transfer, FailureReason.TRANSPORT_FAILURE, f"Transport failed to send {expected.value} request")
            self._sent_in_session += 1

            if not pending.wait(timeout_s):
                raise self._fail(
                    transfer,
                    FailureReason.TIMEOUT,
                    f"Timed out after {timeout_s:.3f}s waiting for {expected.value} response",
                )
            if pending.error is not None:
                raise self._fail(transfer, FailureReason.PARSE_ERROR, pending.error)
            return pending.result
        finally:
            with self._pending_lock:
                if self._pending is pending:
                    self._pending = None

    def _fail(self, transfer: PresetTransfer | None, reason: FailureReason, message: str) -> TransferFailedError:
        if transfer is not None:
            message = f"Slot {transfer.slot}: {message}"
            if transfer.phase is TransferPhase.AWAITING_CHUNK:
                message += f" (chunk {transfer.awaiting_chunk}/{transfer.chunk_count})"
            transfer.phase = TransferPhase.FAILED
            transfer.failure = reason
            transfer.failure_message = message

        self._logger.warning("Transfer failed (%s): %s", reason.value, message)

        if reason is FailureReason.TIMEOUT:
            return TransferTimeoutError(message, transfer=transfer)
        if reason is FailureReason.TRANSPORT_FAILURE:
            return TransportFailureError(message, transfer=transfer)
        return TransferFailedError(reason, message, transfer=transfer)
