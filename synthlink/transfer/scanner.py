from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from synthlink.domain.preset import PresetMetadata, PresetTransfer, split_slot
from synthlink.errors import FailureReason, TransferFailedError
from synthlink.protocol.codes import MicroFreakLayout
from synthlink.transfer.orchestrator import TransferOrchestrator


logger = logging.getLogger(__name__)

ScanProgressCallback = Callable[[int, int, PresetMetadata | None], None]

# Measured round trip of a name request, on top of pacing.
TYPICAL_NAME_LATENCY_S = 0.2


@dataclass(frozen=True)
class SlotFailure:
    slot: int
    reason: FailureReason
    message: str


@dataclass
class ScanReport:
    """Partial results of a scan: what was read and which slots failed."""

    presets: list[PresetMetadata] = field(default_factory=list)
    failures: list[SlotFailure] = field(default_factory=list)

    @property
    def failed_slots(self) -> list[int]:
        return [f.slot for f in self.failures]

    @property
    def empty_slots(self) -> list[int]:
        return find_empty_slots(self)


def find_empty_slots(scan: ScanReport | Iterable[PresetMetadata]) -> list[int]:
    presets = scan.presets if isinstance(scan, ScanReport) else scan
    return [p.slot for p in presets if p.is_empty]


class PresetScanner:
    """Reads the name and category of a range of slots, one at a time.

    There is no pipelining: the unit only tolerates one outstanding request,
    so 256 slots take on the order of a minute.
    """

    def __init__(
        self,
        orchestrator: TransferOrchestrator,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._orchestrator = orchestrator
        self._sleep = sleep
        self._cancel = threading.Event()

    def cancel(self) -> None:
        """Stop the scan; slots read so far stay in the report."""

        self._cancel.set()
        self._orchestrator.cancel()

    def estimate_duration_s(self, slot_count: int) -> float:
        timings = self._orchestrator.timings
        return slot_count * (timings.pacing_s + TYPICAL_NAME_LATENCY_S)

    def scan(
        self,
        slots: Iterable[int] = range(MicroFreakLayout.SLOT_COUNT),
        on_progress: ScanProgressCallback | None = None,
    ) -> ScanReport:
        """Read name and category of each slot, in order.

        A slot that fails is recorded in `failures` and the scan moves on.
        `TransferBusyError` is not a slot failure: if another transfer owns the
        orchestrator the scan stops there and the error propagates.
        """

        slot_list = list(slots)
        for slot in slot_list:
            split_slot(slot)

        logger.info(
            "Scanning %d slots, this takes about %.0f s",
            len(slot_list),
            self.estimate_duration_s(len(slot_list)),
        )

        self._cancel.clear()
        report = ScanReport()
        for i, slot in enumerate(slot_list):
            if self._cancel.is_set():
                logger.info("Scan cancelled after %d slots", i)
                break
            if i:
                self._sleep(self._orchestrator.timings.pacing_s)

            transfer = PresetTransfer(slot=slot)
            metadata: PresetMetadata | None = None
            try:
                self._orchestrator.run_transfer(transfer)
            except TransferFailedError as exc:
                report.failures.append(SlotFailure(slot=slot, reason=exc.reason, message=str(exc)))
                if exc.reason is FailureReason.CANCELLED:
                    logger.info("Scan cancelled after %d slots", i)
                    break
            else:
                metadata = PresetMetadata.from_transfer(transfer)
                report.presets.append(metadata)

            if on_progress is not None:
                on_progress(i + 1, len(slot_list), metadata)

        logger.info(
            "Scan finished: %d read, %d failed, %d empty",
            len(report.presets),
            len(report.failures),
            len(report.empty_slots),
        )
        return report

    def find_empty_slots(self, slots: Iterable[int] = range(MicroFreakLayout.SLOT_COUNT)) -> list[int]:
        return find_empty_slots(self.scan(slots))
