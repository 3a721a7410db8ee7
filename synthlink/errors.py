from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from synthlink.domain.preset import PresetTransfer


class FailureReason(str, Enum):
    PARSE_ERROR = "parse error"
    TIMEOUT = "timeout"
    TRANSPORT_FAILURE = "transport failure"
    CANCELLED = "cancelled"


class SynthlinkError(Exception):
    """Base class for every error raised by synthlink."""


class MalformedInputError(SynthlinkError, ValueError):
    """A caller passed an out-of-range slot, chunk index, byte or address.

    Raised synchronously, before anything reaches the transport.
    """


class ChunkLengthError(MalformedInputError):
    def __init__(self, length: int, expected: int = 32) -> None:
        super().__init__(f"chunk must be exactly {expected} bytes, got {length}")
        self.length = length
        self.expected = expected


class ProtocolParseError(SynthlinkError):
    """Inbound bytes of the expected kind could not be decoded."""


class TransferBusyError(SynthlinkError):
    """Another transfer already owns the transport."""


class TransferFailedError(SynthlinkError):
    """A transfer reached the FAILED phase.

    The terminal `PresetTransfer` record is attached so callers can inspect
    how far it got (e.g. how many chunks arrived before the timeout).
    """

    def __init__(
        self,
        reason: FailureReason,
        message: str,
        *,
        transfer: PresetTransfer | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.transfer = transfer


class TransferTimeoutError(TransferFailedError, TimeoutError):
    def __init__(self, message: str, *, transfer: PresetTransfer | None = None) -> None:
        super().__init__(FailureReason.TIMEOUT, message, transfer=transfer)


class TransportFailureError(TransferFailedError):
    def __init__(self, message: str, *, transfer: PresetTransfer | None = None) -> None:
        super().__init__(FailureReason.TRANSPORT_FAILURE, message, transfer=transfer)
