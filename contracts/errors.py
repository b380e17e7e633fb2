"""Error taxonomy for query handling.

Only fatal conditions are exceptions. Non-fatal conditions (a malformed
message during streaming, a cell that does not normalize) degrade to skipped
rows or null cells and are counted in ``DecodeStats`` instead of raised.
"""

from __future__ import annotations


class StormGridError(RuntimeError):
    """Base class for fatal query errors."""


class InvalidRequest(StormGridError, ValueError):
    """Raised when a query request is unusable (e.g. empty storm query)."""


class RemoteQueryError(StormGridError):
    """Raised when the Cortex reports an error for a query.

    The remote-supplied message is kept verbatim in ``message`` and is the
    string form of the exception.
    """

    def __init__(self, message: str, *, code: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message


class TransportError(StormGridError):
    """Raised by the HTTP client for connection failures and non-200 statuses."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


# Names of non-fatal conditions, used as reasons in decode statistics
DECODE_WARNING = "decode_warning"
NORMALIZATION_MISS = "normalization_miss"
