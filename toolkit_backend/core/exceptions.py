"""
Error taxonomy for the stock ledger.

Services raise these the same way they raise ``HTTPException``; the
handlers registered in ``main.py`` turn them into the response envelope.
"""
from typing import Optional

from fastapi import HTTPException, status


class LedgerError(HTTPException):
    """Base class for all ledger errors carrying an HTTP status."""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Request failed"

    def __init__(self, detail: str, message: Optional[str] = None) -> None:
        super().__init__(status_code=self.status_code, detail=detail)
        if message is not None:
            self.message = message


class NotFoundError(LedgerError):
    """A toolkit or variant id could not be resolved."""

    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"


class ValidationError(LedgerError):
    """A required field is missing or a business rule rejected the input."""

    message = "Validation failed"


class InsufficientStockError(LedgerError):
    """Requested quantity exceeds the stock on hand."""

    message = "Insufficient stock"

    def __init__(self, available: int, requested: int) -> None:
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}"
        )


class PersistenceError(LedgerError):
    """The storage layer rejected or failed a write."""

    message = "Persistence failure"


class ConcurrentUpdateError(PersistenceError):
    """The toolkit kept changing underneath us until the retry budget ran out."""

    status_code = status.HTTP_409_CONFLICT
    message = "Concurrent update conflict"


class StaleToolkitError(Exception):
    """
    Raised by the repository when a save lost an optimistic-concurrency race.

    Not an HTTP error: the service catches it and retries the operation.
    """

    def __init__(self, toolkit_id: str) -> None:
        self.toolkit_id = toolkit_id
        super().__init__(f"Toolkit id={toolkit_id} was modified concurrently")
