"""Typed domain errors raised by services.

Each error is an ``HTTPException`` so it reaches the client with the right
status code without per-route translation, while callers and tests can still
catch it by type.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Malformed input rejected before any write."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(HTTPException):
    """Explicit update/delete referencing a key with no stored record."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    """Uniqueness or foreign-key constraint violation.

    The response body carries the violated constraint name next to the message.
    """

    def __init__(self, message: str, *, constraint: str | None = None) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": message, "constraint": constraint},
        )
        self.message = message
        self.constraint = constraint


class TransactionFailure(HTTPException):
    """Storage unavailable or transaction aborted; all writes rolled back."""

    def __init__(self, detail: str = "Storage transaction failed; no changes were applied.") -> None:
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
