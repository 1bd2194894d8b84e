# backend/app/services/errors.py
"""
Domain exceptions for the reservation engine.

Every exception carries a stable ``code`` (e.g. ``SlotUnavailable``) and a
``details`` dict. The API layer converts them with ``to_http_exception()``;
services never raise ``HTTPException`` directly.

Categories:
- ValidationError: rejected before any transaction starts
- NotFoundError: referenced row does not exist
- ConflictError: SlotUnavailable, AlreadyCancelled, ...
- InsufficientPointsError
- PolicyRejection: PastSession, WithinCutoffWindow (permanent)
- StorageFailure: lock timeout / connection loss (retryable)
"""

from typing import Any, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all reservation-engine errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "retryable": self.retryable,
        }

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class ValidationError(DomainException):
    """Missing/invalid fields, unknown session type, past date/time."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(DomainException):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DomainException):
    """The target row is in a state that forbids the operation."""

    status_code = status.HTTP_409_CONFLICT


class InsufficientPointsError(DomainException):
    status_code = status.HTTP_402_PAYMENT_REQUIRED

    def __init__(self, point_type: str, balance: int, required: int) -> None:
        super().__init__(
            f"Not enough {point_type} points: {balance} < {required}",
            code="InsufficientPoints",
            details={
                "point_type": point_type,
                "balance": balance,
                "required": required,
            },
        )
        self.point_type = point_type
        self.balance = balance
        self.required = required


class PolicyRejection(DomainException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class StorageFailure(DomainException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True
