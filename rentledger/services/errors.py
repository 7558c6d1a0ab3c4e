"""Custom exception classes for settlement.

Every error carries a machine-readable code and the HTTP status the API
layer answers with.
"""

from fastapi import status


class SettlementError(Exception):
    """Base exception for settlement errors."""

    code = "settlement_error"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: str | None = None, http_status: int | None = None):
        """Initialize error."""
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        super().__init__(message)


class ValidationError(SettlementError):
    """Missing or invalid request field; raised before any I/O."""

    code = "validation_error"
    http_status = status.HTTP_400_BAD_REQUEST


class AlreadySettledError(ValidationError):
    """Bill was already paid through a different method."""

    code = "already_settled"
    http_status = status.HTTP_409_CONFLICT


class NotFoundError(SettlementError):
    """Bill or other required record does not exist."""

    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class GatewayVerificationFailed(SettlementError):
    """Gateway did not confirm the payment (error, unknown reference, bad status)."""

    code = "verification_failed"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class PaymentNotCompletedError(GatewayVerificationFailed):
    """Gateway knows the payment but it has not succeeded yet."""

    code = "payment_not_completed"
    http_status = status.HTTP_400_BAD_REQUEST


class GatewayTimeoutError(GatewayVerificationFailed):
    """Gateway call exceeded the configured timeout or the connection failed."""

    code = "gateway_timeout"
    http_status = status.HTTP_504_GATEWAY_TIMEOUT


class InsufficientCreditError(GatewayVerificationFailed):
    """Stored credit does not cover the bill."""

    code = "insufficient_credit"
    http_status = status.HTTP_400_BAD_REQUEST


class StoreError(SettlementError):
    """Persistence layer failure (connection, constraint violation, etc.)."""

    code = "store_error"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class NotificationError(SettlementError):
    """Notification delivery failed. Logged by the dispatcher, never propagated."""

    code = "notification_error"


__all__ = [
    "SettlementError",
    "ValidationError",
    "AlreadySettledError",
    "NotFoundError",
    "GatewayVerificationFailed",
    "PaymentNotCompletedError",
    "GatewayTimeoutError",
    "InsufficientCreditError",
    "StoreError",
    "NotificationError",
]
