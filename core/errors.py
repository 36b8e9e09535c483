from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    PAYMENT_PROVIDER_ERROR = "PAYMENT_PROVIDER_ERROR"
    PAYMENT_ATTRIBUTION_MISSING = "PAYMENT_ATTRIBUTION_MISSING"
    PAYMENT_METADATA_INVALID = "PAYMENT_METADATA_INVALID"
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    PAYMENT_ATTACH_FAILED = "PAYMENT_ATTACH_FAILED"
    PAYMENT_SETTLEMENT_FAILED = "PAYMENT_SETTLEMENT_FAILED"
    ORDER_TRANSITION_FAILED = "ORDER_TRANSITION_FAILED"
    CHANNEL_NOT_FOUND = "CHANNEL_NOT_FOUND"
    UNHANDLED_EVENT = "UNHANDLED_EVENT"


class AppException(HTTPException):
    def __init__(
        self,
        *,
        status_code: int,
        code: ErrorCode,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        detail = {
            "message": message,
            "code": code.value,
            "details": details,
        }
        super().__init__(status_code=status_code, detail=detail, headers=headers)


def auth_invalid_token(details: Any | None = None) -> AppException:
    return AppException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        code=ErrorCode.AUTH_INVALID_TOKEN,
        message="Invalid token",
        details=details,
    )


class PaymentProcessingError(Exception):
    """Fatal failure while processing one provider notification.

    Raised out of the reconciliation services and caught at the webhook
    boundary, which logs it and still acknowledges the delivery.
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class PaymentAttributionMissing(PaymentProcessingError):
    code = ErrorCode.PAYMENT_ATTRIBUTION_MISSING


class InvalidPaymentMetadata(PaymentProcessingError):
    code = ErrorCode.PAYMENT_METADATA_INVALID


class OrderTransitionFailed(PaymentProcessingError):
    code = ErrorCode.ORDER_TRANSITION_FAILED


class PaymentAttachFailed(PaymentProcessingError):
    code = ErrorCode.PAYMENT_ATTACH_FAILED


class PaymentNotFound(PaymentProcessingError):
    code = ErrorCode.PAYMENT_NOT_FOUND


class PaymentSettlementFailed(PaymentProcessingError):
    code = ErrorCode.PAYMENT_SETTLEMENT_FAILED

    def __init__(self, message: str, *, error_code: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details=details)
        self.error_code = error_code


class ChannelNotFound(PaymentProcessingError):
    code = ErrorCode.CHANNEL_NOT_FOUND


class UnhandledEventError(PaymentProcessingError):
    code = ErrorCode.UNHANDLED_EVENT
