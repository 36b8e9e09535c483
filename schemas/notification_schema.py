from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EventCode(str, Enum):
    """Notification kinds the provider sends on its standard webhook."""

    AUTHORISATION = "AUTHORISATION"
    AUTHORISATION_ADJUSTMENT = "AUTHORISATION_ADJUSTMENT"
    CANCELLATION = "CANCELLATION"
    CANCEL_OR_REFUND = "CANCEL_OR_REFUND"
    CAPTURE = "CAPTURE"
    CAPTURE_FAILED = "CAPTURE_FAILED"
    CHARGEBACK = "CHARGEBACK"
    CHARGEBACK_REVERSED = "CHARGEBACK_REVERSED"
    DISPUTE_DEFENSE_PERIOD_ENDED = "DISPUTE_DEFENSE_PERIOD_ENDED"
    EXPIRE = "EXPIRE"
    HANDLED_EXTERNALLY = "HANDLED_EXTERNALLY"
    INFORMATION_SUPPLIED = "INFORMATION_SUPPLIED"
    ISSUER_COMMENTS = "ISSUER_COMMENTS"
    ISSUER_RESPONSE_TIMEFRAME_EXPIRED = "ISSUER_RESPONSE_TIMEFRAME_EXPIRED"
    MANUAL_REVIEW_ACCEPT = "MANUAL_REVIEW_ACCEPT"
    MANUAL_REVIEW_REJECT = "MANUAL_REVIEW_REJECT"
    NOTIFICATION_OF_CHARGEBACK = "NOTIFICATION_OF_CHARGEBACK"
    NOTIFICATION_OF_FRAUD = "NOTIFICATION_OF_FRAUD"
    OFFER_CLOSED = "OFFER_CLOSED"
    ORDER_CLOSED = "ORDER_CLOSED"
    ORDER_OPENED = "ORDER_OPENED"
    PENDING = "PENDING"
    POSTPONED_REFUND = "POSTPONED_REFUND"
    PREARBITRATION_LOST = "PREARBITRATION_LOST"
    PREARBITRATION_WON = "PREARBITRATION_WON"
    RECURRING_CONTRACT = "RECURRING_CONTRACT"
    REFUND = "REFUND"
    REFUND_FAILED = "REFUND_FAILED"
    REFUND_WITH_DATA = "REFUND_WITH_DATA"
    REFUNDED_REVERSED = "REFUNDED_REVERSED"
    REPORT_AVAILABLE = "REPORT_AVAILABLE"
    REQUEST_FOR_INFORMATION = "REQUEST_FOR_INFORMATION"
    SECOND_CHARGEBACK = "SECOND_CHARGEBACK"
    TECHNICAL_CANCEL = "TECHNICAL_CANCEL"
    VOID_PENDING_REFUND = "VOID_PENDING_REFUND"


class NotificationAmount(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    currency: str | None = None
    value: int | None = None


class NotificationRequestItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    additional_data: dict[str, Any] | None = None
    amount: NotificationAmount = Field(default_factory=NotificationAmount)
    event_code: str
    event_date: str | None = None
    merchant_account_code: str
    merchant_reference: str
    original_reference: str | None = None
    payment_method: str | None = None
    psp_reference: str
    reason: str | None = None
    success: str

    @property
    def is_success(self) -> bool:
        return self.success == "true"

    @property
    def hmac_signature(self) -> str | None:
        if not self.additional_data:
            return None
        return self.additional_data.get("hmacSignature")

    def raw(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class NotificationItem(BaseModel):
    notification_request_item: NotificationRequestItem = Field(alias="NotificationRequestItem")


class NotificationEnvelope(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    live: str | None = None
    notification_items: list[NotificationItem] = Field(min_length=1)

    @property
    def first_item(self) -> NotificationRequestItem:
        return self.notification_items[0].notification_request_item
