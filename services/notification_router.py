from __future__ import annotations

from functools import partial
from typing import Awaitable, Callable

import structlog

from core.errors import ChannelNotFound, UnhandledEventError
from core.store import CommerceStore
from schemas.notification_schema import EventCode, NotificationRequestItem
from schemas.order_schema import Order
from security.principal import RequestContext
from services.order_reconciler import OrderStateReconciler

logger = structlog.get_logger(__name__)

EventHandler = Callable[[RequestContext, Order, NotificationRequestItem], Awaitable["Order | None"]]

_CAPTURE = "payments are settled when authorised, capture notifications are not reconciled"
_MODIFICATION = "refunds and cancellations are driven from the back office"
_DISPUTE = "disputes and fraud reports need operator review"
_INFORMATIONAL = "informational notification without an order state change"

REJECTED_EVENT_REASONS: dict[EventCode, str] = {
    EventCode.AUTHORISATION_ADJUSTMENT: "authorisation adjustments are not supported",
    EventCode.CAPTURE: _CAPTURE,
    EventCode.CAPTURE_FAILED: _CAPTURE,
    EventCode.CANCELLATION: _MODIFICATION,
    EventCode.CANCEL_OR_REFUND: _MODIFICATION,
    EventCode.TECHNICAL_CANCEL: _MODIFICATION,
    EventCode.REFUND: _MODIFICATION,
    EventCode.REFUND_FAILED: _MODIFICATION,
    EventCode.REFUND_WITH_DATA: _MODIFICATION,
    EventCode.REFUNDED_REVERSED: _MODIFICATION,
    EventCode.POSTPONED_REFUND: _MODIFICATION,
    EventCode.VOID_PENDING_REFUND: _MODIFICATION,
    EventCode.CHARGEBACK: _DISPUTE,
    EventCode.CHARGEBACK_REVERSED: _DISPUTE,
    EventCode.SECOND_CHARGEBACK: _DISPUTE,
    EventCode.NOTIFICATION_OF_CHARGEBACK: _DISPUTE,
    EventCode.NOTIFICATION_OF_FRAUD: _DISPUTE,
    EventCode.PREARBITRATION_LOST: _DISPUTE,
    EventCode.PREARBITRATION_WON: _DISPUTE,
    EventCode.REQUEST_FOR_INFORMATION: _DISPUTE,
    EventCode.INFORMATION_SUPPLIED: _DISPUTE,
    EventCode.ISSUER_COMMENTS: _DISPUTE,
    EventCode.ISSUER_RESPONSE_TIMEFRAME_EXPIRED: _DISPUTE,
    EventCode.DISPUTE_DEFENSE_PERIOD_ENDED: _DISPUTE,
    EventCode.MANUAL_REVIEW_ACCEPT: _DISPUTE,
    EventCode.MANUAL_REVIEW_REJECT: _DISPUTE,
    EventCode.EXPIRE: _INFORMATIONAL,
    EventCode.HANDLED_EXTERNALLY: _INFORMATIONAL,
    EventCode.OFFER_CLOSED: _INFORMATIONAL,
    EventCode.ORDER_OPENED: _INFORMATIONAL,
    EventCode.ORDER_CLOSED: _INFORMATIONAL,
    EventCode.PENDING: _INFORMATIONAL,
    EventCode.RECURRING_CONTRACT: _INFORMATIONAL,
    EventCode.REPORT_AVAILABLE: _INFORMATIONAL,
}


class NotificationRouter:
    def __init__(self, store: CommerceStore, reconciler: OrderStateReconciler) -> None:
        self._store = store
        self._reconciler = reconciler
        self.handlers: dict[EventCode, EventHandler] = {
            EventCode.AUTHORISATION: self._reconciler.add_payment,
            **{code: partial(self._reject, reason) for code, reason in REJECTED_EVENT_REASONS.items()},
        }

    async def route(self, item: NotificationRequestItem) -> Order | None:
        """Resolve the notification's order and dispatch it by event kind.

        You get the outcome of each payment asynchronously, in a notification
        with eventCode AUTHORISATION. Unknown orders are dropped; unknown or
        unsupported event kinds raise.
        """
        ctx = await self._create_context(item.merchant_account_code)
        order = await self._store.find_order_by_code(ctx, item.merchant_reference)
        if order is None:
            logger.warning(
                "order_not_found_for_merchant_reference",
                merchant_reference=item.merchant_reference,
                channel=item.merchant_account_code,
            )
            return None

        logger.info("status_update_received", channel=item.merchant_account_code, order_code=order.code)
        logger.debug("webhook_event", event_code=item.event_code, success=item.success)

        try:
            event_code = EventCode(item.event_code)
        except ValueError:
            raise self._unhandled(order, item, reason="unknown event code") from None
        return await self.handlers[event_code](ctx, order, item)

    async def _reject(self, reason: str, ctx: RequestContext, order: Order, item: NotificationRequestItem) -> None:
        raise self._unhandled(order, item, reason=reason)

    @staticmethod
    def _unhandled(order: Order, item: NotificationRequestItem, *, reason: str) -> UnhandledEventError:
        return UnhandledEventError(
            f"Unhandled incoming Adyen eventCode '{item.event_code}' for order {order.code}; "
            f"pspReference {item.psp_reference}; success={item.success} ({reason})",
            details={"order_code": order.code, "event_code": item.event_code, "reason": reason},
        )

    async def _create_context(self, channel_token: str) -> RequestContext:
        channel = await self._store.get_channel_from_token(channel_token)
        if channel is None:
            raise ChannelNotFound(
                f"No channel matches merchantAccountCode '{channel_token}'",
                details={"channel_token": channel_token},
            )
        return RequestContext.for_webhook(channel=channel)
