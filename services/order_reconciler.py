from __future__ import annotations

import structlog

from core.errors import (
    InvalidPaymentMetadata,
    OrderTransitionFailed,
    PaymentAttachFailed,
    PaymentAttributionMissing,
    PaymentNotFound,
    PaymentSettlementFailed,
)
from core.payments.options import PaymentPluginOptions
from core.store import CommerceStore
from schemas.imports import OPEN_ORDER_STATES, OrderState, PaymentState
from schemas.notification_schema import EventCode, NotificationRequestItem
from schemas.order_schema import Order, PaymentCreate
from security.principal import RequestContext

logger = structlog.get_logger(__name__)


def payment_from_notification(
    ctx: RequestContext,
    order: Order,
    method_code: str,
    item: NotificationRequestItem,
) -> PaymentCreate:
    """Map a provider notification onto the payment record to attach."""
    if ctx.api_type != "admin":
        raise PermissionError(f"Creating payments is not allowed for apiType '{ctx.api_type}'")
    if item.event_code != EventCode.AUTHORISATION.value and not item.is_success:
        raise InvalidPaymentMetadata(
            f"Cannot create payment for eventCode {item.event_code} for order {order.code} "
            f"because \"{item.reason}\"",
            details={"order_code": order.code, "psp_reference": item.psp_reference},
        )
    if not item.amount.value:
        raise InvalidPaymentMetadata(
            f"Metadata for Adyen transaction pspReference={item.psp_reference} has no amount provided!",
            details={"order_code": order.code, "psp_reference": item.psp_reference},
        )

    state = PaymentState.AUTHORIZED if item.is_success else PaymentState.DECLINED
    return PaymentCreate(
        method=method_code,
        amount=item.amount.value,
        state=state,
        transaction_id=item.psp_reference,
        error_message=None if item.is_success else item.reason,
        metadata=item.raw(),
    )


class OrderStateReconciler:
    def __init__(self, store: CommerceStore, options: PaymentPluginOptions) -> None:
        self._store = store
        self._options = options

    async def add_payment(
        self,
        ctx: RequestContext,
        order: Order,
        item: NotificationRequestItem,
    ) -> Order | None:
        """Attach the notification's outcome to the order as a payment.

        Returns the updated order, or None when the delivery was a late or
        duplicate one and nothing changed.
        """
        method_code = order.custom_fields.adyen_payment_method_code
        if not method_code:
            raise PaymentAttributionMissing(
                f"Order {order.code} doesn't have an 'adyen_payment_method_code'",
                details={"order_code": order.code},
            )
        if order.state not in OPEN_ORDER_STATES:
            logger.info("order_not_open_skipping", order_code=order.code, state=order.state.value)
            return None
        if order.find_payment(item.psp_reference) is not None:
            logger.info("payment_already_attached", order_code=order.code, psp_reference=item.psp_reference)
            return None

        payment = payment_from_notification(ctx, order, method_code, item)
        await self.transition_order_state(ctx, order, OrderState.ARRANGING_PAYMENT)

        result = await self._store.add_payment_to_order(ctx, order.id, payment)
        if not result.ok:
            raise PaymentAttachFailed(
                f"Error when processing payment for order {order.code}: {result.error.message}",
                details={"order_code": order.code, "error_code": result.error.error_code},
            )
        updated = result.value

        if payment.state == PaymentState.DECLINED:
            logger.warning(
                "payment_declined",
                order_code=order.code,
                psp_reference=item.psp_reference,
                reason=item.reason,
            )
        else:
            logger.info("payment_created", order_code=order.code, state=payment.state.value)

        if updated.state != OrderState.PAYMENT_AUTHORIZED or not self._options.auto_settle:
            return updated

        payment_methods = await self._store.find_payment_methods(ctx)
        if not any(pm.code == method_code for pm in payment_methods):
            logger.info("payment_method_missing_skipping_settlement", order_code=order.code, method=method_code)
            return updated

        return await self.settle_existing_payment(ctx, updated, item.psp_reference)

    async def settle_existing_payment(self, ctx: RequestContext, order: Order, transaction_id: str) -> Order:
        """Settle the order's payment for ``transaction_id`` and return the order as stored afterwards."""
        payment = order.find_payment(transaction_id)
        if payment is None:
            raise PaymentNotFound(
                f"Cannot find payment with transactionId {transaction_id} for {order.code}. "
                "Unable to settle this payment!",
                details={"order_code": order.code, "transaction_id": transaction_id},
            )

        result = await self._store.settle_payment(ctx, payment.id)
        if not result.ok:
            raise PaymentSettlementFailed(
                f"Error settling payment {payment.id} for order {order.code}: "
                f"{result.error.error_code} - {result.error.message}",
                error_code=result.error.error_code,
                details={"order_code": order.code, "payment_id": payment.id},
            )
        logger.info("payment_settled", order_code=order.code, transaction_id=transaction_id)
        settled = await self._store.find_order_by_code(ctx, order.code)
        return settled or order

    async def transition_order_state(self, ctx: RequestContext, order: Order, new_state: OrderState) -> Order:
        if order.state == new_state:
            logger.debug("order_already_in_state", order_code=order.code, state=new_state.value)
            return order

        result = await self._store.transition_to_state(ctx, order.id, new_state)
        if not result.ok:
            raise OrderTransitionFailed(
                f"Error transitioning order {order.code} from {order.state.value} to {new_state.value}: "
                f"{result.error.message}",
                details={
                    "order_code": order.code,
                    "from_state": order.state.value,
                    "to_state": new_state.value,
                    "error_code": result.error.error_code,
                },
            )
        return result.value
