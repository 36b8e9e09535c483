from __future__ import annotations

from enum import Enum

from bson import ObjectId

__all__ = ["ObjectId", "OrderState", "PaymentState", "ORDER_STATE_TRANSITIONS", "OPEN_ORDER_STATES"]


class OrderState(str, Enum):
    CREATED = "Created"
    ADDING_ITEMS = "AddingItems"
    ARRANGING_PAYMENT = "ArrangingPayment"
    PAYMENT_AUTHORIZED = "PaymentAuthorized"
    PAYMENT_SETTLED = "PaymentSettled"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentState(str, Enum):
    CREATED = "Created"
    AUTHORIZED = "Authorized"
    SETTLED = "Settled"
    DECLINED = "Declined"
    ERROR = "Error"
    CANCELLED = "Cancelled"


OPEN_ORDER_STATES = frozenset({OrderState.ADDING_ITEMS, OrderState.ARRANGING_PAYMENT})

ORDER_STATE_TRANSITIONS: dict[OrderState, frozenset[OrderState]] = {
    OrderState.CREATED: frozenset({OrderState.ADDING_ITEMS}),
    OrderState.ADDING_ITEMS: frozenset({OrderState.ARRANGING_PAYMENT, OrderState.CANCELLED}),
    OrderState.ARRANGING_PAYMENT: frozenset(
        {
            OrderState.ADDING_ITEMS,
            OrderState.PAYMENT_AUTHORIZED,
            OrderState.PAYMENT_SETTLED,
            OrderState.CANCELLED,
        }
    ),
    OrderState.PAYMENT_AUTHORIZED: frozenset({OrderState.PAYMENT_SETTLED, OrderState.CANCELLED}),
    OrderState.PAYMENT_SETTLED: frozenset({OrderState.SHIPPED, OrderState.CANCELLED}),
    OrderState.SHIPPED: frozenset({OrderState.DELIVERED}),
    OrderState.DELIVERED: frozenset(),
    OrderState.CANCELLED: frozenset(),
}
