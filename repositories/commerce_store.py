from __future__ import annotations

from typing import Any

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from core.result import Err, Ok, OrderStateTransitionError, Result, StoreError
from schemas.channel_schema import Channel
from schemas.imports import OrderState, PaymentState
from schemas.order_schema import Customer, Order, Payment, PaymentCreate, can_transition, state_after_payment
from schemas.payment_schema import PaymentMethod
from security.principal import RequestContext


def _id_filter(order_id: str) -> dict:
    if ObjectId.is_valid(order_id):
        return {"_id": ObjectId(order_id)}
    return {"_id": order_id}


def _order_not_found(order_id: str) -> Err:
    return Err(StoreError(error_code="ORDER_NOT_FOUND", message=f"No Order with the id '{order_id}' could be found"))


def _state_changed(order: Order, to_state: OrderState, action: str) -> Err:
    return Err(
        OrderStateTransitionError(
            error_code="ORDER_STATE_TRANSITION_ERROR",
            message=f"Order {order.code} left state \"{order.state.value}\" while {action}",
            from_state=order.state.value,
            to_state=to_state.value,
        )
    )


class MongoCommerceStore:
    def __init__(self, db: AsyncDatabase) -> None:
        self._db = db
        self._indexes_ready = False

    async def _ensure_indexes(self) -> None:
        if self._indexes_ready:
            return
        await self._db.orders.create_index(
            [("channel_token", 1), ("code", 1)],
            name="idx_order_channel_code_unique",
            unique=True,
        )
        await self._db.orders.create_index(
            [("channel_token", 1), ("customer_id", 1), ("active", 1)],
            name="idx_order_active_customer",
        )
        await self._db.orders.create_index("payments.id", name="idx_order_payment_id", sparse=True)
        await self._db.customers.create_index("user_id", name="idx_customer_user_id_unique", unique=True, sparse=True)
        await self._db.payment_methods.create_index(
            [("channel_token", 1), ("code", 1)],
            name="idx_payment_method_channel_code_unique",
            unique=True,
        )
        await self._db.channels.create_index("token", name="idx_channel_token_unique", unique=True)
        self._indexes_ready = True

    async def _get_order(self, order_id: str) -> Order | None:
        row = await self._db.orders.find_one(_id_filter(order_id))
        if row is None:
            return None
        return Order(**row)

    async def _compare_and_set_state(
        self, order_id: str, from_state: OrderState, to_state: OrderState
    ) -> Order | None:
        row = await self._db.orders.find_one_and_update(
            {**_id_filter(order_id), "state": from_state.value},
            {"$set": {"state": to_state.value}},
            return_document=ReturnDocument.AFTER,
        )
        if row is None:
            return None
        return Order(**row)

    async def get_active_order(self, ctx: RequestContext) -> Order | None:
        await self._ensure_indexes()
        if ctx.user_id is None:
            return None
        row = await self._db.orders.find_one(
            {"channel_token": ctx.channel.token, "customer_id": ctx.user_id, "active": True},
            sort=[("_id", -1)],
        )
        if row is None:
            return None
        return Order(**row)

    async def find_order_by_code(self, ctx: RequestContext, code: str) -> Order | None:
        await self._ensure_indexes()
        row = await self._db.orders.find_one({"channel_token": ctx.channel.token, "code": code})
        if row is None:
            return None
        return Order(**row)

    async def update_custom_fields(
        self,
        ctx: RequestContext,
        order_id: str,
        fields: dict[str, Any],
        *,
        expected_states: frozenset[OrderState] | None = None,
    ) -> Result[Order]:
        await self._ensure_indexes()
        query: dict[str, Any] = _id_filter(order_id)
        if expected_states:
            query["state"] = {"$in": sorted(state.value for state in expected_states)}
        row = await self._db.orders.find_one_and_update(
            query,
            {"$set": {f"custom_fields.{name}": value for name, value in fields.items()}},
            return_document=ReturnDocument.AFTER,
        )
        if row is not None:
            return Ok(Order(**row))

        current = await self._get_order(order_id)
        if current is None:
            return _order_not_found(order_id)
        return Err(
            StoreError(
                error_code="ORDER_STATE_CONFLICT",
                message=f"Order {current.code} is in state '{current.state.value}' and cannot be updated",
            )
        )

    async def hydrate_order(self, ctx: RequestContext, order: Order) -> Order:
        await self._ensure_indexes()
        if not order.customer_id:
            return order.model_copy(update={"customer": None})
        row = await self._db.customers.find_one({"user_id": order.customer_id})
        return order.model_copy(update={"customer": Customer(**row) if row else None})

    async def transition_to_state(self, ctx: RequestContext, order_id: str, state: OrderState) -> Result[Order]:
        await self._ensure_indexes()
        current = await self._get_order(order_id)
        if current is None:
            return _order_not_found(order_id)
        if not can_transition(current.state, state):
            return Err(
                OrderStateTransitionError(
                    error_code="ORDER_STATE_TRANSITION_ERROR",
                    message=f"Cannot transition Order from \"{current.state.value}\" to \"{state.value}\"",
                    from_state=current.state.value,
                    to_state=state.value,
                )
            )
        updated = await self._compare_and_set_state(order_id, current.state, state)
        if updated is None:
            return Err(
                OrderStateTransitionError(
                    error_code="ORDER_STATE_TRANSITION_ERROR",
                    message="Order state changed while transitioning",
                    from_state=current.state.value,
                    to_state=state.value,
                )
            )
        return Ok(updated)

    async def add_payment_to_order(self, ctx: RequestContext, order_id: str, payment: PaymentCreate) -> Result[Order]:
        await self._ensure_indexes()
        current = await self._get_order(order_id)
        if current is None:
            return _order_not_found(order_id)
        if current.state != OrderState.ARRANGING_PAYMENT:
            return Err(
                StoreError(
                    error_code="ORDER_PAYMENT_STATE_ERROR",
                    message="A Payment may only be added when Order is in \"ArrangingPayment\" state",
                )
            )

        document = {"id": str(ObjectId()), **payment.model_dump(mode="json")}
        row = await self._db.orders.find_one_and_update(
            {
                **_id_filter(order_id),
                "state": OrderState.ARRANGING_PAYMENT.value,
                "payments.transaction_id": {"$ne": payment.transaction_id},
            },
            {"$push": {"payments": document}},
            return_document=ReturnDocument.AFTER,
        )
        if row is None:
            return Err(
                StoreError(
                    error_code="DUPLICATE_PAYMENT",
                    message=f"Order {current.code} already has a payment with transactionId {payment.transaction_id}",
                )
            )

        order = Order(**row)
        next_state = state_after_payment(order)
        if next_state == order.state:
            return Ok(order)
        updated = await self._compare_and_set_state(order_id, order.state, next_state)
        if updated is None:
            return _state_changed(order, next_state, "attaching payment")
        return Ok(updated)

    async def settle_payment(self, ctx: RequestContext, payment_id: str) -> Result[Payment]:
        await self._ensure_indexes()
        row = await self._db.orders.find_one({"payments.id": payment_id})
        if row is None:
            return Err(StoreError(error_code="PAYMENT_NOT_FOUND", message=f"No Payment with the id '{payment_id}'"))
        order = Order(**row)
        payment = next(p for p in order.payments if p.id == payment_id)
        if payment.state != PaymentState.AUTHORIZED:
            return Err(
                StoreError(
                    error_code="SETTLE_PAYMENT_ERROR",
                    message=f"Payment {payment_id} cannot be settled from state '{payment.state.value}'",
                )
            )

        row = await self._db.orders.find_one_and_update(
            {
                **_id_filter(order.id),
                "payments": {"$elemMatch": {"id": payment_id, "state": PaymentState.AUTHORIZED.value}},
            },
            {"$set": {"payments.$.state": PaymentState.SETTLED.value}},
            return_document=ReturnDocument.AFTER,
        )
        if row is None:
            return Err(
                StoreError(
                    error_code="SETTLE_PAYMENT_ERROR",
                    message=f"Payment {payment_id} changed state while settling",
                )
            )

        order = Order(**row)
        next_state = state_after_payment(order)
        if next_state != order.state and can_transition(order.state, next_state):
            if await self._compare_and_set_state(order.id, order.state, next_state) is None:
                return _state_changed(order, next_state, f"settling payment {payment_id}")
        return Ok(next(p for p in order.payments if p.id == payment_id))

    async def find_payment_methods(self, ctx: RequestContext) -> list[PaymentMethod]:
        await self._ensure_indexes()
        cursor = self._db.payment_methods.find({"channel_token": ctx.channel.token})
        items: list[PaymentMethod] = []
        async for row in cursor:
            items.append(PaymentMethod(**row))
        return items

    async def get_channel_from_token(self, token: str) -> Channel | None:
        await self._ensure_indexes()
        row = await self._db.channels.find_one({"token": token})
        if row is None:
            return None
        return Channel(**row)
