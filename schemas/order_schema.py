from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from schemas.imports import ORDER_STATE_TRANSITIONS, ObjectId, OrderState, PaymentState


def _stringify_object_id(values: Any) -> Any:
    if isinstance(values, dict) and "_id" in values and isinstance(values["_id"], ObjectId):
        values = {**values, "_id": str(values["_id"])}
    return values


class Customer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(default=None, alias="_id")
    user_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    email_address: str | None = None
    phone_number: str | None = None

    @model_validator(mode="before")
    @classmethod
    def convert_objectid(cls, values):
        return _stringify_object_id(values)


class OrderAddress(BaseModel):
    full_name: str | None = None
    street_line1: str | None = None
    street_line2: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None
    country_code: str | None = None


class OrderLine(BaseModel):
    id: str
    product_name: str | None = None
    unit_price_with_tax: int
    quantity: int


class OrderCustomFields(BaseModel):
    adyen_payment_method_code: str | None = None


class Payment(BaseModel):
    id: str
    method: str
    amount: int
    state: PaymentState
    transaction_id: str | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class PaymentCreate(BaseModel):
    method: str
    amount: int
    state: PaymentState
    transaction_id: str
    error_message: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class Order(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    code: str
    channel_token: str
    customer_id: str | None = None
    active: bool = True
    state: OrderState
    total: int
    total_with_tax: int | None = None
    currency_code: str
    custom_fields: OrderCustomFields = Field(default_factory=OrderCustomFields)
    lines: list[OrderLine] = Field(default_factory=list)
    billing_address: OrderAddress = Field(default_factory=OrderAddress)
    payments: list[Payment] = Field(default_factory=list)
    customer: Customer | None = None

    @model_validator(mode="before")
    @classmethod
    def convert_objectid(cls, values):
        return _stringify_object_id(values)

    def find_payment(self, transaction_id: str) -> Payment | None:
        return next((p for p in self.payments if p.transaction_id == transaction_id), None)


def can_transition(from_state: OrderState, to_state: OrderState) -> bool:
    return to_state in ORDER_STATE_TRANSITIONS.get(from_state, frozenset())


def covered_amount(payments: list[Payment], *states: PaymentState) -> int:
    return sum(p.amount for p in payments if p.state in states)


def state_after_payment(order: Order) -> OrderState:
    """Order state implied by the order's payments once one is attached."""
    if covered_amount(order.payments, PaymentState.SETTLED) >= order.total:
        return OrderState.PAYMENT_SETTLED
    if covered_amount(order.payments, PaymentState.AUTHORIZED, PaymentState.SETTLED) >= order.total:
        return OrderState.PAYMENT_AUTHORIZED
    return order.state
