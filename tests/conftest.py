from __future__ import annotations

import base64
from typing import Any, Callable

import pytest
from Adyen.util import generate_notification_sig

from core.payments.options import BasicAuthCredentials, PaymentPluginOptions
from core.payments.types import AdyenEnvironment, CheckoutSession, CheckoutSessionRequest
from core.result import Err, Ok, OrderStateTransitionError, Result, StoreError
from schemas.channel_schema import Channel
from schemas.imports import OrderState, PaymentState
from schemas.notification_schema import NotificationRequestItem
from schemas.order_schema import (
    Customer,
    Order,
    OrderAddress,
    OrderCustomFields,
    OrderLine,
    Payment,
    PaymentCreate,
    can_transition,
    state_after_payment,
)
from schemas.payment_schema import ConfigArg, PaymentMethod, PaymentMethodHandler
from security.principal import AuthPrincipal, RequestContext

CHANNEL_TOKEN = "MerchantAccountECOM"
METHOD_CODE = "payment-adyen"
HMAC_KEY = "44782DEF547AAA06C910C43932B1EB0C71FC68D9D0C057550C48EC2ACF6BA056"
PSP_REFERENCE = "8835511210681237"


class InMemoryCommerceStore:
    """Dict-backed store with the same compare-and-set rules as the Mongo one."""

    def __init__(
        self,
        *,
        channels: list[Channel],
        orders: list[Order],
        payment_methods: list[PaymentMethod],
        customers: list[Customer] | None = None,
    ) -> None:
        self.channels = {channel.token: channel for channel in channels}
        self.orders = {order.id: order for order in orders}
        self.payment_methods = list(payment_methods)
        self.customers = {customer.user_id: customer for customer in customers or []}
        self.calls: list[str] = []
        self.transition_error: StoreError | None = None
        self.settle_error: StoreError | None = None
        self._payment_seq = 0

    def order(self, order_id: str) -> Order:
        return self.orders[order_id]

    def _save(self, order: Order) -> Order:
        self.orders[order.id] = order
        return order

    async def get_active_order(self, ctx: RequestContext) -> Order | None:
        self.calls.append("get_active_order")
        return next(
            (
                order
                for order in self.orders.values()
                if order.channel_token == ctx.channel.token and order.customer_id == ctx.user_id and order.active
            ),
            None,
        )

    async def find_order_by_code(self, ctx: RequestContext, code: str) -> Order | None:
        self.calls.append("find_order_by_code")
        return next(
            (o for o in self.orders.values() if o.channel_token == ctx.channel.token and o.code == code),
            None,
        )

    async def update_custom_fields(
        self,
        ctx: RequestContext,
        order_id: str,
        fields: dict[str, Any],
        *,
        expected_states: frozenset[OrderState] | None = None,
    ) -> Result[Order]:
        self.calls.append("update_custom_fields")
        order = self.orders.get(order_id)
        if order is None:
            return Err(StoreError(error_code="ORDER_NOT_FOUND", message=f"No Order with the id '{order_id}'"))
        if expected_states and order.state not in expected_states:
            return Err(StoreError(error_code="ORDER_STATE_CONFLICT", message=f"Order {order.code} cannot be updated"))
        custom_fields = OrderCustomFields(**{**order.custom_fields.model_dump(), **fields})
        return Ok(self._save(order.model_copy(update={"custom_fields": custom_fields})))

    async def hydrate_order(self, ctx: RequestContext, order: Order) -> Order:
        self.calls.append("hydrate_order")
        return order.model_copy(update={"customer": self.customers.get(order.customer_id)})

    async def transition_to_state(self, ctx: RequestContext, order_id: str, state: OrderState) -> Result[Order]:
        self.calls.append("transition_to_state")
        order = self.orders[order_id]
        if self.transition_error is not None:
            return Err(self.transition_error)
        if not can_transition(order.state, state):
            return Err(
                OrderStateTransitionError(
                    error_code="ORDER_STATE_TRANSITION_ERROR",
                    message=f"Cannot transition Order from \"{order.state.value}\" to \"{state.value}\"",
                    from_state=order.state.value,
                    to_state=state.value,
                )
            )
        return Ok(self._save(order.model_copy(update={"state": state})))

    async def add_payment_to_order(self, ctx: RequestContext, order_id: str, payment: PaymentCreate) -> Result[Order]:
        self.calls.append("add_payment_to_order")
        order = self.orders[order_id]
        if order.state != OrderState.ARRANGING_PAYMENT:
            return Err(StoreError(error_code="ORDER_PAYMENT_STATE_ERROR", message="Order is not arranging payment"))
        if order.find_payment(payment.transaction_id) is not None:
            return Err(StoreError(error_code="DUPLICATE_PAYMENT", message="Payment already attached"))

        self._payment_seq += 1
        attached = Payment(id=f"payment-{self._payment_seq}", **payment.model_dump())
        order = order.model_copy(update={"payments": [*order.payments, attached]})
        order = order.model_copy(update={"state": state_after_payment(order)})
        return Ok(self._save(order))

    async def settle_payment(self, ctx: RequestContext, payment_id: str) -> Result[Payment]:
        self.calls.append("settle_payment")
        if self.settle_error is not None:
            return Err(self.settle_error)
        order = next(o for o in self.orders.values() if any(p.id == payment_id for p in o.payments))
        payments = [
            p.model_copy(update={"state": PaymentState.SETTLED}) if p.id == payment_id else p for p in order.payments
        ]
        order = order.model_copy(update={"payments": payments})
        self._save(order.model_copy(update={"state": state_after_payment(order)}))
        return Ok(next(p for p in payments if p.id == payment_id))

    async def find_payment_methods(self, ctx: RequestContext) -> list[PaymentMethod]:
        self.calls.append("find_payment_methods")
        return [pm for pm in self.payment_methods if pm.channel_token == ctx.channel.token]

    async def get_channel_from_token(self, token: str) -> Channel | None:
        self.calls.append("get_channel_from_token")
        return self.channels.get(token)


class FakeCheckoutProvider:
    provider_name = "fake"

    def __init__(self, session: CheckoutSession | None = None, error: Exception | None = None) -> None:
        self.session = session or CheckoutSession(id="CS1234", session_data="Ab02b4c0!BQABAgA", raw={})
        self.error = error
        self.requests: list[CheckoutSessionRequest] = []
        self.factory_calls: list[dict[str, Any]] = []

    def factory(self, *, api_key: str, environment: AdyenEnvironment) -> "FakeCheckoutProvider":
        self.factory_calls.append({"api_key": api_key, "environment": environment})
        return self

    async def create_session(self, payload: CheckoutSessionRequest) -> CheckoutSession:
        self.requests.append(payload)
        if self.error is not None:
            raise self.error
        return self.session


def sign_notification(payload: dict[str, Any], hmac_key: str = HMAC_KEY) -> dict[str, Any]:
    unsigned = {key: value for key, value in payload.items() if key != "additionalData"}
    signature = generate_notification_sig(unsigned, hmac_key).decode("utf-8")
    additional_data = {**(payload.get("additionalData") or {}), "hmacSignature": signature}
    return {**payload, "additionalData": additional_data}


def basic_auth_header(username: str, password: str) -> str:
    return "Basic " + base64.b64encode(f"{username}:{password}".encode()).decode()


@pytest.fixture
def channel() -> Channel:
    return Channel(_id="channel-1", code="default-channel", token=CHANNEL_TOKEN, default_currency_code="USD")


@pytest.fixture
def customer() -> Customer:
    return Customer(
        _id="customer-1",
        user_id="user-1",
        first_name="Ada",
        last_name="Lovelace",
        email_address="ada@example.com",
        phone_number="+15550100",
    )


@pytest.fixture
def payment_method() -> PaymentMethod:
    return PaymentMethod(
        _id="pm-1",
        code=METHOD_CODE,
        channel_token=CHANNEL_TOKEN,
        enabled=True,
        handler=PaymentMethodHandler(
            code="adyen-payment-handler",
            args=[
                ConfigArg(name="apiKey", value="AQE-test-key"),
                ConfigArg(name="redirectUrl", value="https://shop.example.com/checkout/confirmation/"),
            ],
        ),
    )


@pytest.fixture
def make_order() -> Callable[..., Order]:
    def _make(**overrides: Any) -> Order:
        values: dict[str, Any] = {
            "_id": "order-1",
            "code": "ORDER-42",
            "channel_token": CHANNEL_TOKEN,
            "customer_id": "user-1",
            "active": True,
            "state": OrderState.ARRANGING_PAYMENT,
            "total": 1000,
            "total_with_tax": 1000,
            "currency_code": "USD",
            "lines": [
                OrderLine(id="line-1", product_name="Laptop sleeve", unit_price_with_tax=400, quantity=2),
                OrderLine(id="line-2", product_name="Cable", unit_price_with_tax=200, quantity=1),
            ],
            "billing_address": OrderAddress(
                full_name="Ada Lovelace",
                street_line1="Main Street 1",
                city="Amsterdam",
                postal_code="1011AA",
                country_code="NL",
            ),
        }
        values.update(overrides)
        return Order(**values)

    return _make


@pytest.fixture
def attributed_order(make_order) -> Order:
    return make_order(custom_fields=OrderCustomFields(adyen_payment_method_code=METHOD_CODE))


@pytest.fixture
def make_store(channel, customer, payment_method) -> Callable[..., InMemoryCommerceStore]:
    def _make(*orders: Order, payment_methods: list[PaymentMethod] | None = None) -> InMemoryCommerceStore:
        return InMemoryCommerceStore(
            channels=[channel],
            orders=list(orders),
            payment_methods=[payment_method] if payment_methods is None else payment_methods,
            customers=[customer],
        )

    return _make


@pytest.fixture
def options() -> PaymentPluginOptions:
    return PaymentPluginOptions(environment=AdyenEnvironment.TEST, auto_settle=False)


@pytest.fixture
def secured_options() -> PaymentPluginOptions:
    return PaymentPluginOptions(
        environment=AdyenEnvironment.TEST,
        basic_auth_credentials=BasicAuthCredentials(username="adyen", password="s3cret"),
        hmac_key=HMAC_KEY,
        auto_settle=False,
    )


@pytest.fixture
def shop_context(channel) -> RequestContext:
    principal = AuthPrincipal(user_id="user-1", role="customer", access_token_id="token-1")
    return RequestContext.for_shop(channel=channel, principal=principal)


@pytest.fixture
def webhook_context(channel) -> RequestContext:
    return RequestContext.for_webhook(channel=channel)


@pytest.fixture
def notification_payload() -> Callable[..., dict[str, Any]]:
    def _make(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "additionalData": {"authCode": "058950"},
            "amount": {"currency": "USD", "value": 1000},
            "eventCode": "AUTHORISATION",
            "eventDate": "2026-10-19T12:00:00+02:00",
            "merchantAccountCode": CHANNEL_TOKEN,
            "merchantReference": "ORDER-42",
            "paymentMethod": "visa",
            "pspReference": PSP_REFERENCE,
            "reason": "058950:1111:03/2030",
            "success": "true",
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def make_notification(notification_payload) -> Callable[..., NotificationRequestItem]:
    def _make(**overrides: Any) -> NotificationRequestItem:
        return NotificationRequestItem.model_validate(notification_payload(**overrides))

    return _make
