from __future__ import annotations

import asyncio

import httpx
import structlog

from core.payments.options import PaymentPluginOptions
from core.payments.provider import CheckoutProviderFactory
from core.payments.types import (
    CheckoutAddress,
    CheckoutAmount,
    CheckoutLineItem,
    CheckoutSessionRequest,
    ShopperName,
)
from core.store import CommerceStore
from schemas.imports import OPEN_ORDER_STATES
from schemas.order_schema import Order, OrderAddress, OrderLine
from schemas.payment_schema import (
    IntentErrorCode,
    PaymentIntent,
    PaymentIntentError,
    PaymentIntentResult,
    PaymentMethod,
)
from security.principal import RequestContext

logger = structlog.get_logger(__name__)

MAX_ADDRESS_FIELD_LENGTH = 3000
SHOPPER_REFERENCE_PREFIX = "shop-"
ATTRIBUTION_FIELD = "adyen_payment_method_code"


def _intent_error(code: IntentErrorCode, message: str, **log_context) -> PaymentIntentError:
    if code.is_provider_failure:
        logger.error("payment_intent_failed", error_code=code.value, **log_context)
    else:
        logger.info("payment_intent_rejected", error_code=code.value, **log_context)
    return PaymentIntentError(error_code=code, message=message)


def _truncate(value: str | None) -> str | None:
    if value is None:
        return None
    return value[:MAX_ADDRESS_FIELD_LENGTH]


def to_checkout_billing_address(address: OrderAddress) -> CheckoutAddress | None:
    if not (address.street_line1 and address.city and address.postal_code and address.country_code):
        return None
    return CheckoutAddress(
        country=address.country_code,
        city=_truncate(address.city),
        street=_truncate(address.street_line1),
        house_number_or_name=_truncate(address.street_line2) or "",
        postal_code=_truncate(address.postal_code),
        state_or_province=_truncate(address.province),
    )


def to_checkout_line_items(lines: list[OrderLine]) -> list[CheckoutLineItem]:
    return [
        CheckoutLineItem(
            id=str(line.id),
            amount_including_tax=line.unit_price_with_tax,
            quantity=line.quantity,
            description=line.product_name,
        )
        for line in lines
    ]


def build_return_url(redirect_url: str, order_code: str) -> str:
    base = redirect_url[:-1] if redirect_url.endswith("/") else redirect_url
    return str(httpx.URL(base).copy_add_param("orderCode", order_code))


def shopper_reference_for(ctx: RequestContext) -> str | None:
    # The provider requires at least 3 characters.
    if not ctx.user_id:
        return None
    return f"{SHOPPER_REFERENCE_PREFIX}{ctx.user_id}"


class PaymentIntentBuilder:
    def __init__(
        self,
        store: CommerceStore,
        options: PaymentPluginOptions,
        provider_factory: CheckoutProviderFactory,
    ) -> None:
        self._store = store
        self._options = options
        self._provider_factory = provider_factory

    async def _get_payment_method(self, ctx: RequestContext, code: str) -> PaymentMethod | None:
        payment_methods = await self._store.find_payment_methods(ctx)
        return next((pm for pm in payment_methods if pm.code == code and pm.enabled), None)

    def build_session_request(self, ctx: RequestContext, order: Order, redirect_url: str) -> CheckoutSessionRequest:
        customer = order.customer
        shopper_reference = shopper_reference_for(ctx)
        return CheckoutSessionRequest(
            merchant_account=ctx.channel.token,
            amount=CheckoutAmount(currency=order.currency_code, value=order.total),
            reference=order.code,
            return_url=build_return_url(redirect_url, order.code),
            line_items=to_checkout_line_items(order.lines),
            shopper_email=customer.email_address if customer else None,
            shopper_name=ShopperName(first_name=customer.first_name, last_name=customer.last_name) if customer else None,
            telephone_number=customer.phone_number if customer else None,
            billing_address=to_checkout_billing_address(order.billing_address),
            shopper_reference=shopper_reference,
            store_payment_method=shopper_reference is not None,
        )

    async def create_intent(
        self,
        ctx: RequestContext,
        payment_method_code: str | None = None,
    ) -> PaymentIntentResult:
        method_code = payment_method_code or self._options.payment_method_code
        order, payment_method = await asyncio.gather(
            self._store.get_active_order(ctx),
            self._get_payment_method(ctx, method_code),
        )

        if payment_method is None:
            return _intent_error(
                IntentErrorCode.PAYMENT_METHOD_MISSING,
                f"No payment method '{method_code}' found!",
                method=method_code,
            )
        if order is None or not order.code or not order.active or order.state not in OPEN_ORDER_STATES:
            return _intent_error(IntentErrorCode.NO_ACTIVE_ORDER, "No active order for this session!")
        if order.total <= 0:
            return _intent_error(
                IntentErrorCode.INVALID_ORDER_TOTAL,
                "The total for the order caused an error!",
                order_code=order.code,
                total=order.total,
            )

        api_key = payment_method.get_arg("apiKey")
        redirect_url = payment_method.get_arg("redirectUrl")
        if not api_key or not redirect_url:
            return _intent_error(
                IntentErrorCode.PAYMENT_METHOD_NOT_CONFIGURED,
                f"Payment method {payment_method.code} has no apiKey or redirectUrl configured",
                method=payment_method.code,
            )

        logger.info(
            "payment_intent_valid",
            order_code=order.code,
            total=order.total,
            currency=order.currency_code,
        )

        order = await self._store.hydrate_order(ctx, order)
        customer = order.customer
        if customer is None:
            return _intent_error(
                IntentErrorCode.CUSTOMER_MISSING, "The order doesn't have a customer!", order_code=order.code
            )
        if not customer.first_name or not customer.last_name or not customer.email_address:
            message = (
                "Some required customer data is missing. "
                f"firstName: {customer.first_name}, lastName: {customer.last_name}, email: {customer.email_address}"
            )
            return _intent_error(IntentErrorCode.CUSTOMER_DATA_INCOMPLETE, message, order_code=order.code)

        # Written before the provider call so an early webhook can be attributed.
        attributed = await self._store.update_custom_fields(
            ctx,
            order.id,
            {ATTRIBUTION_FIELD: payment_method.code},
            expected_states=OPEN_ORDER_STATES,
        )
        if not attributed.ok:
            return _intent_error(
                IntentErrorCode.ORDER_ATTRIBUTION_FAILED, attributed.error.message, order_code=order.code
            )

        try:
            provider = self._provider_factory(api_key=api_key, environment=self._options.environment)
            session = await provider.create_session(self.build_session_request(ctx, order, redirect_url))
        except Exception as err:
            return _intent_error(
                IntentErrorCode.SESSION_CREATION_FAILED,
                "Failed to create a payment session",
                order_code=order.code,
                error=str(err),
            )

        if not session.session_data:
            return _intent_error(
                IntentErrorCode.SESSION_DATA_MISSING,
                "No session data was returned for this order",
                order_code=order.code,
            )

        logger.info("checkout_session_created", order_code=order.code)
        return PaymentIntent(session_data=session.session_data, transaction_id=session.id)
