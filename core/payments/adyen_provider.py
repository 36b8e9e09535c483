from __future__ import annotations

from typing import Any

import httpx
import structlog

from core.errors import AppException, ErrorCode
from core.payments.types import (
    AdyenEnvironment,
    CheckoutAddress,
    CheckoutLineItem,
    CheckoutSession,
    CheckoutSessionRequest,
)

logger = structlog.get_logger(__name__)

CHECKOUT_API_VERSION = "v71"
TEST_CHECKOUT_URL = f"https://checkout-test.adyen.com/{CHECKOUT_API_VERSION}"
LIVE_CHECKOUT_URL = "https://{prefix}-checkout-live.adyenpayments.com/checkout/" + CHECKOUT_API_VERSION


def checkout_base_url(environment: AdyenEnvironment, live_endpoint_url_prefix: str | None = None) -> str:
    if environment == AdyenEnvironment.TEST:
        return TEST_CHECKOUT_URL
    if not live_endpoint_url_prefix:
        raise ValueError("A live endpoint URL prefix is required for the LIVE environment")
    return LIVE_CHECKOUT_URL.format(prefix=live_endpoint_url_prefix)


def _line_item_payload(item: CheckoutLineItem) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": item.id,
        "amountIncludingTax": item.amount_including_tax,
        "quantity": item.quantity,
    }
    if item.description:
        payload["description"] = item.description
    return payload


def _address_payload(address: CheckoutAddress) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "country": address.country,
        "city": address.city,
        "street": address.street,
        "houseNumberOrName": address.house_number_or_name,
        "postalCode": address.postal_code,
    }
    if address.state_or_province:
        payload["stateOrProvince"] = address.state_or_province
    return payload


def session_request_payload(payload: CheckoutSessionRequest) -> dict[str, Any]:
    body: dict[str, Any] = {
        "merchantAccount": payload.merchant_account,
        "amount": {"currency": payload.amount.currency, "value": payload.amount.value},
        "reference": payload.reference,
        "returnUrl": payload.return_url,
        "lineItems": [_line_item_payload(item) for item in payload.line_items],
        "storePaymentMethod": payload.store_payment_method,
    }
    if payload.shopper_email:
        body["shopperEmail"] = payload.shopper_email
    if payload.shopper_name:
        body["shopperName"] = {
            "firstName": payload.shopper_name.first_name,
            "lastName": payload.shopper_name.last_name,
        }
    if payload.telephone_number:
        body["telephoneNumber"] = payload.telephone_number
    if payload.billing_address:
        body["billingAddress"] = _address_payload(payload.billing_address)
    if payload.shopper_reference:
        body["shopperReference"] = payload.shopper_reference
    return body


class AdyenCheckoutProvider:
    provider_name = "adyen"

    def __init__(
        self,
        *,
        api_key: str,
        environment: AdyenEnvironment = AdyenEnvironment.TEST,
        live_endpoint_url_prefix: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = checkout_base_url(environment, live_endpoint_url_prefix)
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "X-API-Key": self._api_key,
            "Content-Type": "application/json",
        }

    async def create_session(self, payload: CheckoutSessionRequest) -> CheckoutSession:
        try:
            async with httpx.AsyncClient(timeout=15.0, transport=self._transport) as client:
                response = await client.post(
                    f"{self._base_url}/sessions",
                    json=session_request_payload(payload),
                    headers=self._headers(),
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as err:
            raise AppException(
                status_code=502,
                code=ErrorCode.PAYMENT_PROVIDER_ERROR,
                message="Adyen session creation failed",
                details={"status_code": err.response.status_code, "body": err.response.text},
            ) from err
        except httpx.HTTPError as err:
            raise AppException(
                status_code=502,
                code=ErrorCode.PAYMENT_PROVIDER_ERROR,
                message="Adyen is unreachable",
                details=str(err),
            ) from err

        data = response.json()
        logger.debug("adyen_session_created", reference=payload.reference, session_id=data.get("id"))
        return CheckoutSession(
            id=data.get("id"),
            session_data=data.get("sessionData"),
            raw=data,
        )


def build_adyen_provider_factory(*, live_endpoint_url_prefix: str | None = None):
    def factory(*, api_key: str, environment: AdyenEnvironment) -> AdyenCheckoutProvider:
        return AdyenCheckoutProvider(
            api_key=api_key,
            environment=environment,
            live_endpoint_url_prefix=live_endpoint_url_prefix,
        )

    return factory
