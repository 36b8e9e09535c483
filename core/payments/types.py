from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AdyenEnvironment(str, Enum):
    LIVE = "LIVE"
    TEST = "TEST"


@dataclass(frozen=True)
class CheckoutAmount:
    currency: str
    value: int


@dataclass(frozen=True)
class CheckoutLineItem:
    id: str
    amount_including_tax: int
    quantity: int
    description: str | None = None


@dataclass(frozen=True)
class CheckoutAddress:
    country: str
    city: str
    street: str
    house_number_or_name: str
    postal_code: str
    state_or_province: str | None = None


@dataclass(frozen=True)
class ShopperName:
    first_name: str
    last_name: str


@dataclass(frozen=True)
class CheckoutSessionRequest:
    merchant_account: str
    amount: CheckoutAmount
    reference: str
    return_url: str
    line_items: list[CheckoutLineItem] = field(default_factory=list)
    shopper_email: str | None = None
    shopper_name: ShopperName | None = None
    telephone_number: str | None = None
    billing_address: CheckoutAddress | None = None
    shopper_reference: str | None = None
    store_payment_method: bool = False


@dataclass(frozen=True)
class CheckoutSession:
    id: str | None
    session_data: str | None
    raw: dict[str, Any]
