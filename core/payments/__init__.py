from core.payments.options import BasicAuthCredentials, PaymentPluginOptions
from core.payments.types import (
    AdyenEnvironment,
    CheckoutAddress,
    CheckoutAmount,
    CheckoutLineItem,
    CheckoutSession,
    CheckoutSessionRequest,
    ShopperName,
)

__all__ = [
    "AdyenEnvironment",
    "BasicAuthCredentials",
    "CheckoutAddress",
    "CheckoutAmount",
    "CheckoutLineItem",
    "CheckoutSession",
    "CheckoutSessionRequest",
    "PaymentPluginOptions",
    "ShopperName",
]
