from __future__ import annotations

from fastapi import Request

from core.payments.adyen_provider import build_adyen_provider_factory
from core.payments.options import PaymentPluginOptions
from core.payments.provider import CheckoutProviderFactory
from core.store import CommerceStore
from security.webhook_auth import WebhookAuthenticator
from services.notification_router import NotificationRouter
from services.order_reconciler import OrderStateReconciler
from services.payment_intent_service import PaymentIntentBuilder


class PaymentManager:
    """Holds the payment components built for one application instance."""

    def __init__(
        self,
        *,
        store: CommerceStore,
        options: PaymentPluginOptions,
        provider_factory: CheckoutProviderFactory | None = None,
        default_channel_token: str = "__default_channel__",
    ) -> None:
        self.store = store
        self.default_channel_token = default_channel_token
        self.options = options
        self.authenticator = WebhookAuthenticator(options)
        self.reconciler = OrderStateReconciler(store, options)
        self.router = NotificationRouter(store, self.reconciler)
        self.intent_builder = PaymentIntentBuilder(
            store,
            options,
            provider_factory
            or build_adyen_provider_factory(live_endpoint_url_prefix=options.live_endpoint_url_prefix),
        )


def get_payment_manager(request: Request) -> PaymentManager:
    return request.app.state.payment_manager
