from __future__ import annotations

from typing import Protocol

from core.payments.types import AdyenEnvironment, CheckoutSession, CheckoutSessionRequest


class CheckoutProvider(Protocol):
    provider_name: str

    async def create_session(self, payload: CheckoutSessionRequest) -> CheckoutSession:
        ...


class CheckoutProviderFactory(Protocol):
    """Builds a provider client for one payment method's credentials."""

    def __call__(self, *, api_key: str, environment: AdyenEnvironment) -> CheckoutProvider:
        ...
