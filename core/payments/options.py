from __future__ import annotations

from dataclasses import dataclass

from core.payments.types import AdyenEnvironment
from core.settings import DEFAULT_PAYMENT_METHOD_CODE, Settings


@dataclass(frozen=True)
class BasicAuthCredentials:
    username: str
    password: str


@dataclass(frozen=True)
class PaymentPluginOptions:
    environment: AdyenEnvironment = AdyenEnvironment.TEST
    basic_auth_credentials: BasicAuthCredentials | None = None
    hmac_key: str | None = None
    payment_method_code: str = DEFAULT_PAYMENT_METHOD_CODE
    auto_settle: bool = True
    live_endpoint_url_prefix: str | None = None

    @property
    def is_live(self) -> bool:
        return self.environment == AdyenEnvironment.LIVE

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaymentPluginOptions":
        credentials = None
        if settings.adyen_webhook_username and settings.adyen_webhook_password:
            credentials = BasicAuthCredentials(
                username=settings.adyen_webhook_username,
                password=settings.adyen_webhook_password,
            )
        return cls(
            environment=AdyenEnvironment(settings.adyen_environment),
            basic_auth_credentials=credentials,
            hmac_key=settings.adyen_hmac_key,
            payment_method_code=settings.adyen_payment_method_code,
            auto_settle=settings.adyen_auto_settle,
            live_endpoint_url_prefix=settings.adyen_live_endpoint_url_prefix,
        )
