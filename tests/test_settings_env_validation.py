from __future__ import annotations

import pytest

from core import settings as settings_module
from core.payments.options import PaymentPluginOptions
from core.payments.types import AdyenEnvironment

_ADYEN_VARS = (
    "ADYEN_ENVIRONMENT",
    "ADYEN_LIVE_ENDPOINT_URL_PREFIX",
    "ADYEN_WEBHOOK_USERNAME",
    "ADYEN_WEBHOOK_PASSWORD",
    "ADYEN_HMAC_KEY",
    "ADYEN_PAYMENT_METHOD_CODE",
    "ADYEN_AUTO_SETTLE",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


def _set_minimal_valid_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ADYEN_VARS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("MONGO_URL", "mongodb://localhost:27017")
    monkeypatch.setenv("DB_NAME", "shop")


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    settings_module.get_settings.cache_clear()
    yield
    settings_module.get_settings.cache_clear()


def test_minimal_env_is_valid(monkeypatch: pytest.MonkeyPatch):
    _set_minimal_valid_env(monkeypatch)

    assert settings_module.collect_missing_required_env_vars() == []
    assert settings_module.collect_invalid_env_values() == []


def test_collect_missing_required_env_vars_includes_database_keys(monkeypatch: pytest.MonkeyPatch):
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.delenv("MONGO_URL", raising=False)
    monkeypatch.setenv("DB_NAME", "   ")

    missing = settings_module.collect_missing_required_env_vars()

    assert missing == ["DB_NAME", "MONGO_URL"]


def test_live_environment_requires_endpoint_prefix(monkeypatch: pytest.MonkeyPatch):
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.setenv("ADYEN_ENVIRONMENT", "live")

    assert settings_module.collect_missing_required_env_vars() == ["ADYEN_LIVE_ENDPOINT_URL_PREFIX"]


def test_webhook_credentials_must_be_paired(monkeypatch: pytest.MonkeyPatch):
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.setenv("ADYEN_WEBHOOK_USERNAME", "adyen")

    assert settings_module.collect_missing_required_env_vars() == ["ADYEN_WEBHOOK_PASSWORD"]


def test_validate_required_environment_raises_with_missing_and_invalid_values(monkeypatch: pytest.MonkeyPatch):
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.delenv("DB_NAME", raising=False)
    monkeypatch.setenv("ADYEN_ENVIRONMENT", "STAGING")
    monkeypatch.setenv("LOG_FORMAT", "xml")

    with pytest.raises(RuntimeError) as exc_info:
        settings_module.validate_required_environment()

    message = str(exc_info.value)
    assert "Missing required environment variables" in message
    assert "- DB_NAME" in message
    assert "Invalid environment values" in message
    assert "ADYEN_ENVIRONMENT must be one of" in message
    assert "LOG_FORMAT must be one of" in message


def test_settings_project_into_payment_options(monkeypatch: pytest.MonkeyPatch):
    _set_minimal_valid_env(monkeypatch)
    monkeypatch.setenv("ADYEN_ENVIRONMENT", "LIVE")
    monkeypatch.setenv("ADYEN_LIVE_ENDPOINT_URL_PREFIX", "1797a841fbb37ca7-AdyenDemo")
    monkeypatch.setenv("ADYEN_WEBHOOK_USERNAME", "adyen")
    monkeypatch.setenv("ADYEN_WEBHOOK_PASSWORD", "s3cret")
    monkeypatch.setenv("ADYEN_HMAC_KEY", "ABCD")
    monkeypatch.setenv("ADYEN_AUTO_SETTLE", "false")

    options = PaymentPluginOptions.from_settings(settings_module.get_settings())

    assert options.environment == AdyenEnvironment.LIVE
    assert options.is_live
    assert options.basic_auth_credentials.username == "adyen"
    assert options.hmac_key == "ABCD"
    assert options.payment_method_code == "payment-adyen"
    assert options.auto_settle is False
    assert options.live_endpoint_url_prefix == "1797a841fbb37ca7-AdyenDemo"


def test_default_options_have_no_webhook_secrets(monkeypatch: pytest.MonkeyPatch):
    _set_minimal_valid_env(monkeypatch)

    options = PaymentPluginOptions.from_settings(settings_module.get_settings())

    assert options.environment == AdyenEnvironment.TEST
    assert options.basic_auth_credentials is None
    assert options.hmac_key is None
    assert options.auto_settle is True
