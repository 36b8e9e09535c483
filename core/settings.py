from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

SUPPORTED_ADYEN_ENVIRONMENTS = {"LIVE", "TEST"}
SUPPORTED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
SUPPORTED_LOG_FORMATS = {"json", "console"}
DEFAULT_PAYMENT_METHOD_CODE = "payment-adyen"


def _split_csv(value: str | None) -> tuple[str, ...]:
    if not value:
        return tuple()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _env(name: str) -> str | None:
    raw_value = os.getenv(name)
    if raw_value is None:
        return None
    normalized = raw_value.strip()
    return normalized or None


def _flag(name: str, default: str) -> bool:
    return (os.getenv(name, default) or "").strip().lower() in {"1", "true", "yes"}


def collect_missing_required_env_vars() -> list[str]:
    missing: list[str] = []

    for var_name in ("MONGO_URL", "DB_NAME"):
        if _env(var_name) is None:
            missing.append(var_name)

    environment = (_env("ADYEN_ENVIRONMENT") or "TEST").upper()
    if environment == "LIVE" and _env("ADYEN_LIVE_ENDPOINT_URL_PREFIX") is None:
        missing.append("ADYEN_LIVE_ENDPOINT_URL_PREFIX")

    username = _env("ADYEN_WEBHOOK_USERNAME")
    password = _env("ADYEN_WEBHOOK_PASSWORD")
    if username is not None and password is None:
        missing.append("ADYEN_WEBHOOK_PASSWORD")
    if password is not None and username is None:
        missing.append("ADYEN_WEBHOOK_USERNAME")

    return sorted(set(missing))


def collect_invalid_env_values() -> list[str]:
    invalid_values: list[str] = []

    environment = (_env("ADYEN_ENVIRONMENT") or "TEST").upper()
    if environment not in SUPPORTED_ADYEN_ENVIRONMENTS:
        invalid_values.append("ADYEN_ENVIRONMENT must be one of: LIVE, TEST")

    log_level = (_env("LOG_LEVEL") or "INFO").upper()
    if log_level not in SUPPORTED_LOG_LEVELS:
        invalid_values.append("LOG_LEVEL must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")

    log_format = (_env("LOG_FORMAT") or "json").lower()
    if log_format not in SUPPORTED_LOG_FORMATS:
        invalid_values.append("LOG_FORMAT must be one of: json, console")

    return invalid_values


def validate_required_environment() -> None:
    missing_vars = collect_missing_required_env_vars()
    invalid_values = collect_invalid_env_values()
    if not missing_vars and not invalid_values:
        return

    message_lines = ["Application startup blocked by invalid environment configuration."]
    if missing_vars:
        message_lines.append("")
        message_lines.append("Missing required environment variables:")
        message_lines.extend(f"- {name}" for name in missing_vars)
    if invalid_values:
        message_lines.append("")
        message_lines.append("Invalid environment values:")
        message_lines.extend(f"- {message}" for message in invalid_values)
    raise RuntimeError("\n".join(message_lines))


@dataclass(frozen=True)
class Settings:
    env: str
    mongo_url: str
    db_name: str
    cors_origins: tuple[str, ...]
    debug_include_error_details: bool
    log_level: str
    log_format: str
    default_channel_token: str
    adyen_environment: str
    adyen_live_endpoint_url_prefix: str | None
    adyen_webhook_username: str | None
    adyen_webhook_password: str | None
    adyen_hmac_key: str | None
    adyen_payment_method_code: str
    adyen_auto_settle: bool

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    validate_required_environment()

    return Settings(
        env=os.getenv("ENV", "development"),
        mongo_url=_env("MONGO_URL") or "",
        db_name=_env("DB_NAME") or "",
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS")),
        debug_include_error_details=_flag("DEBUG_INCLUDE_ERROR_DETAILS", "false"),
        log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        log_format=(_env("LOG_FORMAT") or "json").lower(),
        default_channel_token=_env("DEFAULT_CHANNEL_TOKEN") or "__default_channel__",
        adyen_environment=(_env("ADYEN_ENVIRONMENT") or "TEST").upper(),
        adyen_live_endpoint_url_prefix=_env("ADYEN_LIVE_ENDPOINT_URL_PREFIX"),
        adyen_webhook_username=_env("ADYEN_WEBHOOK_USERNAME"),
        adyen_webhook_password=_env("ADYEN_WEBHOOK_PASSWORD"),
        adyen_hmac_key=_env("ADYEN_HMAC_KEY"),
        adyen_payment_method_code=_env("ADYEN_PAYMENT_METHOD_CODE") or DEFAULT_PAYMENT_METHOD_CODE,
        adyen_auto_settle=_flag("ADYEN_AUTO_SETTLE", "true"),
    )
