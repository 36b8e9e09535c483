"""Authenticity checks for inbound provider notifications.

Two independent mechanisms are supported: HTTP basic auth on the webhook
request, and an HMAC-SHA256 signature the provider embeds in each
notification item (``additionalData.hmacSignature``).
"""
from __future__ import annotations

import base64
import binascii
import hmac

import structlog
from Adyen.util import is_valid_hmac_notification

from core.payments.options import BasicAuthCredentials, PaymentPluginOptions
from schemas.notification_schema import NotificationRequestItem

logger = structlog.get_logger(__name__)


def verify_notification_hmac(item: NotificationRequestItem, hmac_key: str) -> bool:
    """Return True only when the item's signature matches one computed with ``hmac_key``.

    Any failure to compute or compare the signature counts as invalid.
    """
    try:
        provided = item.hmac_signature
        if not provided:
            raise ValueError("Notification has no hmacSignature")
        is_valid = is_valid_hmac_notification(item.raw(), hmac_key)
    except (ValueError, TypeError, KeyError) as err:
        logger.error("webhook_hmac_validation_error", psp_reference=item.psp_reference, error=str(err))
        return False

    if is_valid:
        logger.info("webhook_hmac_valid", psp_reference=item.psp_reference)
    else:
        logger.warning("webhook_hmac_invalid", psp_reference=item.psp_reference)
    return is_valid


def authenticate_basic(header: str | None, credentials: BasicAuthCredentials) -> bool:
    if not isinstance(header, str) or not header:
        logger.warning("webhook_denied", reason="No Basic authentication was found in HTTP headers")
        return False

    scheme, _, encoded = header.partition(" ")
    if scheme != "Basic" or not encoded:
        logger.warning("webhook_denied", reason="Authentication type isn't Basic")
        return False

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        logger.warning("webhook_denied", reason="Basic auth header could not be decoded")
        return False

    username, separator, password = decoded.partition(":")
    user_ok = hmac.compare_digest(username.encode("utf-8"), credentials.username.encode("utf-8"))
    password_ok = hmac.compare_digest(password.encode("utf-8"), credentials.password.encode("utf-8"))
    if separator and user_ok and password_ok:
        logger.info("webhook_authed")
        return True

    logger.warning("webhook_denied", reason="Basic auth credentials are not valid")
    return False


class WebhookAuthenticator:
    def __init__(self, options: PaymentPluginOptions) -> None:
        self._options = options

    def accepts_deliveries(self) -> bool:
        if self._options.is_live and not self._options.hmac_key:
            logger.error(
                "webhook_ignored",
                reason="HMAC key is required for LIVE environment for security reasons",
            )
            return False
        return True

    def authenticate_request(self, authorization_header: str | None) -> bool:
        credentials = self._options.basic_auth_credentials
        if credentials is None:
            return True
        return authenticate_basic(authorization_header, credentials)

    def verify(self, item: NotificationRequestItem) -> bool:
        if not self._options.hmac_key:
            return True
        return verify_notification_hmac(item, self._options.hmac_key)
