from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Header, Request, Response, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from core.errors import PaymentProcessingError, UnhandledEventError
from core.payments.manager import PaymentManager, get_payment_manager
from schemas.notification_schema import NotificationEnvelope

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/payments/webhooks", tags=["Webhooks"])

ACCEPTED = "[accepted]"


def _denied() -> Response:
    return Response(status_code=status.HTTP_401_UNAUTHORIZED)


@router.post("/adyen/standard", response_class=PlainTextResponse)
async def adyen_standard_webhook(
    request: Request,
    authorization: str | None = Header(default=None),
    manager: PaymentManager = Depends(get_payment_manager),
):
    """
    Receive Adyen standard webhooks.

    Only the first notification item is processed. Processing failures are
    logged and still acknowledged with `[accepted]`, since a redelivery would
    fail the same way.
    """
    authenticator = manager.authenticator
    if not authenticator.accepts_deliveries():
        return _denied()
    if not authenticator.authenticate_request(authorization):
        return _denied()

    try:
        envelope = NotificationEnvelope.model_validate_json(await request.body())
    except ValidationError as err:
        logger.warning("webhook_payload_invalid", error_count=err.error_count())
        return Response(status_code=status.HTTP_400_BAD_REQUEST)

    item = envelope.first_item
    if not authenticator.verify(item):
        return _denied()

    structlog.contextvars.bind_contextvars(psp_reference=item.psp_reference, merchant_reference=item.merchant_reference)
    try:
        await manager.router.route(item)
    except UnhandledEventError as err:
        logger.error("webhook_event_unhandled", code=err.code.value, error=err.message, alert=True)
    except PaymentProcessingError as err:
        logger.error("payment_processing_failed", code=err.code.value, error=err.message, **err.details)
    except Exception:
        logger.exception("payment_processing_crashed")
    finally:
        structlog.contextvars.unbind_contextvars("psp_reference", "merchant_reference")
    return PlainTextResponse(ACCEPTED)
