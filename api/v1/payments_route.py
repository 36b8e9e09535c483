from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request

from core.errors import AppException, ErrorCode
from core.payments.manager import PaymentManager, get_payment_manager
from core.response_envelope import document_response
from schemas.payment_schema import PaymentIntentIn
from security.auth import verify_any_token
from security.principal import AuthPrincipal, RequestContext

router = APIRouter(prefix="/payments", tags=["Payments"])


async def _shop_context(
    manager: PaymentManager,
    principal: AuthPrincipal,
    channel_token: str | None,
) -> RequestContext:
    token = channel_token or manager.default_channel_token
    channel = await manager.store.get_channel_from_token(token)
    if channel is None:
        raise AppException(
            status_code=404,
            code=ErrorCode.CHANNEL_NOT_FOUND,
            message="Channel not found",
            details={"channel_token": token},
        )
    return RequestContext.for_shop(channel=channel, principal=principal)


@router.post("/intents")
@document_response(
    message="Payment intent processed",
    success_example={"__typename": "PaymentIntent", "sessionData": "Ab02b4c0!BQABAgB...", "transactionId": "CS4F..."},
    response_codes={401: "Unauthorized", 404: "Channel not found"},
)
async def create_payment_intent(
    request: Request,
    payload: PaymentIntentIn,
    principal: AuthPrincipal = Depends(verify_any_token),
    manager: PaymentManager = Depends(get_payment_manager),
    x_channel_token: str | None = Header(default=None),
):
    """
    Create a checkout session for the caller's active order.

    The result is either a `PaymentIntent` or a `PaymentIntentError`,
    distinguished by `__typename`.
    """
    ctx = await _shop_context(manager, principal, x_channel_token)
    return await manager.intent_builder.create_intent(ctx, payload.payment_method_code)
