from __future__ import annotations

from typing import Any, Protocol

from core.result import Result
from schemas.channel_schema import Channel
from schemas.imports import OrderState
from schemas.order_schema import Order, Payment, PaymentCreate
from schemas.payment_schema import PaymentMethod
from security.principal import RequestContext


class CommerceStore(Protocol):
    """Order, payment and configuration persistence the payment services rely on.

    State-changing calls are expected to be atomic compare-and-set updates on
    the order document; the services take no locks of their own.
    """

    async def get_active_order(self, ctx: RequestContext) -> Order | None:
        ...

    async def find_order_by_code(self, ctx: RequestContext, code: str) -> Order | None:
        ...

    async def update_custom_fields(
        self,
        ctx: RequestContext,
        order_id: str,
        fields: dict[str, Any],
        *,
        expected_states: frozenset[OrderState] | None = None,
    ) -> Result[Order]:
        ...

    async def hydrate_order(self, ctx: RequestContext, order: Order) -> Order:
        ...

    async def transition_to_state(self, ctx: RequestContext, order_id: str, state: OrderState) -> Result[Order]:
        ...

    async def add_payment_to_order(self, ctx: RequestContext, order_id: str, payment: PaymentCreate) -> Result[Order]:
        ...

    async def settle_payment(self, ctx: RequestContext, payment_id: str) -> Result[Payment]:
        ...

    async def find_payment_methods(self, ctx: RequestContext) -> list[PaymentMethod]:
        ...

    async def get_channel_from_token(self, token: str) -> Channel | None:
        ...
