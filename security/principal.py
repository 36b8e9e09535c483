from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from schemas.channel_schema import Channel


class AuthPrincipal(BaseModel):
    user_id: str
    role: Literal["customer", "admin"]
    access_token_id: str
    token_created_at: int | None = None


class RequestContext(BaseModel):
    """Who is asking, and on which channel."""

    channel: Channel
    api_type: Literal["shop", "admin"]
    is_authorized: bool = False
    principal: AuthPrincipal | None = None

    @property
    def user_id(self) -> str | None:
        return self.principal.user_id if self.principal else None

    @classmethod
    def for_shop(cls, *, channel: Channel, principal: AuthPrincipal) -> "RequestContext":
        return cls(channel=channel, api_type="shop", is_authorized=True, principal=principal)

    @classmethod
    def for_webhook(cls, *, channel: Channel) -> "RequestContext":
        return cls(channel=channel, api_type="admin", is_authorized=True)
