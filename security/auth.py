from __future__ import annotations

from typing import Final

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.errors import auth_invalid_token
from repositories.tokens_repo import get_access_token
from security.principal import AuthPrincipal

token_auth_scheme = HTTPBearer(auto_error=True)
AUTH_ROLES: Final[tuple[str, ...]] = ("customer", "admin")


async def verify_any_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(token_auth_scheme),
) -> AuthPrincipal:
    token_record = await get_access_token(request.app.state.db, token=credentials.credentials)
    if token_record is None:
        raise auth_invalid_token()

    role = (token_record.role or "").lower()
    if role not in AUTH_ROLES:
        raise auth_invalid_token(details={"role": token_record.role})

    return AuthPrincipal(
        user_id=token_record.user_id,
        role=role,
        access_token_id=token_record.id or token_record.token,
        token_created_at=token_record.created_at,
    )
