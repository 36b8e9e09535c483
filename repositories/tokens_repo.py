from __future__ import annotations

import time

from pymongo.asynchronous.database import AsyncDatabase

from schemas.tokens_schema import AccessTokenOut


async def get_access_token(db: AsyncDatabase, *, token: str) -> AccessTokenOut | None:
    row = await db.access_tokens.find_one({"token": token})
    if row is None:
        return None
    access_token = AccessTokenOut(**row)
    if access_token.expires_at is not None and access_token.expires_at <= int(time.time()):
        return None
    return access_token
