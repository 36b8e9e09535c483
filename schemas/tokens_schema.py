from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from schemas.imports import ObjectId


class AccessTokenOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(default=None, alias="_id")
    token: str
    user_id: str
    role: str
    created_at: int
    expires_at: int | None = None

    @model_validator(mode="before")
    @classmethod
    def convert_objectid(cls, values):
        if isinstance(values, dict) and "_id" in values and isinstance(values["_id"], ObjectId):
            values = {**values, "_id": str(values["_id"])}
        return values
