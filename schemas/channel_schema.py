from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from schemas.imports import ObjectId


class Channel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(default=None, alias="_id")
    code: str
    token: str
    default_currency_code: str | None = None

    @model_validator(mode="before")
    @classmethod
    def convert_objectid(cls, values):
        if isinstance(values, dict) and "_id" in values and isinstance(values["_id"], ObjectId):
            values = {**values, "_id": str(values["_id"])}
        return values
