from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from schemas.imports import ObjectId


class ConfigArg(BaseModel):
    name: str
    value: str | None = None


class PaymentMethodHandler(BaseModel):
    code: str
    args: list[ConfigArg] = Field(default_factory=list)


class PaymentMethod(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(default=None, alias="_id")
    code: str
    channel_token: str
    enabled: bool = True
    handler: PaymentMethodHandler

    @model_validator(mode="before")
    @classmethod
    def convert_objectid(cls, values):
        if isinstance(values, dict) and "_id" in values and isinstance(values["_id"], ObjectId):
            values = {**values, "_id": str(values["_id"])}
        return values

    def get_arg(self, name: str) -> str | None:
        arg = next((a for a in self.handler.args if a.name == name), None)
        if arg is None or arg.value is None:
            return None
        return arg.value.strip() or None


class PaymentIntentIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    payment_method_code: str | None = Field(default=None, min_length=1)


class IntentErrorCode(str, Enum):
    PAYMENT_METHOD_MISSING = "PAYMENT_METHOD_MISSING"
    NO_ACTIVE_ORDER = "NO_ACTIVE_ORDER"
    INVALID_ORDER_TOTAL = "INVALID_ORDER_TOTAL"
    PAYMENT_METHOD_NOT_CONFIGURED = "PAYMENT_METHOD_NOT_CONFIGURED"
    ORDER_ATTRIBUTION_FAILED = "ORDER_ATTRIBUTION_FAILED"
    CUSTOMER_MISSING = "CUSTOMER_MISSING"
    CUSTOMER_DATA_INCOMPLETE = "CUSTOMER_DATA_INCOMPLETE"
    SESSION_CREATION_FAILED = "SESSION_CREATION_FAILED"
    SESSION_DATA_MISSING = "SESSION_DATA_MISSING"

    @property
    def is_provider_failure(self) -> bool:
        return self in {IntentErrorCode.SESSION_CREATION_FAILED, IntentErrorCode.SESSION_DATA_MISSING}


class PaymentIntent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    typename: Literal["PaymentIntent"] = Field(default="PaymentIntent", alias="__typename")
    session_data: str
    transaction_id: str | None = None


class PaymentIntentError(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    typename: Literal["PaymentIntentError"] = Field(default="PaymentIntentError", alias="__typename")
    error_code: IntentErrorCode
    message: str


PaymentIntentResult = Annotated[Union[PaymentIntent, PaymentIntentError], Field(discriminator="typename")]
