"""Base schema classes and response envelopes."""

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Schema exchanged with clients using camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class StatusResponse(CamelModel):
    """Successful envelope without payload."""

    status: Literal["ok"] = "ok"


class ErrorResponse(CamelModel):
    """Envelope returned for every failed request."""

    status: Literal["failed"] = "failed"
    code: int
    message: str
