from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CreateCheckoutRequest(BaseModel):
    """Body of POST /create-checkout, sent by the gallery page in camelCase."""

    gallery_id: UUID
    gallery_name: str
    photographer_name: str
    photo_count: int = Field(..., ge=0)
    price: int = Field(..., ge=0)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateCheckoutResponse(BaseModel):
    session_id: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CheckoutErrorResponse(BaseModel):
    error: str
