from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PriceReference(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)


class CheckoutSessionRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    price: PriceReference
    quantity: int = Field(default=1, ge=1)
    metadata: dict[str, str] = Field(default_factory=dict)


class CheckoutSessionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(serialization_alias="sessionId")


class ErrorResponse(BaseModel):
    error: str
    kind: str | None = None
