from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, Field

from dwello.schemas.base import CamelModel


class TransactionCreate(CamelModel):
    property_id: str = Field(
        min_length=1, validation_alias=AliasChoices("propertyId", "property_id", "houseId")
    )
    apartment_number: int | None = Field(default=None, ge=1)
    amount: float
    currency: str | None = None
    from_address: str | None = None
    to_address: str | None = None
    tx_hash: str | None = None
    type: str | None = None
    description: str | None = None


class TransactionResponse(CamelModel):
    id: int
    property_id: str = Field(
        validation_alias=AliasChoices("listing_id", "property_id"),
        serialization_alias="propertyId",
    )
    apartment_number: int | None = None
    amount: float
    currency: str
    from_address: str | None = None
    to_address: str | None = None
    tx_hash: str | None = None
    type: str | None = None
    description: str | None = None
    status: str
    created_at: datetime


class TransactionEnvelope(CamelModel):
    success: bool = True
    transaction: TransactionResponse


class TransactionListResponse(CamelModel):
    success: bool = True
    transactions: list[TransactionResponse]
    count: int
