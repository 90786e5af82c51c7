from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, Field

from dwello.schemas.base import CamelModel


class MessageCreate(CamelModel):
    property_id: str = Field(
        min_length=1, validation_alias=AliasChoices("propertyId", "property_id", "houseId")
    )
    text: str
    sender_address: str | None = None


class ChatMessageResponse(CamelModel):
    id: int | None = None
    property_id: str = Field(
        validation_alias=AliasChoices("listing_id", "property_id"),
        serialization_alias="propertyId",
    )
    sender: str
    sender_address: str | None = None
    text: str
    created_at: datetime


class PostMessageResponse(CamelModel):
    success: bool = True
    message: ChatMessageResponse
    reply: ChatMessageResponse


class ConversationResponse(CamelModel):
    success: bool = True
    property_id: str
    greeting: str
    messages: list[ChatMessageResponse]
    count: int
