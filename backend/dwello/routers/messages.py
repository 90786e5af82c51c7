from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dwello.database import get_db
from dwello.schemas.chat import (
    ChatMessageResponse,
    ConversationResponse,
    MessageCreate,
    PostMessageResponse,
)
from dwello.services import chat_service

router = APIRouter(prefix="/messages")


@router.post("", response_model=PostMessageResponse)
def send_message(body: MessageCreate, db: Session = Depends(get_db)) -> PostMessageResponse:
    message, reply = chat_service.post_message(
        db, body.property_id, body.text, body.sender_address
    )
    return PostMessageResponse(
        message=ChatMessageResponse.model_validate(message),
        reply=ChatMessageResponse.model_validate(reply),
    )


@router.get("/{property_id}", response_model=ConversationResponse)
def get_conversation(property_id: str, db: Session = Depends(get_db)) -> ConversationResponse:
    listing, messages = chat_service.list_messages(db, property_id)
    return ConversationResponse(
        property_id=listing.id,
        greeting=chat_service.greeting(listing),
        messages=[ChatMessageResponse.model_validate(m) for m in messages],
        count=len(messages),
    )
