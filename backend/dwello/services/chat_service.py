"""Scripted caretaker chat for the listing detail widget."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from dwello.models.chat_message import ChatMessage, MessageSender
from dwello.models.listing import Listing
from dwello.services.listing_service import get_listing_for_update
from dwello.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000

CARETAKER_REPLIES = [
    "I'd be happy to schedule a viewing for you. When would be a good time?",
    "This property is available for immediate move-in. Would you like to know more about the lease terms?",
    "Great question! The property includes all utilities except internet. Parking is also included.",
    "Yes, pets are allowed with a small additional deposit. Is that something you need?",
    "The area is very safe with 24/7 security. Many families live here. Would you like to see the security features?",
]

# Keyword groups, checked in order; each maps to the reply at the same index.
REPLY_KEYWORDS = [
    ("viewing", "visit", "tour", "see it"),
    ("available", "move", "lease", "rent"),
    ("utilit", "parking", "internet", "bill"),
    ("pet", "dog", "cat"),
    ("safe", "security", "area", "neighborhood", "neighbourhood"),
]
_REPLY_PATTERNS = [
    re.compile(r"\b(?:" + "|".join(map(re.escape, words)) + ")") for words in REPLY_KEYWORDS
]


def greeting(listing: Listing) -> str:
    caretaker = listing.caretaker_address or "your caretaker"
    return f"Hi! I'm {caretaker}. How can I help you with {listing.name}?"


def scripted_reply(text: str, turn: int) -> str:
    """Pick a canned reply by keyword, rotating through them when none match."""
    lowered = text.lower()
    for index, pattern in enumerate(_REPLY_PATTERNS):
        if pattern.search(lowered):
            return CARETAKER_REPLIES[index]
    return CARETAKER_REPLIES[turn % len(CARETAKER_REPLIES)]


def list_messages(db: Session, listing_id: str) -> tuple[Listing, list[ChatMessage]]:
    listing = get_listing_for_update(db, listing_id)
    return listing, list(listing.messages)


def post_message(
    db: Session,
    listing_id: str,
    text: str,
    sender_address: str | None = None,
) -> tuple[ChatMessage, ChatMessage]:
    """Store the user's message and the caretaker's scripted answer."""
    text = (text or "").strip()
    if not text:
        raise ValidationError("Message text is required")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message exceeds {MAX_MESSAGE_LENGTH} characters")

    listing = get_listing_for_update(db, listing_id)
    turn = sum(1 for m in listing.messages if m.sender == MessageSender.USER.value)
    now = datetime.now(timezone.utc).replace(tzinfo=None)

    message = ChatMessage(
        sender=MessageSender.USER.value,
        sender_address=sender_address,
        text=text,
        created_at=now,
    )
    reply = ChatMessage(
        sender=MessageSender.CARETAKER.value,
        sender_address=listing.caretaker_address,
        text=scripted_reply(text, turn),
        created_at=now,
    )
    listing.messages.extend([message, reply])
    db.commit()
    db.refresh(message)
    db.refresh(reply)
    logger.info("Chat turn %d on listing %s", turn + 1, listing_id)
    return message, reply
