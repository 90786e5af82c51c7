"""Off-chain payment ledger kept alongside the listings."""

from __future__ import annotations

import logging
import math

from sqlalchemy import func
from sqlalchemy.orm import Session

from dwello.config import settings
from dwello.models.transaction import Transaction, TransactionStatus
from dwello.schemas.transaction import TransactionCreate
from dwello.services.listing_service import _utcnow, get_listing_for_update
from dwello.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)


def create_transaction(db: Session, data: TransactionCreate) -> Transaction:
    """Record a payment for an existing listing. New rows start as pending."""
    if not math.isfinite(data.amount) or data.amount <= 0:
        raise ValidationError("amount must be a positive number")
    listing = get_listing_for_update(db, data.property_id)

    transaction = Transaction(
        listing_id=listing.id,
        apartment_number=data.apartment_number,
        amount=data.amount,
        currency=data.currency or settings.default_transaction_currency,
        from_address=data.from_address,
        to_address=data.to_address,
        tx_hash=data.tx_hash,
        type=data.type,
        description=data.description,
        status=TransactionStatus.PENDING.value,
        created_at=_utcnow(),
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    logger.info(
        "Transaction %d recorded: %s %s on %s",
        transaction.id, transaction.amount, transaction.currency, listing.id,
    )
    return transaction


def list_transactions(
    db: Session,
    property_id: str | None = None,
    from_address: str | None = None,
    to_address: str | None = None,
    status: str | None = None,
) -> list[Transaction]:
    """Newest first, at most ``max_transactions`` rows. Addresses match case-insensitively."""
    query = db.query(Transaction)
    if property_id:
        query = query.filter(Transaction.listing_id == property_id)
    if from_address:
        query = query.filter(func.lower(Transaction.from_address) == from_address.lower())
    if to_address:
        query = query.filter(func.lower(Transaction.to_address) == to_address.lower())
    if status:
        if status not in {s.value for s in TransactionStatus}:
            raise ValidationError(f"Unknown transaction status: {status}")
        query = query.filter(Transaction.status == status)

    return (
        query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(settings.max_transactions)
        .all()
    )
