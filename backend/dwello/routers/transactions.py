from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dwello.database import get_db
from dwello.schemas.transaction import (
    TransactionCreate,
    TransactionEnvelope,
    TransactionListResponse,
    TransactionResponse,
)
from dwello.services import transaction_service

router = APIRouter(prefix="/transactions")


@router.post("/create", response_model=TransactionEnvelope)
def create_transaction(
    body: TransactionCreate, db: Session = Depends(get_db)
) -> TransactionEnvelope:
    transaction = transaction_service.create_transaction(db, body)
    return TransactionEnvelope(transaction=TransactionResponse.model_validate(transaction))


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    property_id: str | None = Query(None, alias="propertyId"),
    from_address: str | None = Query(None, alias="fromAddress"),
    to_address: str | None = Query(None, alias="toAddress"),
    status: str | None = None,
    db: Session = Depends(get_db),
) -> TransactionListResponse:
    transactions = transaction_service.list_transactions(
        db,
        property_id=property_id,
        from_address=from_address,
        to_address=to_address,
        status=status,
    )
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        count=len(transactions),
    )
