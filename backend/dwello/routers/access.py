"""Payment and blob checks exposed directly to the client."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from dwello.schemas.access import AccessDecisionResponse, PaymentStatusResponse
from dwello.schemas.blob import BlobValidationResponse
from dwello.services.access_gate import AccessGate, get_access_gate
from dwello.services.sui_client import SuiLedgerClient, get_ledger_client
from dwello.services.walrus_client import WalrusClient, get_walrus_client

router = APIRouter()


def _require(**params: str | None) -> None:
    missing = [name for name, value in params.items() if not value or not value.strip()]
    if missing:
        raise HTTPException(
            status_code=400, detail=f"Missing required parameters: {', '.join(missing)}"
        )


@router.get("/payment-status", response_model=PaymentStatusResponse)
async def payment_status(
    user_address: str | None = Query(None, alias="userAddress"),
    house_id: str | None = Query(None, alias="houseId"),
    ledger: SuiLedgerClient = Depends(get_ledger_client),
) -> PaymentStatusResponse:
    """Raw access-pass lookup. A ledger failure is an error, never a grant."""
    _require(userAddress=user_address, houseId=house_id)
    status = await ledger.has_access_pass(user_address.strip(), house_id.strip())
    return PaymentStatusResponse(**status.model_dump())


@router.get("/verify-access", response_model=AccessDecisionResponse)
async def verify_access(
    user_address: str | None = Query(None, alias="userAddress"),
    house_id: str | None = Query(None, alias="houseId"),
    blob_id: str | None = Query(None, alias="blobId"),
    gate: AccessGate = Depends(get_access_gate),
) -> AccessDecisionResponse:
    _require(userAddress=user_address, houseId=house_id)
    decision = await gate.check_access(
        user_address.strip(), house_id.strip(), blob_id or None
    )
    return AccessDecisionResponse(**decision.model_dump())


@router.get("/blob-validation/{blob_id}", response_model=BlobValidationResponse)
async def blob_validation(
    blob_id: str, store: WalrusClient = Depends(get_walrus_client)
) -> BlobValidationResponse:
    result = await store.validate(blob_id)
    return BlobValidationResponse(**result.model_dump())
