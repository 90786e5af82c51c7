from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dwello.database import get_db
from dwello.schemas.access import CaretakerStatusResponse, OnchainListingsResponse
from dwello.schemas.listing import ListingCollectionResponse, ListingResponse
from dwello.services import listing_service
from dwello.services.sui_client import SuiLedgerClient, get_ledger_client

router = APIRouter()


@router.get("/caretaker/{address}/properties", response_model=ListingCollectionResponse)
def list_caretaker_properties(
    address: str, db: Session = Depends(get_db)
) -> ListingCollectionResponse:
    listings = listing_service.list_by_caretaker(db, address)
    return ListingCollectionResponse(
        data=[ListingResponse.model_validate(listing) for listing in listings], count=len(listings)
    )


@router.get("/caretaker/{address}/onchain-properties", response_model=OnchainListingsResponse)
async def list_onchain_properties(
    address: str, ledger: SuiLedgerClient = Depends(get_ledger_client)
) -> OnchainListingsResponse:
    """Listing objects the caretaker owns on the ledger itself."""
    listings = await ledger.list_caretaker_listings(address)
    return OnchainListingsResponse(address=address, data=listings, count=len(listings))


@router.get("/is-caretaker/{address}", response_model=CaretakerStatusResponse)
async def is_caretaker(
    address: str, ledger: SuiLedgerClient = Depends(get_ledger_client)
) -> CaretakerStatusResponse:
    return CaretakerStatusResponse(
        address=address, is_caretaker=await ledger.is_caretaker(address)
    )
