from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from dwello.database import get_db
from dwello.models.listing import Listing
from dwello.schemas.access import AccessDecision, AccessDeniedResponse
from dwello.schemas.base import SuccessResponse
from dwello.schemas.listing import (
    ImageRef,
    ImageResponse,
    ListingCollectionResponse,
    ListingCreate,
    ListingEnvelope,
    ListingImagesResponse,
    ListingPageResponse,
    ListingResponse,
    ListingUpdate,
    Pagination,
)
from dwello.services import listing_service
from dwello.services.access_gate import AccessGate, get_access_gate
from dwello.services.walrus_client import WalrusClient, get_walrus_client
from dwello.utils.exceptions import NotFoundError, ValidationError
from dwello.utils.file_handling import store_uploads

router = APIRouter(prefix="/properties")

FILE_FIELDS = ("images", "files", "file")
LIST_FIELDS = ("images", "imagesWithAmounts", "blobIds", "apartments")


# ---------------------------------------------------------------------------
# Request parsing: JSON body or multipart form with optional files
# ---------------------------------------------------------------------------


async def _read_body(request: Request) -> tuple[dict[str, Any], list[UploadFile]]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        data: dict[str, Any] = {}
        files: list[UploadFile] = []
        for key, value in form.multi_items():
            if not isinstance(value, str):
                if key in FILE_FIELDS and value.filename:
                    files.append(value)
                continue
            if key in LIST_FIELDS:
                data.setdefault(key, []).extend(_parse_list_field(key, value))
            else:
                data[key] = value
        return data, files

    raw = await request.body()
    if not raw.strip():
        return {}, []
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ValidationError("Request body is not valid JSON") from e
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data, []


def _parse_list_field(key: str, value: str) -> list[Any]:
    value = value.strip()
    if not value:
        return []
    if value.startswith("["):
        try:
            parsed = json.loads(value)
        except ValueError as e:
            raise ValidationError(f"{key} must be a JSON array") from e
        return parsed if isinstance(parsed, list) else [parsed]
    if value.startswith("{"):
        try:
            return [json.loads(value)]
        except ValueError as e:
            raise ValidationError(f"{key} must be JSON") from e
    return [value]


def _validate(model: type[BaseModel], data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationError(f"Invalid {location or 'body'}: {first.get('msg')}") from e


def _media_from_refs(images: list[ImageRef] | None, blob_ids: list[str] | None) -> list[ImageRef]:
    images = images or []
    blob_ids = [b for b in (blob_ids or []) if b]
    if images:
        if blob_ids and blob_ids != [i.blob_id for i in images]:
            raise ValidationError("blobIds do not match the supplied images")
        return images
    return listing_service.refs_from_blob_ids(blob_ids)


def _to_response(listing: Listing) -> ListingResponse:
    return ListingResponse.model_validate(listing)


def _require_address(user_address: str | None) -> str:
    if not user_address or not user_address.strip():
        raise HTTPException(status_code=400, detail="userAddress is required")
    return user_address.strip()


def _denied(decision: AccessDecision) -> JSONResponse:
    body = AccessDeniedResponse(
        error=decision.error or "Access denied: payment required",
        payment_verified=decision.payment_verified,
        blob_valid=decision.blob_valid,
    )
    return JSONResponse(status_code=403, content=body.model_dump(by_alias=True))


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


@router.post("", response_model=ListingEnvelope, status_code=201)
async def create_property(
    request: Request,
    db: Session = Depends(get_db),
    store: WalrusClient = Depends(get_walrus_client),
) -> ListingEnvelope:
    data, files = await _read_body(request)
    fields: ListingCreate = _validate(ListingCreate, data)

    if files and (fields.images or fields.blob_ids):
        raise ValidationError("Send either image files or blob references, not both")
    listing_service.check_required_fields(fields)

    if files:
        media = await store_uploads(store, files)
    else:
        media = _media_from_refs(fields.images, fields.blob_ids)
    if not media:
        raise ValidationError("No images provided")

    listing = listing_service.create_listing(db, fields, media)
    return ListingEnvelope(
        property=_to_response(listing), message="Property created successfully"
    )


@router.get("", response_model=ListingPageResponse)
def list_properties(
    page: int | None = None,
    limit: int | None = None,
    city: str | None = None,
    state: str | None = None,
    country: str | None = None,
    property_type: str | None = Query(None, alias="propertyType"),
    caretaker_address: str | None = Query(None, alias="caretakerAddress"),
    db: Session = Depends(get_db),
) -> ListingPageResponse:
    result = listing_service.list_listings(
        db,
        page,
        limit,
        city=city,
        state=state,
        country=country,
        property_type=property_type,
        caretaker_address=caretaker_address,
    )
    return ListingPageResponse(
        data=[_to_response(listing) for listing in result.items],
        pagination=Pagination(
            page=result.page, limit=result.limit, total=result.total, pages=result.pages
        ),
    )


@router.get("/search/{query}", response_model=ListingCollectionResponse)
def search_properties(
    query: str,
    q: str | None = None,
    min_price: float | None = Query(None, alias="minPrice"),
    max_price: float | None = Query(None, alias="maxPrice"),
    min_bedrooms: int | None = Query(None, alias="minBedrooms", le=1000),
    db: Session = Depends(get_db),
) -> ListingCollectionResponse:
    results = listing_service.search_listings(
        db, q or query, min_price=min_price, max_price=max_price, min_bedrooms=min_bedrooms
    )
    return ListingCollectionResponse(
        data=[_to_response(listing) for listing in results], count=len(results)
    )


@router.get("/blob/{blob_id}", response_model=ListingEnvelope)
def get_property_by_blob(blob_id: str, db: Session = Depends(get_db)) -> ListingEnvelope:
    listing = listing_service.find_listing_by_blob(db, blob_id)
    return ListingEnvelope(property=_to_response(listing))


@router.get("/{property_id}", response_model=ListingEnvelope)
def get_property(property_id: str, db: Session = Depends(get_db)) -> ListingEnvelope:
    listing = listing_service.get_listing(db, property_id)
    return ListingEnvelope(property=_to_response(listing))


@router.put("/{property_id}", response_model=ListingEnvelope)
async def update_property(
    property_id: str,
    request: Request,
    db: Session = Depends(get_db),
    store: WalrusClient = Depends(get_walrus_client),
) -> ListingEnvelope:
    data, files = await _read_body(request)
    changes: ListingUpdate = _validate(ListingUpdate, data)

    if files and (changes.images or changes.blob_ids):
        raise ValidationError("Send either image files or blob references, not both")
    listing_service.get_listing_for_update(db, property_id)

    if files:
        new_media = await store_uploads(store, files)
    else:
        new_media = _media_from_refs(changes.images, changes.blob_ids)

    listing = listing_service.update_listing(
        db,
        property_id,
        changes.model_dump(exclude_unset=True, exclude={"images", "blob_ids", "apartments"}),
        new_media,
        new_apartments=changes.apartments,
    )
    return ListingEnvelope(
        property=_to_response(listing), message="Property updated successfully"
    )


@router.delete("/{property_id}", response_model=SuccessResponse)
def delete_property(property_id: str, db: Session = Depends(get_db)) -> SuccessResponse:
    listing_service.delete_listing(db, property_id)
    return SuccessResponse(message="Property deleted successfully")


# ---------------------------------------------------------------------------
# Payment-gated content
# ---------------------------------------------------------------------------


@router.get(
    "/{property_id}/details",
    response_model=ListingEnvelope,
    responses={403: {"model": AccessDeniedResponse}},
)
async def get_property_details(
    property_id: str,
    user_address: str | None = Query(None, alias="userAddress"),
    db: Session = Depends(get_db),
    gate: AccessGate = Depends(get_access_gate),
) -> ListingEnvelope | JSONResponse:
    address = _require_address(user_address)
    listing = listing_service.get_listing_for_update(db, property_id)

    primary = listing.primary_image
    decision = await gate.check_access(
        address, listing.id, primary.blob_id if primary else None
    )
    if not decision.access_granted:
        return _denied(decision)
    return ListingEnvelope(property=_to_response(listing))


@router.get(
    "/{property_id}/images",
    response_model=ListingImagesResponse,
    responses={403: {"model": AccessDeniedResponse}},
)
async def get_property_images(
    property_id: str,
    user_address: str | None = Query(None, alias="userAddress"),
    blob_id: str | None = Query(None, alias="blobId"),
    db: Session = Depends(get_db),
    gate: AccessGate = Depends(get_access_gate),
) -> ListingImagesResponse | JSONResponse:
    address = _require_address(user_address)
    listing = listing_service.get_listing_for_update(db, property_id)

    if blob_id is not None and blob_id not in listing.blob_ids:
        raise NotFoundError(f"Blob {blob_id} does not belong to property {property_id}")
    primary = listing.primary_image
    target = blob_id or (primary.blob_id if primary else None)

    decision = await gate.check_access(address, listing.id, target)
    if not decision.access_granted:
        return _denied(decision)

    images = [ImageResponse.model_validate(i) for i in listing.images]
    if blob_id is not None:
        images = [i for i in images if i.blob_id == blob_id]
    return ListingImagesResponse(
        property_id=listing.id,
        images=images,
        primary_image=ImageResponse.model_validate(primary) if primary else None,
        blob_ids=listing.blob_ids,
    )
