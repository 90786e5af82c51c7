"""Listing store: CRUD, search, pagination and the blob-ID reverse index."""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import quote

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from dwello.config import settings
from dwello.models.apartment import Apartment
from dwello.models.blob_index import BlobIndexEntry
from dwello.models.listing import Listing
from dwello.models.listing_image import ListingImage
from dwello.schemas.listing import ApartmentIn, ImageRef, ListingCreate
from dwello.utils.exceptions import (
    ListingNotFoundError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = {"price": float, "bedrooms": int, "bathrooms": int}
TEXT_FIELDS = (
    "name",
    "address",
    "currency",
    "period",
    "area",
    "property_type",
    "country",
    "state",
    "city",
    "description",
)
LIST_FILTERS = ("city", "state", "country", "property_type", "caretaker_address")


@dataclass
class ListingPage:
    items: list[Listing]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.replace(tzinfo=None)


def _advance(previous: datetime | None) -> datetime:
    """Current time, nudged past ``previous`` so timestamps strictly increase."""
    now = _utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def _new_listing_id() -> str:
    return f"prop_{uuid.uuid4().hex}"


def _parse_number(value: Any, kind: type) -> float | int | None:
    """Parse a loose numeric input; None when it is absent, unparsable or negative."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = kind(float(value)) if kind is int else kind(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if isinstance(number, float) and not math.isfinite(number):
        return None
    return number if number >= 0 else None


def _parse_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
        return value.strip().lower() in ("true", "1")
    return None


def blob_url(blob_id: str) -> str:
    return (
        f"{settings.walrus_aggregator_url.rstrip('/')}"
        f"/{settings.walrus_read_path.strip('/')}/{quote(blob_id, safe='')}"
    )


def refs_from_blob_ids(blob_ids: list[str]) -> list[ImageRef]:
    """Turn bare blob IDs into media references with aggregator URLs."""
    return [ImageRef(blob_id=b, url=blob_url(b)) for b in blob_ids if b]


# ---------------------------------------------------------------------------
# Reverse index
# ---------------------------------------------------------------------------


def _claim_blob(db: Session, blob_id: str, listing_id: str, when: datetime) -> None:
    entry = db.get(BlobIndexEntry, blob_id)
    if entry is None:
        db.add(BlobIndexEntry(blob_id=blob_id, listing_id=listing_id, claimed_at=when))
        return
    if entry.listing_id != listing_id:
        logger.warning(
            "Blob %s reassigned from listing %s to %s", blob_id, entry.listing_id, listing_id
        )
    entry.listing_id = listing_id
    entry.claimed_at = when


def _release_blob(db: Session, blob_id: str, listing_id: str) -> None:
    """Drop ``listing_id``'s claim; hand the blob to the latest other claimant."""
    entry = db.get(BlobIndexEntry, blob_id)
    if entry is None or entry.listing_id != listing_id:
        return

    successor = (
        db.query(ListingImage)
        .filter(ListingImage.blob_id == blob_id, ListingImage.listing_id != listing_id)
        .order_by(ListingImage.id.desc())
        .first()
    )
    if successor is None:
        db.delete(entry)
    else:
        entry.listing_id = successor.listing_id
        entry.claimed_at = _utcnow()


def find_listing_by_blob(db: Session, blob_id: str) -> Listing:
    entry = db.get(BlobIndexEntry, blob_id)
    if entry is None:
        raise NotFoundError(f"No property claims blob {blob_id}")
    return get_listing_for_update(db, entry.listing_id)


def lookup_blob_owner(db: Session, blob_id: str) -> str | None:
    entry = db.get(BlobIndexEntry, blob_id)
    return entry.listing_id if entry else None


def rebuild_blob_index(db: Session) -> int:
    """Recompute the reverse index from media rows; the latest claim wins."""
    db.query(BlobIndexEntry).delete()
    owners: dict[str, str] = {}
    for image in db.query(ListingImage).order_by(ListingImage.id.asc()):
        owners[image.blob_id] = image.listing_id
    now = _utcnow()
    for blob_id, listing_id in owners.items():
        db.add(BlobIndexEntry(blob_id=blob_id, listing_id=listing_id, claimed_at=now))
    db.commit()
    logger.info("Rebuilt blob index with %d entries", len(owners))
    return len(owners)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


def _append_media(
    db: Session, listing: Listing, media: list[ImageRef], when: datetime
) -> None:
    start = len(listing.images)
    for offset, ref in enumerate(media):
        listing.images.append(
            ListingImage(
                position=start + offset,
                blob_id=ref.blob_id,
                url=ref.url or blob_url(ref.blob_id),
                amount=ref.amount,
                file_name=ref.file_name,
                content_type=ref.content_type,
                uploaded_at=_naive_utc(ref.uploaded_at) if ref.uploaded_at else when,
            )
        )
    for blob_id in dict.fromkeys(ref.blob_id for ref in media):
        _claim_blob(db, blob_id, listing.id, when)


def _build_apartments(apartments: list[ApartmentIn]) -> list[Apartment]:
    numbers = [apartment.number for apartment in apartments]
    duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
    if duplicates:
        raise ValidationError(
            f"Duplicate apartment numbers: {', '.join(map(str, duplicates))}"
        )
    return [Apartment(**apartment.model_dump()) for apartment in apartments]


def check_required_fields(fields: ListingCreate) -> None:
    """Raise ValidationError unless name, address and a positive price are set."""
    name = (fields.name or "").strip()
    address = (fields.address or "").strip()
    missing = [
        label
        for label, ok in (
            ("name", bool(name)),
            ("address", bool(address)),
            ("price", fields.price is not None),
        )
        if not ok
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if fields.price is None or not math.isfinite(fields.price) or fields.price <= 0:
        raise ValidationError("price must be a positive number")
    if fields.caretaker_address is not None and not fields.caretaker_address.strip():
        raise ValidationError("caretakerAddress must not be empty")
    _build_apartments(fields.apartments)


def create_listing(db: Session, fields: ListingCreate, media: list[ImageRef]) -> Listing:
    """Validate and persist a new listing together with its media."""
    check_required_fields(fields)
    if not media:
        raise ValidationError("At least one image is required")

    now = _advance(db.query(func.max(Listing.created_at)).scalar())
    listing = Listing(
        id=_new_listing_id(),
        name=fields.name.strip(),
        address=fields.address.strip(),
        country=fields.country,
        state=fields.state,
        city=fields.city,
        property_type=fields.property_type or "Apartment",
        bedrooms=fields.bedrooms,
        bathrooms=fields.bathrooms,
        area=fields.area,
        description=fields.description,
        price=fields.price,
        currency=fields.currency or settings.default_currency,
        period=fields.period,
        caretaker_address=(
            fields.caretaker_address.strip() if fields.caretaker_address else None
        ),
        featured=fields.featured,
        apartments=_build_apartments(fields.apartments),
        views=0,
        created_at=now,
        updated_at=now,
    )
    db.add(listing)
    _append_media(db, listing, media, now)
    db.commit()
    db.refresh(listing)
    logger.info("Listing created: %s (%d images)", listing.id, len(media))
    return listing


def get_listing_for_update(db: Session, listing_id: str) -> Listing:
    """Internal lookup; does not touch the view counter."""
    listing = db.get(Listing, listing_id)
    if listing is None:
        raise ListingNotFoundError(f"Property {listing_id} not found")
    return listing


def get_listing(db: Session, listing_id: str) -> Listing:
    """Public fetch: commits a view increment before returning."""
    result = db.execute(
        update(Listing)
        .where(Listing.id == listing_id)
        .values(views=Listing.views + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise ListingNotFoundError(f"Property {listing_id} not found")
    db.commit()
    listing = get_listing_for_update(db, listing_id)
    db.refresh(listing)
    return listing


def list_listings(
    db: Session,
    page: int | None = None,
    limit: int | None = None,
    **filters: str | None,
) -> ListingPage:
    """Newest first. Non-positive or absent paging falls back to 1 / default size.

    ``limit`` is capped at ``max_page_size``; a page past ``max_page`` is a
    ValidationError.
    """
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else settings.default_page_size
    limit = min(limit, settings.max_page_size)
    if page > settings.max_page:
        raise ValidationError(f"page must be at most {settings.max_page}")

    query = db.query(Listing)
    for name in LIST_FILTERS:
        value = filters.get(name)
        if value:
            query = query.filter(func.lower(getattr(Listing, name)) == value.lower())

    total = query.count()
    items = (
        query.order_by(Listing.created_at.desc(), Listing.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return ListingPage(items=items, page=page, limit=limit, total=total)


def update_listing(
    db: Session,
    listing_id: str,
    changes: dict[str, Any],
    new_media: list[ImageRef] | None = None,
    new_apartments: list[ApartmentIn] | None = None,
) -> Listing:
    """Apply a partial update and append any new media.

    Only keys present in ``changes`` are considered. Numeric values that do
    not parse are ignored rather than rejected. ``new_apartments``, when
    given, replaces the listing's apartments wholesale.
    """
    listing = get_listing_for_update(db, listing_id)
    apartments = _build_apartments(new_apartments) if new_apartments is not None else None

    for field in TEXT_FIELDS:
        if field in changes and changes[field] is not None:
            value = changes[field]
            if field in ("name", "address") and not str(value).strip():
                raise ValidationError(f"{field} must not be empty")
            setattr(listing, field, value)

    for field, kind in NUMERIC_FIELDS.items():
        if field not in changes:
            continue
        number = _parse_number(changes[field], kind)
        if number is None or (field == "price" and number <= 0):
            logger.debug("Ignoring unparsable %s=%r for %s", field, changes[field], listing_id)
            continue
        setattr(listing, field, number)

    if "featured" in changes:
        featured = _parse_bool(changes["featured"])
        if featured is not None:
            listing.featured = featured

    now = _advance(listing.updated_at)
    if new_media:
        _append_media(db, listing, new_media, now)
    if apartments is not None:
        listing.apartments = apartments
    listing.updated_at = now

    db.commit()
    db.refresh(listing)
    logger.info(
        "Listing updated: %s (%d new images)", listing_id, len(new_media or [])
    )
    return listing


def delete_listing(db: Session, listing_id: str) -> None:
    listing = get_listing_for_update(db, listing_id)
    blob_ids = listing.blob_ids

    db.delete(listing)
    db.flush()
    for blob_id in dict.fromkeys(blob_ids):
        _release_blob(db, blob_id, listing_id)
    db.commit()
    logger.info("Listing deleted: %s (%d blob claims released)", listing_id, len(blob_ids))


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def search_listings(
    db: Session,
    text: str = "",
    min_price: float | None = None,
    max_price: float | None = None,
    min_bedrooms: int | None = None,
) -> list[Listing]:
    """Case-insensitive substring match on name, address, city or type,
    intersected with the price and bedroom filters. Insertion order."""
    query = db.query(Listing)

    needle = (text or "").strip().lower()
    if needle:
        query = query.filter(
            func.lower(Listing.name).contains(needle, autoescape=True)
            | func.lower(Listing.address).contains(needle, autoescape=True)
            | func.lower(func.coalesce(Listing.city, "")).contains(needle, autoescape=True)
            | func.lower(Listing.property_type).contains(needle, autoescape=True)
        )
    if min_price is not None and min_price > 0:
        query = query.filter(Listing.price >= min_price)
    if max_price is not None and math.isfinite(max_price):
        query = query.filter(Listing.price <= max_price)
    if min_bedrooms is not None and min_bedrooms > 0:
        query = query.filter(Listing.bedrooms >= min_bedrooms)

    return query.order_by(Listing.created_at.asc(), Listing.id.asc()).all()


def list_by_caretaker(db: Session, address: str) -> list[Listing]:
    if not address:
        return []
    return (
        db.query(Listing)
        .filter(func.lower(Listing.caretaker_address) == address.lower())
        .order_by(Listing.created_at.asc(), Listing.id.asc())
        .all()
    )
