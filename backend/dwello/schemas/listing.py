from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, Field

from dwello.schemas.base import CamelModel


class ImageRef(CamelModel):
    """A media reference supplied by a client (already uploaded to Walrus)."""

    blob_id: str = Field(min_length=1)
    url: str | None = None
    amount: float | None = None
    file_name: str | None = None
    content_type: str | None = None
    uploaded_at: datetime | None = None


class ImageResponse(CamelModel):
    blob_id: str
    url: str
    amount: float | None = None
    file_name: str | None = None
    content_type: str | None = None
    uploaded_at: datetime


class ApartmentIn(CamelModel):
    number: int = Field(ge=1)
    tenant: str | None = None
    possession_date: str | None = None
    expiry_date: str | None = None
    pricing: str | None = None
    status: Literal["occupied", "vacant"] = "vacant"


class ApartmentResponse(CamelModel):
    id: int
    number: int
    tenant: str | None = None
    possession_date: str | None = None
    expiry_date: str | None = None
    pricing: str | None = None
    status: str


class ListingCreate(CamelModel):
    name: str = Field(
        default="", validation_alias=AliasChoices("name", "houseName", "title")
    )
    address: str = ""
    price: float | None = None
    currency: str | None = None
    period: str | None = None
    bedrooms: int = Field(default=0, ge=0)
    bathrooms: int = Field(default=0, ge=0)
    area: str | None = None
    property_type: str | None = None
    country: str | None = None
    state: str | None = None
    city: str | None = None
    description: str | None = None
    caretaker_address: str | None = None
    featured: bool = False
    images: list[ImageRef] = Field(
        default_factory=list,
        validation_alias=AliasChoices("images", "imagesWithAmounts"),
    )
    blob_ids: list[str] = Field(default_factory=list)
    apartments: list[ApartmentIn] = Field(default_factory=list)


class ListingUpdate(CamelModel):
    """Partial update. Numeric fields stay loose; unparsable values are ignored."""

    name: str | None = Field(
        default=None, validation_alias=AliasChoices("name", "houseName", "title")
    )
    address: str | None = None
    price: float | int | str | None = None
    currency: str | None = None
    period: str | None = None
    bedrooms: float | int | str | None = None
    bathrooms: float | int | str | None = None
    area: str | None = None
    property_type: str | None = None
    country: str | None = None
    state: str | None = None
    city: str | None = None
    description: str | None = None
    featured: bool | str | None = None
    images: list[ImageRef] | None = Field(
        default=None,
        validation_alias=AliasChoices("images", "imagesWithAmounts"),
    )
    blob_ids: list[str] | None = None
    apartments: list[ApartmentIn] | None = None


class ListingResponse(CamelModel):
    id: str
    name: str
    address: str
    country: str | None
    state: str | None
    city: str | None
    property_type: str
    bedrooms: int
    bathrooms: int
    area: str | None
    description: str | None
    price: float
    currency: str
    period: str | None
    caretaker_address: str | None
    images: list[ImageResponse]
    primary_image: ImageResponse | None
    blob_ids: list[str]
    apartments: list[ApartmentResponse]
    views: int
    featured: bool
    created_at: datetime
    updated_at: datetime


class ListingEnvelope(CamelModel):
    success: bool = True
    property: ListingResponse
    message: str | None = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class ListingPageResponse(CamelModel):
    success: bool = True
    data: list[ListingResponse]
    pagination: Pagination


class ListingCollectionResponse(CamelModel):
    success: bool = True
    data: list[ListingResponse]
    count: int


class ListingImagesResponse(CamelModel):
    success: bool = True
    property_id: str
    images: list[ImageResponse]
    primary_image: ImageResponse | None
    blob_ids: list[str]
