from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dwello.database import Base

if TYPE_CHECKING:
    from dwello.models.apartment import Apartment
    from dwello.models.chat_message import ChatMessage
    from dwello.models.listing_image import ListingImage


class Listing(Base):
    """A property offered for sale or rent, with its media stored on Walrus."""

    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    property_type: Mapped[str] = mapped_column(String(100), default="Apartment")
    bedrooms: Mapped[int] = mapped_column(Integer, default=0)
    bathrooms: Mapped[int] = mapped_column(Integer, default=0)
    area: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    price: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default="$")
    period: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    caretaker_address: Mapped[Optional[str]] = mapped_column(
        String(130), nullable=True, index=True
    )

    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    images: Mapped[list["ListingImage"]] = relationship(
        back_populates="listing",
        order_by="ListingImage.position",
        cascade="all, delete-orphan",
    )
    apartments: Mapped[list["Apartment"]] = relationship(
        back_populates="listing",
        order_by="Apartment.number",
        cascade="all, delete-orphan",
    )
    messages: Mapped[list["ChatMessage"]] = relationship(
        back_populates="listing",
        order_by="ChatMessage.id",
        cascade="all, delete-orphan",
    )

    @property
    def blob_ids(self) -> list[str]:
        return [image.blob_id for image in self.images]

    @property
    def primary_image(self) -> Optional["ListingImage"]:
        return self.images[0] if self.images else None

    def __repr__(self) -> str:
        return f"<Listing(id={self.id!r}, name={self.name!r}, images={len(self.images)})>"
