from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dwello.database import Base

if TYPE_CHECKING:
    from dwello.models.listing import Listing


class ApartmentStatus(StrEnum):
    OCCUPIED = "occupied"
    VACANT = "vacant"


class Apartment(Base):
    """A rentable unit inside a listing. Numbers are unique within a listing."""

    __tablename__ = "apartments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    listing_id: Mapped[str] = mapped_column(
        ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    tenant: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    possession_date: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    expiry_date: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    pricing: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=ApartmentStatus.VACANT)

    listing: Mapped["Listing"] = relationship(back_populates="apartments")
