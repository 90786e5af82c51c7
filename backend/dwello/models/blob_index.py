from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from dwello.database import Base


class BlobIndexEntry(Base):
    """Reverse index: which listing currently claims a blob.

    Derived from ``listing_images`` and rebuildable from it; the blob ID is
    the primary key so at most one listing claims a blob at a time.
    """

    __tablename__ = "blob_index"

    blob_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    listing_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    claimed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
