from __future__ import annotations

from datetime import datetime

from pydantic import Field

from dwello.schemas.base import CamelModel


class StoredBlob(CamelModel):
    blob_id: str
    url: str
    size: int
    filename: str | None = None
    content_type: str | None = None


class BlobValidation(CamelModel):
    blob_id: str
    valid: bool
    url: str | None = None
    status: int | None = None
    size: int | None = None
    content_type: str | None = None
    error: str | None = None


class RetrievedBlob(CamelModel):
    blob_id: str
    content: bytes = Field(exclude=True)
    size: int
    content_type: str
    tags: dict[str, str] = Field(default_factory=dict)


class UploadResponse(CamelModel):
    success: bool = True
    blob_id: str
    url: str
    filename: str | None
    size: int
    content_type: str | None
    title: str | None = None
    caretaker_address: str | None = None
    uploaded_at: datetime


class BlobValidationResponse(BlobValidation):
    success: bool = True


class BlobVerifyResponse(CamelModel):
    success: bool = True
    blob_id: str
    url: str | None
    accessible: bool
    status: int | None
    size: int | None
    content_type: str | None
    error: str | None = None


class BulkVerifyRequest(CamelModel):
    blob_ids: list[str]


class BulkVerifyResponse(CamelModel):
    success: bool = True
    results: list[BlobValidation]
    total: int
    valid_count: int
