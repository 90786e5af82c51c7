from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile

from dwello.config import settings
from dwello.schemas.blob import (
    BulkVerifyRequest,
    BulkVerifyResponse,
    BlobVerifyResponse,
    UploadResponse,
)
from dwello.services.walrus_client import WalrusClient, get_walrus_client
from dwello.utils.file_handling import load_uploads

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/walrus")


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: UploadFile | None = File(None),
    title: str | None = Form(None),
    caretaker_address: str | None = Form(None, alias="caretakerAddress"),
    store: WalrusClient = Depends(get_walrus_client),
) -> UploadResponse:
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    [(upload, content_type, content)] = await load_uploads([file])
    blob = await store.upload(content, upload.filename, content_type)
    logger.info(
        "Uploaded %s for caretaker %s as %s", upload.filename, caretaker_address, blob.blob_id
    )
    return UploadResponse(
        blob_id=blob.blob_id,
        url=blob.url,
        filename=upload.filename,
        size=blob.size,
        content_type=content_type,
        title=title or upload.filename,
        caretaker_address=caretaker_address,
        uploaded_at=datetime.now(timezone.utc),
    )


@router.get("/file/{blob_id}")
async def get_file(
    blob_id: str, store: WalrusClient = Depends(get_walrus_client)
) -> Response:
    blob = await store.retrieve(blob_id)
    headers = {"X-Blob-Id": blob.blob_id, "X-Blob-Size": str(blob.size)}
    if "filename" in blob.tags:
        headers["Content-Disposition"] = f'inline; filename="{blob.tags["filename"]}"'
    return Response(content=blob.content, media_type=blob.content_type, headers=headers)


@router.get("/verify/{blob_id}", response_model=BlobVerifyResponse)
async def verify_blob(
    blob_id: str, store: WalrusClient = Depends(get_walrus_client)
) -> BlobVerifyResponse:
    result = await store.validate(blob_id)
    return BlobVerifyResponse(
        blob_id=blob_id,
        url=store.blob_url(blob_id),
        accessible=result.valid,
        status=result.status,
        size=result.size,
        content_type=result.content_type,
        error=result.error,
    )


@router.post("/verify-bulk", response_model=BulkVerifyResponse)
async def verify_bulk(
    body: BulkVerifyRequest, store: WalrusClient = Depends(get_walrus_client)
) -> BulkVerifyResponse:
    if not body.blob_ids:
        raise HTTPException(status_code=400, detail="blobIds must be a non-empty list")
    if len(body.blob_ids) > settings.max_bulk_verify:
        raise HTTPException(
            status_code=400,
            detail=f"Too many blob IDs (max {settings.max_bulk_verify})",
        )
    results = await store.validate_many(body.blob_ids)
    return BulkVerifyResponse(
        results=results,
        total=len(results),
        valid_count=sum(1 for r in results if r.valid),
    )
