from __future__ import annotations

import logging
import mimetypes
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from dwello.config import settings
from dwello.schemas.listing import ImageRef
from dwello.utils.exceptions import ValidationError

if TYPE_CHECKING:
    from fastapi import UploadFile

    from dwello.services.walrus_client import WalrusClient

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    t.strip().lower() for t in settings.allowed_content_types.split(",") if t.strip()
}
MAX_FILE_SIZE = settings.max_file_size_mb * 1024 * 1024


def resolve_content_type(file: UploadFile) -> str:
    """Declared content type, falling back to a guess from the filename."""
    declared = (file.content_type or "").split(";")[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(file.filename or "")
    return (guessed or declared or "application/octet-stream").lower()


def validate_file(file: UploadFile) -> str:
    content_type = resolve_content_type(file)
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValueError(
            f"File type '{content_type}' not allowed. "
            f"Allowed: {', '.join(sorted(ALLOWED_CONTENT_TYPES))}"
        )
    size = getattr(file, "size", None)
    if size is not None and size > MAX_FILE_SIZE:
        raise ValueError(f"File too large (max {settings.max_file_size_mb}MB)")
    return content_type


async def read_upload_bytes(file: UploadFile) -> bytes:
    content = await file.read(MAX_FILE_SIZE + 1)
    if len(content) > MAX_FILE_SIZE:
        raise ValueError(f"File too large (max {settings.max_file_size_mb}MB)")
    if not content:
        raise ValueError(f"File '{file.filename}' is empty")
    await file.seek(0)
    return content


async def load_uploads(files: list[UploadFile]) -> list[tuple[UploadFile, str, bytes]]:
    """Validate every file before anything is stored.

    Returns ``(file, content_type, content)`` triples; raises
    ValidationError on the first rejected file.
    """
    if len(files) > settings.max_upload_files:
        raise ValidationError(f"Too many files (max {settings.max_upload_files})")
    loaded = []
    for file in files:
        try:
            content_type = validate_file(file)
            content = await read_upload_bytes(file)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        loaded.append((file, content_type, content))
    return loaded


async def store_uploads(store: WalrusClient, files: list[UploadFile]) -> list[ImageRef]:
    """Validate all files, then upload them in order. Any failure aborts."""
    loaded = await load_uploads(files)
    refs = []
    for file, content_type, content in loaded:
        blob = await store.upload(content, file.filename, content_type)
        refs.append(
            ImageRef(
                blob_id=blob.blob_id,
                url=blob.url,
                file_name=file.filename,
                content_type=content_type,
                uploaded_at=datetime.now(timezone.utc),
            )
        )
    logger.info("Stored %d uploaded files on Walrus", len(refs))
    return refs
