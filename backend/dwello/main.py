from __future__ import annotations

import logging
from collections.abc import AsyncGenerator  # noqa: TC003
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from dwello.config import settings
from dwello.database import create_tables
from dwello.routers import (
    access,
    caretakers,
    health,
    messages,
    properties,
    transactions,
    walrus,
)
from dwello.schemas.base import ErrorResponse
from dwello.utils.exceptions import DwelloError, InternalError

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # Per-request lines from the HTTP client drown out our own.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()
    # Import models so Base.metadata knows about them
    import dwello.models  # noqa: F401

    create_tables()
    logger.info(
        "%s started (walrus=%s, sui=%s)",
        settings.app_name,
        settings.walrus_publisher_url,
        settings.sui_network,
    )
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.exception_handler(DwelloError)
async def dwello_error_handler(request: Request, exc: DwelloError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return _error(exc.status_code, str(exc) or exc.__class__.__name__)


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"Invalid {location or 'request'}: {first.get('msg')}"
    else:
        message = "Invalid request"
    return _error(400, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(InternalError.status_code, "Internal server error")


app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(properties.router, prefix=settings.api_prefix, tags=["properties"])
app.include_router(caretakers.router, prefix=settings.api_prefix, tags=["caretakers"])
app.include_router(access.router, prefix=settings.api_prefix, tags=["access"])
app.include_router(walrus.router, prefix=settings.api_prefix, tags=["walrus"])
app.include_router(messages.router, prefix=settings.api_prefix, tags=["messages"])
app.include_router(transactions.router, prefix=settings.api_prefix, tags=["transactions"])


def run() -> None:
    import uvicorn

    uvicorn.run("dwello.main:app", host=settings.host, port=settings.port)
