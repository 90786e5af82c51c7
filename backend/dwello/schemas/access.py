from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from dwello.schemas.base import CamelModel


class PaymentStatus(CamelModel):
    has_paid: bool
    pass_id: str | None = None
    amount: Any = None
    user: str | None = None
    timestamp: datetime


class PaymentStatusResponse(PaymentStatus):
    success: bool = True


class AccessDecision(CamelModel):
    payment_verified: bool
    blob_valid: bool
    access_granted: bool
    details: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class AccessDecisionResponse(AccessDecision):
    success: bool = True


class AccessDeniedResponse(CamelModel):
    success: bool = False
    error: str
    access_granted: bool = False
    payment_verified: bool
    blob_valid: bool


class CaretakerStatusResponse(CamelModel):
    success: bool = True
    address: str
    is_caretaker: bool


class OnchainListing(CamelModel):
    object_id: str
    type: str | None = None
    content: dict[str, Any] | None = None


class OnchainListingsResponse(CamelModel):
    success: bool = True
    address: str
    data: list[OnchainListing]
    count: int
