"""Tests for the combined payment + media access decision."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from dwello.schemas.access import PaymentStatus
from dwello.schemas.blob import BlobValidation
from dwello.services.access_gate import AccessGate
from dwello.utils.exceptions import LedgerQueryError


def _gate(has_paid: bool = True, blob_valid: bool = True) -> tuple[AccessGate, MagicMock, MagicMock]:
    ledger = MagicMock()
    ledger.has_access_pass = AsyncMock(
        return_value=PaymentStatus(
            has_paid=has_paid,
            pass_id="0xpass" if has_paid else None,
            timestamp=datetime.now(timezone.utc),
        )
    )
    blobs = MagicMock()
    blobs.validate = AsyncMock(
        side_effect=lambda blob_id: BlobValidation(blob_id=blob_id, valid=blob_valid)
    )
    return AccessGate(ledger, blobs), ledger, blobs


@pytest.mark.asyncio
async def test_paid_and_valid_blob_is_granted() -> None:
    gate, ledger, blobs = _gate()

    decision = await gate.check_access("0xuser", "prop_1", "b1")

    assert decision.access_granted is True
    assert decision.payment_verified is True
    assert decision.blob_valid is True
    assert decision.error is None
    assert decision.details["payment"]["passId"] == "0xpass"
    assert decision.details["blob"]["blobId"] == "b1"
    ledger.has_access_pass.assert_awaited_once_with("0xuser", "prop_1")
    blobs.validate.assert_awaited_once_with("b1")


@pytest.mark.asyncio
async def test_unpaid_is_denied() -> None:
    gate, _, _ = _gate(has_paid=False)
    decision = await gate.check_access("0xuser", "prop_1", "b1")
    assert decision.access_granted is False
    assert decision.payment_verified is False
    assert decision.blob_valid is True


@pytest.mark.asyncio
async def test_invalid_blob_is_denied_even_when_paid() -> None:
    gate, _, _ = _gate(blob_valid=False)
    decision = await gate.check_access("0xuser", "prop_1", "b1")
    assert decision.access_granted is False
    assert decision.payment_verified is True
    assert decision.blob_valid is False


@pytest.mark.asyncio
async def test_without_blob_only_payment_counts() -> None:
    gate, _, blobs = _gate()
    decision = await gate.check_access("0xuser", "prop_1")
    assert decision.access_granted is True
    assert decision.blob_valid is True
    blobs.validate.assert_not_awaited()


@pytest.mark.asyncio
async def test_ledger_failure_fails_closed() -> None:
    gate, ledger, blobs = _gate()
    ledger.has_access_pass.side_effect = LedgerQueryError("node unreachable")

    decision = await gate.check_access("0xuser", "prop_1", "b1")

    assert decision.access_granted is False
    assert decision.payment_verified is False
    assert decision.blob_valid is False
    assert decision.error == "node unreachable"
    blobs.validate.assert_not_awaited()


@pytest.mark.asyncio
async def test_blob_check_crash_fails_closed() -> None:
    gate, _, blobs = _gate()
    blobs.validate.side_effect = RuntimeError("unexpected")

    decision = await gate.check_access("0xuser", "prop_1", "b1")

    assert decision.access_granted is False
    assert decision.payment_verified is False
    assert decision.error == "unexpected"
