"""Single decision point for paid content: payment proof AND media validity."""

from __future__ import annotations

import logging

from fastapi import Depends

from dwello.schemas.access import AccessDecision
from dwello.services.sui_client import SuiLedgerClient, get_ledger_client
from dwello.services.walrus_client import WalrusClient, get_walrus_client

logger = logging.getLogger(__name__)


class AccessGate:
    def __init__(self, ledger: SuiLedgerClient, blobs: WalrusClient) -> None:
        self._ledger = ledger
        self._blobs = blobs

    async def check_access(
        self, address: str, listing_id: str, blob_id: str | None = None
    ) -> AccessDecision:
        """Grant access only when the caller paid and the blob (if any) resolves.

        Fail-closed: any error from either check denies access and is
        reported in ``error``; nothing propagates to the caller.
        """
        try:
            payment = await self._ledger.has_access_pass(address, listing_id)
            details = {"payment": payment.model_dump(mode="json", by_alias=True)}

            blob_valid = True
            if blob_id is not None:
                blob = await self._blobs.validate(blob_id)
                blob_valid = blob.valid
                details["blob"] = blob.model_dump(mode="json", by_alias=True)
        except Exception as e:
            logger.warning(
                "Access check failed for %s on %s: %s", address, listing_id, e
            )
            return AccessDecision(
                payment_verified=False,
                blob_valid=False,
                access_granted=False,
                error=str(e) or type(e).__name__,
            )

        granted = payment.has_paid and blob_valid
        logger.info(
            "Access %s for %s on %s (paid=%s, blob_valid=%s)",
            "granted" if granted else "denied", address, listing_id,
            payment.has_paid, blob_valid,
        )
        return AccessDecision(
            payment_verified=payment.has_paid,
            blob_valid=blob_valid,
            access_granted=granted,
            details=details,
        )


def get_access_gate(
    ledger: SuiLedgerClient = Depends(get_ledger_client),
    blobs: WalrusClient = Depends(get_walrus_client),
) -> AccessGate:
    """FastAPI dependency; the gate is stateless, so one per request is fine."""
    return AccessGate(ledger, blobs)
