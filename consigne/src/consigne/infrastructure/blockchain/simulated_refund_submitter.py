"""
Simulated refund submitter.

Used when no wallet bridge is configured (local development, tests).
Returns a deterministic fake transaction id per idempotency key and never
touches the ledger.
"""

import hashlib
import logging
from typing import Optional

from consigne.domain.services.i_refund_submitter import IRefundSubmitter
from consigne.domain.value_objects.utxo_ref import UtxoRef

logger = logging.getLogger(__name__)


class SimulatedRefundSubmitter(IRefundSubmitter):
    """Refund submitter that records submissions instead of broadcasting."""

    def __init__(self):
        self.submissions: dict[str, dict] = {}

    async def submit_refund(
        self,
        destination_address: str,
        source_utxo: Optional[UtxoRef],
        amount: int,
        idempotency_key: str,
    ) -> str:
        existing = self.submissions.get(idempotency_key)
        if existing is not None:
            return existing["tx_id"]

        digest = hashlib.sha256(idempotency_key.encode("utf-8")).hexdigest()
        tx_id = f"simulated_refund_{digest[:48]}"
        self.submissions[idempotency_key] = {
            "tx_id": tx_id,
            "destination": destination_address,
            "source_utxo": str(source_utxo) if source_utxo else None,
            "amount": amount,
        }
        logger.warning(f"Simulated refund transaction (not broadcast): {tx_id}")
        return tx_id
