"""
Refund submitter interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from consigne.domain.value_objects.utxo_ref import UtxoRef


class IRefundSubmitter(ABC):
    """
    Abstract interface for building and submitting refund payments.

    Transaction building and signing live behind this boundary.
    """

    @abstractmethod
    async def submit_refund(
        self,
        destination_address: str,
        source_utxo: Optional[UtxoRef],
        amount: int,
        idempotency_key: str,
    ) -> str:
        """
        Build and submit a refund payment.

        Args:
            destination_address: Wallet receiving the refund
            source_utxo: Deposit output being refunded, if known
            amount: Refund amount in lovelace
            idempotency_key: Stable key for deduplicating resubmissions

        Returns:
            Refund transaction id

        Raises:
            RefundSubmissionError: If build or broadcast fails
        """

    async def close(self) -> None:
        """Release underlying connections."""
