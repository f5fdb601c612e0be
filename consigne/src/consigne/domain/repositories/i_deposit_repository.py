"""
Deposit repository interface.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional

from consigne.domain.entities.deposit_record import DepositRecord


class IDepositRepository(ABC):
    """
    Interface for deposit record persistence operations.

    One record per user; a record is reachable by user address and by
    user id and both lookups resolve to the same record.
    """

    @abstractmethod
    async def create(self, record: DepositRecord) -> DepositRecord:
        """
        Create new deposit record.

        Args:
            record: DepositRecord entity to create

        Returns:
            Created record

        Raises:
            DuplicateEntityError: If user address or user id already exists
        """

    @abstractmethod
    async def get_by_user_address(self, user_address: str) -> Optional[DepositRecord]:
        """
        Get record by user address.

        Returns:
            DepositRecord if found, None otherwise
        """

    @abstractmethod
    async def get_by_user_id(self, user_id: str) -> Optional[DepositRecord]:
        """
        Get record by user id.

        Returns:
            DepositRecord if found, None otherwise
        """

    @abstractmethod
    async def get_by_deposit_tx_id(self, tx_id: str) -> Optional[DepositRecord]:
        """
        Get the record a deposit transaction is attributed to.

        Returns:
            DepositRecord if found, None otherwise
        """

    @abstractmethod
    async def update(self, record: DepositRecord) -> DepositRecord:
        """
        Persist verification and signup fields of an existing record.

        Refund fields are owned by claim_refund / mark_refunded and are not
        written here.

        Raises:
            EntityNotFoundError: If record not found
        """

    @abstractmethod
    async def list_unverified(self, limit: Optional[int] = None) -> list[DepositRecord]:
        """List records with verified = False, oldest first."""

    @abstractmethod
    async def list_awaiting_refund(
        self, limit: Optional[int] = None
    ) -> list[DepositRecord]:
        """List records that are verified but not refunded, oldest first."""

    @abstractmethod
    async def claim_refund(
        self,
        user_address: str,
        now: datetime,
        stale_after: timedelta,
    ) -> bool:
        """
        Take the refund claim on a record with a single conditional write.

        Succeeds only if the record is not refunded and has no claim newer
        than ``stale_after``.

        Returns:
            True if the claim was taken, False if zero rows matched
        """

    @abstractmethod
    async def release_refund_claim(self, user_address: str) -> None:
        """Drop a refund claim after a failed submission."""

    @abstractmethod
    async def mark_refunded(
        self,
        user_address: str,
        refund_tx_id: str,
        refunded_at: datetime,
    ) -> bool:
        """
        Record the refund with a single conditional write.

        Applies only where refunded = False and verified = True.

        Returns:
            True if the row was updated, False if zero rows matched
        """
