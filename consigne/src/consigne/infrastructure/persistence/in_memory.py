"""
In-memory repository implementations.

Used when no DATABASE_URL is configured and as the store in unit tests.
Records are copied on the way in and out so callers never share state
with the store, matching the behaviour of the SQL repositories.
"""

from copy import deepcopy
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from consigne.domain.entities.deposit_record import DepositRecord
from consigne.domain.entities.ledger_transaction import (
    LedgerTransaction,
    TransactionType,
)
from consigne.domain.exceptions import DuplicateEntityError, EntityNotFoundError
from consigne.domain.repositories.i_deposit_repository import IDepositRepository
from consigne.domain.repositories.i_ledger_transaction_repository import (
    ILedgerTransactionRepository,
)


class InMemoryDepositRepository(IDepositRepository):
    """Deposit record store kept in a dict keyed by user address."""

    def __init__(self):
        self._records: dict[str, DepositRecord] = {}

    async def create(self, record: DepositRecord) -> DepositRecord:
        if record.user_address in self._records:
            raise DuplicateEntityError(
                "DepositRecord", f"user_address {record.user_address}"
            )
        if self._find(lambda r: r.user_id == record.user_id):
            raise DuplicateEntityError("DepositRecord", f"user_id {record.user_id}")
        if record.deposit_tx_id and self._find(
            lambda r: r.deposit_tx_id == record.deposit_tx_id
        ):
            raise DuplicateEntityError(
                "DepositRecord", f"deposit_tx_id {record.deposit_tx_id}"
            )

        self._records[record.user_address] = deepcopy(record)
        return deepcopy(record)

    async def get_by_user_address(self, user_address: str) -> Optional[DepositRecord]:
        record = self._records.get(user_address)
        return deepcopy(record) if record else None

    async def get_by_user_id(self, user_id: str) -> Optional[DepositRecord]:
        return deepcopy(self._find(lambda r: r.user_id == user_id))

    async def get_by_deposit_tx_id(self, tx_id: str) -> Optional[DepositRecord]:
        return deepcopy(self._find(lambda r: r.deposit_tx_id == tx_id))

    async def update(self, record: DepositRecord) -> DepositRecord:
        stored = self._records.get(record.user_address)
        if stored is None:
            raise EntityNotFoundError("DepositRecord", record.user_address)

        if record.deposit_tx_id and not stored.refunded:
            owner = self._find(lambda r: r.deposit_tx_id == record.deposit_tx_id)
            if owner is not None and owner.user_address != record.user_address:
                raise DuplicateEntityError(
                    "DepositRecord", f"deposit_tx_id {record.deposit_tx_id}"
                )
            stored.deposit_tx_id = record.deposit_tx_id
            stored.deposit_output_index = record.deposit_output_index
            stored.deposit_amount = record.deposit_amount

        stored.sender_wallet_address = record.sender_wallet_address
        stored.verification_attempts = max(
            stored.verification_attempts, record.verification_attempts
        )
        stored.last_verification_at = record.last_verification_at

        if record.verified and not stored.verified:
            stored.verified = True
            stored.verified_at = record.verified_at

        if record.signup_completed and not stored.signup_completed:
            stored.signup_completed = True
            stored.signup_completed_at = record.signup_completed_at

        stored.updated_at = datetime.now()
        return deepcopy(stored)

    async def list_unverified(self, limit: Optional[int] = None) -> list[DepositRecord]:
        return self._list(lambda r: not r.verified, limit)

    async def list_awaiting_refund(
        self, limit: Optional[int] = None
    ) -> list[DepositRecord]:
        return self._list(lambda r: r.awaiting_refund, limit)

    async def claim_refund(
        self,
        user_address: str,
        now: datetime,
        stale_after: timedelta,
    ) -> bool:
        stored = self._records.get(user_address)
        if stored is None or stored.refunded:
            return False
        if stored.refund_claimed_at and stored.refund_claimed_at >= now - stale_after:
            return False

        stored.refund_claimed_at = now
        stored.updated_at = now
        return True

    async def release_refund_claim(self, user_address: str) -> None:
        stored = self._records.get(user_address)
        if stored is not None and not stored.refunded:
            stored.refund_claimed_at = None
            stored.updated_at = datetime.now()

    async def mark_refunded(
        self,
        user_address: str,
        refund_tx_id: str,
        refunded_at: datetime,
    ) -> bool:
        stored = self._records.get(user_address)
        if stored is None or stored.refunded or not stored.verified:
            return False

        stored.refunded = True
        stored.refund_tx_id = refund_tx_id
        stored.refunded_at = refunded_at
        stored.refund_claimed_at = None
        stored.updated_at = refunded_at
        return True

    def _find(self, predicate) -> Optional[DepositRecord]:
        for record in self._records.values():
            if predicate(record):
                return record
        return None

    def _list(self, predicate, limit: Optional[int]) -> list[DepositRecord]:
        matches = sorted(
            (r for r in self._records.values() if predicate(r)),
            key=lambda r: r.created_at,
        )
        if limit is not None:
            matches = matches[:limit]
        return [deepcopy(r) for r in matches]


class InMemoryLedgerTransactionRepository(ILedgerTransactionRepository):
    """Transaction journal kept in a dict keyed by entry id."""

    def __init__(self):
        self._transactions: dict[UUID, LedgerTransaction] = {}

    async def create(self, transaction: LedgerTransaction) -> LedgerTransaction:
        for existing in self._transactions.values():
            if (
                existing.tx_hash == transaction.tx_hash
                and existing.transaction_type == transaction.transaction_type
            ):
                raise DuplicateEntityError(
                    "LedgerTransaction",
                    f"tx_hash {transaction.tx_hash} "
                    f"({transaction.transaction_type.value})",
                )

        self._transactions[transaction.id] = deepcopy(transaction)
        return deepcopy(transaction)

    async def get_by_tx_hash(
        self,
        tx_hash: str,
        transaction_type: Optional[TransactionType] = None,
    ) -> Optional[LedgerTransaction]:
        for transaction in self._transactions.values():
            if transaction.tx_hash != tx_hash:
                continue
            if transaction_type and transaction.transaction_type != transaction_type:
                continue
            return deepcopy(transaction)
        return None

    async def update(self, transaction: LedgerTransaction) -> LedgerTransaction:
        stored = self._transactions.get(transaction.id)
        if stored is None:
            raise EntityNotFoundError("LedgerTransaction", str(transaction.id))

        stored.status = transaction.status
        stored.confirmations = transaction.confirmations
        stored.confirmed_at = transaction.confirmed_at
        return deepcopy(stored)

    async def list_by_user(
        self,
        user_address: str,
        transaction_type: Optional[TransactionType] = None,
    ) -> list[LedgerTransaction]:
        matches = [
            t
            for t in self._transactions.values()
            if t.user_address == user_address
            and (transaction_type is None or t.transaction_type == transaction_type)
        ]
        matches.sort(key=lambda t: t.created_at, reverse=True)
        return [deepcopy(t) for t in matches]
