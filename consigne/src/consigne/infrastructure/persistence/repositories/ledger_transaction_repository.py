"""
Ledger transaction journal repository implementation using SQLAlchemy.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from consigne.domain.entities.ledger_transaction import (
    LedgerTransaction,
    TransactionStatus,
    TransactionType,
)
from consigne.domain.exceptions import DuplicateEntityError, EntityNotFoundError
from consigne.domain.repositories.i_ledger_transaction_repository import (
    ILedgerTransactionRepository,
)
from consigne.infrastructure.persistence.database import Database
from consigne.infrastructure.persistence.models import LedgerTransactionModel


class LedgerTransactionRepository(ILedgerTransactionRepository):
    """SQLAlchemy implementation of the ledger transaction journal."""

    def __init__(self, database: Database):
        self.database = database

    async def create(self, transaction: LedgerTransaction) -> LedgerTransaction:
        """
        Journal a new transaction.

        Raises:
            DuplicateEntityError: If (tx hash, type) already journaled
        """
        async with self.database.session() as session:
            model = LedgerTransactionModel(
                id=transaction.id,
                tx_hash=transaction.tx_hash,
                transaction_type=transaction.transaction_type.value,
                from_address=transaction.from_address,
                to_address=transaction.to_address,
                amount=transaction.amount,
                status=transaction.status.value,
                user_address=transaction.user_address,
                confirmations=transaction.confirmations,
                block_time=transaction.block_time,
                created_at=transaction.created_at,
                confirmed_at=transaction.confirmed_at,
            )

            session.add(model)
            try:
                await session.flush()
            except IntegrityError:
                raise DuplicateEntityError(
                    "LedgerTransaction",
                    f"tx_hash {transaction.tx_hash} "
                    f"({transaction.transaction_type.value})",
                )

            return self._to_entity(model)

    async def get_by_tx_hash(
        self,
        tx_hash: str,
        transaction_type: Optional[TransactionType] = None,
    ) -> Optional[LedgerTransaction]:
        """Retrieve journaled transaction by hash."""
        stmt = select(LedgerTransactionModel).where(
            LedgerTransactionModel.tx_hash == tx_hash
        )
        if transaction_type:
            stmt = stmt.where(
                LedgerTransactionModel.transaction_type == transaction_type.value
            )

        async with self.database.session() as session:
            model = (await session.execute(stmt)).scalars().first()
            return self._to_entity(model) if model else None

    async def update(self, transaction: LedgerTransaction) -> LedgerTransaction:
        """
        Update status and confirmation fields.

        Raises:
            EntityNotFoundError: If transaction not found
        """
        async with self.database.session() as session:
            stmt = select(LedgerTransactionModel).where(
                LedgerTransactionModel.id == transaction.id
            )
            model = (await session.execute(stmt)).scalar_one_or_none()

            if not model:
                raise EntityNotFoundError("LedgerTransaction", str(transaction.id))

            model.status = transaction.status.value
            model.confirmations = transaction.confirmations
            model.confirmed_at = transaction.confirmed_at

            await session.flush()

            return self._to_entity(model)

    async def list_by_user(
        self,
        user_address: str,
        transaction_type: Optional[TransactionType] = None,
    ) -> list[LedgerTransaction]:
        """List journaled transactions for a user, newest first."""
        stmt = select(LedgerTransactionModel).where(
            LedgerTransactionModel.user_address == user_address
        )
        if transaction_type:
            stmt = stmt.where(
                LedgerTransactionModel.transaction_type == transaction_type.value
            )
        stmt = stmt.order_by(LedgerTransactionModel.created_at.desc())

        async with self.database.session() as session:
            models = (await session.execute(stmt)).scalars().all()
            return [self._to_entity(model) for model in models]

    @staticmethod
    def _to_entity(model: LedgerTransactionModel) -> LedgerTransaction:
        """Convert ORM model to domain entity."""
        return LedgerTransaction(
            id=model.id,
            tx_hash=model.tx_hash,
            transaction_type=TransactionType(model.transaction_type),
            from_address=model.from_address,
            to_address=model.to_address,
            amount=model.amount,
            status=TransactionStatus(model.status),
            user_address=model.user_address,
            confirmations=model.confirmations,
            block_time=model.block_time,
            created_at=model.created_at,
            confirmed_at=model.confirmed_at,
        )
