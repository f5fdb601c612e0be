"""
Deposit record repository implementation using SQLAlchemy.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError

from consigne.domain.entities.deposit_record import DepositRecord
from consigne.domain.exceptions import DuplicateEntityError, EntityNotFoundError
from consigne.domain.repositories.i_deposit_repository import IDepositRepository
from consigne.domain.value_objects.commitment import Commitment
from consigne.domain.value_objects.verification_method import (
    BiometricType,
    VerificationMethod,
)
from consigne.infrastructure.persistence.database import Database
from consigne.infrastructure.persistence.models import DepositRecordModel


class DepositRepository(IDepositRepository):
    """
    SQLAlchemy implementation of deposit repository.

    Each call runs in its own session (one transaction). Refund fields are
    only written through conditional UPDATE statements so concurrent
    refunders cannot both succeed.
    """

    def __init__(self, database: Database):
        """
        Initialize repository with database.

        Args:
            database: Connected Database manager
        """
        self.database = database

    async def create(self, record: DepositRecord) -> DepositRecord:
        """
        Create a new deposit record.

        Raises:
            DuplicateEntityError: If user address or user id already exists
        """
        async with self.database.session() as session:
            stmt = select(DepositRecordModel).where(
                or_(
                    DepositRecordModel.user_address == record.user_address,
                    DepositRecordModel.user_id == record.user_id,
                )
            )
            existing = (await session.execute(stmt)).scalars().first()
            if existing is not None:
                raise self._duplicate(existing, record)

            model = DepositRecordModel(
                id=record.id,
                user_address=record.user_address,
                user_id=record.user_id,
                phone_commitment=self._str(record.phone_commitment),
                auth_commitment=self._str(record.auth_commitment),
                pin_commitment=self._str(record.pin_commitment),
                biometric_commitment=self._str(record.biometric_commitment),
                verification_method=record.verification_method.value,
                biometric_type=(
                    record.biometric_type.value if record.biometric_type else None
                ),
                sender_wallet_address=record.sender_wallet_address,
                expected_amount=record.expected_amount,
                deposit_tx_id=record.deposit_tx_id,
                deposit_output_index=record.deposit_output_index,
                deposit_amount=record.deposit_amount,
                verified=record.verified,
                verification_attempts=record.verification_attempts,
                last_verification_at=record.last_verification_at,
                verified_at=record.verified_at,
                signup_completed=record.signup_completed,
                signup_completed_at=record.signup_completed_at,
                refunded=record.refunded,
                refund_tx_id=record.refund_tx_id,
                refunded_at=record.refunded_at,
                refund_claimed_at=record.refund_claimed_at,
                created_at=record.created_at,
                updated_at=record.updated_at,
            )

            session.add(model)
            try:
                await session.flush()
            except IntegrityError:
                raise DuplicateEntityError(
                    "DepositRecord", f"user_address {record.user_address}"
                )

            return self._to_entity(model)

    async def get_by_user_address(self, user_address: str) -> Optional[DepositRecord]:
        """Retrieve record by user address."""
        return await self._get_one(DepositRecordModel.user_address == user_address)

    async def get_by_user_id(self, user_id: str) -> Optional[DepositRecord]:
        """Retrieve record by user id."""
        return await self._get_one(DepositRecordModel.user_id == user_id)

    async def get_by_deposit_tx_id(self, tx_id: str) -> Optional[DepositRecord]:
        """Retrieve the record a deposit transaction is attributed to."""
        return await self._get_one(DepositRecordModel.deposit_tx_id == tx_id)

    async def update(self, record: DepositRecord) -> DepositRecord:
        """
        Update verification and signup fields.

        verified / signup_completed never go back to False and the attempt
        counter never decreases, even under concurrent writers.

        Raises:
            EntityNotFoundError: If record not found
            DuplicateEntityError: If deposit tx id is attributed elsewhere
        """
        async with self.database.session() as session:
            stmt = select(DepositRecordModel).where(
                DepositRecordModel.user_address == record.user_address
            )
            model = (await session.execute(stmt)).scalar_one_or_none()

            if not model:
                raise EntityNotFoundError("DepositRecord", record.user_address)

            model.sender_wallet_address = record.sender_wallet_address
            model.verification_attempts = max(
                model.verification_attempts, record.verification_attempts
            )
            model.last_verification_at = record.last_verification_at

            if not model.refunded and record.deposit_tx_id:
                model.deposit_tx_id = record.deposit_tx_id
                model.deposit_output_index = record.deposit_output_index
                model.deposit_amount = record.deposit_amount

            if record.verified and not model.verified:
                model.verified = True
                model.verified_at = record.verified_at

            if record.signup_completed and not model.signup_completed:
                model.signup_completed = True
                model.signup_completed_at = record.signup_completed_at

            model.updated_at = datetime.now()

            try:
                await session.flush()
            except IntegrityError:
                raise DuplicateEntityError(
                    "DepositRecord", f"deposit_tx_id {record.deposit_tx_id}"
                )

            return self._to_entity(model)

    async def list_unverified(self, limit: Optional[int] = None) -> list[DepositRecord]:
        """List unverified records, oldest first."""
        stmt = (
            select(DepositRecordModel)
            .where(DepositRecordModel.verified.is_(False))
            .order_by(DepositRecordModel.created_at)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._get_many(stmt)

    async def list_awaiting_refund(
        self, limit: Optional[int] = None
    ) -> list[DepositRecord]:
        """List verified, unrefunded records, oldest first."""
        stmt = (
            select(DepositRecordModel)
            .where(
                DepositRecordModel.verified.is_(True),
                DepositRecordModel.refunded.is_(False),
            )
            .order_by(DepositRecordModel.created_at)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._get_many(stmt)

    async def claim_refund(
        self,
        user_address: str,
        now: datetime,
        stale_after: timedelta,
    ) -> bool:
        """Take the refund claim with a conditional UPDATE."""
        stmt = (
            update(DepositRecordModel)
            .where(
                DepositRecordModel.user_address == user_address,
                DepositRecordModel.refunded.is_(False),
                or_(
                    DepositRecordModel.refund_claimed_at.is_(None),
                    DepositRecordModel.refund_claimed_at < now - stale_after,
                ),
            )
            .values(refund_claimed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        async with self.database.session() as session:
            result = await session.execute(stmt)
            return result.rowcount == 1

    async def release_refund_claim(self, user_address: str) -> None:
        """Clear the refund claim of an unrefunded record."""
        stmt = (
            update(DepositRecordModel)
            .where(
                DepositRecordModel.user_address == user_address,
                DepositRecordModel.refunded.is_(False),
            )
            .values(refund_claimed_at=None, updated_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        async with self.database.session() as session:
            await session.execute(stmt)

    async def mark_refunded(
        self,
        user_address: str,
        refund_tx_id: str,
        refunded_at: datetime,
    ) -> bool:
        """Record the refund with a conditional UPDATE."""
        stmt = (
            update(DepositRecordModel)
            .where(
                DepositRecordModel.user_address == user_address,
                DepositRecordModel.refunded.is_(False),
                DepositRecordModel.verified.is_(True),
            )
            .values(
                refunded=True,
                refund_tx_id=refund_tx_id,
                refunded_at=refunded_at,
                refund_claimed_at=None,
                updated_at=refunded_at,
            )
            .execution_options(synchronize_session=False)
        )
        async with self.database.session() as session:
            result = await session.execute(stmt)
            return result.rowcount == 1

    async def _get_one(self, condition) -> Optional[DepositRecord]:
        async with self.database.session() as session:
            stmt = select(DepositRecordModel).where(condition)
            model = (await session.execute(stmt)).scalar_one_or_none()
            return self._to_entity(model) if model else None

    async def _get_many(self, stmt) -> list[DepositRecord]:
        async with self.database.session() as session:
            models = (await session.execute(stmt)).scalars().all()
            return [self._to_entity(model) for model in models]

    @staticmethod
    def _duplicate(
        existing: DepositRecordModel, record: DepositRecord
    ) -> DuplicateEntityError:
        if existing.user_address == record.user_address:
            return DuplicateEntityError(
                "DepositRecord", f"user_address {record.user_address}"
            )
        return DuplicateEntityError("DepositRecord", f"user_id {record.user_id}")

    @staticmethod
    def _str(commitment: Optional[Commitment]) -> Optional[str]:
        return commitment.value if commitment else None

    @staticmethod
    def _to_entity(model: DepositRecordModel) -> DepositRecord:
        """Convert ORM model to domain entity."""

        def commitment(value: Optional[str]) -> Optional[Commitment]:
            return Commitment(value) if value else None

        return DepositRecord(
            id=model.id,
            user_address=model.user_address,
            user_id=model.user_id,
            phone_commitment=commitment(model.phone_commitment),
            auth_commitment=commitment(model.auth_commitment),
            pin_commitment=commitment(model.pin_commitment),
            biometric_commitment=commitment(model.biometric_commitment),
            verification_method=VerificationMethod(model.verification_method),
            biometric_type=(
                BiometricType(model.biometric_type) if model.biometric_type else None
            ),
            sender_wallet_address=model.sender_wallet_address,
            expected_amount=model.expected_amount,
            deposit_tx_id=model.deposit_tx_id,
            deposit_output_index=model.deposit_output_index,
            deposit_amount=model.deposit_amount,
            verified=model.verified,
            verification_attempts=model.verification_attempts,
            last_verification_at=model.last_verification_at,
            verified_at=model.verified_at,
            signup_completed=model.signup_completed,
            signup_completed_at=model.signup_completed_at,
            refunded=model.refunded,
            refund_tx_id=model.refund_tx_id,
            refunded_at=model.refunded_at,
            refund_claimed_at=model.refund_claimed_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
