"""
SQLAlchemy models for Consigne persistence.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""


class DepositRecordModel(Base):
    """Deposit record database model - one row per user signup deposit."""

    __tablename__ = "deposit_records"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    user_address: Mapped[str] = mapped_column(
        String(128), unique=True, index=True, nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False
    )
    phone_commitment: Mapped[str | None] = mapped_column(String(64))
    auth_commitment: Mapped[str | None] = mapped_column(String(64))
    pin_commitment: Mapped[str | None] = mapped_column(String(64))
    biometric_commitment: Mapped[str | None] = mapped_column(String(64))
    verification_method: Mapped[str] = mapped_column(String(20), nullable=False)
    biometric_type: Mapped[str | None] = mapped_column(String(20))
    sender_wallet_address: Mapped[str | None] = mapped_column(String(128))
    expected_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Deposit attribution (a transaction backs at most one record)
    deposit_tx_id: Mapped[str | None] = mapped_column(
        String(128), unique=True, index=True
    )
    deposit_output_index: Mapped[int | None] = mapped_column(Integer)
    deposit_amount: Mapped[int | None] = mapped_column(BigInteger)

    # Verification
    verified: Mapped[bool] = mapped_column(
        Boolean, default=False, index=True, nullable=False
    )
    verification_attempts: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    last_verification_at: Mapped[datetime | None] = mapped_column(DateTime)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Signup completion
    signup_completed: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    signup_completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Refund
    refunded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    refund_tx_id: Mapped[str | None] = mapped_column(String(128))
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime)
    refund_claimed_at: Mapped[datetime | None] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )


class LedgerTransactionModel(Base):
    """Ledger transaction journal database model."""

    __tablename__ = "ledger_transactions"
    __table_args__ = (
        UniqueConstraint("tx_hash", "transaction_type", name="uq_tx_hash_type"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    tx_hash: Mapped[str] = mapped_column(String(128), index=True, nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    from_address: Mapped[str] = mapped_column(String(128), nullable=False)
    to_address: Mapped[str] = mapped_column(String(128), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    user_address: Mapped[str | None] = mapped_column(String(128), index=True)
    confirmations: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    block_time: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime)
