"""
DepositRecord entity - Domain model for a user's refundable signup deposit.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from consigne.domain.value_objects.commitment import Commitment
from consigne.domain.value_objects.utxo_ref import UtxoRef
from consigne.domain.value_objects.verification_method import (
    BiometricType,
    VerificationMethod,
)
from consigne.domain.value_objects.verification_result import (
    TransactionDetails,
)


@dataclass
class DepositRecord:
    """
    DepositRecord entity tracking one user's deposit through its lifecycle.

    Lifecycle: pending -> verified -> signup completed and/or refunded.

    Business rules:
    - user_address and user_id are required and never change
    - refunded implies verified
    - signup_completed implies verified
    - verification_attempts never decreases
    - verified flips from False to True at most once
    - refunded flips from False to True exactly once, and is terminal
    - deposit_tx_id may be reassigned by re-verification until refunded
    """

    user_address: str = field(default="")
    user_id: str = field(default="")
    phone_commitment: Optional[Commitment] = field(default=None)
    auth_commitment: Optional[Commitment] = field(default=None)
    expected_amount: int = field(default=0)
    id: UUID = field(default_factory=uuid4)
    sender_wallet_address: Optional[str] = field(default=None)
    verification_method: VerificationMethod = field(
        default=VerificationMethod.PHONE
    )
    pin_commitment: Optional[Commitment] = field(default=None)
    biometric_commitment: Optional[Commitment] = field(default=None)
    biometric_type: Optional[BiometricType] = field(default=None)
    deposit_tx_id: Optional[str] = field(default=None)
    deposit_output_index: Optional[int] = field(default=None)
    deposit_amount: Optional[int] = field(default=None)
    verified: bool = field(default=False)
    verification_attempts: int = field(default=0)
    last_verification_at: Optional[datetime] = field(default=None)
    verified_at: Optional[datetime] = field(default=None)
    signup_completed: bool = field(default=False)
    signup_completed_at: Optional[datetime] = field(default=None)
    refunded: bool = field(default=False)
    refund_tx_id: Optional[str] = field(default=None)
    refunded_at: Optional[datetime] = field(default=None)
    refund_claimed_at: Optional[datetime] = field(default=None)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        """Validate record after initialization."""
        if not self.user_address:
            raise ValueError("User address is required")

        if not self.user_id:
            raise ValueError("User ID is required")

        if self.expected_amount <= 0:
            raise ValueError("Expected amount must be positive")

        if self.verification_attempts < 0:
            raise ValueError("Verification attempts cannot be negative")

        if self.refunded and not self.verified:
            raise ValueError("A refunded deposit must be verified")

        if self.signup_completed and not self.verified:
            raise ValueError("A completed signup must be verified")

        if self.verified and not self.deposit_tx_id:
            raise ValueError("A verified deposit requires a transaction id")

    @property
    def deposit_utxo(self) -> Optional[UtxoRef]:
        """Deposit output reference, once verified."""
        if not self.deposit_tx_id:
            return None
        return UtxoRef(self.deposit_tx_id, self.deposit_output_index or 0)

    @property
    def awaiting_refund(self) -> bool:
        """True when verified and not yet refunded."""
        return self.verified and not self.refunded

    def attach_sender_wallet(self, sender_wallet_address: str) -> None:
        """
        Record the wallet the user paid the deposit from.

        Raises:
            ValueError: If address is empty
        """
        if not sender_wallet_address:
            raise ValueError("Sender wallet address cannot be empty")

        self.sender_wallet_address = sender_wallet_address
        self.updated_at = datetime.now()

    def record_attempt(self) -> None:
        """Count one verification attempt, whatever its outcome."""
        now = datetime.now()
        self.verification_attempts += 1
        self.last_verification_at = now
        self.updated_at = now

    def mark_verified(self, details: TransactionDetails) -> None:
        """
        Attribute a confirmed deposit transaction to this record.

        Re-verification of an already verified record reassigns the
        transaction reference.

        Raises:
            ValueError: If the record is already refunded
        """
        if self.refunded:
            raise ValueError("Cannot re-attribute a refunded deposit")

        now = datetime.now()
        if not self.verified:
            self.verified = True
            self.verified_at = now

        self.deposit_tx_id = details.tx_id
        self.deposit_output_index = details.output_index
        self.deposit_amount = details.amount
        self.updated_at = now

    def complete_signup(self) -> None:
        """
        Mark signup as completed.

        Raises:
            ValueError: If not verified or already completed
        """
        if not self.verified:
            raise ValueError("Cannot complete signup before verification")

        if self.signup_completed:
            raise ValueError("Signup already completed")

        now = datetime.now()
        self.signup_completed = True
        self.signup_completed_at = now
        self.updated_at = now

    def mark_refunded(self, refund_tx_id: str) -> None:
        """
        Record the refund transaction.

        Raises:
            ValueError: If not verified, already refunded, or tx id missing
        """
        if not refund_tx_id:
            raise ValueError("Refund transaction id is required")

        if not self.verified:
            raise ValueError("Cannot refund an unverified deposit")

        if self.refunded:
            raise ValueError("Deposit already refunded")

        now = datetime.now()
        self.refunded = True
        self.refund_tx_id = refund_tx_id
        self.refunded_at = now
        self.refund_claimed_at = None
        self.updated_at = now

    def to_dict(self) -> dict:
        """Convert entity to dictionary representation."""
        return {
            "id": str(self.id),
            "user_address": self.user_address,
            "user_id": self.user_id,
            "phone_commitment": (
                str(self.phone_commitment) if self.phone_commitment else None
            ),
            "auth_commitment": (
                str(self.auth_commitment) if self.auth_commitment else None
            ),
            "expected_amount": self.expected_amount,
            "sender_wallet_address": self.sender_wallet_address,
            "verification_method": self.verification_method.value,
            "biometric_type": (
                self.biometric_type.value if self.biometric_type else None
            ),
            "deposit_tx_id": self.deposit_tx_id,
            "deposit_output_index": self.deposit_output_index,
            "deposit_amount": self.deposit_amount,
            "verified": self.verified,
            "verification_attempts": self.verification_attempts,
            "last_verification_at": (
                self.last_verification_at.isoformat()
                if self.last_verification_at
                else None
            ),
            "signup_completed": self.signup_completed,
            "refunded": self.refunded,
            "refund_tx_id": self.refund_tx_id,
            "refunded_at": (
                self.refunded_at.isoformat() if self.refunded_at else None
            ),
            "created_at": self.created_at.isoformat(),
        }
