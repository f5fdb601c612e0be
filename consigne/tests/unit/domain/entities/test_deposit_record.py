"""
Unit tests for DepositRecord entity.

Tests creation rules and lifecycle transitions.

Usage:
    pytest consigne/tests/unit/domain/entities/test_deposit_record.py
"""

from uuid import UUID

import pytest

from consigne.domain.entities.deposit_record import DepositRecord
from consigne.domain.value_objects.commitment import Commitment
from consigne.domain.value_objects.utxo_ref import UtxoRef
from consigne.domain.value_objects.verification_result import TransactionDetails

USER_ADDRESS = "addr_test1qzuser000000000000000000000000000000000"
WALLET = "addr_test1qzwallet0000000000000000000000000000000"
DEPOSIT_ADDRESS = "addr_test1wzdeposit0000000000000000000000000000000000"


def _record(**overrides) -> DepositRecord:
    fields = {
        "user_address": USER_ADDRESS,
        "user_id": "john_doe",
        "phone_commitment": Commitment.derive("secret", "phone", "+15551234567"),
        "expected_amount": 2_000_000,
    }
    fields.update(overrides)
    return DepositRecord(**fields)


def _details(tx_id: str = "a" * 64, output_index: int = 0) -> TransactionDetails:
    return TransactionDetails(
        tx_id=tx_id,
        amount=2_000_000,
        from_address=WALLET,
        to_address=DEPOSIT_ADDRESS,
        block_time=1_760_000_000,
        confirmations=3,
        output_index=output_index,
    )


class TestDepositRecord:
    """Unit tests for DepositRecord entity."""

    # ================================================================
    # Creation tests
    # ================================================================

    def test_create_record(self):
        """Test creating a record with defaults."""
        record = _record()

        assert isinstance(record.id, UUID)
        assert record.verified is False
        assert record.verification_attempts == 0
        assert record.signup_completed is False
        assert record.refunded is False
        assert record.deposit_utxo is None
        assert record.awaiting_refund is False

    def test_user_address_required(self):
        """Test record without user address is rejected."""
        with pytest.raises(ValueError, match="User address is required"):
            _record(user_address="")

    def test_user_id_required(self):
        """Test record without user id is rejected."""
        with pytest.raises(ValueError, match="User ID is required"):
            _record(user_id="")

    def test_expected_amount_must_be_positive(self):
        """Test zero expected amount is rejected."""
        with pytest.raises(ValueError, match="must be positive"):
            _record(expected_amount=0)

    def test_refunded_requires_verified(self):
        """Test refunded record must be verified."""
        with pytest.raises(ValueError, match="refunded deposit must be verified"):
            _record(refunded=True, refund_tx_id="r" * 64)

    def test_signup_completed_requires_verified(self):
        """Test completed signup must be verified."""
        with pytest.raises(ValueError, match="completed signup must be verified"):
            _record(signup_completed=True)

    def test_verified_requires_transaction(self):
        """Test verified record must carry a deposit transaction."""
        with pytest.raises(ValueError, match="requires a transaction id"):
            _record(verified=True)

    # ================================================================
    # Transition tests
    # ================================================================

    def test_record_attempt_counts_every_call(self):
        """Test attempts increment and timestamp is set."""
        record = _record()

        record.record_attempt()
        record.record_attempt()

        assert record.verification_attempts == 2
        assert record.last_verification_at is not None

    def test_mark_verified_sets_deposit_reference(self):
        """Test verification stores the transaction reference."""
        record = _record()

        record.mark_verified(_details(output_index=1))

        assert record.verified is True
        assert record.verified_at is not None
        assert record.deposit_tx_id == "a" * 64
        assert record.deposit_amount == 2_000_000
        assert record.deposit_utxo == UtxoRef("a" * 64, 1)
        assert record.awaiting_refund is True

    def test_reverification_reassigns_transaction(self):
        """Test re-verification keeps verified_at and swaps the tx."""
        record = _record()
        record.mark_verified(_details("a" * 64))
        first_verified_at = record.verified_at

        record.mark_verified(_details("b" * 64))

        assert record.deposit_tx_id == "b" * 64
        assert record.verified_at == first_verified_at

    def test_mark_refunded(self):
        """Test refund is recorded once verified."""
        record = _record()
        record.mark_verified(_details())

        record.mark_refunded("r" * 64)

        assert record.refunded is True
        assert record.refund_tx_id == "r" * 64
        assert record.refunded_at is not None
        assert record.awaiting_refund is False

    def test_refund_is_terminal(self):
        """Test second refund and re-attribution are rejected."""
        record = _record()
        record.mark_verified(_details())
        record.mark_refunded("r" * 64)

        with pytest.raises(ValueError, match="already refunded"):
            record.mark_refunded("s" * 64)

        with pytest.raises(ValueError, match="re-attribute"):
            record.mark_verified(_details("b" * 64))

    def test_cannot_refund_unverified(self):
        """Test refund before verification is rejected."""
        with pytest.raises(ValueError, match="unverified"):
            _record().mark_refunded("r" * 64)

    def test_complete_signup(self):
        """Test signup completion after verification, once."""
        record = _record()

        with pytest.raises(ValueError, match="before verification"):
            record.complete_signup()

        record.mark_verified(_details())
        record.complete_signup()

        assert record.signup_completed is True
        with pytest.raises(ValueError, match="already completed"):
            record.complete_signup()

    def test_attach_sender_wallet(self):
        """Test wallet attachment rejects empty values."""
        record = _record()

        record.attach_sender_wallet(WALLET)
        assert record.sender_wallet_address == WALLET

        with pytest.raises(ValueError):
            record.attach_sender_wallet("")

    def test_to_dict(self):
        """Test serialization exposes commitments as hex."""
        record = _record()
        data = record.to_dict()

        assert data["user_id"] == "john_doe"
        assert data["phone_commitment"] == record.phone_commitment.value
        assert data["verified"] is False
        assert data["refunded_at"] is None
