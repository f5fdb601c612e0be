"""
Unit tests for LedgerTransaction entity.

Usage:
    pytest consigne/tests/unit/domain/entities/test_ledger_transaction.py
"""

from datetime import datetime

import pytest

from consigne.domain.entities.ledger_transaction import (
    LedgerTransaction,
    TransactionStatus,
    TransactionType,
)


def _transaction(**overrides) -> LedgerTransaction:
    fields = {
        "tx_hash": "f" * 64,
        "transaction_type": TransactionType.REFUND,
        "from_address": "addr_test1wzdeposit",
        "to_address": "addr_test1qzwallet",
        "amount": 2_000_000,
    }
    fields.update(overrides)
    return LedgerTransaction(**fields)


class TestLedgerTransaction:
    """Unit tests for LedgerTransaction entity."""

    def test_create_transaction(self):
        """Test defaults on creation."""
        tx = _transaction()

        assert tx.status == TransactionStatus.PENDING
        assert tx.confirmations == 0
        assert tx.confirmed_at is None

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"tx_hash": ""}, "hash is required"),
            ({"amount": 0}, "must be positive"),
            ({"to_address": ""}, "Destination address"),
            ({"confirmations": -1}, "cannot be negative"),
        ],
    )
    def test_invalid_transaction(self, overrides, message):
        """Test validation of required fields."""
        with pytest.raises(ValueError, match=message):
            _transaction(**overrides)

    def test_confirm(self):
        """Test PENDING -> CONFIRMED sets depth and timestamp."""
        tx = _transaction()

        tx.confirm(confirmations=5)

        assert tx.status == TransactionStatus.CONFIRMED
        assert tx.confirmations == 5
        assert tx.confirmed_at is not None

        with pytest.raises(ValueError, match="Cannot confirm"):
            tx.confirm()

    def test_fail(self):
        """Test PENDING -> FAILED and no further transitions."""
        tx = _transaction()

        tx.fail()

        assert tx.status == TransactionStatus.FAILED
        with pytest.raises(ValueError, match="Cannot fail"):
            tx.fail()
        with pytest.raises(ValueError, match="Cannot confirm"):
            tx.confirm()

    def test_to_dict(self):
        """Test serialization of enum and datetime fields."""
        block_time = datetime(2025, 10, 9, 12, 0, 0)
        data = _transaction(block_time=block_time).to_dict()

        assert data["transaction_type"] == "refund"
        assert data["status"] == "pending"
        assert data["block_time"] == block_time.isoformat()
        assert data["confirmed_at"] is None
