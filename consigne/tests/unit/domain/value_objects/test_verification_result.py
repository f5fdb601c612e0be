"""
Unit tests for verification result types and UTXO references.

Usage:
    pytest consigne/tests/unit/domain/value_objects/test_verification_result.py
"""

import pytest

from consigne.domain.value_objects.utxo_ref import UtxoRef
from consigne.domain.value_objects.verification_result import (
    Invalid,
    InvalidReason,
    TransactionDetails,
    Valid,
)


class TestVerificationResult:
    """Unit tests for Valid / Invalid."""

    def test_valid_carries_details(self):
        """Test Valid exposes the accepted transaction."""
        details = TransactionDetails(
            tx_id="a" * 64,
            amount=2_000_000,
            from_address="addr_sender",
            to_address="addr_deposit",
            block_time=1_760_000_000,
            confirmations=2,
        )
        result = Valid(details)

        assert result.is_valid is True
        assert result.details.to_dict()["output_index"] == 0

    def test_invalid_message_uses_detail(self):
        """Test Invalid message prefers the detail text."""
        result = Invalid(InvalidReason.TOO_OLD, "Transaction too old")

        assert result.is_valid is False
        assert result.message == "Transaction too old"

    def test_invalid_message_falls_back_to_reason(self):
        """Test Invalid message without detail."""
        assert Invalid(InvalidReason.NOT_FOUND).message == "not found"


class TestUtxoRef:
    """Unit tests for UtxoRef value object."""

    def test_parse_with_index(self):
        """Test tx#index notation."""
        ref = UtxoRef.parse("abc#2")

        assert ref.tx_id == "abc"
        assert ref.output_index == 2
        assert str(ref) == "abc#2"

    def test_parse_without_index(self):
        """Test bare tx id defaults to output 0."""
        assert UtxoRef.parse("abc") == UtxoRef("abc", 0)

    @pytest.mark.parametrize("value", ["abc#x", "abc#-1", "#1"])
    def test_parse_invalid(self, value):
        """Test malformed references are rejected."""
        with pytest.raises(ValueError):
            UtxoRef.parse(value)
