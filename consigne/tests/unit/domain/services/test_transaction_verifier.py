"""
Unit tests for TransactionVerifier.

Tests deposit rules, their boundaries, and the newest-first scan.

Usage:
    pytest consigne/tests/unit/domain/services/test_transaction_verifier.py
"""

import pytest

from consigne.domain.exceptions import (
    LedgerQuotaExceededError,
    LedgerTimeoutError,
    LedgerUnavailableError,
)
from consigne.domain.services.transaction_verifier import TransactionVerifier
from consigne.domain.value_objects.verification_result import (
    Invalid,
    InvalidReason,
    Valid,
)

DEPOSIT_ADDRESS = "addr_test1wzdeposit0000000000000000000000000000000000"
SENDER = "addr_test1qzsender00000000000000000000000000000000"
OTHER = "addr_test1qzother000000000000000000000000000000000"
AMOUNT = 2_000_000
NOW = 1_760_000_000


class TestTransactionVerifier:
    """Unit tests for deposit verification rules."""

    # ================================================================
    # Scan by wallet
    # ================================================================

    async def test_valid_deposit(self, verifier, ledger):
        """Test exact amount, fresh, confirmed deposit is accepted."""
        ledger.add_deposit("tx1", SENDER)

        result = await verifier.verify_by_wallet(SENDER, AMOUNT)

        assert isinstance(result, Valid)
        assert result.details.tx_id == "tx1"
        assert result.details.amount == AMOUNT
        assert result.details.from_address == SENDER
        assert result.details.to_address == DEPOSIT_ADDRESS
        assert result.details.block_time == NOW - 3600
        assert result.details.output_index == 0

    async def test_no_transactions(self, verifier):
        """Test wallet without history."""
        result = await verifier.verify_by_wallet(SENDER, AMOUNT)

        assert isinstance(result, Invalid)
        assert result.reason == InvalidReason.NO_QUALIFYING_TRANSACTION

    async def test_no_qualifying_transaction(self, verifier, ledger):
        """Test wallet whose transactions all fail the rules."""
        ledger.add_transaction("tx1", SENDER, outputs=[(OTHER, AMOUNT)])
        ledger.add_deposit("tx2", SENDER, amount=AMOUNT - 1)

        result = await verifier.verify_by_wallet(SENDER, AMOUNT)

        assert isinstance(result, Invalid)
        assert result.reason == InvalidReason.NO_QUALIFYING_TRANSACTION
        assert "No valid transaction found" in result.message

    async def test_newest_qualifying_transaction_wins(self, verifier, ledger):
        """Test two qualifying candidates: the newer one is chosen."""
        ledger.add_deposit("older", SENDER, age=7200)
        ledger.add_deposit("newer", SENDER, age=600)

        result = await verifier.verify_by_wallet(SENDER, AMOUNT)

        assert isinstance(result, Valid)
        assert result.details.tx_id == "newer"
        assert ledger.lookups == ["newer"]

    async def test_older_candidate_used_when_newer_fail(self, verifier, ledger):
        """Test scan continues past non-qualifying newer candidates."""
        ledger.add_deposit("good", SENDER, age=7200)
        ledger.add_deposit("short", SENDER, amount=AMOUNT - 1)
        ledger.add_transaction("unrelated", SENDER, outputs=[(OTHER, AMOUNT)])

        result = await verifier.verify_by_wallet(SENDER, AMOUNT)

        assert isinstance(result, Valid)
        assert result.details.tx_id == "good"
        assert ledger.lookups == ["unrelated", "short", "good"]

    async def test_scan_window_bounds_candidates(self, ledger):
        """Test candidates beyond the scan window are ignored."""
        verifier = TransactionVerifier(
            ledger, DEPOSIT_ADDRESS, scan_window=2, clock=lambda: NOW
        )
        ledger.add_deposit("outside", SENDER)
        ledger.add_transaction("a", SENDER, outputs=[(OTHER, AMOUNT)])
        ledger.add_transaction("b", SENDER, outputs=[(OTHER, AMOUNT)])

        result = await verifier.verify_by_wallet(SENDER, AMOUNT)

        assert isinstance(result, Invalid)
        assert "outside" not in ledger.lookups

    async def test_candidate_lookup_failure_is_skipped(self, verifier, ledger):
        """Test a timed-out candidate does not abort the scan."""
        ledger.add_deposit("good", SENDER, age=7200)
        ledger.add_deposit("flaky", SENDER)
        ledger.tx_errors["flaky"] = LedgerTimeoutError("get_transaction", 10)

        result = await verifier.verify_by_wallet(SENDER, AMOUNT)

        assert isinstance(result, Valid)
        assert result.details.tx_id == "good"

    async def test_listing_failure_is_ledger_unavailable(self, verifier, ledger):
        """Test failure to list sender history."""
        ledger.list_error = LedgerUnavailableError("boom", status_code=503)

        result = await verifier.verify_by_wallet(SENDER, AMOUNT)

        assert isinstance(result, Invalid)
        assert result.reason == InvalidReason.LEDGER_UNAVAILABLE

    async def test_quota_error_propagates(self, verifier, ledger):
        """Test quota exhaustion is not swallowed."""
        ledger.add_deposit("tx1", SENDER)
        ledger.tx_errors["tx1"] = LedgerQuotaExceededError(429)

        with pytest.raises(LedgerQuotaExceededError):
            await verifier.verify_by_wallet(SENDER, AMOUNT)

    # ================================================================
    # Rule boundaries
    # ================================================================

    async def test_amount_one_below_expected_is_rejected(self, verifier, ledger):
        """Test amount boundary: expected - 1 fails."""
        ledger.add_deposit("tx1", SENDER, amount=AMOUNT - 1)

        result = await verifier.verify_by_tx_id("tx1", AMOUNT)

        assert isinstance(result, Invalid)
        assert result.reason == InvalidReason.AMOUNT_INSUFFICIENT

    async def test_amount_above_expected_is_accepted(self, verifier, ledger):
        """Test overpayment qualifies."""
        ledger.add_deposit("tx1", SENDER, amount=AMOUNT + 500_000)

        result = await verifier.verify_by_tx_id("tx1", AMOUNT)

        assert isinstance(result, Valid)
        assert result.details.amount == AMOUNT + 500_000

    async def test_age_at_maximum_is_accepted(self, verifier, ledger):
        """Test age boundary: exactly the maximum passes."""
        ledger.add_deposit("tx1", SENDER, age=86_400)

        assert isinstance(await verifier.verify_by_tx_id("tx1", AMOUNT), Valid)

    async def test_age_one_over_maximum_is_rejected(self, verifier, ledger):
        """Test age boundary: maximum + 1 fails."""
        ledger.add_deposit("tx1", SENDER, age=86_401)

        result = await verifier.verify_by_tx_id("tx1", AMOUNT)

        assert isinstance(result, Invalid)
        assert result.reason == InvalidReason.TOO_OLD

    async def test_insufficient_confirmations(self, verifier, ledger):
        """Test unconfirmed transaction is rejected."""
        ledger.add_deposit("tx1", SENDER, confirmations=0)

        result = await verifier.verify_by_tx_id("tx1", AMOUNT)

        assert isinstance(result, Invalid)
        assert result.reason == InvalidReason.INSUFFICIENT_CONFIRMATIONS

    async def test_no_output_to_deposit_address(self, verifier, ledger):
        """Test payment elsewhere is rejected."""
        ledger.add_transaction("tx1", SENDER, outputs=[(OTHER, AMOUNT)])

        result = await verifier.verify_by_tx_id("tx1", AMOUNT)

        assert isinstance(result, Invalid)
        assert result.reason == InvalidReason.NO_DEPOSIT_OUTPUT

    async def test_largest_deposit_output_is_used(self, verifier, ledger):
        """Test split deposit outputs: the largest one is evaluated."""
        ledger.add_transaction(
            "tx1",
            SENDER,
            outputs=[(DEPOSIT_ADDRESS, 1_000_000), (DEPOSIT_ADDRESS, AMOUNT)],
        )

        result = await verifier.verify_by_tx_id("tx1", AMOUNT)

        assert isinstance(result, Valid)
        assert result.details.output_index == 1

    async def test_unknown_transaction(self, verifier):
        """Test transaction the indexer does not know."""
        result = await verifier.verify_by_tx_id("missing", AMOUNT)

        assert isinstance(result, Invalid)
        assert result.reason == InvalidReason.NOT_FOUND

    # ================================================================
    # Sender matching
    # ================================================================

    async def test_sender_mismatch_is_lenient_by_default(
        self, verifier, ledger, caplog
    ):
        """Test mismatched first input is accepted with a warning."""
        ledger.add_deposit("tx1", SENDER, first_input=OTHER)

        with caplog.at_level("WARNING"):
            result = await verifier.verify_by_tx_id("tx1", AMOUNT, SENDER)

        assert isinstance(result, Valid)
        assert result.details.from_address == OTHER
        assert "Sender mismatch" in caplog.text

    async def test_sender_mismatch_rejected_in_strict_mode(self, ledger):
        """Test strict mode rejects mismatched first input."""
        verifier = TransactionVerifier(
            ledger, DEPOSIT_ADDRESS, strict_sender_match=True, clock=lambda: NOW
        )
        ledger.add_deposit("tx1", SENDER, first_input=OTHER)

        result = await verifier.verify_by_tx_id("tx1", AMOUNT, SENDER)

        assert isinstance(result, Invalid)
        assert result.reason == InvalidReason.SENDER_MISMATCH

    async def test_tx_id_without_sender_skips_match(self, ledger):
        """Test verification by tx id alone does not compare senders."""
        verifier = TransactionVerifier(
            ledger, DEPOSIT_ADDRESS, strict_sender_match=True, clock=lambda: NOW
        )
        ledger.add_deposit("tx1", SENDER, first_input=OTHER)

        assert isinstance(await verifier.verify_by_tx_id("tx1", AMOUNT), Valid)

    # ================================================================
    # Construction
    # ================================================================

    def test_deposit_address_required(self, ledger):
        """Test verifier needs a deposit address."""
        with pytest.raises(ValueError, match="Deposit address is required"):
            TransactionVerifier(ledger, "")

    def test_scan_window_must_be_positive(self, ledger):
        """Test zero scan window is rejected."""
        with pytest.raises(ValueError, match="Scan window"):
            TransactionVerifier(ledger, DEPOSIT_ADDRESS, scan_window=0)
