"""
Transaction verifier.

Decides whether a claimed deposit exists on the ledger. Stateless: every
call only reads from the ledger client, so it is safe to share across
concurrent callers.
"""

import logging
import time
from typing import Callable, Optional

from consigne.domain.exceptions import (
    LedgerQuotaExceededError,
    LedgerTimeoutError,
    LedgerUnavailableError,
)
from consigne.domain.services.i_ledger_client import (
    ILedgerClient,
    LedgerTransactionInfo,
    TransactionUtxos,
)
from consigne.domain.value_objects.verification_result import (
    Invalid,
    InvalidReason,
    TransactionDetails,
    Valid,
    VerificationResult,
)

logger = logging.getLogger(__name__)


class TransactionVerifier:
    """
    Verify deposits to the protocol address.

    A transaction qualifies when all of the following hold:
    - it has an output to the deposit address carrying >= expected lovelace
    - its block time is no older than ``max_tx_age_seconds``
    - its first input comes from the claimed sender (warning only unless
      ``strict_sender_match`` is set)
    - it has at least ``min_confirmations`` confirmations
    """

    def __init__(
        self,
        ledger_client: ILedgerClient,
        deposit_address: str,
        max_tx_age_seconds: int = 86400,
        min_confirmations: int = 1,
        scan_window: int = 20,
        strict_sender_match: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize verifier.

        Args:
            ledger_client: Ledger-indexer client
            deposit_address: Protocol deposit address
            max_tx_age_seconds: Oldest acceptable block time, in seconds
            min_confirmations: Minimum confirmation depth
            scan_window: How many recent sender transactions to inspect
            strict_sender_match: Reject on sender mismatch instead of warning
            clock: Returns current unix time
        """
        if not deposit_address:
            raise ValueError("Deposit address is required")

        if scan_window < 1:
            raise ValueError("Scan window must be at least 1")

        self.ledger_client = ledger_client
        self.deposit_address = deposit_address
        self.max_tx_age_seconds = max_tx_age_seconds
        self.min_confirmations = min_confirmations
        self.scan_window = scan_window
        self.strict_sender_match = strict_sender_match
        self._clock = clock

    async def verify_by_wallet(
        self,
        sender_address: str,
        expected_amount: int,
    ) -> VerificationResult:
        """
        Scan the sender's recent transactions for a qualifying deposit.

        Candidates are inspected newest first, one at a time; the first
        qualifying one wins. A candidate whose lookup fails or times out
        is skipped.

        Args:
            sender_address: Wallet the user claims to have paid from
            expected_amount: Minimum deposit in lovelace

        Returns:
            Valid with the newest qualifying transaction, or Invalid
        """
        try:
            tx_ids = await self.ledger_client.get_address_transactions(
                sender_address, order="desc", count=self.scan_window
            )
        except (LedgerUnavailableError, LedgerTimeoutError) as e:
            logger.warning(
                f"Could not list transactions for {sender_address}: {e.message}"
            )
            return Invalid(
                InvalidReason.LEDGER_UNAVAILABLE,
                f"Could not fetch transactions for address: {sender_address}",
            )

        if not tx_ids:
            return Invalid(
                InvalidReason.NO_QUALIFYING_TRANSACTION,
                f"No recent transactions found for address: {sender_address}",
            )

        rejections: list[str] = []
        for tx_id in tx_ids[: self.scan_window]:
            result = await self._check_candidate(
                tx_id, expected_amount, sender_address, scanning=True
            )
            if isinstance(result, Valid):
                logger.info(f"Deposit transaction verified: {tx_id}")
                return result
            rejections.append(f"{tx_id[:12]}:{result.reason.value}")

        logger.debug(
            f"No qualifying deposit from {sender_address}; "
            f"rejected {', '.join(rejections)}"
        )
        return Invalid(
            InvalidReason.NO_QUALIFYING_TRANSACTION,
            f"No valid transaction found from {sender_address} to "
            f"{self.deposit_address} with amount >= {expected_amount}",
        )

    async def verify_by_tx_id(
        self,
        tx_id: str,
        expected_amount: int,
        sender_address: Optional[str] = None,
    ) -> VerificationResult:
        """
        Verify one named transaction without scanning.

        Args:
            tx_id: Transaction id to check
            expected_amount: Minimum deposit in lovelace
            sender_address: Claimed sender, if known

        Returns:
            Valid, or Invalid with the specific failing rule
        """
        return await self._check_candidate(
            tx_id, expected_amount, sender_address, scanning=False
        )

    async def _check_candidate(
        self,
        tx_id: str,
        expected_amount: int,
        sender_address: Optional[str],
        scanning: bool,
    ) -> VerificationResult:
        """Fetch one transaction and evaluate it."""
        try:
            info = await self.ledger_client.get_transaction(tx_id)
            if info is None:
                return Invalid(
                    InvalidReason.NOT_FOUND, f"Transaction not found: {tx_id}"
                )

            utxos = await self.ledger_client.get_transaction_utxos(tx_id)
            if utxos is None:
                return Invalid(
                    InvalidReason.NOT_FOUND,
                    f"Transaction outputs not found: {tx_id}",
                )
        except LedgerQuotaExceededError:
            raise
        except (LedgerUnavailableError, LedgerTimeoutError) as e:
            logger.info(f"Lookup failed for candidate {tx_id}: {e.message}")
            return Invalid(InvalidReason.NOT_FOUND, e.message)

        return self.evaluate(info, utxos, expected_amount, sender_address, scanning)

    def evaluate(
        self,
        info: LedgerTransactionInfo,
        utxos: TransactionUtxos,
        expected_amount: int,
        sender_address: Optional[str] = None,
        scanning: bool = False,
    ) -> VerificationResult:
        """
        Apply the deposit rules to fetched transaction data.

        Args:
            info: Block placement of the transaction
            utxos: Inputs and outputs of the transaction
            expected_amount: Minimum deposit in lovelace
            sender_address: Claimed sender, if known
            scanning: True when called from a wallet scan (affects logging)

        Returns:
            Valid or Invalid with the first failing rule
        """
        deposit_outputs = utxos.outputs_to(self.deposit_address)
        if not deposit_outputs:
            return Invalid(
                InvalidReason.NO_DEPOSIT_OUTPUT,
                f"Transaction {info.tx_id} has no output to "
                f"{self.deposit_address}",
            )

        output = max(deposit_outputs, key=lambda entry: entry.lovelace)
        if output.lovelace < expected_amount:
            return Invalid(
                InvalidReason.AMOUNT_INSUFFICIENT,
                f"Insufficient amount. Required: {expected_amount}, "
                f"Got: {output.lovelace}",
            )

        age = int(self._clock()) - info.block_time
        if age > self.max_tx_age_seconds:
            return Invalid(
                InvalidReason.TOO_OLD,
                f"Transaction too old. Max age: {self.max_tx_age_seconds}s, "
                f"Got: {age}s",
            )

        from_address = utxos.first_input_address or ""
        if sender_address and from_address != sender_address:
            if self.strict_sender_match:
                return Invalid(
                    InvalidReason.SENDER_MISMATCH,
                    f"Sender mismatch: Expected {sender_address}, "
                    f"Got {from_address}",
                )
            logger.warning(
                f"Sender mismatch on {info.tx_id}: expected {sender_address}, "
                f"got {from_address}; accepting",
                extra={"tx_id": info.tx_id, "scanning": scanning},
            )

        if info.confirmations < self.min_confirmations:
            return Invalid(
                InvalidReason.INSUFFICIENT_CONFIRMATIONS,
                f"Insufficient confirmations. Required: "
                f"{self.min_confirmations}, Got: {info.confirmations}",
            )

        return Valid(
            TransactionDetails(
                tx_id=info.tx_id,
                amount=output.lovelace,
                from_address=from_address,
                to_address=self.deposit_address,
                block_time=info.block_time,
                confirmations=info.confirmations,
                output_index=output.output_index or 0,
            )
        )
