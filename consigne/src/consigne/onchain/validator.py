"""
Deposit script validator.

Pure predicate over a transaction body: given the datum of the output
being spent and the requested redeemer, decide whether the spend is
authorized. Nothing here reads the off-chain store; every rule is
re-derived from the transaction itself.
"""

import logging
from typing import Optional

from consigne.onchain.datums import (
    EXPECTED_REDEEMER,
    Datum,
    RefundDatum,
    Redeemer,
    SignupDatum,
    ValidatorParams,
)
from consigne.onchain.transaction import TransactionBody

logger = logging.getLogger(__name__)


class OnChainValidator:
    """
    Spend authorization rules for the deposit script.

    A spend is authorized only if:
    - the datum variant matches the redeemer
    - every output carries at least the minimum lovelace
    - the datum fields are well formed
    - the validity range is finite, no wider than the maximum, and contains
      the datum timestamp
    - the datum wallet is a required signer
    - PROCESS_SIGNUP: an input from the wallet carries at least the refund
      amount and an output pays exactly the refund amount back to it
    - PROCESS_REFUND: an output pays exactly the datum amount to the wallet
    """

    def __init__(self, params: Optional[ValidatorParams] = None):
        self.params = params or ValidatorParams()

    def validate(self, datum: Datum, redeemer: Redeemer, tx: TransactionBody) -> bool:
        """True when the spend is authorized."""
        failures = self.check(datum, redeemer, tx)
        if failures:
            logger.debug(
                f"Spend rejected ({redeemer.value}): {', '.join(failures)}"
            )
        return not failures

    def check(
        self, datum: Datum, redeemer: Redeemer, tx: TransactionBody
    ) -> list[str]:
        """
        Evaluate every rule.

        Returns:
            Names of the failed rules, empty when the spend is authorized
        """
        params = self.params
        failures: list[str] = []

        if EXPECTED_REDEEMER.get(type(datum)) != redeemer:
            failures.append("redeemer_mismatch")

        if any(o.lovelace < params.min_output_lovelace for o in tx.outputs):
            failures.append("output_below_minimum")

        failures.extend(datum.problems(params))
        failures.extend(self._validity_problems(datum.timestamp, tx))

        if not tx.is_signed_by(datum.wallet):
            failures.append("missing_wallet_signature")

        if redeemer == Redeemer.PROCESS_SIGNUP and isinstance(datum, SignupDatum):
            failures.extend(self._signup_refund_problems(datum, tx))

        if redeemer == Redeemer.PROCESS_REFUND and isinstance(datum, RefundDatum):
            if not any(o.lovelace == datum.amount for o in tx.outputs_to(datum.wallet)):
                failures.append("refund_payment_missing")

        return failures

    def _validity_problems(self, timestamp: int, tx: TransactionBody) -> list[str]:
        window = tx.validity_range
        if not window.is_finite:
            return ["validity_range_unbounded"]

        found = []
        if window.width_ms > self.params.max_validity_window_ms:
            found.append("validity_range_too_wide")
        if not window.contains(timestamp):
            found.append("timestamp_outside_validity_range")
        return found

    def _signup_refund_problems(
        self, datum: SignupDatum, tx: TransactionBody
    ) -> list[str]:
        """The signup must atomically refund the deposit to its wallet."""
        refund = self.params.refund_amount
        found = []
        if not any(i.lovelace >= refund for i in tx.inputs_from(datum.wallet)):
            found.append("refund_input_missing")
        if not any(o.lovelace == refund for o in tx.outputs_to(datum.wallet)):
            found.append("refund_output_missing")
        return found
