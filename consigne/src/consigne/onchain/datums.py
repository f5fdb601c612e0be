"""
Deposit validator datums, redeemers and parameters.

Datums are the state attached to an output locked at the deposit script;
the redeemer is the action requested when spending it. Each datum checks
its own fields and reports the names of the predicates that fail.

Timestamps are POSIX milliseconds. Key hashes are raw bytes.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

USER_ID_PATTERN = re.compile(rb"^[A-Za-z0-9_]+$")


class Redeemer(str, Enum):
    """Spend actions."""

    PROCESS_SIGNUP = "process_signup"
    PROCESS_REFUND = "process_refund"
    PROCESS_DELETION = "process_deletion"


@dataclass(frozen=True)
class ValidatorParams:
    """
    Script parameters fixed at compile time.

    Fields:
        refund_amount: Lovelace a signup must pay back to the wallet (2 ADA)
        min_output_lovelace: Minimum lovelace on every output (1 ADA)
        max_validity_window_ms: Widest accepted validity interval (24 hours)
        min_timestamp_ms: Earliest plausible datum timestamp (2020-01-01)
        key_hash_length: Payment key hash size in bytes
        commitment_length: Auth commitment size in bytes
        user_id_min_length / user_id_max_length: User id bounds in bytes
        reason_max_length: Longest refund reason in bytes
        max_refund_amount: Largest refund a RefundDatum may claim
    """

    refund_amount: int = 2_000_000
    min_output_lovelace: int = 1_000_000
    max_validity_window_ms: int = 86_400_000
    min_timestamp_ms: int = 1_577_836_800_000
    key_hash_length: int = 28
    commitment_length: int = 32
    user_id_min_length: int = 3
    user_id_max_length: int = 50
    reason_max_length: int = 64
    max_refund_amount: int = 2_000_000


def _wallet_problems(wallet: bytes, params: ValidatorParams) -> list[str]:
    if len(wallet) != params.key_hash_length:
        return ["wallet_malformed"]
    return []


def _timestamp_problems(timestamp: int, params: ValidatorParams) -> list[str]:
    if timestamp < params.min_timestamp_ms:
        return ["timestamp_implausible"]
    return []


@dataclass(frozen=True)
class SignupDatum:
    """
    Identity signup locked with a deposit.

    Fields:
        wallet: User payment key hash (28 bytes)
        user_id: User id, 3..50 bytes of [A-Za-z0-9_]
        auth_commitment: Auth commitment token (32 bytes)
        timestamp: Signup time (POSIX ms)
    """

    CONSTR_ID = 0
    wallet: bytes
    user_id: bytes
    auth_commitment: bytes
    timestamp: int

    def problems(self, params: ValidatorParams) -> list[str]:
        found = _wallet_problems(self.wallet, params)
        if not (
            params.user_id_min_length <= len(self.user_id) <= params.user_id_max_length
            and USER_ID_PATTERN.match(self.user_id)
        ):
            found.append("user_id_invalid")
        if len(self.auth_commitment) != params.commitment_length:
            found.append("auth_commitment_malformed")
        found.extend(_timestamp_problems(self.timestamp, params))
        return found


@dataclass(frozen=True)
class RefundDatum:
    """
    Refund owed to a wallet.

    Fields:
        wallet: Refund recipient payment key hash (28 bytes)
        amount: Lovelace to refund, in (0, max_refund_amount]
        reason: Free text, 1..64 bytes
        timestamp: Request time (POSIX ms)
    """

    CONSTR_ID = 1
    wallet: bytes
    amount: int
    reason: bytes
    timestamp: int

    def problems(self, params: ValidatorParams) -> list[str]:
        found = _wallet_problems(self.wallet, params)
        if not 0 < self.amount <= params.max_refund_amount:
            found.append("amount_out_of_range")
        if not 0 < len(self.reason) <= params.reason_max_length:
            found.append("reason_invalid")
        found.extend(_timestamp_problems(self.timestamp, params))
        return found


@dataclass(frozen=True)
class DeleteDatum:
    """Account deletion request by a wallet."""

    CONSTR_ID = 2
    wallet: bytes
    timestamp: int

    def problems(self, params: ValidatorParams) -> list[str]:
        return _wallet_problems(self.wallet, params) + _timestamp_problems(
            self.timestamp, params
        )


Datum = Union[SignupDatum, RefundDatum, DeleteDatum]

EXPECTED_REDEEMER = {
    SignupDatum: Redeemer.PROCESS_SIGNUP,
    RefundDatum: Redeemer.PROCESS_REFUND,
    DeleteDatum: Redeemer.PROCESS_DELETION,
}
