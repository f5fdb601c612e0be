"""
On-chain deposit validator rules.
"""

from consigne.onchain.datums import (
    DeleteDatum,
    RefundDatum,
    Redeemer,
    SignupDatum,
    ValidatorParams,
)
from consigne.onchain.transaction import (
    TransactionBody,
    TxInput,
    TxOutput,
    ValidityRange,
)
from consigne.onchain.validator import OnChainValidator

__all__ = [
    # Datums
    "SignupDatum",
    "RefundDatum",
    "DeleteDatum",
    "Redeemer",
    "ValidatorParams",
    # Transaction
    "TransactionBody",
    "TxInput",
    "TxOutput",
    "ValidityRange",
    # Validator
    "OnChainValidator",
]
