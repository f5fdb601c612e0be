"""
Domain services and service interfaces.
"""

from consigne.domain.services.i_ledger_client import (
    ILedgerClient,
    LedgerTransactionInfo,
    TransactionUtxos,
    UtxoEntry,
)
from consigne.domain.services.i_refund_submitter import IRefundSubmitter
from consigne.domain.services.transaction_verifier import TransactionVerifier

__all__ = [
    "ILedgerClient",
    "LedgerTransactionInfo",
    "TransactionUtxos",
    "UtxoEntry",
    "IRefundSubmitter",
    "TransactionVerifier",
]
