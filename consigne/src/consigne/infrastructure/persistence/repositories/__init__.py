"""Repository implementations."""

from consigne.infrastructure.persistence.repositories.deposit_repository import (
    DepositRepository,
)
from consigne.infrastructure.persistence.repositories.ledger_transaction_repository import (  # noqa: E501
    LedgerTransactionRepository,
)

__all__ = [
    "DepositRepository",
    "LedgerTransactionRepository",
]
