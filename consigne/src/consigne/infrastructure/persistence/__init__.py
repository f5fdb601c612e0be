"""
Persistence layer: SQLAlchemy database, models and repositories.
"""

from consigne.infrastructure.persistence.database import Database
from consigne.infrastructure.persistence.in_memory import (
    InMemoryDepositRepository,
    InMemoryLedgerTransactionRepository,
)
from consigne.infrastructure.persistence.repositories import (
    DepositRepository,
    LedgerTransactionRepository,
)

__all__ = [
    "Database",
    "DepositRepository",
    "LedgerTransactionRepository",
    "InMemoryDepositRepository",
    "InMemoryLedgerTransactionRepository",
]
