"""
Integration tests for concurrent signups over the SQLite stores.

Two users claiming the same deposit race through verification; the
unique deposit reference decides the winner.

Usage:
    pytest consigne/tests/integration/database/test_concurrent_signups.py
"""

import asyncio

import pytest

from consigne.application.reconciliation_manager import ReconciliationManager
from consigne.infrastructure.blockchain.simulated_refund_submitter import (
    SimulatedRefundSubmitter,
)
from consigne.infrastructure.persistence.database import Database
from consigne.infrastructure.persistence.repositories.deposit_repository import (
    DepositRepository,
)
from consigne.infrastructure.persistence.repositories.ledger_transaction_repository import (  # noqa: E501
    LedgerTransactionRepository,
)

SECRET = "test-commitment-secret-key"
PHONE = "+15551234567"
WALLET = "addr_test1qzshared000000000000000000000000000000"
USERS = {
    "addr_test1qzalice0000000000000000000000000000000000": "alice",
    "addr_test1qzbob000000000000000000000000000000000000": "bob",
}


@pytest.fixture
async def database(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'consigne.db'}")
    await database.connect()
    await database.create_tables()
    yield database
    await database.disconnect()


@pytest.fixture
def sql_manager(database, verifier):
    return ReconciliationManager(
        deposit_repository=DepositRepository(database),
        transaction_repository=LedgerTransactionRepository(database),
        verifier=verifier,
        refund_submitter=SimulatedRefundSubmitter(),
        commitment_secret=SECRET,
    )


class TestConcurrentSignups:
    """Integration tests for deposit attribution under concurrency."""

    async def test_shared_deposit_verifies_one_signup(self, sql_manager, ledger):
        """Test one signup wins the deposit and the other is still recorded."""
        ledger.add_deposit("shared_tx", WALLET)

        results = await asyncio.gather(
            *(
                sql_manager.record_signup(
                    address, user_id, PHONE, sender_wallet_address=WALLET
                )
                for address, user_id in USERS.items()
            )
        )

        assert all(result.success for result in results)
        assert sorted(result.verified for result in results) == [False, True]
        loser = next(result for result in results if not result.verified)
        assert loser.reason == "already_attributed"

        records = [
            await sql_manager.get_deposit(address) for address in USERS
        ]
        assert all(record is not None for record in records)
        assert all(record.verification_attempts == 1 for record in records)
        assert [record.deposit_tx_id for record in records].count("shared_tx") == 1
        assert sum(record.verified for record in records) == 1
