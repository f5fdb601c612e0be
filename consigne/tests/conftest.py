"""
Test fixtures and configuration.
"""

from typing import Optional

import pytest

from consigne.application.reconciliation_manager import ReconciliationManager
from consigne.config.settings import Settings
from consigne.domain.services.i_ledger_client import (
    LOVELACE,
    ILedgerClient,
    LedgerTransactionInfo,
    TransactionUtxos,
    UtxoEntry,
)
from consigne.domain.services.transaction_verifier import TransactionVerifier
from consigne.infrastructure.blockchain.simulated_refund_submitter import (
    SimulatedRefundSubmitter,
)
from consigne.infrastructure.persistence.in_memory import (
    InMemoryDepositRepository,
    InMemoryLedgerTransactionRepository,
)

DEPOSIT_ADDRESS = "addr_test1wzdeposit0000000000000000000000000000000000"
COMMITMENT_SECRET = "test-commitment-secret-key"
NOW = 1_760_000_000
DEPOSIT_AMOUNT = 2_000_000


class FakeLedgerClient(ILedgerClient):
    """
    In-memory ledger indexer.

    Address histories are kept newest first, like the real indexer with
    order=desc.
    """

    def __init__(self, deposit_address: str = DEPOSIT_ADDRESS, now: int = NOW):
        self.deposit_address = deposit_address
        self.now = now
        self.transactions: dict[str, LedgerTransactionInfo] = {}
        self.utxos: dict[str, TransactionUtxos] = {}
        self.history: dict[str, list[str]] = {}
        self.list_error: Optional[Exception] = None
        self.tx_errors: dict[str, Exception] = {}
        self.lookups: list[str] = []
        self.closed = False

    def add_transaction(
        self,
        tx_id: str,
        sender: str,
        outputs: list[tuple[str, int]],
        age: int = 3600,
        confirmations: int = 3,
        first_input: Optional[str] = None,
    ) -> str:
        """Record a transaction as the newest one of ``sender``."""
        self.transactions[tx_id] = LedgerTransactionInfo(
            tx_id=tx_id,
            block_time=self.now - age,
            confirmations=confirmations,
        )
        self.utxos[tx_id] = TransactionUtxos(
            tx_id=tx_id,
            inputs=[
                UtxoEntry(
                    address=first_input or sender,
                    amounts={LOVELACE: 50_000_000},
                )
            ],
            outputs=[
                UtxoEntry(address=address, amounts={LOVELACE: amount}, output_index=i)
                for i, (address, amount) in enumerate(outputs)
            ],
        )
        self.history.setdefault(sender, []).insert(0, tx_id)
        return tx_id

    def add_deposit(
        self,
        tx_id: str,
        sender: str,
        amount: int = DEPOSIT_AMOUNT,
        age: int = 3600,
        confirmations: int = 3,
        first_input: Optional[str] = None,
    ) -> str:
        """Record a payment from ``sender`` to the deposit address."""
        return self.add_transaction(
            tx_id,
            sender,
            outputs=[(self.deposit_address, amount), (sender, 40_000_000)],
            age=age,
            confirmations=confirmations,
            first_input=first_input,
        )

    async def get_transaction(self, tx_id: str) -> Optional[LedgerTransactionInfo]:
        self.lookups.append(tx_id)
        if tx_id in self.tx_errors:
            raise self.tx_errors[tx_id]
        return self.transactions.get(tx_id)

    async def get_transaction_utxos(self, tx_id: str) -> Optional[TransactionUtxos]:
        return self.utxos.get(tx_id)

    async def get_address_transactions(
        self,
        address: str,
        order: str = "desc",
        count: int = 20,
    ) -> list[str]:
        if self.list_error is not None:
            raise self.list_error
        tx_ids = list(self.history.get(address, []))
        if order == "asc":
            tx_ids.reverse()
        return tx_ids[:count]

    async def close(self) -> None:
        self.closed = True


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def ledger() -> FakeLedgerClient:
    """Empty fake ledger."""
    return FakeLedgerClient()


@pytest.fixture
def verifier(ledger: FakeLedgerClient) -> TransactionVerifier:
    """Verifier with a frozen clock."""
    return TransactionVerifier(
        ledger_client=ledger,
        deposit_address=DEPOSIT_ADDRESS,
        clock=lambda: NOW,
    )


@pytest.fixture
def deposit_repository() -> InMemoryDepositRepository:
    return InMemoryDepositRepository()


@pytest.fixture
def transaction_repository() -> InMemoryLedgerTransactionRepository:
    return InMemoryLedgerTransactionRepository()


@pytest.fixture
def refund_submitter() -> SimulatedRefundSubmitter:
    return SimulatedRefundSubmitter()


@pytest.fixture
def no_sleep():
    """Awaitable sleep that returns immediately."""
    return _no_sleep


@pytest.fixture
def manager(
    deposit_repository,
    transaction_repository,
    verifier,
    refund_submitter,
) -> ReconciliationManager:
    """Reconciliation manager over in-memory stores and the fake ledger."""
    return ReconciliationManager(
        deposit_repository=deposit_repository,
        transaction_repository=transaction_repository,
        verifier=verifier,
        refund_submitter=refund_submitter,
        commitment_secret=COMMITMENT_SECRET,
        sleep=_no_sleep,
    )


@pytest.fixture
def settings() -> Settings:
    """Settings built without touching YAML or .env files."""
    return Settings(
        DEPOSIT_ADDRESS=DEPOSIT_ADDRESS,
        COMMITMENT_SECRET=COMMITMENT_SECRET,
        CARDANO_NETWORK="preprod",
        AUTO_VERIFY_DELAY_SECONDS=0,
        LOG_JSON=False,
    )
