"""
Unit tests for DIContainer wiring.

Usage:
    pytest consigne/tests/unit/test_container.py
"""

import pytest

from consigne.di.container import (
    DIContainer,
    get_container,
    reset_container,
)
from consigne.infrastructure.blockchain.blockfrost_ledger_client import (
    BlockfrostLedgerClient,
)
from consigne.infrastructure.blockchain.simulated_refund_submitter import (
    SimulatedRefundSubmitter,
)
from consigne.infrastructure.blockchain.wallet_bridge_refund_submitter import (
    WalletBridgeRefundSubmitter,
)
from consigne.infrastructure.persistence.in_memory import (
    InMemoryDepositRepository,
    InMemoryLedgerTransactionRepository,
)
from consigne.infrastructure.persistence.repositories.deposit_repository import (
    DepositRepository,
)
from consigne.infrastructure.persistence.repositories.ledger_transaction_repository import (  # noqa: E501
    LedgerTransactionRepository,
)


class TestDIContainer:
    """Unit tests for implementation selection from settings."""

    def test_defaults_without_database_or_bridge(self, settings):
        """Test in-memory stores and simulated refunds."""
        container = DIContainer(settings=settings)

        assert container.uses_database is False
        assert isinstance(container.deposit_repository, InMemoryDepositRepository)
        assert isinstance(
            container.transaction_repository, InMemoryLedgerTransactionRepository
        )
        assert isinstance(container.refund_submitter, SimulatedRefundSubmitter)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            container.database

    def test_wallet_bridge_selected(self, settings):
        """Test bridge submitter when a bridge URL is configured."""
        container = DIContainer(
            settings=settings.model_copy(
                update={
                    "WALLET_BRIDGE_URL": "http://bridge.local:8766",
                    "CB_FAILURE_THRESHOLD": 2,
                }
            )
        )

        submitter = container.refund_submitter

        assert isinstance(submitter, WalletBridgeRefundSubmitter)
        assert submitter.circuit_breaker.failure_threshold == 2

    def test_ledger_client_from_settings(self, settings):
        """Test indexer client uses the network URL and project id."""
        container = DIContainer(
            settings=settings.model_copy(
                update={"BLOCKFROST_PROJECT_ID": "preprodKey", "LEDGER_BURST": 4}
            )
        )

        client = container.ledger_client

        assert isinstance(client, BlockfrostLedgerClient)
        assert client.base_url == "https://cardano-preprod.blockfrost.io/api/v0"
        assert client.project_id == "preprodKey"
        assert client.rate_limiter.burst_size == 4

    def test_services_are_singletons(self, settings):
        """Test services are built once and share dependencies."""
        container = DIContainer(settings=settings)

        assert container.manager is container.manager
        assert container.monitor.manager is container.manager
        assert container.manager.verifier is container.verifier
        assert container.manager.deposit_address == settings.DEPOSIT_ADDRESS

    async def test_sqlite_lifecycle(self, settings, tmp_path):
        """Test database-backed stores are created and connected."""
        url = f"sqlite+aiosqlite:///{tmp_path / 'consigne.db'}"
        container = DIContainer(settings=settings.model_copy(update={"DATABASE_URL": url}))

        await container.initialize()
        try:
            assert isinstance(container.deposit_repository, DepositRepository)
            assert isinstance(
                container.transaction_repository, LedgerTransactionRepository
            )
            result = await container.manager.record_signup(
                "addr_test1qzjohn", "john_doe", "+15551234567"
            )
            assert result.success is True
            assert await container.deposit_repository.get_by_user_id("john_doe")
        finally:
            await container.shutdown()

    def test_global_container(self):
        """Test global container reset."""
        reset_container()
        first = get_container()

        assert get_container() is first

        reset_container()
        assert get_container() is not first
        reset_container()
