"""
Dependency Injection Container for Consigne.

Manages all service instances and their dependencies. Store and refund
submitter implementations are chosen here, once, from settings.
"""

import logging
from typing import Optional

from consigne.application.deposit_monitor import DepositMonitor
from consigne.application.reconciliation_manager import ReconciliationManager
from consigne.config.settings import Settings, get_settings
from consigne.domain.repositories.i_deposit_repository import IDepositRepository
from consigne.domain.repositories.i_ledger_transaction_repository import (
    ILedgerTransactionRepository,
)
from consigne.domain.services.i_ledger_client import ILedgerClient
from consigne.domain.services.i_refund_submitter import IRefundSubmitter
from consigne.domain.services.transaction_verifier import TransactionVerifier
from consigne.infrastructure.blockchain.blockfrost_ledger_client import (
    BlockfrostLedgerClient,
)
from consigne.infrastructure.blockchain.rate_limiter import TokenBucket
from consigne.infrastructure.blockchain.simulated_refund_submitter import (
    SimulatedRefundSubmitter,
)
from consigne.infrastructure.blockchain.wallet_bridge_refund_submitter import (
    WalletBridgeRefundSubmitter,
)
from consigne.infrastructure.persistence.database import Database
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

logger = logging.getLogger(__name__)


class DIContainer:
    """
    Dependency Injection Container.

    Manages singleton instances of all services and repositories.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize container with None instances.

        Args:
            settings: Settings to use instead of the global settings
        """
        self._settings = settings

        # Infrastructure
        self._database: Optional[Database] = None
        self._ledger_client: Optional[ILedgerClient] = None
        self._refund_submitter: Optional[IRefundSubmitter] = None

        # Repositories
        self._deposit_repository: Optional[IDepositRepository] = None
        self._transaction_repository: Optional[ILedgerTransactionRepository] = None

        # Domain / application services
        self._verifier: Optional[TransactionVerifier] = None
        self._manager: Optional[ReconciliationManager] = None
        self._monitor: Optional[DepositMonitor] = None

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    @property
    def uses_database(self) -> bool:
        """True when a DATABASE_URL is configured."""
        return bool(self.settings.DATABASE_URL)

    async def initialize(self) -> None:
        """Initialize all services and establish connections."""
        if self.uses_database:
            await self.database.connect()
            await self.database.create_tables()
        else:
            logger.warning("DATABASE_URL not set, using in-memory deposit store")

        if not self.settings.WALLET_BRIDGE_URL:
            logger.warning("WALLET_BRIDGE_URL not set, refunds are simulated")

    async def shutdown(self) -> None:
        """Cleanup resources and close connections."""
        if self._monitor and self._monitor.is_running:
            await self._monitor.stop()

        if self._ledger_client:
            await self._ledger_client.close()

        if self._refund_submitter:
            await self._refund_submitter.close()

        if self._database:
            await self._database.disconnect()

    # Infrastructure Getters

    @property
    def database(self) -> Database:
        """Get database instance."""
        if self._database is None:
            if not self.uses_database:
                raise RuntimeError("DATABASE_URL is not configured")
            self._database = Database(
                database_url=self.settings.DATABASE_URL,
                echo=self.settings.DATABASE_ECHO,
            )
        return self._database

    @property
    def ledger_client(self) -> ILedgerClient:
        """Get ledger indexer client instance."""
        if self._ledger_client is None:
            settings = self.settings
            self._ledger_client = BlockfrostLedgerClient(
                base_url=settings.ledger_base_url,
                project_id=settings.BLOCKFROST_PROJECT_ID,
                total_timeout=settings.LEDGER_TIMEOUT_SECONDS,
                connect_timeout=settings.LEDGER_CONNECT_TIMEOUT_SECONDS,
                max_retries=settings.LEDGER_MAX_RETRIES,
                rate_limiter=TokenBucket(
                    tokens_per_second=settings.LEDGER_REQUESTS_PER_SECOND,
                    burst_size=settings.LEDGER_BURST,
                ),
            )
        return self._ledger_client

    @property
    def refund_submitter(self) -> IRefundSubmitter:
        """Get refund submitter (wallet bridge or simulated)."""
        if self._refund_submitter is None:
            settings = self.settings
            if settings.WALLET_BRIDGE_URL:
                self._refund_submitter = WalletBridgeRefundSubmitter(
                    bridge_url=settings.WALLET_BRIDGE_URL,
                    api_token=settings.WALLET_BRIDGE_TOKEN,
                    total_timeout=settings.WALLET_BRIDGE_TIMEOUT_SECONDS,
                    failure_threshold=settings.CB_FAILURE_THRESHOLD,
                    recovery_timeout=settings.CB_TIMEOUT_SECONDS,
                )
            else:
                self._refund_submitter = SimulatedRefundSubmitter()
        return self._refund_submitter

    # Repository Getters

    @property
    def deposit_repository(self) -> IDepositRepository:
        """Get deposit record repository."""
        if self._deposit_repository is None:
            if self.uses_database:
                self._deposit_repository = DepositRepository(self.database)
            else:
                self._deposit_repository = InMemoryDepositRepository()
        return self._deposit_repository

    @property
    def transaction_repository(self) -> ILedgerTransactionRepository:
        """Get ledger transaction journal repository."""
        if self._transaction_repository is None:
            if self.uses_database:
                self._transaction_repository = LedgerTransactionRepository(
                    self.database
                )
            else:
                self._transaction_repository = InMemoryLedgerTransactionRepository()
        return self._transaction_repository

    # Service Getters

    @property
    def verifier(self) -> TransactionVerifier:
        """Get deposit transaction verifier."""
        if self._verifier is None:
            settings = self.settings
            self._verifier = TransactionVerifier(
                ledger_client=self.ledger_client,
                deposit_address=settings.DEPOSIT_ADDRESS,
                max_tx_age_seconds=settings.MAX_TX_AGE_SECONDS,
                min_confirmations=settings.MIN_CONFIRMATIONS,
                scan_window=settings.SCAN_WINDOW,
                strict_sender_match=settings.STRICT_SENDER_MATCH,
            )
        return self._verifier

    @property
    def manager(self) -> ReconciliationManager:
        """Get reconciliation manager."""
        if self._manager is None:
            settings = self.settings
            self._manager = ReconciliationManager(
                deposit_repository=self.deposit_repository,
                transaction_repository=self.transaction_repository,
                verifier=self.verifier,
                refund_submitter=self.refund_submitter,
                commitment_secret=settings.COMMITMENT_SECRET,
                deposit_amount=settings.DEPOSIT_AMOUNT_LOVELACE,
                refund_amount=settings.REFUND_AMOUNT_LOVELACE,
                user_id_min_length=settings.USER_ID_MIN_LENGTH,
                user_id_max_length=settings.USER_ID_MAX_LENGTH,
                phone_min_length=settings.PHONE_MIN_LENGTH,
                auto_verify_delay_seconds=settings.AUTO_VERIFY_DELAY_SECONDS,
                refund_claim_ttl_seconds=settings.REFUND_CLAIM_TTL_SECONDS,
            )
        return self._manager

    @property
    def monitor(self) -> DepositMonitor:
        """Get deposit monitor."""
        if self._monitor is None:
            settings = self.settings
            self._monitor = DepositMonitor(
                manager=self.manager,
                poll_interval_seconds=settings.MONITOR_POLL_INTERVAL_SECONDS,
                auto_refund_enabled=settings.AUTO_REFUND_ENABLED,
                quota_cooldown_seconds=settings.QUOTA_COOLDOWN_SECONDS,
                item_delay_seconds=settings.AUTO_VERIFY_DELAY_SECONDS,
            )
        return self._monitor


# Global container instance
_container: Optional[DIContainer] = None


def get_container() -> DIContainer:
    """Get global DI container instance."""
    global _container
    if _container is None:
        _container = DIContainer()
    return _container


async def initialize_container() -> DIContainer:
    """Initialize and return DI container."""
    container = get_container()
    await container.initialize()
    return container


async def shutdown_container() -> None:
    """Shutdown DI container."""
    container = get_container()
    await container.shutdown()


def reset_container() -> None:
    """Drop the global container (for testing)."""
    global _container
    _container = None
