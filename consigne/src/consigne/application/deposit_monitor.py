"""
Deposit monitor.

Background polling loop that runs the auto-verification sweep and,
optionally, refunds verified deposits. Pauses for a cooldown period when
the ledger indexer reports quota exhaustion.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from consigne.application.reconciliation_manager import ReconciliationManager
from consigne.domain.exceptions import (
    AlreadyRefundedError,
    ConsigneException,
    LedgerQuotaExceededError,
    RefundInProgressError,
)
from consigne.infrastructure.monitoring.logger import log_performance

logger = logging.getLogger(__name__)


class DepositMonitor:
    """
    Periodically reconcile pending deposits.

    Each cycle:
    1. Skip if inside a quota cooldown
    2. Run ``auto_verify_all``
    3. If auto refund is enabled, refund every verified, unrefunded record
    """

    def __init__(
        self,
        manager: ReconciliationManager,
        poll_interval_seconds: float = 30,
        auto_refund_enabled: bool = False,
        quota_cooldown_seconds: float = 300,
        item_delay_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize monitor.

        Args:
            manager: Reconciliation manager
            poll_interval_seconds: Pause between cycles
            auto_refund_enabled: Issue refunds for verified deposits
            quota_cooldown_seconds: Pause after a quota error
            item_delay_seconds: Pause between refunds within a cycle
            clock: Monotonic clock for cooldown tracking
            sleep: Awaitable sleep
        """
        self.manager = manager
        self.poll_interval_seconds = poll_interval_seconds
        self.auto_refund_enabled = auto_refund_enabled
        self.quota_cooldown_seconds = quota_cooldown_seconds
        self.item_delay_seconds = item_delay_seconds
        self._clock = clock
        self._sleep = sleep

        self._task: Optional[asyncio.Task] = None
        self._running = False
        self.cycles = 0
        self.last_run_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self._quota_error_at: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_cooldown(self) -> bool:
        """True while a quota error is younger than the cooldown period."""
        if self._quota_error_at is None:
            return False
        return self._clock() - self._quota_error_at < self.quota_cooldown_seconds

    async def start(self) -> None:
        """Start the polling loop in the background."""
        if self._running:
            logger.warning("Deposit monitor already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(
            f"Deposit monitor started (interval: {self.poll_interval_seconds}s, "
            f"auto refund: {self.auto_refund_enabled})"
        )

    async def stop(self) -> None:
        """Stop the polling loop and wait for it to exit."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Deposit monitor stopped")

    async def run_once(self) -> dict[str, Any]:
        """
        Run one reconciliation cycle now.

        Returns:
            Cycle summary
        """
        summary: dict[str, Any] = {
            "sweep": None,
            "refunded": 0,
            "refund_failures": 0,
            "skipped_cooldown": False,
            "quota_exceeded": False,
        }

        if self.in_cooldown:
            logger.debug("Monitoring paused due to quota error, waiting for cooldown")
            summary["skipped_cooldown"] = True
            return summary

        if self._quota_error_at is not None:
            logger.info("Quota cooldown expired, resuming monitoring")
            self._quota_error_at = None

        self.cycles += 1
        self.last_run_at = datetime.now()
        start = time.time()

        try:
            report = await self.manager.auto_verify_all()
            summary["sweep"] = report.to_dict()

            if self.auto_refund_enabled:
                refunded, failures = await self._refund_verified()
                summary["refunded"] = refunded
                summary["refund_failures"] = failures
        except LedgerQuotaExceededError as e:
            self._quota_error_at = self._clock()
            self.last_error = e.message
            summary["quota_exceeded"] = True
            logger.warning(
                f"Ledger quota exceeded, pausing for {self.quota_cooldown_seconds}s"
            )

        log_performance(logger, "Reconciliation cycle", start)
        return summary

    async def _refund_verified(self) -> tuple[int, int]:
        """Refund every verified, unrefunded record."""
        refunded = 0
        failures = 0
        records = await self.manager.list_awaiting_refund()

        for index, record in enumerate(records):
            if index and self.item_delay_seconds > 0:
                await self._sleep(self.item_delay_seconds)

            try:
                await self.manager.process_refund(record.user_address)
                refunded += 1
            except (AlreadyRefundedError, RefundInProgressError) as e:
                logger.debug(f"Refund skipped for {record.user_address}: {e.message}")
            except LedgerQuotaExceededError:
                raise
            except ConsigneException as e:
                failures += 1
                self.last_error = e.message
                logger.error(
                    f"Automatic refund failed for {record.user_address}: {e.message}"
                )

        return refunded, failures

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except ConsigneException as e:
                self.last_error = e.message
                logger.error(f"Monitoring cycle failed: {e.message}")
            except Exception as e:
                self.last_error = str(e)
                logger.exception(f"Unexpected error in monitoring cycle: {e}")

            await self._sleep(self.poll_interval_seconds)

    def get_status(self) -> dict[str, Any]:
        """Monitor state for operators."""
        return {
            "running": self._running,
            "cycles": self.cycles,
            "deposit_address": self.manager.deposit_address,
            "auto_refund_enabled": self.auto_refund_enabled,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_error": self.last_error,
            "quota": {
                "occurred": self._quota_error_at is not None,
                "in_cooldown": self.in_cooldown,
            },
        }
