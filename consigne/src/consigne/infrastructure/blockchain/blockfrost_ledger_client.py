"""
Blockfrost ledger client implementation.

Read-only HTTP client for a Blockfrost-compatible Cardano indexer.
Includes rate limiting, retries and per-request timeouts.
"""

import asyncio
import logging
import time
from typing import Any, Optional

import aiohttp
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from consigne.domain.exceptions import (
    LedgerQuotaExceededError,
    LedgerTimeoutError,
    LedgerUnavailableError,
)
from consigne.domain.services.i_ledger_client import (
    ILedgerClient,
    LedgerTransactionInfo,
    TransactionUtxos,
    UtxoEntry,
)
from consigne.infrastructure.blockchain.rate_limiter import TokenBucket
from consigne.infrastructure.monitoring import metrics

logger = logging.getLogger(__name__)

QUOTA_STATUSES = (402, 429)


def _is_transient(error: BaseException) -> bool:
    """Network errors, timeouts and indexer 5xx are worth retrying."""
    if isinstance(error, (aiohttp.ClientError, asyncio.TimeoutError)):
        return True
    if isinstance(error, LedgerUnavailableError):
        return (error.status_code or 0) >= 500
    return False


class BlockfrostLedgerClient(ILedgerClient):
    """
    Blockfrost REST client for deposit verification queries.

    Endpoints used:
    - GET /txs/{hash}
    - GET /txs/{hash}/utxos
    - GET /addresses/{address}/transactions
    - GET /blocks/latest
    """

    def __init__(
        self,
        base_url: str,
        project_id: Optional[str] = None,
        total_timeout: float = 10,
        connect_timeout: float = 3,
        max_retries: int = 3,
        rate_limiter: Optional[TokenBucket] = None,
    ):
        """
        Initialize Blockfrost client.

        Args:
            base_url: Indexer base URL (e.g. .../api/v0)
            project_id: Blockfrost project id sent as header
            total_timeout: Total request timeout in seconds (default: 10s)
            connect_timeout: Connection timeout in seconds (default: 3s)
            max_retries: Max attempts for transient failures (default: 3)
            rate_limiter: Token bucket shared by all requests
        """
        self.base_url = base_url.rstrip("/")
        self.project_id = project_id
        self.total_timeout = total_timeout
        self.timeout = aiohttp.ClientTimeout(
            total=total_timeout,
            connect=connect_timeout,
        )
        self.max_retries = max_retries
        self.rate_limiter = rate_limiter or TokenBucket()
        self.retry_wait = wait_exponential(multiplier=1, min=1, max=4)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            headers = {"project_id": self.project_id} if self.project_id else {}
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(
                    limit=20,
                    ttl_dns_cache=300,
                ),
            )
        return self._session

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    # ================================================================
    # Queries
    # ================================================================

    async def get_transaction(self, tx_id: str) -> Optional[LedgerTransactionInfo]:
        """
        Fetch block placement of a transaction.

        Confirmations are derived from the chain tip when the payload does
        not carry them.
        """
        data = await self._get(f"/txs/{tx_id}", "get_transaction")
        if data is None:
            return None

        block_height = data.get("block_height")
        confirmations = data.get("confirmations")
        if confirmations is None:
            if block_height is None:
                confirmations = 0
            else:
                tip = await self.get_latest_block_height()
                confirmations = max(tip - int(block_height) + 1, 0)

        return LedgerTransactionInfo(
            tx_id=data.get("hash", tx_id),
            block_time=int(data.get("block_time") or 0),
            confirmations=int(confirmations),
            block_height=int(block_height) if block_height is not None else None,
        )

    async def get_transaction_utxos(self, tx_id: str) -> Optional[TransactionUtxos]:
        """Fetch input and output sets of a transaction."""
        data = await self._get(f"/txs/{tx_id}/utxos", "get_transaction_utxos")
        if data is None:
            return None

        inputs = [self._parse_entry(item) for item in data.get("inputs", [])]
        outputs = [
            self._parse_entry(item, default_index=index)
            for index, item in enumerate(data.get("outputs", []))
        ]
        return TransactionUtxos(tx_id=tx_id, inputs=inputs, outputs=outputs)

    async def get_address_transactions(
        self,
        address: str,
        order: str = "desc",
        count: int = 20,
    ) -> list[str]:
        """List recent transaction ids for an address."""
        data = await self._get(
            f"/addresses/{address}/transactions",
            "get_address_transactions",
            params={"order": order, "count": count},
        )
        if not data:
            return []
        return [item["tx_hash"] for item in data if item.get("tx_hash")]

    async def get_latest_block_height(self) -> int:
        """Height of the chain tip."""
        data = await self._get("/blocks/latest", "get_latest_block")
        if not data or data.get("height") is None:
            raise LedgerUnavailableError("Latest block has no height")
        return int(data["height"])

    @staticmethod
    def _parse_entry(item: dict, default_index: Optional[int] = None) -> UtxoEntry:
        amounts: dict[str, int] = {}
        for asset in item.get("amount", []):
            unit = asset.get("unit")
            if unit:
                amounts[unit] = amounts.get(unit, 0) + int(asset.get("quantity", 0))

        output_index = item.get("output_index", default_index)
        return UtxoEntry(
            address=item.get("address", ""),
            amounts=amounts,
            output_index=output_index if default_index is not None else None,
        )

    # ================================================================
    # Transport
    # ================================================================

    async def _get(
        self,
        path: str,
        operation: str,
        params: Optional[dict] = None,
    ) -> Optional[Any]:
        """
        GET a path with retries for transient failures.

        Returns:
            Decoded JSON, or None on 404

        Raises:
            LedgerTimeoutError: If every attempt timed out
            LedgerUnavailableError: If the indexer cannot be reached
            LedgerQuotaExceededError: If the indexer refuses for quota reasons
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_retries),
                wait=self.retry_wait,
                retry=retry_if_exception(_is_transient),
                reraise=True,
            ):
                with attempt:
                    return await self._get_once(path, operation, params)
        except asyncio.TimeoutError:
            metrics.ledger_requests_total.labels(
                operation=operation, status="timeout"
            ).inc()
            raise LedgerTimeoutError(operation, self.total_timeout)
        except aiohttp.ClientError as e:
            metrics.ledger_requests_total.labels(
                operation=operation, status="error"
            ).inc()
            raise LedgerUnavailableError(f"Ledger request {operation} failed: {e}")

    async def _get_once(
        self,
        path: str,
        operation: str,
        params: Optional[dict],
    ) -> Optional[Any]:
        """Single attempt (called by retry logic)."""
        await self.rate_limiter.acquire()
        session = await self._get_session()
        start = time.time()

        try:
            async with session.get(f"{self.base_url}{path}", params=params) as response:
                status = response.status
                metrics.ledger_requests_total.labels(
                    operation=operation, status=str(status)
                ).inc()

                if status == 404:
                    return None

                if status in QUOTA_STATUSES:
                    logger.warning(f"Ledger quota exceeded on {operation} ({status})")
                    raise LedgerQuotaExceededError(status)

                if status >= 400:
                    body = await response.text()
                    raise LedgerUnavailableError(
                        f"Ledger request {operation} failed with HTTP {status}: "
                        f"{body[:200]}",
                        status_code=status,
                    )

                return await response.json()
        finally:
            metrics.ledger_request_duration_seconds.labels(operation=operation).observe(
                time.time() - start
            )
