"""
Wallet bridge refund submitter.

HTTP client for the wallet bridge service that builds, signs and submits
refund transactions. Hardened with a circuit breaker, retries and metrics.
Retries are safe because every request carries an idempotency key the
bridge deduplicates on.
"""

import asyncio
import logging
from typing import Optional

import aiohttp
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from consigne.domain.exceptions import RefundSubmissionError
from consigne.domain.services.i_refund_submitter import IRefundSubmitter
from consigne.domain.value_objects.utxo_ref import UtxoRef
from consigne.infrastructure.blockchain.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerError,
)
from consigne.infrastructure.monitoring import metrics

logger = logging.getLogger(__name__)


class _BridgeServerError(Exception):
    """5xx from the bridge (retried)."""

    def __init__(self, status: int, body: str):
        super().__init__(f"Server error {status}: {body}")
        self.status = status


class WalletBridgeRefundSubmitter(IRefundSubmitter):
    """
    Wallet bridge HTTP client for refund payments.

    POST {bridge_url}/refunds
        {"destination", "amount", "sourceUtxo", "idempotencyKey"}
    -> {"txHash": "..."}
    """

    def __init__(
        self,
        bridge_url: str,
        api_token: Optional[str] = None,
        total_timeout: float = 30.0,
        connect_timeout: float = 10.0,
        max_retries: int = 3,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        """
        Initialize wallet bridge client.

        Args:
            bridge_url: Wallet bridge base URL
            api_token: Bearer token for the bridge
            total_timeout: Total request timeout (default: 30s)
            connect_timeout: Connection timeout (default: 10s)
            max_retries: Max attempts for transient failures (default: 3)
            failure_threshold: Failures before the breaker opens
            recovery_timeout: Seconds the breaker stays open
            circuit_breaker: Optional preconfigured circuit breaker
        """
        self.bridge_url = bridge_url.rstrip("/")
        self.api_token = api_token
        self.timeout = aiohttp.ClientTimeout(
            total=total_timeout,
            connect=connect_timeout,
        )
        self.max_retries = max_retries
        self.retry_wait = wait_exponential(multiplier=1, min=1, max=10)
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            "wallet_bridge",
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            expected_exceptions=(
                aiohttp.ClientError,
                asyncio.TimeoutError,
                _BridgeServerError,
            ),
        )
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            headers = {}
            if self.api_token:
                headers["Authorization"] = f"Bearer {self.api_token}"
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers=headers,
                connector=aiohttp.TCPConnector(limit=10, ttl_dns_cache=300),
            )
        return self._session

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def submit_refund(
        self,
        destination_address: str,
        source_utxo: Optional[UtxoRef],
        amount: int,
        idempotency_key: str,
    ) -> str:
        """
        Ask the bridge to build and submit a refund.

        Raises:
            RefundSubmissionError: On 4xx, circuit open, or retries exhausted
        """
        payload = {
            "destination": destination_address,
            "amount": amount,
            "sourceUtxo": (
                {
                    "txHash": source_utxo.tx_id,
                    "outputIndex": source_utxo.output_index,
                }
                if source_utxo
                else None
            ),
            "idempotencyKey": idempotency_key,
        }

        try:
            tx_hash = await self.circuit_breaker.call(
                self._submit_with_retry, payload, idempotency_key
            )
        except CircuitBreakerError as e:
            metrics.bridge_requests_total.labels(
                operation="submit_refund", status="circuit_open"
            ).inc()
            raise RefundSubmissionError(f"Wallet bridge unavailable: {e}")
        except (aiohttp.ClientError, asyncio.TimeoutError, _BridgeServerError) as e:
            metrics.bridge_requests_total.labels(
                operation="submit_refund", status="error"
            ).inc()
            status = e.status if isinstance(e, _BridgeServerError) else None
            raise RefundSubmissionError(
                f"Refund submission failed after {self.max_retries} attempts: {e}",
                status_code=status,
            )

        metrics.bridge_requests_total.labels(
            operation="submit_refund", status="success"
        ).inc()
        logger.info(f"Refund submitted via wallet bridge: {tx_hash}")
        return tx_hash

    async def _submit_with_retry(self, payload: dict, idempotency_key: str) -> str:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self.retry_wait,
            retry=retry_if_exception_type(
                (aiohttp.ClientError, asyncio.TimeoutError, _BridgeServerError)
            ),
            reraise=True,
        ):
            with attempt:
                return await self._submit_once(payload, idempotency_key)

    async def _submit_once(self, payload: dict, idempotency_key: str) -> str:
        """
        Single HTTP request attempt.

        Raises:
            RefundSubmissionError: If the bridge rejects the request (4xx)
            _BridgeServerError: On 5xx (will be retried)
            aiohttp.ClientError: Network errors (will be retried)
        """
        session = await self._get_session()
        url = f"{self.bridge_url}/refunds"

        async with session.post(
            url,
            json=payload,
            headers={"Idempotency-Key": idempotency_key},
        ) as response:
            if response.status >= 500:
                raise _BridgeServerError(response.status, await response.text())

            if response.status >= 400:
                error_text = await response.text()
                metrics.bridge_requests_total.labels(
                    operation="submit_refund", status=str(response.status)
                ).inc()
                raise RefundSubmissionError(
                    f"Wallet bridge rejected refund: {error_text}",
                    status_code=response.status,
                )

            data = await response.json()
            tx_hash = data.get("txHash") or data.get("tx_hash")
            if not tx_hash:
                raise RefundSubmissionError(
                    "Wallet bridge response carried no transaction hash",
                    status_code=response.status,
                )
            return tx_hash
