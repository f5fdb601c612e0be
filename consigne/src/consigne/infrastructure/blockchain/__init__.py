"""
Ledger and wallet bridge adapters.
"""

from consigne.infrastructure.blockchain.blockfrost_ledger_client import (
    BlockfrostLedgerClient,
)
from consigne.infrastructure.blockchain.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerError,
    CircuitState,
)
from consigne.infrastructure.blockchain.rate_limiter import TokenBucket
from consigne.infrastructure.blockchain.simulated_refund_submitter import (
    SimulatedRefundSubmitter,
)
from consigne.infrastructure.blockchain.wallet_bridge_refund_submitter import (
    WalletBridgeRefundSubmitter,
)

__all__ = [
    "BlockfrostLedgerClient",
    "CircuitBreaker",
    "CircuitBreakerError",
    "CircuitState",
    "TokenBucket",
    "SimulatedRefundSubmitter",
    "WalletBridgeRefundSubmitter",
]
