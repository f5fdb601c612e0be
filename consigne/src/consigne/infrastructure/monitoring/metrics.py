"""
Prometheus metrics collection.
"""

from prometheus_client import Counter, Gauge, Histogram

# ============================================================
# Ledger Indexer Metrics
# ============================================================

ledger_requests_total = Counter(
    "consigne_ledger_requests_total",
    "Total ledger indexer requests",
    ["operation", "status"],
)

ledger_request_duration_seconds = Histogram(
    "consigne_ledger_request_duration_seconds",
    "Ledger indexer request duration in seconds",
    ["operation"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# ============================================================
# Wallet Bridge Metrics
# ============================================================

bridge_requests_total = Counter(
    "consigne_bridge_requests_total",
    "Total wallet bridge requests",
    ["operation", "status"],
)

circuit_breaker_state = Gauge(
    "consigne_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open, 2=half_open)",
    ["service"],
)

# ============================================================
# Business Metrics
# ============================================================

verifications_total = Counter(
    "consigne_verifications_total",
    "Deposit verification attempts",
    ["result", "reason"],
)

refunds_total = Counter(
    "consigne_refunds_total",
    "Refund requests by outcome",
    ["status"],
)

sweep_runs_total = Counter(
    "consigne_sweep_runs_total",
    "Auto-verification sweeps by outcome",
    ["status"],
)
