"""
Monitoring and observability infrastructure.
"""

from consigne.infrastructure.monitoring import metrics
from consigne.infrastructure.monitoring.logger import (
    get_correlation_id,
    log_performance,
    set_correlation_id,
    setup_logging,
)

__all__ = [
    "metrics",
    "get_correlation_id",
    "set_correlation_id",
    "setup_logging",
    "log_performance",
]
