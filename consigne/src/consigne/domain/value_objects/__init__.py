"""
Domain value objects.
"""

from consigne.domain.value_objects.commitment import Commitment
from consigne.domain.value_objects.utxo_ref import UtxoRef
from consigne.domain.value_objects.verification_method import (
    BiometricType,
    VerificationMethod,
)
from consigne.domain.value_objects.verification_result import (
    Invalid,
    InvalidReason,
    TransactionDetails,
    Valid,
    VerificationResult,
)

__all__ = [
    "Commitment",
    "UtxoRef",
    "VerificationMethod",
    "BiometricType",
    "TransactionDetails",
    "Valid",
    "Invalid",
    "InvalidReason",
    "VerificationResult",
]
