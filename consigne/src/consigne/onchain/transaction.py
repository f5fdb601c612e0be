"""
Transaction body as seen by the deposit validator.

Only the parts the validator reads are modelled: spent inputs, produced
outputs, the validity interval and the required signers. Addresses are
represented by their payment key hash (28 bytes).
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class TxInput:
    """Spent output: owner key hash and lovelace it carried."""

    tx_id: str
    output_index: int
    owner: bytes
    lovelace: int


@dataclass(frozen=True)
class TxOutput:
    """Produced output: recipient key hash and lovelace paid."""

    owner: bytes
    lovelace: int


@dataclass(frozen=True)
class ValidityRange:
    """
    Transaction validity interval in POSIX milliseconds.

    A missing bound means the interval is open on that side.
    """

    lower_ms: Optional[int] = None
    upper_ms: Optional[int] = None

    @property
    def is_finite(self) -> bool:
        return self.lower_ms is not None and self.upper_ms is not None

    @property
    def width_ms(self) -> Optional[int]:
        if not self.is_finite:
            return None
        return self.upper_ms - self.lower_ms

    def contains(self, timestamp_ms: int) -> bool:
        if self.lower_ms is not None and timestamp_ms < self.lower_ms:
            return False
        if self.upper_ms is not None and timestamp_ms > self.upper_ms:
            return False
        return True


@dataclass(frozen=True)
class TransactionBody:
    """Transaction under authorization."""

    inputs: tuple[TxInput, ...] = field(default_factory=tuple)
    outputs: tuple[TxOutput, ...] = field(default_factory=tuple)
    validity_range: ValidityRange = field(default_factory=ValidityRange)
    required_signers: frozenset[bytes] = field(default_factory=frozenset)

    def inputs_from(self, owner: bytes) -> list[TxInput]:
        return [i for i in self.inputs if i.owner == owner]

    def outputs_to(self, owner: bytes) -> list[TxOutput]:
        return [o for o in self.outputs if o.owner == owner]

    def is_signed_by(self, key_hash: bytes) -> bool:
        return key_hash in self.required_signers
