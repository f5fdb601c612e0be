"""
UtxoRef value object - pointer to a single transaction output.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class UtxoRef:
    """
    Reference to an output of a ledger transaction (``tx_id#index``).

    Business rules:
    - Transaction id is required
    - Output index is non-negative
    """

    tx_id: str
    output_index: int = 0

    def __post_init__(self):
        """Validate reference on creation."""
        if not self.tx_id:
            raise ValueError("Transaction id is required")

        if self.output_index < 0:
            raise ValueError(f"Invalid output index: {self.output_index}")

    @classmethod
    def parse(cls, value: str) -> "UtxoRef":
        """
        Parse ``tx_id#index`` notation.

        Raises:
            ValueError: If the string is malformed
        """
        tx_id, sep, index = value.partition("#")
        if not sep:
            return cls(tx_id=tx_id)
        if not index.isdigit():
            raise ValueError(f"Invalid output index in UTXO ref: {value}")
        return cls(tx_id=tx_id, output_index=int(index))

    def __str__(self) -> str:
        return f"{self.tx_id}#{self.output_index}"
