"""
Ledger client interface.

Defines the read-only queries the verifier needs from a ledger-indexing
service, and the plain data shapes those queries return.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

LOVELACE = "lovelace"


@dataclass(frozen=True)
class LedgerTransactionInfo:
    """Block placement of a transaction."""

    tx_id: str
    block_time: int
    confirmations: int
    block_height: Optional[int] = None


@dataclass(frozen=True)
class UtxoEntry:
    """One transaction input or output with its per-asset amounts."""

    address: str
    amounts: dict[str, int] = field(default_factory=dict)
    output_index: Optional[int] = None

    @property
    def lovelace(self) -> int:
        """Native currency quantity."""
        return self.amounts.get(LOVELACE, 0)


@dataclass(frozen=True)
class TransactionUtxos:
    """Input and output sets of a transaction, in ledger order."""

    tx_id: str
    inputs: list[UtxoEntry] = field(default_factory=list)
    outputs: list[UtxoEntry] = field(default_factory=list)

    @property
    def first_input_address(self) -> Optional[str]:
        """Address of the first input, taken as the sender."""
        return self.inputs[0].address if self.inputs else None

    def outputs_to(self, address: str) -> list[UtxoEntry]:
        """Outputs paying the given address."""
        return [output for output in self.outputs if output.address == address]


class ILedgerClient(ABC):
    """
    Abstract interface for ledger-indexer queries.

    Implementations must apply a timeout to every request and raise
    LedgerTimeoutError / LedgerUnavailableError / LedgerQuotaExceededError
    on transport failure.
    """

    @abstractmethod
    async def get_transaction(self, tx_id: str) -> Optional[LedgerTransactionInfo]:
        """
        Fetch block placement of a transaction.

        Returns:
            Transaction info, or None if the indexer does not know it
        """

    @abstractmethod
    async def get_transaction_utxos(self, tx_id: str) -> Optional[TransactionUtxos]:
        """
        Fetch input and output sets of a transaction.

        Returns:
            Transaction UTXOs, or None if the indexer does not know it
        """

    @abstractmethod
    async def get_address_transactions(
        self,
        address: str,
        order: str = "desc",
        count: int = 20,
    ) -> list[str]:
        """
        List recent transaction ids touching an address.

        Args:
            address: Ledger address
            order: "desc" for newest first, "asc" for oldest first
            count: Maximum number of ids

        Returns:
            Transaction ids in requested order (empty if address unknown)
        """

    @abstractmethod
    async def close(self) -> None:
        """Release underlying connections."""
