"""
Commitment value object - opaque keyed-hash token.

A commitment binds user secrets (phone number, PIN, biometric payload) to a
fixed-length token so they never have to be stored raw. It is a plain
HMAC-SHA256 over the joined parts, not a zero-knowledge proof: it has no
algebraic structure and proves nothing to a third party. The core only
stores and echoes these tokens back.
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from typing import Optional

_SEPARATOR = b"\x1f"


@dataclass(frozen=True)
class Commitment:
    """
    Value object holding a hex-encoded commitment token.

    Business rules:
    - Exactly LENGTH_BYTES bytes (hex encoded, lower case)
    - Immutable once created
    - Never decoded by this core
    """

    value: str

    LENGTH_BYTES = 32

    def __post_init__(self):
        """Validate token shape on creation."""
        if not self.value:
            raise ValueError("Commitment value cannot be empty")

        if len(self.value) != self.LENGTH_BYTES * 2:
            raise ValueError(
                f"Invalid commitment length: {len(self.value)} hex chars, "
                f"expected {self.LENGTH_BYTES * 2}"
            )

        try:
            bytes.fromhex(self.value)
        except ValueError:
            raise ValueError("Commitment must be hex encoded")

        if self.value != self.value.lower():
            object.__setattr__(self, "value", self.value.lower())

    @classmethod
    def derive(
        cls,
        secret_key: str,
        *parts: str,
        nonce: Optional[str] = None,
    ) -> "Commitment":
        """
        Derive a commitment from secret parts.

        Args:
            secret_key: Server-side HMAC key
            *parts: Values to bind (order matters)
            nonce: Optional salt; makes the token unlinkable across calls

        Returns:
            Commitment token
        """
        if not secret_key:
            raise ValueError("Commitment secret key is required")

        message = _SEPARATOR.join(part.encode("utf-8") for part in parts)
        if nonce is not None:
            message = message + _SEPARATOR + nonce.encode("utf-8")

        digest = hmac.new(
            secret_key.encode("utf-8"), message, hashlib.sha256
        ).hexdigest()
        return cls(digest)

    @classmethod
    def random_nonce(cls) -> str:
        """Generate a fresh nonce for unlinkable commitments."""
        return secrets.token_hex(16)

    def matches(
        self,
        secret_key: str,
        *parts: str,
        nonce: Optional[str] = None,
    ) -> bool:
        """Check whether the parts re-derive to this token (constant time)."""
        candidate = Commitment.derive(secret_key, *parts, nonce=nonce)
        return hmac.compare_digest(candidate.value, self.value)

    def to_bytes(self) -> bytes:
        """Raw token bytes."""
        return bytes.fromhex(self.value)

    def truncated(self) -> str:
        """Return truncated token for logs (e.g., '3fa9c1...77b2')."""
        return f"{self.value[:6]}...{self.value[-4:]}"

    def __str__(self) -> str:
        return self.value
