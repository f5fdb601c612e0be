"""
Unit tests for Commitment value object.

Usage:
    pytest consigne/tests/unit/domain/value_objects/test_commitment.py
"""

import pytest

from consigne.domain.value_objects.commitment import Commitment

SECRET = "test-commitment-secret-key"


class TestCommitment:
    """Unit tests for Commitment value object."""

    def test_derive_is_deterministic(self):
        """Test same key and parts give the same token."""
        first = Commitment.derive(SECRET, "phone", "+15551234567")
        second = Commitment.derive(SECRET, "phone", "+15551234567")

        assert first == second
        assert len(first.value) == 64
        assert len(first.to_bytes()) == Commitment.LENGTH_BYTES

    def test_derive_depends_on_key_and_parts(self):
        """Test different key, parts or part order give different tokens."""
        base = Commitment.derive(SECRET, "a", "b")

        assert Commitment.derive("another-secret-key", "a", "b") != base
        assert Commitment.derive(SECRET, "b", "a") != base
        assert Commitment.derive(SECRET, "ab") != base

    def test_nonce_makes_tokens_unlinkable(self):
        """Test two random nonces produce different tokens."""
        first = Commitment.derive(SECRET, "x", nonce=Commitment.random_nonce())
        second = Commitment.derive(SECRET, "x", nonce=Commitment.random_nonce())

        assert first != second

    def test_matches(self):
        """Test matching re-derives the token."""
        nonce = Commitment.random_nonce()
        token = Commitment.derive(SECRET, "pin", "addr", "1234", nonce=nonce)

        assert token.matches(SECRET, "pin", "addr", "1234", nonce=nonce)
        assert not token.matches(SECRET, "pin", "addr", "4321", nonce=nonce)
        assert not token.matches(SECRET, "pin", "addr", "1234")

    def test_secret_required(self):
        """Test deriving without a key is rejected."""
        with pytest.raises(ValueError, match="secret key is required"):
            Commitment.derive("", "phone")

    @pytest.mark.parametrize("value", ["", "abc", "z" * 64, "0" * 66])
    def test_invalid_value(self, value):
        """Test malformed tokens are rejected."""
        with pytest.raises(ValueError):
            Commitment(value)

    def test_value_is_lower_cased(self):
        """Test upper-case hex is normalised."""
        assert Commitment("AB" * 32).value == "ab" * 32

    def test_truncated_and_str(self):
        """Test log and string forms."""
        token = Commitment("0123456789" + "0" * 50 + "abcd")

        assert token.truncated() == "012345...abcd"
        assert str(token) == token.value
