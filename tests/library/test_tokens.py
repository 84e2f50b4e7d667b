"""
Unit tests for credential issuing and verification.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from library.models import VerificationStatus
from library.tokens import TokenAuthenticator

OTHER_SECRET = "another-signing-secret-" + "1" * 41


class TestTokenAuthenticator:
    """Test cases for TokenAuthenticator."""

    def test_issue_and_verify(self, authenticator):
        """Test that an issued credential verifies back to its username."""
        credential = authenticator.issue("u1")
        result = authenticator.verify(credential.token)

        assert result.status == VerificationStatus.VALID
        assert result.is_valid
        assert result.identity.username == "u1"

    def test_expiry_fixed_at_issuance(self, authenticator):
        """Test that the expiry is one hour after issuance and survives verification."""
        before = datetime.now(timezone.utc)
        credential = authenticator.issue("u1")

        assert timedelta(minutes=59) < credential.expires_at - before <= timedelta(hours=1, seconds=1)

        identity = authenticator.verify(credential.token).identity
        assert abs((identity.expires_at - credential.expires_at).total_seconds()) < 1

    def test_absent_credential(self, authenticator):
        """Test that no credential is reported as absent, not invalid."""
        assert authenticator.verify(None).status == VerificationStatus.ABSENT
        assert authenticator.verify("").status == VerificationStatus.ABSENT

    def test_expired_credential(self):
        """Test that a credential past its expiry is reported as expired."""
        short_lived = TokenAuthenticator(secret_key=OTHER_SECRET, lifetime=timedelta(seconds=-5))
        credential = short_lived.issue("u1")

        result = short_lived.verify(credential.token)

        assert result.status == VerificationStatus.EXPIRED
        assert result.identity is None

    def test_wrong_secret(self, authenticator):
        """Test that a credential signed with another secret is invalid."""
        forged = TokenAuthenticator(secret_key=OTHER_SECRET).issue("u1")

        result = authenticator.verify(forged.token)

        assert result.status == VerificationStatus.INVALID
        assert result.identity is None

    def test_garbage_token(self, authenticator):
        """Test that a malformed token is invalid."""
        assert authenticator.verify("not-a-token").status == VerificationStatus.INVALID

    def test_tampered_payload(self, authenticator):
        """Test that changing the payload breaks the signature."""
        token = authenticator.issue("u1").token
        header, _, signature = token.split(".")
        admin_payload = authenticator.issue("admin").token.split(".")[1]

        result = authenticator.verify(".".join([header, admin_payload, signature]))

        assert result.status == VerificationStatus.INVALID

    def test_missing_username_claim(self, authenticator):
        """Test that a signed token without a username is invalid."""
        token = jwt.encode(
            {"exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            authenticator._secret_key,
            algorithm="HS256",
        )
        assert authenticator.verify(token).status == VerificationStatus.INVALID

    def test_unsigned_token_rejected(self, authenticator):
        """Test that an alg=none token is not accepted."""
        token = jwt.encode(
            {"username": "u1", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            key="",
            algorithm="none",
        )
        assert authenticator.verify(token).status == VerificationStatus.INVALID

    def test_tokens_are_unique(self, authenticator):
        """Test that two credentials for the same user differ."""
        assert authenticator.issue("u1").token != authenticator.issue("u1").token

    def test_empty_secret_rejected(self):
        """Test that a signing secret is required."""
        with pytest.raises(ValueError):
            TokenAuthenticator(secret_key="")
