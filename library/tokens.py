"""
Signed, time-limited credentials.

Tokens are HS256 JWTs carrying the username and a fixed expiry. Verification
never raises: it returns a tagged ``VerificationResult`` so the transport layer
can tell "nothing presented" from "presented but broken or expired".
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog

from .models import Identity, IssuedCredential, VerificationResult, VerificationStatus

logger = structlog.get_logger(__name__)


class TokenAuthenticator:
    """Issues and verifies credentials with a process-wide signing secret."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(hours=1),
    ):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.lifetime = lifetime

    def issue(self, username: str) -> IssuedCredential:
        """
        Mint a credential for an account that just authenticated.

        Args:
            username: Authenticated username to embed

        Returns:
            IssuedCredential with the encoded token and its expiry
        """
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + self.lifetime
        payload = {
            "username": username,
            "iat": issued_at,
            "exp": expires_at,
            "jti": secrets.token_urlsafe(16),
        }
        token = jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

        logger.debug("Credential issued", username=username, expires_at=expires_at.isoformat())
        return IssuedCredential(token=token, username=username, expires_at=expires_at)

    def verify(self, token: Optional[str]) -> VerificationResult:
        """
        Check a presented credential.

        Args:
            token: Encoded token, or None/empty when the client sent nothing

        Returns:
            VerificationResult tagged VALID, EXPIRED, INVALID or ABSENT
        """
        if not token:
            return VerificationResult(status=VerificationStatus.ABSENT)

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "username"]},
            )
        except jwt.ExpiredSignatureError:
            return VerificationResult(status=VerificationStatus.EXPIRED)
        except jwt.InvalidTokenError as e:
            logger.debug("Credential rejected", error=str(e))
            return VerificationResult(status=VerificationStatus.INVALID)

        username = payload.get("username")
        if not isinstance(username, str) or not username:
            return VerificationResult(status=VerificationStatus.INVALID)

        identity = Identity(
            username=username,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
        return VerificationResult(status=VerificationStatus.VALID, identity=identity)
