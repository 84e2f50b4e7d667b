"""
In-memory account store with salted password hashing.
"""

import threading
from typing import Dict, List, Optional

import structlog
from passlib.context import CryptContext

from .models import Account

logger = structlog.get_logger(__name__)


class AccountStore:
    """
    Registered accounts keyed by exact username.

    Every public method returns a plain value and never raises, so the
    registration and login handlers only branch on booleans. Hashing runs
    outside the lock; the existence check and insert run under it.
    """

    def __init__(self, hash_rounds: int = 310000):
        """
        Initialize the account store.

        Args:
            hash_rounds: pbkdf2_sha256 rounds used for new hashes
        """
        self.hash_rounds = hash_rounds
        self.pwd_context = CryptContext(
            schemes=["pbkdf2_sha256"],
            deprecated="auto",
            pbkdf2_sha256__default_rounds=hash_rounds,
        )
        self._lock = threading.Lock()
        self._accounts: Dict[str, Account] = {}

    def exists(self, username: str) -> bool:
        """Check whether an account with exactly this username is present."""
        with self._lock:
            return username in self._accounts

    def count(self) -> int:
        """Number of registered accounts."""
        with self._lock:
            return len(self._accounts)

    def usernames(self) -> List[str]:
        """Registered usernames in registration order."""
        with self._lock:
            return list(self._accounts)

    def create(self, username: str, password: str) -> bool:
        """
        Register a new account.

        Args:
            username: Desired username (case-sensitive)
            password: Plaintext password, hashed before storage

        Returns:
            True if created, False if the username exists or hashing failed
        """
        if self.exists(username):
            return False

        try:
            credential_hash = self.pwd_context.hash(password)
        except Exception as e:
            logger.error("Password hashing failed", username=username, error=str(e))
            return False

        with self._lock:
            # Another request may have registered the name while we were hashing
            if username in self._accounts:
                return False
            self._accounts[username] = Account(username=username, credential_hash=credential_hash)

        logger.debug("Account created", username=username)
        return True

    def authenticate(self, username: str, password: str) -> bool:
        """
        Check a username/password pair.

        Args:
            username: Username to look up
            password: Plaintext password to verify

        Returns:
            True only if the account exists and the password verifies
        """
        account = self._get(username)

        try:
            if account is None:
                # Same cost as a real verify for unknown usernames
                self.pwd_context.dummy_verify()
                return False
            return self.pwd_context.verify(password, account.credential_hash)
        except Exception as e:
            logger.error("Password verification failed", username=username, error=str(e))
            return False

    def _get(self, username: str) -> Optional[Account]:
        with self._lock:
            return self._accounts.get(username)
