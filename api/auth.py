"""
Authentication transports, server-side sessions and rate limiting for the FastAPI API.
"""

import secrets
import threading
import time
from collections import deque
from typing import Deque, Dict, Optional

import structlog
from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from library.errors import InvalidCredential, RateLimitExceeded, Unauthenticated
from library.models import Identity, VerificationStatus

logger = structlog.get_logger(__name__)

# Security scheme; absence is reported by require_identity, not by FastAPI
bearer_scheme = HTTPBearer(auto_error=False)


class SessionStore:
    """
    Server-held sessions keyed by an unguessable session id.

    Each session holds the credential issued at login. Destroying the session
    logs the client out even though the credential itself is still signed.
    """

    def __init__(self, max_age_seconds: int = 3600):
        self.max_age_seconds = max_age_seconds
        self._lock = threading.Lock()
        self._sessions: Dict[str, Dict] = {}

    def create(self, token: str, username: str) -> str:
        """
        Start a session holding ``token``.

        Returns:
            New session id to hand to the client as a cookie
        """
        session_id = secrets.token_urlsafe(32)
        now = time.time()
        with self._lock:
            expired = [sid for sid, session in self._sessions.items() if now >= session["expires_at"]]
            for sid in expired:
                del self._sessions[sid]
            self._sessions[session_id] = {
                "token": token,
                "username": username,
                "expires_at": now + self.max_age_seconds,
            }
        return session_id

    def get_token(self, session_id: Optional[str]) -> Optional[str]:
        """Credential stored in a live session, or None."""
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if time.time() >= session["expires_at"]:
                del self._sessions[session_id]
                return None
            return session["token"]

    def get_username(self, session_id: Optional[str]) -> Optional[str]:
        """Username recorded for a session, for logging only."""
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
            return session["username"] if session else None

    def destroy(self, session_id: Optional[str]) -> bool:
        """
        Remove a session.

        Returns:
            True if a session was removed, False if none existed
        """
        if not session_id:
            return False
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)


class RateLimiter:
    """Sliding-window request limiter keyed by client."""

    def __init__(self, max_requests: int, window_seconds: int, name: str = "general"):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.name = name
        self._lock = threading.Lock()
        self._requests: Dict[str, Deque[float]] = {}
        self._last_sweep = time.time()

    def _prune(self, key: str, now: float) -> Deque[float]:
        """Drop expired timestamps for ``key``; a key left with none is forgotten."""
        requests = self._requests.get(key)
        if requests is None:
            return deque()
        while requests and now - requests[0] >= self.window_seconds:
            requests.popleft()
        if not requests:
            del self._requests[key]
        return requests

    def _sweep(self, now: float) -> None:
        """Forget idle clients, at most once per window."""
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in list(self._requests):
            self._prune(key, now)

    def _append(self, key: str, requests: Deque[float], now: float) -> None:
        requests.append(now)
        self._requests[key] = requests

    def hit(self, key: str) -> bool:
        """
        Record a request if the client is under its limit.

        Args:
            key: Client key (address, optionally combined with a username)

        Returns:
            True if within limit, False if exceeded
        """
        now = time.time()
        with self._lock:
            self._sweep(now)
            requests = self._prune(key, now)
            if len(requests) < self.max_requests:
                self._append(key, requests, now)
                return True
            return False

    def is_limited(self, key: str) -> bool:
        """Check the limit without recording a request."""
        with self._lock:
            return len(self._prune(key, time.time())) >= self.max_requests

    def record(self, key: str) -> None:
        """Record a request unconditionally (used for failed logins)."""
        now = time.time()
        with self._lock:
            self._sweep(now)
            self._append(key, self._prune(key, now), now)

    def tracked_clients(self) -> int:
        """Number of client keys with requests inside the window."""
        with self._lock:
            return len(self._requests)

    def get_rate_limit_info(self, key: str) -> Dict:
        """
        Get rate limit information for a client.

        Returns:
            Dictionary with used/remaining counts and the reset time
        """
        now = time.time()
        with self._lock:
            requests = self._prune(key, now)
            requests_used = len(requests)
            reset_time = (requests[0] if requests else now) + self.window_seconds

        return {
            "requests_used": requests_used,
            "requests_remaining": max(0, self.max_requests - requests_used),
            "rate_limit": self.max_requests,
            "reset_time": reset_time,
        }


def client_key(request: Request) -> str:
    """Rate-limit key for the calling client."""
    return request.client.host if request.client else "unknown"


def get_rate_limit_headers(limiter: RateLimiter, key: str) -> Dict[str, str]:
    """
    Get rate limit headers for response.

    Args:
        limiter: Limiter the request was counted against
        key: Client key

    Returns:
        Dictionary with rate limit headers
    """
    rate_info = limiter.get_rate_limit_info(key)
    return {
        "X-RateLimit-Limit": str(rate_info['rate_limit']),
        "X-RateLimit-Remaining": str(rate_info['requests_remaining']),
        "X-RateLimit-Reset": str(int(rate_info['reset_time']))
    }


def rate_limit(limiter_name: str, message: Optional[str] = None):
    """
    Build a dependency that counts the request against a named limiter.

    Args:
        limiter_name: Key into ``app.state.rate_limiters``
        message: Message returned when the limit is exceeded
    """

    async def dependency(request: Request, response: Response) -> None:
        if request.url.path == "/health":
            return
        limiter: RateLimiter = request.app.state.rate_limiters[limiter_name]
        key = client_key(request)
        allowed = limiter.hit(key)
        headers = get_rate_limit_headers(limiter, key)

        if not allowed:
            logger.warning("Rate limit exceeded", limiter=limiter_name, client=key, path=request.url.path)
            raise RateLimitExceeded(message, retry_after=limiter.window_seconds, headers=headers)

        response.headers.update(headers)
        # Error handlers do not see the injected response
        request.state.rate_limit_headers = headers

    return dependency


def extract_credential(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """
    Pull the presented credential from the configured transport.

    Returns:
        Encoded token, or None if the client presented nothing
    """
    api_config = request.app.state.api_config
    if api_config.auth_transport == "session":
        session_id = request.cookies.get(api_config.session_cookie_name)
        return request.app.state.sessions.get_token(session_id)

    if credentials is None:
        return None
    return credentials.credentials


async def require_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """
    Resolve the caller's identity from its credential.

    Raises:
        Unauthenticated: If no credential was presented
        InvalidCredential: If the credential is forged, malformed or expired
    """
    token = extract_credential(request, credentials)
    result = request.app.state.authenticator.verify(token)
    audit = request.app.state.audit

    if result.status == VerificationStatus.ABSENT:
        audit.log_auth_rejected("absent", path=request.url.path)
        raise Unauthenticated()

    if not result.is_valid:
        audit.log_auth_rejected(result.status.value, path=request.url.path)
        raise InvalidCredential()

    return result.identity
