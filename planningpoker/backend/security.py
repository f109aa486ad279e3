"""Security helpers for host credentials."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import hashlib
import hmac
import secrets
import threading
import time

from planningpoker.backend.errors import UnauthorizedError
from planningpoker.backend.logging import get_logger

logger = get_logger(__name__)

TOKEN_BYTES = 24


def generate_token() -> str:
    """Generate a URL-safe token for host access."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(token: str, server_salt: str) -> str:
    """Create deterministic token hash via sha256(token + server_salt)."""
    payload = f"{token}{server_salt}".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def password_matches(candidate: str, expected: str) -> bool:
    """Compare fixed-length digests so timing reveals neither length nor prefix."""
    candidate_digest = hashlib.sha256(candidate.encode("utf-8")).digest()
    expected_digest = hashlib.sha256(expected.encode("utf-8")).digest()
    return hmac.compare_digest(candidate_digest, expected_digest)


class ExpiringTokenCache:
    """Set of keys with a sliding time-to-live.

    ``touch`` refreshes a live key; expired keys are dropped on access and by
    ``sweep``. Times come from ``clock`` (monotonic seconds by default).
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._last_activity: dict[str, float] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_activity)

    def add(self, key: str) -> None:
        with self._lock:
            self._last_activity[key] = self._clock()

    def touch(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            last_activity = self._last_activity.get(key)
            if last_activity is None:
                return False
            if now - last_activity > self.ttl_seconds:
                del self._last_activity[key]
                return False
            self._last_activity[key] = now
            return True

    def discard(self, key: str) -> bool:
        with self._lock:
            return self._last_activity.pop(key, None) is not None

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, seen in self._last_activity.items() if now - seen > self.ttl_seconds]
            for key in expired:
                del self._last_activity[key]
        return len(expired)


@dataclass(frozen=True)
class HostGrant:
    token_hash: str


class HostAuthority:
    """Issues and checks host tokens; only token hashes are kept in memory."""

    def __init__(
        self,
        password: str,
        server_salt: str,
        timeout_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._password = password
        self._server_salt = server_salt
        self._tokens = ExpiringTokenCache(ttl_seconds=timeout_seconds, clock=clock)

    @property
    def active_tokens(self) -> int:
        return len(self._tokens)

    def login(self, password: str) -> str:
        if not password_matches(password, self._password):
            logger.warning("host.login_failed")
            raise UnauthorizedError("Invalid password")
        token = generate_token()
        self._tokens.add(hash_token(token, self._server_salt))
        logger.info("host.login")
        return token

    def authenticate(self, token: str | None) -> HostGrant:
        if not token:
            raise UnauthorizedError()
        token_hash = hash_token(token, self._server_salt)
        if not self._tokens.touch(token_hash):
            raise UnauthorizedError()
        return HostGrant(token_hash=token_hash)

    def logout(self, token: str | None) -> None:
        if token and self._tokens.discard(hash_token(token, self._server_salt)):
            logger.info("host.logout")

    def sweep_expired(self) -> int:
        removed = self._tokens.sweep()
        if removed:
            logger.info("host.tokens_expired", removed=removed)
        return removed
