"""
Token revocation registries.

A revoked token is rejected by the authorization gate even while its signature and
expiry are still valid. Three backends are available:

- ``InMemoryRevocationRegistry``: a lock-guarded dict. It is process-local: with
  several API instances behind a load balancer, a token revoked on one instance is
  still accepted by the others. Entries are only dropped by ``remove``,
  ``purge_expired`` or a restart.
- ``DatabaseRevocationRegistry``: the ``token_blacklist`` table, shared by every
  instance using the same database.
- ``RedisRevocationRegistry``: shared, entries expire with the token.
"""
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cashflow_api.core.config import Settings
from cashflow_api.core.security import hash_token

logger = logging.getLogger(__name__)


class RevocationRegistry(Protocol):
    shared: bool

    def add(self, token: str, expires_at: Optional[datetime] = None) -> None: ...

    def is_revoked(self, token: str) -> bool: ...

    def remove(self, token: str) -> None: ...

    def purge_expired(self, now: Optional[datetime] = None) -> int: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRevocationRegistry:
    """Process-local revocation set, safe for concurrent use from worker threads."""

    shared = False

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # token -> expiry (None when the expiry could not be read)
        self._entries: Dict[str, Optional[datetime]] = {}

    def add(self, token: str, expires_at: Optional[datetime] = None) -> None:
        with self._lock:
            # Keep the first recorded expiry; re-adding is a no-op
            self._entries.setdefault(token, expires_at)

    def is_revoked(self, token: str) -> bool:
        with self._lock:
            return token in self._entries

    def remove(self, token: str) -> None:
        with self._lock:
            self._entries.pop(token, None)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Drop entries whose token has already expired on its own."""
        now = now or _utcnow()
        with self._lock:
            expired = [t for t, exp in self._entries.items() if exp is not None and exp <= now]
            for token in expired:
                del self._entries[token]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class DatabaseRevocationRegistry:
    """Revocation list stored in the ``token_blacklist`` table (hashed tokens)."""

    shared = True

    def __init__(self, session_factory: Callable[[], Session], default_ttl: timedelta):
        self.session_factory = session_factory
        self.default_ttl = default_ttl

    def add(self, token: str, expires_at: Optional[datetime] = None) -> None:
        from cashflow_api.models.token_blacklist import TokenBlacklist

        db = self.session_factory()
        try:
            db.add(TokenBlacklist(
                token_hash=hash_token(token),
                expires_at=expires_at or _utcnow() + self.default_ttl,
            ))
            db.commit()
        except IntegrityError:
            # Already revoked, possibly by a concurrent logout of the same token
            db.rollback()
        finally:
            db.close()

    def is_revoked(self, token: str) -> bool:
        from cashflow_api.models.token_blacklist import TokenBlacklist

        db = self.session_factory()
        try:
            blacklisted = db.query(TokenBlacklist).filter(
                TokenBlacklist.token_hash == hash_token(token)
            ).first()
            return blacklisted is not None
        finally:
            db.close()

    def remove(self, token: str) -> None:
        from cashflow_api.models.token_blacklist import TokenBlacklist

        db = self.session_factory()
        try:
            db.query(TokenBlacklist).filter(
                TokenBlacklist.token_hash == hash_token(token)
            ).delete()
            db.commit()
        finally:
            db.close()

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """
        Remove expired tokens from the blacklist.

        Meant to be run periodically (e.g. a daily cron job) to keep the table small.
        """
        from cashflow_api.models.token_blacklist import TokenBlacklist

        db = self.session_factory()
        try:
            result = db.query(TokenBlacklist).filter(
                TokenBlacklist.expires_at < (now or _utcnow())
            ).delete()
            db.commit()
            return result
        finally:
            db.close()


class RedisRevocationRegistry:
    """Revocation keys in Redis with a TTL equal to the token's remaining lifetime."""

    shared = True

    def __init__(self, client, default_ttl: timedelta, key_prefix: str = "revoked_token:"):
        self.client = client
        self.default_ttl = default_ttl
        self.key_prefix = key_prefix

    def _key(self, token: str) -> str:
        return f"{self.key_prefix}{hash_token(token)}"

    def add(self, token: str, expires_at: Optional[datetime] = None) -> None:
        if expires_at is None:
            ttl = int(self.default_ttl.total_seconds())
        else:
            ttl = int((expires_at - _utcnow()).total_seconds())
        # An already-expired token still gets a short-lived entry
        self.client.set(self._key(token), 1, ex=max(ttl, 1))

    def is_revoked(self, token: str) -> bool:
        return bool(self.client.exists(self._key(token)))

    def remove(self, token: str) -> None:
        self.client.delete(self._key(token))

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        # Redis expires the keys itself
        return 0


def build_revocation_registry(
    settings: Settings,
    session_factory: Optional[Callable[[], Session]] = None,
) -> RevocationRegistry:
    """Create the registry selected by ``REVOCATION_BACKEND``."""
    default_ttl = timedelta(seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS)

    if settings.REVOCATION_BACKEND == "database":
        if session_factory is None:
            raise ValueError("The database revocation backend needs a session factory")
        return DatabaseRevocationRegistry(session_factory, default_ttl)

    if settings.REVOCATION_BACKEND == "redis":
        import redis

        client = redis.Redis.from_url(settings.REDIS_URL, socket_connect_timeout=2)
        return RedisRevocationRegistry(client, default_ttl)

    logger.warning(
        "Token revocation is process-local (REVOCATION_BACKEND=memory): tokens revoked "
        "on this instance are still accepted by other instances, and the revocation "
        "set grows until restart. Use the database or redis backend when running "
        "more than one instance."
    )
    return InMemoryRevocationRegistry()
