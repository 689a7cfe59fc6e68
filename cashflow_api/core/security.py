"""
Security utilities for password hashing and JWT token handling.
"""
import enum
import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from cashflow_api.core.config import BCRYPT_MAX_ROUNDS, BCRYPT_MIN_ROUNDS, Settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"

# bcrypt only looks at the first 72 bytes; longer passwords are refused
BCRYPT_MAX_PASSWORD_BYTES = 72


def hash_token(token: str) -> str:
    """
    Hash a JWT token for storage in a shared revocation store.

    Tokens are stored hashed so that a leaked blacklist cannot be replayed.
    """
    return hashlib.sha256(token.encode()).hexdigest()


class PasswordHasher:
    """bcrypt hashing with a fixed work factor."""

    def __init__(self, rounds: int = 12):
        if not isinstance(rounds, int) or not BCRYPT_MIN_ROUNDS <= rounds <= BCRYPT_MAX_ROUNDS:
            raise ValueError(
                f"bcrypt rounds must be an integer between {BCRYPT_MIN_ROUNDS} and {BCRYPT_MAX_ROUNDS}, got {rounds!r}"
            )
        self.rounds = rounds
        self._dummy_hash: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(rounds=settings.BCRYPT_ROUNDS)

    @staticmethod
    def fits(password: str) -> bool:
        """Whether bcrypt can hash the whole password."""
        return len(password.encode("utf-8")) <= BCRYPT_MAX_PASSWORD_BYTES

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt. Raises ValueError past 72 bytes."""
        if not self.fits(password):
            raise ValueError(f"Password exceeds {BCRYPT_MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash. Malformed hashes never match."""
        if not self.fits(plain_password):
            return False
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False

    def verify_dummy(self, plain_password: str) -> bool:
        """Spend the cost of a real comparison for an unknown user. Always False."""
        if self._dummy_hash is None:
            self._dummy_hash = self.hash(secrets.token_urlsafe(16))
        self.verify(plain_password, self._dummy_hash)
        return False


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of an access token."""
    user_id: uuid.UUID
    username: str
    issued_at: datetime
    expires_at: datetime


class TokenFailure(str, enum.Enum):
    MISSING_SECRET = "missing_secret"
    EXPIRED = "expired"
    INVALID = "invalid"
    BAD_CLAIMS = "bad_claims"


@dataclass(frozen=True)
class InvalidToken:
    """Verification failed; ``reason`` is for logs only."""
    reason: TokenFailure


TokenCheck = Union[TokenClaims, InvalidToken]


class TokenService:
    """Issues and verifies signed, time-limited access tokens.

    The signing algorithm is pinned at construction; the ``alg`` header of an
    incoming token is never trusted on its own.
    """

    def __init__(self, secret: Optional[str], algorithm: str = "HS256", expires_seconds: int = 3600):
        self.secret = secret
        self.algorithm = algorithm
        self.expires_seconds = expires_seconds or 3600

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            expires_seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS,
        )

    @property
    def lifetime(self) -> timedelta:
        return timedelta(seconds=self.expires_seconds)

    def issue(
        self,
        username: str,
        user_id: Union[uuid.UUID, str],
        expires_delta: Optional[timedelta] = None,
    ) -> Optional[str]:
        """Create a JWT access token, or None when no secret is configured."""
        if not self.secret:
            logger.error("Refusing to issue token: no signing secret configured")
            return None
        if not username or not user_id:
            logger.error("Refusing to issue token without username and user id")
            return None

        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else self.lifetime)

        to_encode = {
            "sub": str(user_id),
            "userId": str(user_id),
            "username": username,
            "iat": now,
            "exp": expire,
            "type": ACCESS_TOKEN_TYPE,
        }
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def check(self, token: str) -> TokenCheck:
        """Decode and validate a token, returning claims or the failure reason."""
        if not self.secret:
            return InvalidToken(TokenFailure.MISSING_SECRET)

        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            return InvalidToken(TokenFailure.EXPIRED)
        except JWTClaimsError:
            return InvalidToken(TokenFailure.BAD_CLAIMS)
        except JWTError:
            return InvalidToken(TokenFailure.INVALID)

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            return InvalidToken(TokenFailure.BAD_CLAIMS)

        username = payload.get("username")
        raw_user_id = payload.get("userId")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not isinstance(username, str) or not username or not raw_user_id or expires_at is None:
            return InvalidToken(TokenFailure.BAD_CLAIMS)

        try:
            user_id = uuid.UUID(str(raw_user_id))
        except ValueError:
            return InvalidToken(TokenFailure.BAD_CLAIMS)

        return TokenClaims(
            user_id=user_id,
            username=username,
            issued_at=datetime.fromtimestamp(issued_at or expires_at, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
        )

    def verify(self, token: str) -> Optional[TokenClaims]:
        """Decode and validate a token. Returns claims or None if invalid."""
        result = self.check(token)
        if isinstance(result, InvalidToken):
            return None
        return result

    def expiry_of(self, token: str) -> Optional[datetime]:
        """Read the ``exp`` claim without verifying the signature."""
        try:
            exp = jwt.get_unverified_claims(token).get("exp")
        except JWTError:
            return None
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            return None
        try:
            return datetime.fromtimestamp(exp, tz=timezone.utc)
        except (OverflowError, ValueError, OSError):
            return None
