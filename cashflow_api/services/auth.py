"""
Authentication flow: registration, login and logout.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from cashflow_api.core.errors import ConflictError, ServerError, ValidationError
from cashflow_api.core.revocation import RevocationRegistry
from cashflow_api.core.security import PasswordHasher, TokenService
from cashflow_api.services.users import DuplicateUsernameError, UserAccount, UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    user: UserAccount
    token: str


class AuthService:
    """Ties the credential store, password hasher, token service and revocation registry together."""

    def __init__(
        self,
        users: UserRepository,
        hasher: PasswordHasher,
        tokens: TokenService,
        revocations: RevocationRegistry,
    ):
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.revocations = revocations

    def register(self, username: str, password: str) -> UserAccount:
        """
        Create a new account.

        Raises ConflictError when the username is taken; the existing account is
        left untouched.
        """
        if not username or not password:
            raise ValidationError("Username and password are required")
        if not self.hasher.fits(password):
            raise ValidationError("Password is too long")

        password_hash = self.hasher.hash(password)
        try:
            user = self.users.insert(username, password_hash)
        except DuplicateUsernameError:
            logger.info("Registration rejected: username already taken")
            raise ConflictError("Username already exists")

        logger.info("Registered user %s", user.id)
        return user

    def login(self, username: str, password: str) -> Optional[LoginResult]:
        """
        Check credentials and issue a token.

        Returns None for an unknown username and for a wrong password alike.
        """
        credentials = self.users.find_by_username(username)
        if credentials is None:
            self.hasher.verify_dummy(password)
            return None

        if not self.hasher.verify(password, credentials.password_hash):
            return None

        token = self.issue_token(credentials.to_account())
        return LoginResult(user=credentials.to_account(), token=token)

    def issue_token(self, user: UserAccount) -> str:
        token = self.tokens.issue(user.username, user.id)
        if token is None:
            raise ServerError("Token issuance is unavailable")
        return token

    def logout(self, token: Optional[str]) -> None:
        """Revoke ``token`` without verifying it. Idempotent."""
        if not token:
            return
        self.revocations.add(token, expires_at=self.tokens.expiry_of(token))
