"""
FastAPI dependencies: shared services and the authorization gate.

The gate runs, in order:
  token extraction (cookie, then Authorization header)
  -> revocation check
  -> signature/expiry verification
  -> optional account re-check
  -> identity attached to ``request.state.identity``.
Any failure raises AuthorizationError (401), so a request never reaches its route
half-authorized.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cashflow_api.core.config import Settings
from cashflow_api.core.errors import AuthorizationError, ServerError
from cashflow_api.core.revocation import RevocationRegistry
from cashflow_api.core.security import InvalidToken, PasswordHasher, TokenService
from cashflow_api.db.session import get_db
from cashflow_api.services.auth import AuthService
from cashflow_api.services.users import UserRepository

logger = logging.getLogger(__name__)

NO_TOKEN = "no token provided"
TOKEN_REVOKED = "token revoked"
TOKEN_INVALID = "invalid or expired token"
USER_NOT_FOUND = "user not found"


@dataclass(frozen=True)
class AuthenticatedIdentity:
    user_id: uuid.UUID
    username: str


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_revocation_registry(request: Request) -> RevocationRegistry:
    return request.app.state.revocation_registry


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenService = Depends(get_token_service),
    revocations: RevocationRegistry = Depends(get_revocation_registry),
) -> AuthService:
    return AuthService(users, hasher, tokens, revocations)


def extract_token(request: Request, cookie_name: str = "token") -> Optional[str]:
    """Return the presented token: the cookie wins over the Authorization header."""
    cookie = request.cookies.get(cookie_name)
    if cookie:
        # Accept both a raw token and a "Bearer <token>" cookie value
        parts = cookie.split()
        if parts:
            return parts[-1]

    header = request.headers.get("Authorization")
    if header:
        parts = header.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    return None


def _reject(request: Request, reason: str) -> AuthorizationError:
    logger.warning("Authorization rejected (%s) for %s %s", reason, request.method, request.url.path)
    return AuthorizationError(reason)


def get_current_identity(
    request: Request,
    db: Session = Depends(get_db),
) -> AuthenticatedIdentity:
    """Authorize the request and return the caller's identity."""
    settings: Settings = request.app.state.settings
    tokens: TokenService = request.app.state.token_service
    revocations: RevocationRegistry = request.app.state.revocation_registry

    token = extract_token(request, settings.AUTH_COOKIE_NAME)
    if token is None:
        raise _reject(request, NO_TOKEN)

    # Checked before the signature so revoked tokens are turned away cheaply
    if revocations.is_revoked(token):
        raise _reject(request, TOKEN_REVOKED)

    result = tokens.check(token)
    if isinstance(result, InvalidToken):
        logger.debug("Token verification failed: %s", result.reason.value)
        raise _reject(request, TOKEN_INVALID)

    if settings.AUTH_RECHECK_USER:
        try:
            account = UserRepository(db).find_by_id(result.user_id)
        except SQLAlchemyError:
            logger.exception("User lookup failed during authorization")
            raise ServerError()
        if account is None:
            raise _reject(request, USER_NOT_FOUND)
        identity = AuthenticatedIdentity(user_id=account.id, username=account.username)
    else:
        identity = AuthenticatedIdentity(user_id=result.user_id, username=result.username)

    request.state.identity = identity
    return identity


def extract_authorized_user_id(request: Request) -> Optional[uuid.UUID]:
    """User id resolved by the gate for this request, or None when there is none."""
    identity = getattr(request.state, "identity", None)
    if not isinstance(identity, AuthenticatedIdentity):
        return None
    return identity.user_id
