"""
Unit tests for the authentication flow and the credential store adapter.
"""
import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import Session

from cashflow_api.core.errors import ConflictError, ServerError, ValidationError
from cashflow_api.core.revocation import InMemoryRevocationRegistry
from cashflow_api.core.security import PasswordHasher, TokenService
from cashflow_api.models.user import User
from cashflow_api.services.auth import AuthService, LoginResult
from cashflow_api.services.users import DuplicateUsernameError, UserAccount, UserRepository


@pytest.fixture
def revocations() -> InMemoryRevocationRegistry:
    return InMemoryRevocationRegistry()


@pytest.fixture
def service(db: Session, hasher: PasswordHasher, token_service: TokenService, revocations) -> AuthService:
    return AuthService(UserRepository(db), hasher, token_service, revocations)


class TestUserRepository:

    def test_insert_and_find(self, db: Session):
        repo = UserRepository(db)
        account = repo.insert("alice", "hash-value")

        assert isinstance(account, UserAccount)
        assert repo.find_by_id(account.id) == account
        credentials = repo.find_by_username("alice")
        assert credentials.password_hash == "hash-value"
        assert credentials.to_account() == account

    def test_missing_user_is_none(self, db: Session):
        repo = UserRepository(db)

        assert repo.find_by_username("nobody") is None
        assert repo.find_by_id(uuid.uuid4()) is None

    def test_duplicate_insert_raises(self, db: Session):
        repo = UserRepository(db)
        repo.insert("alice", "first")

        with pytest.raises(DuplicateUsernameError):
            repo.insert("alice", "second")

        # Session is still usable after the failed insert
        assert repo.find_by_username("alice").password_hash == "first"


class TestRegister:

    def test_register_hashes_password(self, service: AuthService, db: Session, hasher: PasswordHasher):
        account = service.register("alice", "secret123")

        stored = db.query(User).filter(User.id == account.id).one()
        assert account.username == "alice"
        assert stored.password_hash != "secret123"
        assert hasher.verify("secret123", stored.password_hash)

    def test_register_duplicate_is_conflict(self, service: AuthService, db: Session):
        service.register("alice", "secret123")
        original_hash = db.query(User).filter(User.username == "alice").one().password_hash

        with pytest.raises(ConflictError) as exc_info:
            service.register("alice", "other-password")

        assert exc_info.value.status_code == 409
        db.expire_all()
        assert db.query(User).filter(User.username == "alice").one().password_hash == original_hash

    def test_register_requires_credentials(self, service: AuthService):
        with pytest.raises(ValidationError):
            service.register("", "secret123")

    def test_register_rejects_password_over_72_bytes(self, service: AuthService, db: Session):
        with pytest.raises(ValidationError):
            service.register("alice", "x" * 73)

        assert db.query(User).count() == 0


class TestLogin:

    def test_login_returns_user_and_token(self, service: AuthService, token_service: TokenService):
        account = service.register("alice", "secret123")

        result = service.login("alice", "secret123")

        assert isinstance(result, LoginResult)
        assert result.user == account
        claims = token_service.verify(result.token)
        assert claims.username == "alice"
        assert claims.user_id == account.id

    def test_wrong_password_and_unknown_user_look_the_same(self, service: AuthService):
        service.register("alice", "secret123")

        assert service.login("alice", "wrongpass") is None
        assert service.login("bob", "secret123") is None

    def test_unknown_user_still_spends_a_hash_check(self, db: Session, token_service, revocations):
        hasher = MagicMock(spec=PasswordHasher)
        service = AuthService(UserRepository(db), hasher, token_service, revocations)

        assert service.login("ghost", "whatever") is None
        hasher.verify_dummy.assert_called_once_with("whatever")

    def test_issuance_failure_is_internal_fault(self, db: Session, hasher, revocations):
        service = AuthService(UserRepository(db), hasher, TokenService(secret=""), revocations)
        service.register("alice", "secret123")

        with pytest.raises(ServerError):
            service.login("alice", "secret123")


class TestLogout:

    def test_logout_revokes_with_expiry(self, service: AuthService, revocations):
        service.register("alice", "secret123")
        token = service.login("alice", "secret123").token

        service.logout(token)

        assert revocations.is_revoked(token)
        assert revocations.purge_expired() == 0

    def test_logout_accepts_garbage_and_repeats(self, service: AuthService, revocations):
        service.logout("garbage")
        service.logout("garbage")

        assert revocations.is_revoked("garbage")
        assert len(revocations) == 1

    def test_logout_without_token_is_noop(self, service: AuthService, revocations):
        service.logout(None)
        service.logout("")

        assert len(revocations) == 0
