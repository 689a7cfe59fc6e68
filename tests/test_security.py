"""
Unit tests for security utilities.
"""
import uuid
import pytest
from datetime import datetime, timedelta, timezone

from jose import jwt

from cashflow_api.core.security import (
    InvalidToken,
    PasswordHasher,
    TokenClaims,
    TokenFailure,
    TokenService,
    hash_token,
)

SECRET = "unit-test-secret-key-with-more-than-32-chars"


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(secret=SECRET, algorithm="HS256", expires_seconds=3600)


class TestPasswordHashing:
    """Tests for password hashing."""

    def test_hash_password(self, hasher):
        """Test that password hashing produces a hash."""
        password = "mysecretpassword"
        hashed = hasher.hash(password)

        assert hashed != password
        assert hashed.startswith("$2b$04$")

    def test_hash_password_different_each_time(self, hasher):
        """Test that hashing same password produces different hashes."""
        password = "mysecretpassword"

        assert hasher.hash(password) != hasher.hash(password)  # Different salts

    def test_verify_password_correct(self, hasher):
        password = "mysecretpassword"
        hashed = hasher.hash(password)

        assert hasher.verify(password, hashed) is True

    def test_verify_password_incorrect(self, hasher):
        hashed = hasher.hash("mysecretpassword")

        assert hasher.verify("wrongpassword", hashed) is False

    @pytest.mark.parametrize("bad_hash", ["", "not-a-bcrypt-hash", "$2b$04$short"])
    def test_verify_malformed_hash_returns_false(self, hasher, bad_hash):
        assert hasher.verify("whatever", bad_hash) is False

    def test_verify_non_ascii_password(self, hasher):
        password = "pässwörd-ключ"
        hashed = hasher.hash(password)

        assert hasher.verify(password, hashed) is True
        assert hasher.verify("passwort-ключ", hashed) is False

    def test_72_byte_password_is_accepted(self, hasher):
        password = "x" * 72
        hashed = hasher.hash(password)

        assert hasher.verify(password, hashed) is True

    def test_password_over_72_bytes_is_refused(self, hasher):
        with pytest.raises(ValueError):
            hasher.hash("x" * 73)
        # Multi-byte characters count by their encoded size
        with pytest.raises(ValueError):
            hasher.hash("\u00e9" * 37)

    def test_shared_72_byte_prefix_does_not_match(self, hasher):
        hashed = hasher.hash("x" * 72)

        assert hasher.verify("x" * 72 + "y", hashed) is False

    def test_dummy_verify_is_always_false(self, hasher):
        assert hasher.verify_dummy("anything") is False

    @pytest.mark.parametrize("rounds", [0, -1, 3, 32])
    def test_invalid_rounds_rejected(self, rounds):
        with pytest.raises(ValueError):
            PasswordHasher(rounds=rounds)


class TestTokenService:
    """Tests for JWT issuance and verification."""

    def test_issue_then_verify(self, tokens):
        user_id = uuid.uuid4()
        token = tokens.issue("alice", user_id)

        claims = tokens.verify(token)

        assert isinstance(claims, TokenClaims)
        assert claims.username == "alice"
        assert claims.user_id == user_id
        assert claims.expires_at > datetime.now(timezone.utc)

    def test_token_carries_expected_claims(self, tokens):
        user_id = uuid.uuid4()
        token = tokens.issue("alice", user_id)

        payload = jwt.get_unverified_claims(token)

        assert payload["username"] == "alice"
        assert payload["userId"] == str(user_id)
        assert payload["type"] == "access"
        assert payload["exp"] - payload["iat"] == 3600

    def test_custom_expiry(self, tokens):
        token = tokens.issue("alice", uuid.uuid4(), expires_delta=timedelta(minutes=5))
        payload = jwt.get_unverified_claims(token)

        assert payload["exp"] - payload["iat"] == 300

    def test_issue_without_secret_returns_none(self):
        assert TokenService(secret="").issue("alice", uuid.uuid4()) is None
        assert TokenService(secret=None).issue("alice", uuid.uuid4()) is None

    def test_issue_without_identity_returns_none(self, tokens):
        assert tokens.issue("", uuid.uuid4()) is None
        assert tokens.issue("alice", "") is None

    def test_verify_without_secret_returns_none(self, tokens):
        token = tokens.issue("alice", uuid.uuid4())

        assert TokenService(secret="").verify(token) is None
        assert TokenService(secret="").check(token) == InvalidToken(TokenFailure.MISSING_SECRET)

    def test_verify_rejects_other_secret(self, tokens):
        other = TokenService(secret="another-secret-key-that-is-also-long-enough")
        token = other.issue("alice", uuid.uuid4())

        assert tokens.verify(token) is None
        assert tokens.check(token) == InvalidToken(TokenFailure.INVALID)

    def test_verify_rejects_expired_token(self, tokens):
        token = tokens.issue("alice", uuid.uuid4(), expires_delta=timedelta(seconds=-10))

        assert tokens.verify(token) is None
        assert tokens.check(token) == InvalidToken(TokenFailure.EXPIRED)

    @pytest.mark.parametrize("garbage", ["invalid.token.here", "garbage", "", "a.b"])
    def test_verify_rejects_corrupted_token(self, tokens, garbage):
        assert tokens.verify(garbage) is None

    def test_verify_rejects_tampered_payload(self, tokens):
        token = tokens.issue("alice", uuid.uuid4())
        header, payload, signature = token.split(".")
        forged = tokens.issue("mallory", uuid.uuid4()).split(".")[1]

        assert tokens.verify(f"{header}.{forged}.{signature}") is None

    def test_verify_rejects_other_algorithm(self, tokens):
        """A token signed with an algorithm other than the pinned one is refused."""
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "x",
                "userId": str(uuid.uuid4()),
                "username": "alice",
                "type": "access",
                "iat": now,
                "exp": now + timedelta(hours=1),
            },
            SECRET,
            algorithm="HS512",
        )

        assert tokens.verify(token) is None

    def test_verify_rejects_non_access_token(self, tokens):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"userId": str(uuid.uuid4()), "username": "alice", "type": "refresh", "exp": now + timedelta(hours=1)},
            SECRET,
            algorithm="HS256",
        )

        assert tokens.check(token) == InvalidToken(TokenFailure.BAD_CLAIMS)

    def test_verify_rejects_missing_claims(self, tokens):
        now = datetime.now(timezone.utc)
        token = jwt.encode({"type": "access", "exp": now + timedelta(hours=1)}, SECRET, algorithm="HS256")

        assert tokens.check(token) == InvalidToken(TokenFailure.BAD_CLAIMS)

    def test_expiry_of_reads_unverified_exp(self, tokens):
        token = tokens.issue("alice", uuid.uuid4())

        expiry = tokens.expiry_of(token)

        assert expiry is not None
        assert expiry > datetime.now(timezone.utc)
        assert tokens.expiry_of("garbage") is None

    @pytest.mark.parametrize("exp", [1e20, -1e20, "soon", True])
    def test_expiry_of_out_of_range_exp_is_none(self, tokens, exp):
        token = jwt.encode({"exp": exp}, "any-key-will-do", algorithm="HS256")

        assert tokens.expiry_of(token) is None


def test_hash_token_is_stable_sha256():
    assert hash_token("abc") == hash_token("abc")
    assert len(hash_token("abc")) == 64
    assert hash_token("abc") != hash_token("abd")
