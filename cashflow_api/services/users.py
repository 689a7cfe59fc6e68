"""
Credential store adapter: user lookups and inserts backed by the ``users`` table.

Lookups return ``None`` for "not found"; exceptions are reserved for real faults
(and ``DuplicateUsernameError`` on the unique-username constraint).
"""
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cashflow_api.models.user import User


class DuplicateUsernameError(Exception):
    """The username is already taken."""

    def __init__(self, username: str):
        super().__init__(f"Username already exists: {username}")
        self.username = username


@dataclass(frozen=True)
class UserAccount:
    id: uuid.UUID
    username: str


@dataclass(frozen=True)
class UserCredentials:
    id: uuid.UUID
    username: str
    password_hash: str

    def to_account(self) -> UserAccount:
        return UserAccount(id=self.id, username=self.username)


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_by_username(self, username: str) -> Optional[UserCredentials]:
        user = self.db.query(User).filter(User.username == username).first()
        if user is None:
            return None
        return UserCredentials(id=user.id, username=user.username, password_hash=user.password_hash)

    def find_by_id(self, user_id: uuid.UUID) -> Optional[UserAccount]:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            return None
        return UserAccount(id=user.id, username=user.username)

    def insert(self, username: str, password_hash: str) -> UserAccount:
        """Create a user. Raises ``DuplicateUsernameError`` if the name is taken."""
        new_user = User(username=username, password_hash=password_hash)
        self.db.add(new_user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateUsernameError(username) from exc
        self.db.refresh(new_user)
        return UserAccount(id=new_user.id, username=new_user.username)
