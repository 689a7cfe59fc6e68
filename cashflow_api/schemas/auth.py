"""
Auth-related Pydantic schemas for request/response validation.
"""
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cashflow_api.core.security import BCRYPT_MAX_PASSWORD_BYTES


class UserRegister(BaseModel):
    """Schema for user registration request."""
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6, max_length=72)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(f"must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
        return v


class UserLogin(BaseModel):
    """Schema for user login request."""
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1)


class UserResponse(BaseModel):
    """Schema for user response (without password)."""
    id: UUID
    username: str

    model_config = ConfigDict(from_attributes=True)


class AuthPayload(BaseModel):
    """User plus the issued bearer token."""
    user: UserResponse
    token: str
    token_type: str = "bearer"


class IdentityResponse(BaseModel):
    userId: UUID
    username: str
