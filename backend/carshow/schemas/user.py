"""Pydantic schemas for user operations."""
from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from carshow.core.authorization import Role
from carshow.core.security import BCRYPT_MAX_BYTES


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes long")
    return value


# bcrypt ignores everything past its byte limit, so longer passwords are refused.
Password = Annotated[str, Field(min_length=8, max_length=128), AfterValidator(_check_password_bytes)]


class UserBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    name: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., min_length=3, max_length=255)
    phone: str | None = Field(default=None, max_length=32)


class UserRead(UserBase):
    id: int
    role: str
    is_active: bool
    chat_enabled: bool
    image_url: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminUserCreate(UserBase):
    role: Role = Role.USER
    password: Password
    confirm_password: str = Field(..., min_length=8, max_length=128)


class AdminUserUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=3, max_length=64)
    name: str | None = Field(default=None, min_length=1, max_length=128)
    email: str | None = Field(default=None, min_length=3, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    role: Role | None = None
    is_active: bool | None = None
    password: Password | None = None
    confirm_password: str | None = Field(default=None, max_length=128)


class EmailUpdate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: Password
    confirm_password: str = Field(..., min_length=8, max_length=128)


class PasswordReset(BaseModel):
    password: Password
    confirm_password: str = Field(..., min_length=8, max_length=128)


class DeleteResult(BaseModel):
    deleted: bool
