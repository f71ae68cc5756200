"""Authentication-related schemas."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from carshow.core.authorization import Role
from carshow.schemas.user import Password, UserRead


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=128)


class RegisterRequest(BaseModel):
    """Self-registration form. Any ``role`` sent by the client is ignored."""

    username: str = Field(..., min_length=3, max_length=64)
    name: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., min_length=3, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    password: Password
    confirm_password: str = Field(..., min_length=8, max_length=128)


class SetupRequest(RegisterRequest):
    pass


class RecoverRequest(RegisterRequest):
    token: str = Field(..., min_length=1, max_length=256)


class AuthStatus(BaseModel):
    has_users: bool


class LoginResponse(BaseModel):
    user: UserRead
    redirect: str


class SetupResponse(BaseModel):
    user: UserRead
    recovery_url: str


class Principal(BaseModel):
    """Authenticated identity attached to a request.

    Built from the signed session claims (and optionally refreshed from the
    database); never carries the password hash.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    username: str
    name: str
    email: str
    phone: str | None = None
    role: str
    is_active: bool = True
    chat_enabled: bool = False
    image_url: str | None = None

    @property
    def role_enum(self) -> Role | None:
        return Role.parse(self.role)

    @property
    def initials(self) -> str:
        return "".join(part[0] for part in self.name.split() if part).upper()[:2]

    def to_claims(self) -> dict[str, Any]:
        return {
            "uid": self.id,
            "sub": self.username,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "chat_enabled": self.chat_enabled,
            "image_url": self.image_url,
        }

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> Principal:
        return cls(
            id=claims["uid"],
            username=claims["sub"],
            name=claims.get("name") or claims["sub"],
            email=claims.get("email") or "",
            phone=claims.get("phone"),
            role=str(claims.get("role", "")),
            chat_enabled=bool(claims.get("chat_enabled", False)),
            image_url=claims.get("image_url"),
        )
