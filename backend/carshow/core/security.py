"""Security helpers for password hashing and session signing."""
from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Any, Sequence

from itsdangerous import BadData, URLSafeTimedSerializer
from passlib.context import CryptContext

from .config import Settings, get_settings
from .exceptions import ValidationFailure

logger = logging.getLogger(__name__)

# Fields of the principal snapshot a patch may never touch.
IDENTITY_FIELDS = frozenset({"uid", "sub", "role", "exp"})

# bcrypt only reads this many bytes of the password.
BCRYPT_MAX_BYTES = 72


def _too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > BCRYPT_MAX_BYTES


class PasswordHasher:
    """Hash and verify user passwords using bcrypt."""

    def __init__(self, rounds: int | None = None) -> None:
        if rounds is None:
            rounds = get_settings().password_hash_rounds
        self.rounds = rounds
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        if _too_long(password):
            raise ValidationFailure(f"Password must be at most {BCRYPT_MAX_BYTES} bytes long.")
        return self._context.hash(password)

    def verify(self, password: str, hashed: str | None) -> bool:
        if not password or not hashed or _too_long(password):
            return False
        try:
            return self._context.verify(password, hashed)
        except (ValueError, TypeError):
            # Unknown or corrupt hash format fails closed.
            logger.warning("Stored password hash could not be parsed")
            return False

    def dummy_verify(self, password: str) -> bool:
        """Burn one verification so unknown users cost the same as known ones."""

        self.verify(password, _dummy_hash(self.rounds))
        return False


@lru_cache
def _dummy_hash(rounds: int) -> str:
    return CryptContext(schemes=["bcrypt"], bcrypt__rounds=rounds).hash("carshow-dummy-password")


@lru_cache
def get_password_hasher() -> PasswordHasher:
    """Return the process-wide hasher built from settings."""

    return PasswordHasher()


class SessionManager:
    """Issue, resolve and patch signed client-held session tokens.

    ``keys`` is ordered newest first. Tokens are always signed with the first
    key and accepted if any key in the list verifies them, so a rotation can
    prepend a new key while sessions signed with the old one stay valid.

    Expiry is absolute: the ``exp`` claim is set once at issuance and carried
    unchanged through every patch.
    """

    def __init__(
        self,
        keys: Sequence[str],
        max_age_seconds: int = 24 * 60 * 60,
        salt: str = "carshow-session",
    ) -> None:
        if not keys:
            raise ValueError("At least one session key is required")
        self.max_age_seconds = max_age_seconds
        # itsdangerous signs with the last key in the list.
        self._serializer = URLSafeTimedSerializer(list(reversed(list(keys))), salt=salt)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionManager":
        return cls(settings.session_keys, max_age_seconds=settings.session_max_age_seconds)

    def issue(self, principal: dict[str, Any], now: float | None = None) -> str:
        issued_at = time.time() if now is None else now
        payload = dict(principal)
        payload["exp"] = int(issued_at + self.max_age_seconds)
        return self._serializer.dumps(payload)

    def resolve(self, token: str | None, now: float | None = None) -> dict[str, Any] | None:
        if not token:
            return None
        try:
            payload = self._serializer.loads(token, max_age=self.max_age_seconds)
        except BadData:
            return None
        if not isinstance(payload, dict):
            return None

        expires = payload.get("exp")
        current = time.time() if now is None else now
        if not isinstance(expires, int) or expires <= current:
            return None
        if payload.get("uid") is None or not payload.get("sub"):
            return None
        return payload

    def patch(self, token: str, **fields: Any) -> str | None:
        """Re-sign ``token`` with updated display fields, keeping identity and expiry."""

        payload = self.resolve(token)
        if payload is None:
            return None
        payload.update({key: value for key, value in fields.items() if key not in IDENTITY_FIELDS})
        return self._serializer.dumps(payload)
