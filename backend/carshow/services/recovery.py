"""One-time admin recovery tokens.

A token is generated when the first admin is created. Only its SHA-256 digest
is written to disk; the plain token is shown once, inside the recovery URL.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from pathlib import Path
from urllib.parse import urlencode

logger = logging.getLogger(__name__)


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class RecoveryTokenStore:
    """Persist and check the admin recovery token digest."""

    def __init__(self, path: Path, base_url: str) -> None:
        self.path = Path(path)
        self.base_url = base_url.rstrip("/")

    def issue(self) -> str:
        """Create a new token, replacing any previous one, and return the recovery URL."""

        token = secrets.token_hex(32)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(_digest(token), encoding="utf-8")
        logger.info("Issued admin recovery token (digest stored at %s)", self.path)
        return f"{self.base_url}/admin/recover?{urlencode({'token': token})}"

    def verify(self, token: str | None) -> bool:
        if not token:
            return False
        try:
            saved = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.error("Could not read recovery token file %s: %s", self.path, exc)
            return False
        return hmac.compare_digest(saved, _digest(token))
