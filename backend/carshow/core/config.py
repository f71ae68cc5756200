"""Application configuration and settings management."""
from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_SESSION_KEY = "change-this-to-a-random-secret-key"


class Settings(BaseSettings):
    """Global application settings loaded from environment variables or .env."""

    model_config = SettingsConfigDict(
        env_file=(Path(__file__).resolve().parent.parent / ".." / ".env"),
        env_file_encoding="utf-8",
        env_prefix="CARSHOW_",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = "Car Show Manager"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./carshow.db"

    # Sessions: the first key signs, every key verifies
    session_keys: Annotated[List[str], NoDecode] = [DEFAULT_SESSION_KEY]
    session_cookie_name: str = "carshow_session"
    session_max_age_seconds: int = 24 * 60 * 60
    session_cookie_secure: bool = True
    session_cookie_samesite: str = "strict"
    revalidate_sessions: bool = True
    login_path: str = "/login"

    # Passwords
    password_hash_rounds: int = 10

    # Uploads
    upload_root: Path = Path("./images")
    upload_url_prefix: str = "/images"
    max_upload_bytes: int = 5 * 1024 * 1024
    allowed_image_types: Annotated[List[str], NoDecode] = ["image/jpeg", "image/png", "image/gif", "image/webp"]
    jpeg_quality: int = 85

    # Features
    chat_enabled: bool = True

    # Admin recovery
    recovery_token_file: Path = Path("./admin_recovery_token.txt")
    public_base_url: str = "https://localhost:3001"

    allowed_origins: Annotated[List[str], NoDecode] = [
        "http://localhost:3001",
        "https://localhost:3001",
    ]

    @field_validator("allowed_origins", "session_keys", "allowed_image_types", mode="before")
    @classmethod
    def _split_list(cls, value: List[str] | str) -> List[str]:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("session_keys")
    @classmethod
    def _require_session_key(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("At least one session key is required")
        return value

    @property
    def uses_default_session_key(self) -> bool:
        return DEFAULT_SESSION_KEY in self.session_keys


@lru_cache
def get_settings() -> Settings:
    """Return memoized settings instance."""

    return Settings()
