"""Database model for site-wide background images."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from carshow.db.base import Base
from carshow.models.user import _utcnow

BACKGROUND_SLOTS = ("login", "app")


class SiteBackground(Base):
    """Background image for one screen slot (login page or app shell)."""

    __tablename__ = "site_backgrounds"

    slot: Mapped[str] = mapped_column(String(16), primary_key=True)
    image_url: Mapped[str | None] = mapped_column(String(255))
    use_image: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
