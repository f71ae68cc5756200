"""Database model for registered show vehicles."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from carshow.db.base import Base
from carshow.models.user import User, _utcnow


class Vehicle(Base):
    """Vehicle entered in the show by its owner."""

    __tablename__ = "vehicles"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    year: Mapped[str | None] = mapped_column(String(4))
    make: Mapped[str] = mapped_column(String(64), nullable=False)
    model: Mapped[str] = mapped_column(String(64), nullable=False)
    vehicle_type_id: Mapped[int | None] = mapped_column(Integer)
    class_id: Mapped[int | None] = mapped_column(Integer)
    # Human-assigned ballot number; unique when set, NULLs are not compared.
    voter_id: Mapped[str | None] = mapped_column(String(32), unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    image_url: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    owner: Mapped[User] = relationship("User", back_populates="vehicles")
