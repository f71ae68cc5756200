"""Schemas for uploaded media and site appearance."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class AssetRead(BaseModel):
    image_url: str | None = None


class BackgroundRead(BaseModel):
    slot: str
    image_url: str | None = None
    use_image: bool = False

    model_config = ConfigDict(from_attributes=True)


class DashboardRead(BaseModel):
    """View model shared by the role landing pages."""

    role: str
    name: str
    initials: str
    image_url: str | None = None
    home: str
    chat_enabled: bool
