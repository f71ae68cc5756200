"""Pydantic schemas for show vehicles."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class VehicleRead(BaseModel):
    id: int
    user_id: int
    year: str | None = None
    make: str
    model: str
    vehicle_type_id: int | None = None
    class_id: int | None = None
    voter_id: str | None = None
    is_active: bool
    description: str | None = None
    image_url: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RegistrarVehicleUpdate(BaseModel):
    voter_id: str | None = Field(default=None, max_length=32)
    is_active: bool | None = None
