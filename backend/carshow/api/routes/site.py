"""Public site appearance endpoints used by the login screen."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from carshow.core.dependencies import get_db
from carshow.models import BACKGROUND_SLOTS, SiteBackground
from carshow.schemas.site import BackgroundRead

router = APIRouter(prefix="/site", tags=["site"])


@router.get("/backgrounds", response_model=list[BackgroundRead])
async def list_backgrounds(session: AsyncSession = Depends(get_db)) -> list[BackgroundRead]:
    result = await session.execute(select(SiteBackground))
    stored = {background.slot: background for background in result.scalars().all()}
    return [
        BackgroundRead.model_validate(stored[slot]) if slot in stored else BackgroundRead(slot=slot)
        for slot in BACKGROUND_SLOTS
    ]
