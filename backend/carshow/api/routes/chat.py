"""Chat access endpoint.

The chat itself is served elsewhere; this route only decides whether the
current principal may enter it.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from carshow.api.policies import API_PREFIX
from carshow.core.config import Settings
from carshow.core.dependencies import current_principal, enforce_route_policy, get_app_settings
from carshow.schemas.auth import Principal

router = APIRouter(prefix="/chat", tags=["chat"], dependencies=[Depends(enforce_route_policy)])


@router.get("/access", response_model=None)
async def chat_access(
    principal: Principal = Depends(current_principal),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, object] | RedirectResponse:
    if not settings.chat_enabled or not principal.chat_enabled:
        return RedirectResponse(f"{API_PREFIX}/auth/dashboard", status_code=status.HTTP_303_SEE_OTHER)
    return {"allowed": True, "user_id": principal.id, "name": principal.name, "image_url": principal.image_url}
