"""Self-service profile endpoints shared by every role."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from carshow.core.config import Settings
from carshow.core.dependencies import (
    current_principal,
    enforce_route_policy,
    get_app_settings,
    get_asset_manager,
    get_db,
    get_hasher,
    get_session_manager,
    refresh_session,
)
from carshow.core.security import PasswordHasher, SessionManager
from carshow.models import User
from carshow.schemas.auth import Principal
from carshow.schemas.site import AssetRead
from carshow.schemas.user import EmailUpdate, PasswordChange, UserRead
from carshow.services import users as user_service
from carshow.services.assets import AssetManager
from carshow.services.images import PROFILE_PHOTO

router = APIRouter(prefix="/profile", tags=["profile"], dependencies=[Depends(enforce_route_policy)])


async def _load_self(session: AsyncSession, principal: Principal) -> User:
    user = await user_service.get_user(session, principal.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("", response_model=UserRead)
async def get_profile(
    session: AsyncSession = Depends(get_db),
    principal: Principal = Depends(current_principal),
) -> UserRead:
    return UserRead.model_validate(await _load_self(session, principal))


@router.post("/photo", response_model=AssetRead)
async def upload_photo(
    request: Request,
    response: Response,
    photo: UploadFile | None = File(default=None),
    session: AsyncSession = Depends(get_db),
    assets: AssetManager = Depends(get_asset_manager),
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_session_manager),
    principal: Principal = Depends(current_principal),
) -> AssetRead:
    user = await _load_self(session, principal)
    image_url = await assets.replace(session, user, photo, PROFILE_PHOTO)
    refresh_session(request, response, settings, sessions, image_url=image_url)
    return AssetRead(image_url=image_url)


@router.delete("/photo", response_model=AssetRead)
async def remove_photo(
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_db),
    assets: AssetManager = Depends(get_asset_manager),
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_session_manager),
    principal: Principal = Depends(current_principal),
) -> AssetRead:
    user = await _load_self(session, principal)
    await assets.delete(session, user)
    refresh_session(request, response, settings, sessions, image_url=None)
    return AssetRead(image_url=None)


@router.put("/email", response_model=UserRead)
async def change_email(
    payload: EmailUpdate,
    request: Request,
    response: Response,
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_session_manager),
    principal: Principal = Depends(current_principal),
) -> UserRead:
    user = await _load_self(session, principal)
    updated = await user_service.update_email(session, user, payload.email)
    await session.commit()
    refresh_session(request, response, settings, sessions, email=updated.email)
    return UserRead.model_validate(updated)


@router.put("/password", response_model=UserRead)
async def change_password(
    payload: PasswordChange,
    session: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
    principal: Principal = Depends(current_principal),
) -> UserRead:
    user = await _load_self(session, principal)
    updated = await user_service.change_password(
        session,
        hasher,
        user,
        payload.current_password,
        payload.new_password,
        payload.confirm_password,
    )
    await session.commit()
    return UserRead.model_validate(updated)
