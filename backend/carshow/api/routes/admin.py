"""Admin endpoints: user management, vehicle moderation and site backgrounds."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from carshow.api.routes.vehicles import dashboard_for
from carshow.core.authorization import AuthorizationGate
from carshow.core.dependencies import (
    current_principal,
    enforce_route_policy,
    get_asset_manager,
    get_db,
    get_hasher,
)
from carshow.core.security import PasswordHasher
from carshow.models import BACKGROUND_SLOTS, SiteBackground
from carshow.schemas.auth import Principal
from carshow.schemas.site import BackgroundRead, DashboardRead
from carshow.schemas.user import AdminUserCreate, AdminUserUpdate, DeleteResult, UserRead
from carshow.schemas.vehicle import VehicleRead
from carshow.services import users as user_service
from carshow.services import vehicles as vehicle_service
from carshow.services.assets import AssetManager
from carshow.services.images import BACKGROUND_IMAGE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(enforce_route_policy)])


@router.get("", response_model=DashboardRead)
async def admin_home(principal: Principal = Depends(current_principal)) -> DashboardRead:
    return dashboard_for(principal)


@router.get("/users", response_model=list[UserRead])
async def list_users(session: AsyncSession = Depends(get_db)) -> list[UserRead]:
    return [UserRead.model_validate(user) for user in await user_service.list_users(session)]


@router.post("/users", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: AdminUserCreate,
    session: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
) -> UserRead:
    user = await user_service.admin_create_user(session, hasher, payload)
    await session.commit()
    return UserRead.model_validate(user)


@router.put("/users/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    payload: AdminUserUpdate,
    session: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
) -> UserRead:
    user = await user_service.get_user(session, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    updated = await user_service.admin_update_user(session, hasher, user, payload)
    await session.commit()
    return UserRead.model_validate(updated)


@router.delete("/users/{user_id}", response_model=DeleteResult)
async def delete_user(
    user_id: int,
    session: AsyncSession = Depends(get_db),
    assets: AssetManager = Depends(get_asset_manager),
    principal: Principal = Depends(current_principal),
) -> DeleteResult:
    if AuthorizationGate.is_self(principal, user_id):
        logger.warning("Admin %s attempted to delete their own account; ignored", principal.username)
        return DeleteResult(deleted=False)
    user = await user_service.get_user(session, user_id)
    if user is None:
        return DeleteResult(deleted=False)
    await user_service.delete_user(session, assets, user)
    return DeleteResult(deleted=True)


@router.get("/vehicles", response_model=list[VehicleRead])
async def list_vehicles(session: AsyncSession = Depends(get_db)) -> list[VehicleRead]:
    return [VehicleRead.model_validate(vehicle) for vehicle in await vehicle_service.list_vehicles(session)]


@router.put("/vehicles/{vehicle_id}", response_model=VehicleRead)
async def update_vehicle(
    vehicle_id: int,
    make: str | None = Form(default=None, max_length=64),
    model: str | None = Form(default=None, max_length=64),
    year: str | None = Form(default=None),
    vehicle_type_id: int | None = Form(default=None),
    class_id: int | None = Form(default=None),
    voter_id: str | None = Form(default=None, max_length=32),
    is_active: bool | None = Form(default=None),
    description: str | None = Form(default=None),
    vehicle_photo: UploadFile | None = File(default=None),
    session: AsyncSession = Depends(get_db),
    assets: AssetManager = Depends(get_asset_manager),
) -> VehicleRead:
    vehicle = await vehicle_service.get_vehicle(session, vehicle_id)
    if vehicle is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehicle not found")
    updated = await vehicle_service.update_vehicle(
        session,
        assets,
        vehicle,
        make=make,
        model=model,
        year=year,
        vehicle_type_id=vehicle_type_id,
        class_id=class_id,
        description=description,
        voter_id=voter_id,
        set_voter_id=voter_id is not None,
        is_active=is_active,
        photo=vehicle_photo,
    )
    return VehicleRead.model_validate(updated)


@router.delete("/vehicles/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_vehicle(
    vehicle_id: int,
    session: AsyncSession = Depends(get_db),
    assets: AssetManager = Depends(get_asset_manager),
) -> None:
    vehicle = await vehicle_service.get_vehicle(session, vehicle_id)
    if vehicle is None:
        return
    await vehicle_service.delete_vehicle(session, assets, vehicle)


async def _background_slot(session: AsyncSession, slot: str) -> SiteBackground:
    if slot not in BACKGROUND_SLOTS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown background slot")
    background = await session.get(SiteBackground, slot)
    if background is None:
        background = SiteBackground(slot=slot, use_image=False)
        session.add(background)
    return background


@router.post("/backgrounds/{slot}", response_model=BackgroundRead)
async def upload_background(
    slot: str,
    background_image: UploadFile | None = File(default=None),
    session: AsyncSession = Depends(get_db),
    assets: AssetManager = Depends(get_asset_manager),
) -> BackgroundRead:
    background = await _background_slot(session, slot)
    background.use_image = True
    await assets.replace(session, background, background_image, BACKGROUND_IMAGE)
    return BackgroundRead.model_validate(background)


@router.delete("/backgrounds/{slot}", response_model=BackgroundRead)
async def remove_background(
    slot: str,
    session: AsyncSession = Depends(get_db),
    assets: AssetManager = Depends(get_asset_manager),
) -> BackgroundRead:
    background = await _background_slot(session, slot)
    background.use_image = False
    if background.image_url is None:
        await session.commit()
    else:
        await assets.delete(session, background)
    return BackgroundRead.model_validate(background)
