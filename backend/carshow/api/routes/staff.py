"""Judge, registrar and vendor endpoints plus the shared staff directory."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from carshow.api.routes.vehicles import dashboard_for
from carshow.core.authorization import Role
from carshow.core.dependencies import (
    current_principal,
    enforce_route_policy,
    get_asset_manager,
    get_db,
    get_hasher,
)
from carshow.core.security import PasswordHasher
from carshow.schemas.auth import Principal
from carshow.schemas.site import DashboardRead
from carshow.schemas.user import PasswordReset, UserRead
from carshow.schemas.vehicle import RegistrarVehicleUpdate, VehicleRead
from carshow.services import users as user_service
from carshow.services import vehicles as vehicle_service
from carshow.services.assets import AssetManager

# Roles whose passwords each staff role may not reset.
JUDGE_PROTECTED = {Role.ADMIN}
REGISTRAR_PROTECTED = {Role.ADMIN, Role.REGISTRAR}

judge_router = APIRouter(prefix="/judge", tags=["judge"], dependencies=[Depends(enforce_route_policy)])
registrar_router = APIRouter(prefix="/registrar", tags=["registrar"], dependencies=[Depends(enforce_route_policy)])
vendor_router = APIRouter(prefix="/vendor", tags=["vendor"], dependencies=[Depends(enforce_route_policy)])
staff_router = APIRouter(prefix="/staff", tags=["staff"], dependencies=[Depends(enforce_route_policy)])


async def _reset_password(
    session: AsyncSession,
    hasher: PasswordHasher,
    user_id: int,
    payload: PasswordReset,
    protected: set[Role],
) -> UserRead:
    target = await user_service.get_resettable_user(session, user_id, protected)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    updated = await user_service.reset_password(session, hasher, target, payload.password, payload.confirm_password)
    await session.commit()
    return UserRead.model_validate(updated)


@staff_router.get("/users", response_model=list[UserRead])
async def staff_user_directory(session: AsyncSession = Depends(get_db)) -> list[UserRead]:
    return [UserRead.model_validate(user) for user in await user_service.list_users(session)]


@judge_router.get("", response_model=DashboardRead)
async def judge_home(principal: Principal = Depends(current_principal)) -> DashboardRead:
    return dashboard_for(principal)


@judge_router.post("/users/{user_id}/reset-password", response_model=UserRead)
async def judge_reset_password(
    user_id: int,
    payload: PasswordReset,
    session: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
) -> UserRead:
    return await _reset_password(session, hasher, user_id, payload, JUDGE_PROTECTED)


@registrar_router.get("", response_model=DashboardRead)
async def registrar_home(principal: Principal = Depends(current_principal)) -> DashboardRead:
    return dashboard_for(principal)


@registrar_router.post("/users/{user_id}/reset-password", response_model=UserRead)
async def registrar_reset_password(
    user_id: int,
    payload: PasswordReset,
    session: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
) -> UserRead:
    return await _reset_password(session, hasher, user_id, payload, REGISTRAR_PROTECTED)


@registrar_router.get("/vehicles", response_model=list[VehicleRead])
async def registrar_vehicles(session: AsyncSession = Depends(get_db)) -> list[VehicleRead]:
    return [VehicleRead.model_validate(vehicle) for vehicle in await vehicle_service.list_vehicles(session)]


@registrar_router.put("/vehicles/{vehicle_id}", response_model=VehicleRead)
async def registrar_update_vehicle(
    vehicle_id: int,
    payload: RegistrarVehicleUpdate,
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
        voter_id=payload.voter_id,
        set_voter_id="voter_id" in payload.model_fields_set,
        is_active=payload.is_active,
    )
    return VehicleRead.model_validate(updated)


@vendor_router.get("", response_model=DashboardRead)
async def vendor_home(principal: Principal = Depends(current_principal)) -> DashboardRead:
    return dashboard_for(principal)
