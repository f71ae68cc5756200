"""Vehicle owner endpoints: register, edit and remove one's own vehicles."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from carshow.core.authorization import AuthorizationGate, home_for
from carshow.core.dependencies import current_principal, enforce_route_policy, get_asset_manager, get_db
from carshow.models import Vehicle
from carshow.schemas.auth import Principal
from carshow.schemas.site import DashboardRead
from carshow.schemas.vehicle import VehicleRead
from carshow.services import vehicles as vehicle_service
from carshow.services.assets import AssetManager

router = APIRouter(prefix="/user", tags=["vehicles"], dependencies=[Depends(enforce_route_policy)])


def dashboard_for(principal: Principal) -> DashboardRead:
    return DashboardRead(
        role=principal.role,
        name=principal.name,
        initials=principal.initials,
        image_url=principal.image_url,
        home=home_for(principal.role),
        chat_enabled=principal.chat_enabled,
    )


async def _load_owned(session: AsyncSession, vehicle_id: int, principal: Principal) -> Vehicle:
    vehicle = await vehicle_service.get_vehicle(session, vehicle_id)
    if vehicle is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehicle not found")
    # Owners only on this surface; admins manage vehicles through /admin.
    AuthorizationGate.ensure_owner(principal, vehicle.user_id, admin_override=False)
    return vehicle


@router.get("", response_model=DashboardRead)
async def user_home(principal: Principal = Depends(current_principal)) -> DashboardRead:
    return dashboard_for(principal)


@router.get("/vehicles", response_model=list[VehicleRead])
async def list_my_vehicles(
    session: AsyncSession = Depends(get_db),
    principal: Principal = Depends(current_principal),
) -> list[VehicleRead]:
    vehicles = await vehicle_service.list_vehicles_for_user(session, principal.id)
    return [VehicleRead.model_validate(vehicle) for vehicle in vehicles]


@router.post("/vehicles", response_model=VehicleRead, status_code=status.HTTP_201_CREATED)
async def register_vehicle(
    make: str = Form(..., min_length=1, max_length=64),
    model: str = Form(..., min_length=1, max_length=64),
    year: str | None = Form(default=None),
    vehicle_type_id: int | None = Form(default=None),
    class_id: int | None = Form(default=None),
    description: str | None = Form(default=None),
    vehicle_photo: UploadFile | None = File(default=None),
    session: AsyncSession = Depends(get_db),
    assets: AssetManager = Depends(get_asset_manager),
    principal: Principal = Depends(current_principal),
) -> VehicleRead:
    vehicle = await vehicle_service.register_vehicle(
        session,
        assets,
        principal.id,
        make=make,
        model=model,
        year=year,
        vehicle_type_id=vehicle_type_id,
        class_id=class_id,
        description=description,
        photo=vehicle_photo,
    )
    return VehicleRead.model_validate(vehicle)


@router.put("/vehicles/{vehicle_id}", response_model=VehicleRead)
async def edit_vehicle(
    vehicle_id: int,
    make: str | None = Form(default=None, max_length=64),
    model: str | None = Form(default=None, max_length=64),
    year: str | None = Form(default=None),
    vehicle_type_id: int | None = Form(default=None),
    class_id: int | None = Form(default=None),
    description: str | None = Form(default=None),
    vehicle_photo: UploadFile | None = File(default=None),
    session: AsyncSession = Depends(get_db),
    assets: AssetManager = Depends(get_asset_manager),
    principal: Principal = Depends(current_principal),
) -> VehicleRead:
    vehicle = await _load_owned(session, vehicle_id, principal)
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
        photo=vehicle_photo,
    )
    return VehicleRead.model_validate(updated)


@router.delete("/vehicles/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
async def delete_vehicle(
    vehicle_id: int,
    session: AsyncSession = Depends(get_db),
    assets: AssetManager = Depends(get_asset_manager),
    principal: Principal = Depends(current_principal),
) -> None:
    vehicle = await _load_owned(session, vehicle_id, principal)
    await vehicle_service.delete_vehicle(session, assets, vehicle)
