"""Service layer for show vehicle persistence."""
from __future__ import annotations

import logging
import re

from fastapi import UploadFile
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carshow.core.exceptions import ConflictError, StorageFailure, ValidationFailure
from carshow.models import User, Vehicle
from carshow.services.assets import AssetManager
from carshow.services.images import VEHICLE_PHOTO

logger = logging.getLogger(__name__)

_YEAR_PATTERN = re.compile(r"^\d{4}$")


def clean_year(year: str | None) -> str | None:
    if year is None or not year.strip():
        return None
    year = year.strip()
    if not _YEAR_PATTERN.match(year):
        raise ValidationFailure("Year must be a 4-digit number.")
    return year


def clean_voter_id(voter_id: str | None) -> str | None:
    if voter_id is None:
        return None
    voter_id = voter_id.strip()
    return voter_id or None


async def get_vehicle(session: AsyncSession, vehicle_id: int) -> Vehicle | None:
    return await session.get(Vehicle, vehicle_id)


async def list_vehicles_for_user(session: AsyncSession, user_id: int) -> list[Vehicle]:
    result = await session.execute(
        select(Vehicle).where(Vehicle.user_id == user_id).order_by(Vehicle.created_at, Vehicle.id)
    )
    return list(result.scalars().all())


async def list_vehicles(session: AsyncSession) -> list[Vehicle]:
    result = await session.execute(select(Vehicle).order_by(Vehicle.id))
    return list(result.scalars().all())


async def ensure_voter_id_available(session: AsyncSession, voter_id: str | None, vehicle_id: int | None) -> None:
    """Reject ``voter_id`` if any other vehicle already carries it.

    This is a read-then-write check; the unique index on ``vehicles.voter_id``
    catches the concurrent case at commit time.
    """

    if voter_id is None:
        return
    query = select(Vehicle.id).where(Vehicle.voter_id == voter_id)
    if vehicle_id is not None:
        query = query.where(Vehicle.id != vehicle_id)
    result = await session.execute(query.limit(1))
    if result.first() is not None:
        raise _voter_conflict(voter_id)


def _voter_conflict(voter_id: str) -> ConflictError:
    return ConflictError(
        f'Voter ID "{voter_id}" is already assigned to another vehicle. '
        "Each vehicle must have a unique Voter ID.",
        value=voter_id,
    )


async def _commit(
    session: AsyncSession,
    assets: AssetManager,
    vehicle: Vehicle,
    new_image_url: str | None,
) -> None:
    voter_id = vehicle.voter_id
    try:
        if new_image_url is not None:
            await assets.commit_replacement(session, vehicle, new_image_url)
        else:
            await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if voter_id is not None:
            raise _voter_conflict(voter_id) from exc
        raise StorageFailure() from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Error saving vehicle: %s", exc)
        raise StorageFailure() from exc


async def register_vehicle(
    session: AsyncSession,
    assets: AssetManager,
    owner_id: int,
    *,
    make: str,
    model: str,
    year: str | None = None,
    vehicle_type_id: int | None = None,
    class_id: int | None = None,
    description: str | None = None,
    photo: UploadFile | None = None,
) -> Vehicle:
    """Create a vehicle for ``owner_id``; it stays inactive until a registrar enables it."""

    vehicle = Vehicle(
        user_id=owner_id,
        year=clean_year(year),
        make=make.strip(),
        model=model.strip(),
        vehicle_type_id=vehicle_type_id,
        class_id=class_id,
        description=description or None,
        is_active=False,
    )
    new_url = await assets.stage(photo, VEHICLE_PHOTO) if _has_file(photo) else None
    session.add(vehicle)
    await _commit(session, assets, vehicle, new_url)
    logger.info("Registered vehicle %s for user %s", vehicle.id, owner_id)
    return vehicle


async def update_vehicle(
    session: AsyncSession,
    assets: AssetManager,
    vehicle: Vehicle,
    *,
    make: str | None = None,
    model: str | None = None,
    year: str | None = None,
    vehicle_type_id: int | None = None,
    class_id: int | None = None,
    description: str | None = None,
    voter_id: str | None = None,
    set_voter_id: bool = False,
    is_active: bool | None = None,
    photo: UploadFile | None = None,
) -> Vehicle:
    """Apply field changes and an optional photo replacement in one commit.

    Validation runs before the photo is processed, and the photo is
    processed before any field is touched, so a rejected request changes
    nothing.
    """

    cleaned_year = clean_year(year) if year is not None else None
    cleaned_voter_id = clean_voter_id(voter_id)
    if set_voter_id:
        await ensure_voter_id_available(session, cleaned_voter_id, vehicle.id)

    new_url = await assets.stage(photo, VEHICLE_PHOTO) if _has_file(photo) else None

    if make is not None:
        vehicle.make = make.strip()
    if model is not None:
        vehicle.model = model.strip()
    if year is not None:
        vehicle.year = cleaned_year
    if vehicle_type_id is not None:
        vehicle.vehicle_type_id = vehicle_type_id
    if class_id is not None:
        vehicle.class_id = class_id
    if description is not None:
        vehicle.description = description or None
    if set_voter_id:
        vehicle.voter_id = cleaned_voter_id
    activated = is_active is True and not vehicle.is_active
    if is_active is not None:
        vehicle.is_active = is_active
    if activated:
        # The owner of an active vehicle may join the chat.
        await session.execute(
            update(User).where(User.id == vehicle.user_id, User.chat_enabled.is_(False)).values(chat_enabled=True)
        )

    await _commit(session, assets, vehicle, new_url)
    return vehicle


async def delete_vehicle(session: AsyncSession, assets: AssetManager, vehicle: Vehicle) -> None:
    image_url = vehicle.image_url
    await session.delete(vehicle)
    await session.commit()
    assets.discard(image_url)
    logger.info("Deleted vehicle %s", vehicle.id)


def _has_file(upload: UploadFile | None) -> bool:
    return upload is not None and bool(upload.filename)
