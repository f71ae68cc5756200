"""User service functions for CRUD and authentication."""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carshow.core.authorization import PRIVILEGED, Role
from carshow.core.exceptions import ConflictError, ValidationFailure
from carshow.core.security import PasswordHasher
from carshow.models import User, Vehicle
from carshow.schemas.auth import RegisterRequest
from carshow.schemas.user import AdminUserCreate, AdminUserUpdate
from carshow.services.assets import AssetManager

logger = logging.getLogger(__name__)


def _normalize_username(username: str) -> str:
    return username.strip().lower()


def _require_match(password: str, confirm_password: str | None, message: str = "Passwords do not match!") -> None:
    if password != confirm_password:
        raise ValidationFailure(message)


async def get_user(session: AsyncSession, user_id: int) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    result = await session.execute(select(User).where(User.username == _normalize_username(username)))
    return result.scalar_one_or_none()


async def list_users(session: AsyncSession) -> list[User]:
    result = await session.execute(select(User).order_by(User.name))
    return list(result.scalars().all())


async def users_exist(session: AsyncSession) -> bool:
    result = await session.execute(select(User.id).limit(1))
    return result.first() is not None


async def count_users(session: AsyncSession) -> int:
    result = await session.execute(select(func.count(User.id)))
    return int(result.scalar_one())


async def _ensure_username_free(session: AsyncSession, username: str, exclude_id: int | None = None) -> None:
    existing = await get_user_by_username(session, username)
    if existing and existing.id != exclude_id:
        raise ConflictError("Username already taken", value=username)


async def create_user(
    session: AsyncSession,
    hasher: PasswordHasher,
    *,
    username: str,
    name: str,
    email: str,
    password: str,
    role: Role,
    phone: str | None = None,
) -> User:
    normalized = _normalize_username(username)
    await _ensure_username_free(session, normalized)
    user = User(
        username=normalized,
        name=name.strip(),
        email=email.strip(),
        phone=phone or None,
        password_hash=hasher.hash(password),
        role=role.value,
        is_active=True,
        chat_enabled=PRIVILEGED.allows(role),
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError("Username already taken", value=normalized) from exc
    logger.info("Created %s account %s", role.value, normalized)
    return user


async def register_user(session: AsyncSession, hasher: PasswordHasher, payload: RegisterRequest) -> User:
    """Self-registration: the role is always ``user``."""

    _require_match(payload.password, payload.confirm_password)
    return await create_user(
        session,
        hasher,
        username=payload.username,
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        password=payload.password,
        role=Role.USER,
    )


async def admin_create_user(session: AsyncSession, hasher: PasswordHasher, payload: AdminUserCreate) -> User:
    _require_match(payload.password, payload.confirm_password)
    return await create_user(
        session,
        hasher,
        username=payload.username,
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        password=payload.password,
        role=payload.role,
    )


async def authenticate_user(
    session: AsyncSession, hasher: PasswordHasher, username: str, password: str
) -> User | None:
    """Return the active user matching the credentials, else ``None``.

    Unknown and inactive users still pay for one hash verification so the
    response time does not reveal which usernames exist.
    """

    user = await get_user_by_username(session, username)
    if user is None or not user.is_active:
        hasher.dummy_verify(password)
        return None
    if not hasher.verify(password, user.password_hash):
        return None
    return user


async def change_password(
    session: AsyncSession,
    hasher: PasswordHasher,
    user: User,
    current_password: str,
    new_password: str,
    confirm_password: str,
) -> User:
    if not hasher.verify(current_password, user.password_hash):
        raise ValidationFailure("Current password is incorrect.")
    _require_match(new_password, confirm_password, "New passwords do not match.")
    user.password_hash = hasher.hash(new_password)
    await session.flush()
    return user


async def update_email(session: AsyncSession, user: User, email: str) -> User:
    email = email.strip()
    if "@" not in email:
        raise ValidationFailure("Please enter a valid email address.")
    user.email = email
    await session.flush()
    return user


async def reset_password(
    session: AsyncSession,
    hasher: PasswordHasher,
    target: User,
    password: str,
    confirm_password: str,
) -> User:
    _require_match(password, confirm_password)
    target.password_hash = hasher.hash(password)
    await session.flush()
    logger.info("Password reset for %s", target.username)
    return target


async def get_resettable_user(session: AsyncSession, user_id: int, protected_roles: set[Role]) -> User | None:
    """Return the target of a staff password reset unless its role is protected."""

    user = await get_user(session, user_id)
    if user is None or Role.parse(user.role) in protected_roles:
        return None
    return user


async def admin_update_user(
    session: AsyncSession, hasher: PasswordHasher, user: User, payload: AdminUserUpdate
) -> User:
    if payload.password:
        _require_match(payload.password, payload.confirm_password)
    if payload.username is not None:
        normalized = _normalize_username(payload.username)
        await _ensure_username_free(session, normalized, exclude_id=user.id)
        user.username = normalized
    if payload.name is not None:
        user.name = payload.name.strip()
    if payload.email is not None:
        user.email = payload.email.strip()
    if "phone" in payload.model_fields_set:
        user.phone = payload.phone or None
    if payload.is_active is not None:
        user.is_active = payload.is_active
    if payload.role is not None:
        user.role = payload.role.value
        # Granting a privileged role turns chat on; it is never turned off here.
        if PRIVILEGED.allows(payload.role):
            user.chat_enabled = True
    if payload.password:
        user.password_hash = hasher.hash(payload.password)
    await session.flush()
    return user


async def delete_user(session: AsyncSession, assets: AssetManager, user: User) -> None:
    """Delete ``user`` with their vehicles, then remove every file they referenced."""

    result = await session.execute(select(Vehicle).where(Vehicle.user_id == user.id))
    vehicles = list(result.scalars().all())
    urls = [user.image_url] + [vehicle.image_url for vehicle in vehicles]

    for vehicle in vehicles:
        await session.delete(vehicle)
    await session.delete(user)
    await session.commit()

    for url in urls:
        assets.discard(url)
    logger.info("Deleted user %s and %d vehicle(s)", user.username, len(vehicles))
