"""Authentication endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from carshow.core.authorization import Role, home_for
from carshow.core.config import Settings
from carshow.core.dependencies import (
    clear_session_cookie,
    current_principal,
    enforce_route_policy,
    get_app_settings,
    get_db,
    get_hasher,
    get_recovery_store,
    get_session_manager,
    set_session_cookie,
)
from carshow.core.exceptions import ValidationFailure
from carshow.core.security import PasswordHasher, SessionManager
from carshow.schemas.auth import (
    AuthStatus,
    LoginRequest,
    LoginResponse,
    Principal,
    RecoverRequest,
    RegisterRequest,
    SetupRequest,
    SetupResponse,
)
from carshow.schemas.user import UserRead
from carshow.services.recovery import RecoveryTokenStore
from carshow.services.users import authenticate_user, create_user, register_user, users_exist

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
session_router = APIRouter(prefix="/auth", tags=["auth"], dependencies=[Depends(enforce_route_policy)])


@router.get("/status", response_model=AuthStatus)
async def auth_status(session: AsyncSession = Depends(get_db)) -> AuthStatus:
    return AuthStatus(has_users=await users_exist(session))


@router.post("/setup", response_model=SetupResponse, status_code=status.HTTP_201_CREATED)
async def create_initial_admin(
    payload: SetupRequest,
    session: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
    recovery: RecoveryTokenStore = Depends(get_recovery_store),
) -> SetupResponse:
    if await users_exist(session):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Admin already created")
    if payload.password != payload.confirm_password:
        raise ValidationFailure("Passwords do not match!")

    user = await create_user(
        session,
        hasher,
        username=payload.username,
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        password=payload.password,
        role=Role.ADMIN,
    )
    await session.commit()
    recovery_url = recovery.issue()
    return SetupResponse(user=UserRead.model_validate(user), recovery_url=recovery_url)


@router.post("/recover", response_model=SetupResponse, status_code=status.HTTP_201_CREATED)
async def recover_admin(
    payload: RecoverRequest,
    session: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
    recovery: RecoveryTokenStore = Depends(get_recovery_store),
) -> SetupResponse:
    if not recovery.verify(payload.token):
        logger.warning("Rejected admin recovery attempt with an invalid token")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid recovery token")
    if payload.password != payload.confirm_password:
        raise ValidationFailure("Passwords do not match!")

    user = await create_user(
        session,
        hasher,
        username=payload.username,
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        password=payload.password,
        role=Role.ADMIN,
    )
    await session.commit()
    # The used token is replaced so it cannot be replayed.
    recovery_url = recovery.issue()
    logger.info("Recovery admin %s created", user.username)
    return SetupResponse(user=UserRead.model_validate(user), recovery_url=recovery_url)


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    hasher: PasswordHasher = Depends(get_hasher),
    sessions: SessionManager = Depends(get_session_manager),
) -> LoginResponse:
    user = await authenticate_user(session, hasher, payload.username, payload.password)
    if not user:
        logger.info("Failed login for %s", payload.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    principal = Principal.model_validate(user)
    set_session_cookie(response, sessions.issue(principal.to_claims()), settings)
    logger.info("User %s logged in as %s", user.username, user.role)
    return LoginResponse(user=UserRead.model_validate(user), redirect=home_for(user.role))


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_hasher),
) -> UserRead:
    user = await register_user(session, hasher, payload)
    await session.commit()
    return UserRead.model_validate(user)


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(response: Response, settings: Settings = Depends(get_app_settings)) -> dict[str, str]:
    clear_session_cookie(response, settings)
    return {"redirect": settings.login_path}


@session_router.get("/me", response_model=Principal)
async def get_current_user_info(principal: Principal = Depends(current_principal)) -> Principal:
    return principal


@session_router.get("/dashboard")
async def dashboard_redirect(principal: Principal = Depends(current_principal)) -> RedirectResponse:
    return RedirectResponse(home_for(principal.role), status_code=status.HTTP_303_SEE_OTHER)
