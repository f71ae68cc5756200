"""Reusable dependencies for FastAPI routes."""
from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from carshow.core.authorization import AuthorizationGate
from carshow.core.config import Settings
from carshow.core.exceptions import AuthenticationFailure
from carshow.core.security import PasswordHasher, SessionManager
from carshow.db.session import get_session
from carshow.schemas.auth import Principal
from carshow.services.assets import AssetManager
from carshow.services.images import ImagePipeline
from carshow.services.recovery import RecoveryTokenStore
from carshow.services.users import get_user


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async with get_session(request.app.state.session_factory) as session:
        yield session


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_gate(request: Request) -> AuthorizationGate:
    return request.app.state.gate


def get_asset_manager(settings: Settings = Depends(get_app_settings)) -> AssetManager:
    return AssetManager(ImagePipeline.from_settings(settings))


def get_recovery_store(settings: Settings = Depends(get_app_settings)) -> RecoveryTokenStore:
    return RecoveryTokenStore(settings.recovery_token_file, settings.public_base_url)


async def get_principal(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    sessions: SessionManager = Depends(get_session_manager),
    session: AsyncSession = Depends(get_db),
) -> Principal | None:
    """Resolve the session cookie into a principal, or ``None``.

    With ``revalidate_sessions`` on, the role and active flag come from the
    database on every request, so an admin's change applies immediately even
    though the cookie still carries the old snapshot.
    """

    claims = sessions.resolve(request.cookies.get(settings.session_cookie_name))
    if claims is None:
        return None
    principal = Principal.from_claims(claims)

    if settings.revalidate_sessions:
        user = await get_user(session, principal.id)
        if user is None or not user.is_active:
            return None
        principal = principal.model_copy(
            update={"role": user.role, "chat_enabled": user.chat_enabled, "is_active": user.is_active}
        )

    request.state.principal = principal
    return principal


async def enforce_route_policy(
    request: Request,
    principal: Principal | None = Depends(get_principal),
    gate: AuthorizationGate = Depends(get_gate),
) -> None:
    """Router-level guard: look the request path up in the policy table."""

    path = request.scope.get("path", "")
    root_path = request.scope.get("root_path", "")
    if root_path and path.startswith(root_path):
        path = path[len(root_path) :]
    gate.check(principal, request.method, path)


async def current_principal(principal: Principal | None = Depends(get_principal)) -> Principal:
    if principal is None:
        raise AuthenticationFailure("Not authenticated")
    return principal


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
        max_age=settings.session_max_age_seconds,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        settings.session_cookie_name,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
    )


def refresh_session(
    request: Request,
    response: Response,
    settings: Settings,
    sessions: SessionManager,
    **fields: object,
) -> None:
    """Re-issue the caller's cookie with patched display fields."""

    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return
    patched = sessions.patch(token, **fields)
    if patched:
        set_session_cookie(response, patched, settings)
