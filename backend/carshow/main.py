"""FastAPI application entrypoint."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from carshow import models  # noqa: F401  registers tables on Base.metadata
from carshow.api import api_router
from carshow.api.policies import ROUTE_POLICIES
from carshow.core.authorization import AuthorizationGate
from carshow.core.config import Settings, get_settings
from carshow.core.dependencies import clear_session_cookie
from carshow.core.exceptions import (
    AssetProcessingFailure,
    AuthenticationFailure,
    AuthorizationFailure,
    StorageFailure,
    ValidationFailure,
)
from carshow.core.logging import configure_logging
from carshow.core.security import PasswordHasher, SessionManager
from carshow.db.base import Base
from carshow.db.session import build_engine, build_session_factory
from carshow.middleware.access_log import AccessLogMiddleware
from carshow.middleware.origin_check import OriginCheckMiddleware
from carshow.services.images import ImagePipeline

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    ImagePipeline.from_settings(settings).ensure_directories()
    if settings.uses_default_session_key:
        logger.warning("Using the default session key; set CARSHOW_SESSION_KEYS in production")

    try:
        yield
    finally:
        await app.state.engine.dispose()


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    # Missing session and wrong role look the same from outside.
    @app.exception_handler(AuthenticationFailure)
    async def handle_authentication_failure(request: Request, exc: AuthenticationFailure):
        response = RedirectResponse(settings.login_path, status_code=303)
        # Only a rejected cookie is cleared; a request without one gets the bare redirect.
        if settings.session_cookie_name in request.cookies:
            clear_session_cookie(response, settings)
        return response

    @app.exception_handler(AuthorizationFailure)
    async def handle_authorization_failure(request: Request, exc: AuthorizationFailure):
        return RedirectResponse(settings.login_path, status_code=303)

    @app.exception_handler(ValidationFailure)
    @app.exception_handler(AssetProcessingFailure)
    async def handle_client_error(request: Request, exc: ValidationFailure | AssetProcessingFailure):
        return JSONResponse({"detail": exc.message}, status_code=exc.status_code)

    @app.exception_handler(StorageFailure)
    @app.exception_handler(SQLAlchemyError)
    async def handle_storage_error(request: Request, exc: Exception):
        logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse({"detail": StorageFailure.default_message}, status_code=500)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = build_engine(settings.database_url)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.session_manager = SessionManager.from_settings(settings)
    app.state.password_hasher = PasswordHasher(settings.password_hash_rounds)
    app.state.gate = AuthorizationGate(ROUTE_POLICIES)

    app.add_middleware(OriginCheckMiddleware, trusted_origins=settings.allowed_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Outermost, so it times the whole stack.
    app.add_middleware(AccessLogMiddleware)

    _register_exception_handlers(app, settings)
    app.include_router(api_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.mount(
        settings.upload_url_prefix,
        StaticFiles(directory=str(settings.upload_root), check_dir=False),
        name="uploads",
    )
    return app


configure_logging(get_settings().log_level)
app = create_app()
