"""
Car Show Manager - Test Configuration and Fixtures
"""
import io
import os
from typing import AsyncGenerator, Awaitable, Callable

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession

# Set testing environment before the application module is imported
os.environ['CARSHOW_DATABASE_URL'] = 'sqlite+aiosqlite:///:memory:'
os.environ['CARSHOW_SESSION_KEYS'] = 'test-session-key'
os.environ['CARSHOW_SESSION_COOKIE_SECURE'] = 'false'
os.environ['CARSHOW_PASSWORD_HASH_ROUNDS'] = '4'

from carshow.core.authorization import PRIVILEGED, Role
from carshow.core.config import Settings
from carshow.core.security import PasswordHasher
from carshow.db.base import Base
from carshow.main import create_app
from carshow.models import User
from carshow.services.images import ImagePipeline

fake = Faker()

DEFAULT_PASSWORD = 'correct-horse-battery'


def make_image_bytes(
    size: tuple[int, int] = (640, 480),
    fmt: str = 'PNG',
    color: tuple[int, ...] = (200, 30, 30),
    mode: str = 'RGB',
) -> bytes:
    """Encode a solid-colour image in memory."""
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing every file and database path into the test tmp dir"""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'carshow-test.db'}",
        session_keys=['test-session-key'],
        session_cookie_secure=False,
        password_hash_rounds=4,
        upload_root=tmp_path / 'images',
        recovery_token_file=tmp_path / 'admin_recovery_token.txt',
        public_base_url='http://test',
        allowed_origins=['http://test'],
    )


@pytest.fixture
async def app(settings: Settings):
    """Application instance with its tables created"""
    application = create_app(settings)
    # ASGITransport does not run the lifespan, so do its work here.
    async with application.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    ImagePipeline.from_settings(settings).ensure_directories()
    yield application
    await application.state.engine.dispose()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client talking to the app in-process"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac


@pytest.fixture
async def db_session(app) -> AsyncGenerator[AsyncSession, None]:
    """Session on the same database the app uses"""
    async with app.state.session_factory() as session:
        yield session


@pytest.fixture
def hasher(app) -> PasswordHasher:
    return app.state.password_hasher


@pytest.fixture
def make_user(db_session: AsyncSession, hasher: PasswordHasher) -> Callable[..., Awaitable[User]]:
    """Factory creating committed users of any role"""

    async def _make(
        role: Role = Role.USER,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
        **overrides,
    ) -> User:
        user = User(
            username=overrides.pop('username', f"{fake.user_name().lower()}{fake.random_int(100, 999)}"),
            name=overrides.pop('name', fake.name()),
            email=overrides.pop('email', fake.email()),
            password_hash=hasher.hash(password),
            role=role.value,
            is_active=is_active,
            chat_enabled=overrides.pop('chat_enabled', PRIVILEGED.allows(role)),
            **overrides,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def login(client: AsyncClient) -> Callable[..., Awaitable[dict]]:
    """Log the shared client in; the session cookie stays in its jar"""

    async def _login(user: User, password: str = DEFAULT_PASSWORD) -> dict:
        response = await client.post(
            '/api/auth/login',
            json={'username': user.username, 'password': password},
        )
        assert response.status_code == 200, response.text
        return response.json()

    return _login


@pytest.fixture
def image_bytes() -> Callable[..., bytes]:
    return make_image_bytes
