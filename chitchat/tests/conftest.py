# chitchat/tests/conftest.py

import itertools
from unittest.mock import Mock

import pytest
from fakeredis import aioredis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from chitchat.config import AppConfig
from chitchat.gateways.contact_gateway import ContactGateway
from chitchat.gateways.message_gateway import MessageGateway
from chitchat.gateways.room_gateway import RoomGateway
from chitchat.gateways.user_gateway import UserGateway
from chitchat.infrastructure import schemas
from chitchat.infrastructure.broadcaster import EventBroadcaster
from chitchat.infrastructure.database import (
    Base,
    create_database,
    enable_sqlite_savepoints,
)
from chitchat.infrastructure.security import SecurityService
from chitchat.infrastructure.uow import UnitOfWork
from chitchat.interactors.access_guard import AccessGuard
from chitchat.main import Application

TEST_PASSWORD = "testpassword"

_user_counter = itertools.count(1)


@pytest.fixture(scope="function")
def app_config(tmp_path):
    """Test configuration: in-memory SQLite, cheap bcrypt, temporary uploads."""
    return AppConfig(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        REDIS_HOST="localhost",
        REDIS_PORT=6379,
        SECRET_KEY="test_secret_key",
        PROJECT_NAME="Test ChitChat API",
        API_V1_STR="/api/v1",
        ALGORITHM="HS256",
        ACCESS_TOKEN_EXPIRE_MINUTES=5,
        BCRYPT_ROUNDS=4,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        MAX_ATTACHMENT_BYTES=1024,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture(scope="function")
async def mock_redis():
    """Provide a fake Redis client for testing."""
    redis = aioredis.FakeRedis(decode_responses=True)
    yield redis
    await redis.flushall()
    await redis.aclose()


@pytest.fixture(scope="function")
async def engine(app_config):
    """One shared in-memory SQLite connection per test."""
    engine = create_async_engine(
        app_config.DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        from chitchat.infrastructure import models  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def db_session(session_factory):
    session = session_factory()
    yield session
    await session.close()


@pytest.fixture(scope="function")
def uow(db_session):
    return UnitOfWork(db_session)


@pytest.fixture(scope="function")
def security_service(app_config):
    return SecurityService(app_config)


@pytest.fixture(scope="function")
def user_gateway(db_session, uow):
    return UserGateway(db_session, uow)


@pytest.fixture(scope="function")
def room_gateway(db_session, uow):
    return RoomGateway(db_session, uow)


@pytest.fixture(scope="function")
def message_gateway(db_session, uow):
    return MessageGateway(db_session, uow)


@pytest.fixture(scope="function")
def contact_gateway(db_session, uow):
    return ContactGateway(db_session, uow)


@pytest.fixture(scope="function")
def access_guard(room_gateway):
    return AccessGuard(room_gateway)


@pytest.fixture(scope="function")
def broadcaster():
    """Records published events instead of delivering them."""
    return Mock(spec=EventBroadcaster)


@pytest.fixture(scope="function")
def published_events(broadcaster):
    """Events handed to the broadcaster so far, in publish order."""

    def _published_events() -> list:
        return [call.args[0] for call in broadcaster.publish.call_args_list]

    return _published_events


@pytest.fixture(scope="function")
def make_user(session_factory, security_service):
    """Create and commit users in their own session."""

    async def _make_user(username: str | None = None, password: str = TEST_PASSWORD):
        number = next(_user_counter)
        username = username or f"testuser{number}"
        async with session_factory() as session:
            uow = UnitOfWork(session)
            user = await UserGateway(session, uow).create_user(
                schemas.UserCreate(
                    username=username,
                    email=f"{username}@example.com",
                    password=password,
                    display_name=username.title(),
                ),
                security_service,
            )
            await uow.commit()
            return user._model

    return _make_user


@pytest.fixture(scope="function")
async def test_user(make_user):
    return await make_user("alice")


@pytest.fixture(scope="function")
async def test_user2(make_user):
    return await make_user("bob")


@pytest.fixture(scope="function")
async def test_user3(make_user):
    return await make_user("carol")


@pytest.fixture(scope="function")
async def application(app_config, mock_redis, engine):
    application = Application(config=app_config)
    application.database = create_database(engine)
    application.redis_client.client = mock_redis
    yield application
    await application.broadcaster.close()
    await application.http_client.aclose()


@pytest.fixture(scope="function")
def app(application):
    """Create the FastAPI app with the test database."""
    return application.create_app()


@pytest.fixture(scope="function")
async def client(app):
    """Provide an HTTP client with the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture(scope="function")
def login(client):
    """Log a user in through the API and return the bearer header."""

    async def _login(username: str, password: str = TEST_PASSWORD) -> dict:
        response = await client.post(
            "/api/v1/auth/login", data={"username": username, "password": password}
        )
        assert response.status_code == 200, f"Login failed: {response.json()}"
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture(scope="function")
async def auth_header(login, test_user):
    return await login(test_user.username)


@pytest.fixture(scope="function")
async def auth_header2(login, test_user2):
    return await login(test_user2.username)


@pytest.fixture(scope="function")
async def auth_header3(login, test_user3):
    return await login(test_user3.username)
