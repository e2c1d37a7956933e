"""Fixtures de test / Test fixtures."""

import os

# Avant tout import custody : la config est lue a l'import / Before any custody import: settings load at import
os.environ["DEBUG"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PIN_HASH_ROUNDS"] = "4"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import custody.models  # noqa: F401
from custody.api.deps import get_object_store
from custody.database import Base, get_db
from custody.main import app
from custody.models.device import Device, DeviceType
from custody.models.flag import FlagDefinition
from custody.models.person import Person, PersonRole
from custody.services.storage import LocalObjectStore
from custody.utils.auth import create_access_token, hash_password, hash_pin

# PNG 1x1 RGB (pixel rouge / red pixel)
PNG_BASE64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAIAAACQd1PeAAAADElEQVR4nGP4z8AAAAMBAQDJ/pLvAAAAAElFTkSuQmCC"
SIGNATURE = f"data:image/png;base64,{PNG_BASE64}"
ADMIN_PASSWORD = "s3cret-pass"


@pytest.fixture
async def engine(tmp_path):
    # Fichier temporaire (pas :memory:) pour avoir plusieurs connexions / Temp file so sessions get distinct connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'custody-test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(tmp_path):
    return LocalObjectStore(tmp_path / "storage", "http://test")


@pytest.fixture
def signature():
    return SIGNATURE


@pytest.fixture
def admin_password():
    return ADMIN_PASSWORD


@pytest.fixture
async def admin(db):
    person = Person(
        email="dispatch@example.com",
        full_name="Dana Dispatch",
        role=PersonRole.ADMIN,
        hashed_password=hash_password(ADMIN_PASSWORD),
        is_active=True,
    )
    db.add(person)
    await db.commit()
    return person


@pytest.fixture
def make_courier(db):
    async def _make(full_name: str = "Casey Courier", pin: str = "1234", is_active: bool = True) -> Person:
        person = Person(full_name=full_name, role=PersonRole.COURIER, pin_hash=hash_pin(pin), is_active=is_active)
        db.add(person)
        await db.commit()
        return person
    return _make


@pytest.fixture
def make_device(db):
    async def _make(asset_tag: str, type: DeviceType = DeviceType.PDA, **fields) -> Device:
        device = Device(asset_tag=asset_tag, type=type, **fields)
        db.add(device)
        await db.commit()
        await db.refresh(device)
        return device
    return _make


@pytest.fixture
def make_flag(db):
    async def _make(name: str, description: str | None = None) -> FlagDefinition:
        definition = FlagDefinition(name=name, description=description)
        db.add(definition)
        await db.commit()
        return definition
    return _make


@pytest.fixture
def auth_headers(admin):
    return {"Authorization": f"Bearer {create_access_token(admin.id)}"}


@pytest.fixture
async def client(session_factory, store):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_store] = lambda: store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
