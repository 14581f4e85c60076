import fakeredis
import pytest
from datetime import date, timedelta
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import travel_agency.models  # noqa: F401  registers every mapper
from travel_agency.app import create_app
from travel_agency.core.security import create_access_token
from travel_agency.db.base import Base
from travel_agency.db.session import get_db_session
from travel_agency.models import Bus, Package, PackageStatus, User, UserRole
from travel_agency.redis import get_redis


@pytest.fixture
async def db_engine(tmp_path):
    """SQLite file database, function-scoped so it lives in the test's event loop."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        future=True,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def db_session_factory(db_engine):
    """Factory to create multiple sessions for concurrent tests."""
    return async_sessionmaker(
        bind=db_engine,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False
    )


@pytest.fixture
async def db_session(db_session_factory):
    async with db_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def redis_client():
    redis = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    try:
        yield redis
    finally:
        await redis.flushall()
        await redis.aclose()


@pytest.fixture
async def seeded_test_data(db_session_factory):
    """Seed users, a bus and packages, return their ids and tokens."""
    async with db_session_factory() as session:
        super_admin = User(external_id="super-admin", email="root@example.com",
                           first_name="Root", last_name="Admin", role=UserRole.SUPER_ADMIN)
        admin = User(external_id="admin", email="admin@example.com",
                     first_name="Ana", last_name="Admin", role=UserRole.ADMIN)
        customer = User(external_id="customer", email="maria@example.com",
                        first_name="Maria", last_name="Silva", phone="11999990000", role=UserRole.USER)
        session.add_all([super_admin, admin, customer])

        bus = Bus(model="Paradiso G7", year=2022, plate="ABC1D23", seats=10)
        session.add(bus)
        await session.flush()

        departure = date.today() + timedelta(days=30)
        seat_map_package = Package(
            title="Gramado Natal Luz", slug="gramado-natal-luz", destination="Gramado, RS",
            description="Luzes de natal na serra", price=10000, price_child_11_13=8000,
            price_child_6_10=5000, duration_days=3, departure_date=departure,
            total_seats=10, available_seats=10, status=PackageStatus.PUBLISHED,
            is_featured=True, bus_id=bus.id)
        open_package = Package(
            title="Aparecida Romaria", slug="aparecida-romaria", destination="Aparecida, SP",
            price=2500, duration_days=1, departure_date=departure,
            total_seats=0, available_seats=5, status=PackageStatus.PUBLISHED)
        draft_package = Package(
            title="Foz do Iguacu", slug="foz-do-iguacu", destination="Foz do Iguacu, PR",
            price=30000, duration_days=5, total_seats=10, available_seats=10,
            status=PackageStatus.DRAFT)
        session.add_all([seat_map_package, open_package, draft_package])
        await session.commit()

        yield {
            "bus_id": bus.id,
            "package_id": seat_map_package.id,
            "open_package_id": open_package.id,
            "draft_package_id": draft_package.id,
            "customer_id": customer.id,
            "super_admin_token": create_access_token({"sub": super_admin.external_id}),
            "admin_token": create_access_token({"sub": admin.external_id}),
            "customer_token": create_access_token({"sub": customer.external_id}),
        }


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(seeded_test_data):
    return auth_header(seeded_test_data["admin_token"])


@pytest.fixture
def super_admin_headers(seeded_test_data):
    return auth_header(seeded_test_data["super_admin_token"])


@pytest.fixture
def customer_headers(seeded_test_data):
    return auth_header(seeded_test_data["customer_token"])


@pytest.fixture
async def client(db_session_factory, redis_client):
    """HTTP client against the app, wired to the test database and redis."""
    app = create_app()

    async def override_db_session():
        async with db_session_factory() as session:
            yield session

    async def override_redis():
        yield redis_client

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_redis] = override_redis

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def booking_payload(package_id: int, **overrides) -> dict:
    payload = {
        "package_id": package_id,
        "customer_name": "Joao Pereira",
        "customer_email": "joao@example.com",
        "customer_phone": "11988887777",
        "num_passengers": 2,
        "selected_seats": [1, 2],
    }
    payload.update(overrides)
    return payload
