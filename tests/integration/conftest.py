import pytest
from types import SimpleNamespace
from typing import AsyncGenerator, Callable
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from main import app
from app.core.database import get_async_session, get_session_maker
from app.core.security import create_access_token
from app.db.base import Base
from app.models import Product, StocktakeEvent, User, Warehouse, WarehouseAssignment
from app.models.shared.enums import EventStatus, UserRole
from app.utils.file_handler import PhotoStorageService, get_photo_storage

@pytest.fixture
async def session_maker(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh sqlite database per test"""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    await test_engine.dispose()

@pytest.fixture
async def db(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session

@pytest.fixture
def photo_storage(tmp_path) -> PhotoStorageService:
    return PhotoStorageService(upload_dir=str(tmp_path / "uploads"))

@pytest.fixture
async def client(session_maker, photo_storage) -> AsyncGenerator[AsyncClient, None]:
    """Create test client"""
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_db
    app.dependency_overrides[get_session_maker] = lambda: session_maker
    app.dependency_overrides[get_photo_storage] = lambda: photo_storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

def _user(username: str, role: UserRole, is_active: bool = True) -> User:
    return User(
        email=f"{username}@stocktake.test",
        username=username,
        full_name=username.replace("_", " ").title(),
        role=role.value,
        is_active=is_active,
    )

@pytest.fixture
async def seed(session_maker) -> SimpleNamespace:
    """Two warehouses, one open and one closed event, an admin, managers and three stock takers"""
    async with session_maker() as session:
        session.add_all([
            Warehouse(code="MAIN", name="Main Warehouse"),
            Warehouse(code="NORTH", name="North Depot"),
        ])

        admin = _user("admin", UserRole.ADMIN)
        manager = _user("main_manager", UserRole.MANAGER)
        north_manager = _user("north_manager", UserRole.MANAGER)
        taker_a = _user("taker_a", UserRole.STOCK_TAKER)
        taker_b = _user("taker_b", UserRole.STOCK_TAKER)
        taker_c = _user("taker_c", UserRole.STOCK_TAKER)
        session.add_all([admin, manager, north_manager, taker_a, taker_b, taker_c])

        open_event = StocktakeEvent(name="Year end", status=EventStatus.OPEN.value)
        closed_event = StocktakeEvent(name="Mid year", status=EventStatus.CLOSED.value)
        session.add_all([open_event, closed_event])

        cola = Product(
            stock_code="SKU-001",
            case_barcode="CASE-001",
            unit_barcode="UNIT-001",
            description="Cola 330ml",
            pack_size="24x330ml",
            expected_quantity=100,
            units_per_case=24,
            cases_per_layer=10,
            layers_per_pallet=5,
        )
        water = Product(stock_code="SKU-002", description="Water, still", pack_size="single")
        session.add_all([cola, water])
        await session.flush()

        session.add_all([
            WarehouseAssignment(user_id=manager.id, warehouse_code="MAIN"),
            WarehouseAssignment(user_id=north_manager.id, warehouse_code="NORTH"),
            WarehouseAssignment(user_id=taker_a.id, warehouse_code="MAIN"),
            WarehouseAssignment(user_id=taker_b.id, warehouse_code="MAIN"),
            WarehouseAssignment(user_id=taker_c.id, warehouse_code="MAIN"),
        ])
        await session.commit()

        return SimpleNamespace(
            admin=admin,
            manager=manager,
            north_manager=north_manager,
            taker_a=taker_a,
            taker_b=taker_b,
            taker_c=taker_c,
            open_event=open_event,
            closed_event=closed_event,
            cola=cola,
            water=water,
        )

@pytest.fixture
def auth() -> Callable[[User], dict]:
    """Bearer headers for a seeded user"""
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return _headers
