import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.models.auth.user import User
from app.models.auth.warehouse_assignment import WarehouseAssignment
from app.models.inventory.stocktake_event import StocktakeEvent
from app.models.organization.warehouse import Warehouse
from app.models.shared.enums import EventStatus, UserRole

logger = logging.getLogger(__name__)

INITIAL_WAREHOUSES = [
    {"code": "MAIN", "name": "Main Warehouse"},
    {"code": "NORTH", "name": "North Depot"},
]

async def create_initial_data(session: AsyncSession):
    """Create initial data for the application"""
    try:
        logger.info("📋 Creating initial data...")

        await create_initial_warehouses(session)
        admin = await create_admin_user(session)
        await create_opening_event(session)
        await session.flush()
        await assign_admin_to_warehouses(session, admin)

        await session.commit()
        logger.info("✅ Initial data created successfully")
        return True

    except Exception as e:
        logger.error(f"❌ Error creating initial data: {str(e)}")
        await session.rollback()
        raise

async def create_initial_warehouses(session: AsyncSession):
    for data in INITIAL_WAREHOUSES:
        result = await session.execute(select(Warehouse).where(Warehouse.code == data["code"]))
        if result.scalar_one_or_none() is None:
            session.add(Warehouse(**data))
            logger.info(f"🏭 Created warehouse {data['code']}")

async def create_admin_user(session: AsyncSession) -> User:
    result = await session.execute(select(User).where(User.email == "admin@stocktake.local"))
    admin = result.scalar_one_or_none()
    if admin is None:
        admin = User(
            email="admin@stocktake.local",
            username="admin",
            full_name="Stocktake Administrator",
            role=UserRole.ADMIN.value,
            is_active=True,
        )
        session.add(admin)
        logger.info("👤 Created admin user")
    return admin

async def create_opening_event(session: AsyncSession):
    result = await session.execute(select(StocktakeEvent).where(StocktakeEvent.status == EventStatus.OPEN.value))
    if result.first() is None:
        session.add(StocktakeEvent(name="Opening stocktake", status=EventStatus.OPEN.value))
        logger.info("📅 Created opening stocktake event")

async def assign_admin_to_warehouses(session: AsyncSession, admin: User):
    result = await session.execute(
        select(WarehouseAssignment.warehouse_code).where(WarehouseAssignment.user_id == admin.id)
    )
    assigned = set(result.scalars().all())
    for data in INITIAL_WAREHOUSES:
        if data["code"] not in assigned:
            session.add(WarehouseAssignment(user_id=admin.id, warehouse_code=data["code"]))
