import asyncio
import logging
from app.core.database import engine, async_session_maker
from app.db.base import Base
import app.models  # noqa: F401  registers every table on Base.metadata

logger = logging.getLogger(__name__)

async def create_tables():
    """Create all database tables"""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ Database tables created successfully")
    except Exception as e:
        logger.error(f"❌ Error creating tables: {str(e)}")
        raise

async def init_db(seed: bool = False):
    """Initialize the database"""
    logger.info("🗄️  Initializing database...")
    await create_tables()

    if seed:
        from app.db.seeds.initial_data import create_initial_data
        async with async_session_maker() as session:
            await create_initial_data(session)

    logger.info("✅ Database initialized successfully")

if __name__ == "__main__":
    from app.core.logging_config import setup_logging
    setup_logging()
    asyncio.run(init_db(seed=True))
