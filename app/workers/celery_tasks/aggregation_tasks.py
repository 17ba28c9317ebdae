"""
Aggregation tasks - periodic refresh of count totals for open events
"""
import asyncio
import logging
from app.core.celery_app import celery_app
from app.core.database import engine, get_session_maker

logger = logging.getLogger(__name__)

def run_async_task(coro):
    """Helper function to run async coroutines in Celery tasks"""
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        return loop.run_until_complete(coro)
    finally:
        loop.close()

async def _refresh_open_events() -> int:
    from app.services.inventory.aggregation_service import AggregationService

    try:
        async with get_session_maker()() as db:
            return await AggregationService(db).refresh_open_events()
    finally:
        # Pooled connections belong to this task's event loop
        await engine.dispose()

@celery_app.task(bind=True)
def refresh_open_event_totals(self):
    """Rebuild count totals for every open event"""
    try:
        logger.info("📊 Refreshing count totals for open events...")
        refreshed = run_async_task(_refresh_open_events())
        return {
            "status": "completed",
            "refreshed": refreshed,
            "message": f"Refreshed {refreshed} event/warehouse totals"
        }
    except Exception as e:
        logger.error(f"❌ Error refreshing count totals: {str(e)}")
        raise self.retry(exc=e, countdown=60, max_retries=3)

@celery_app.task(bind=True)
def refresh_count_totals(self, event_id: int, warehouse_code: str):
    """Rebuild count totals for one event and warehouse"""
    from app.services.inventory.aggregation_service import AggregationService

    async def _refresh():
        try:
            async with get_session_maker()() as db:
                return await AggregationService(db).refresh(event_id, warehouse_code)
        finally:
            await engine.dispose()

    try:
        rows = run_async_task(_refresh())
        return {"status": "completed", "event_id": event_id, "warehouse_code": warehouse_code, "rows": rows}
    except Exception as e:
        logger.error(f"❌ Error refreshing totals for event {event_id}/{warehouse_code}: {str(e)}")
        raise self.retry(exc=e, countdown=60, max_retries=3)
