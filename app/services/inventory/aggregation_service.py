from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.future import select
from sqlalchemy import and_, delete, func, literal_column
import logging

from app.db.base import utcnow
from app.models.inventory.count import Count
from app.models.inventory.count_total import CountTotal
from app.models.inventory.product import Product
from app.models.inventory.stocktake_event import StocktakeEvent
from app.models.shared.enums import EventStatus, UNSPECIFIED_LOT

logger = logging.getLogger(__name__)

class AggregationService:
    """Maintains CountTotal rows: counted units per stock code and lot"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def refresh(self, event_id: int, warehouse_code: str) -> int:
        """Rebuild the totals for one event and warehouse in a single transaction"""
        # SELECT and GROUP BY must render identical SQL text
        lot_key = func.coalesce(
            func.nullif(func.trim(Count.lot_number), literal_column("''")),
            literal_column(f"'{UNSPECIFIED_LOT}'"),
        )
        grouped = await self.db.execute(
            select(
                Count.stock_code,
                lot_key.label("lot_number"),
                func.sum(Count.total_units).label("counted_units"),
                func.max(Count.product_description).label("product_description"),
            )
            .where(and_(Count.event_id == event_id, Count.warehouse_code == warehouse_code))
            .group_by(Count.stock_code, lot_key)
        )
        rows = grouped.all()

        stock_codes = {row.stock_code for row in rows}
        products = {}
        if stock_codes:
            result = await self.db.execute(select(Product).where(Product.stock_code.in_(stock_codes)))
            products = {p.stock_code: p for p in result.scalars().all()}

        refreshed_at = utcnow()
        try:
            await self.db.execute(
                delete(CountTotal).where(
                    and_(CountTotal.event_id == event_id, CountTotal.warehouse_code == warehouse_code)
                )
            )
            for row in rows:
                product = products.get(row.stock_code)
                self.db.add(CountTotal(
                    event_id=event_id,
                    warehouse_code=warehouse_code,
                    stock_code=row.stock_code,
                    lot_number=row.lot_number,
                    product_description=row.product_description or (product.description if product else "") or "",
                    counted_units=int(row.counted_units or 0),
                    expected_units=product.expected_quantity if product else None,
                    refreshed_at=refreshed_at,
                ))
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        logger.info(f"📊 Refreshed {len(rows)} count totals for event {event_id}/{warehouse_code}")
        return len(rows)

    async def refresh_open_events(self) -> int:
        """Refresh every event/warehouse pair with counts in an open event"""
        result = await self.db.execute(
            select(Count.event_id, Count.warehouse_code)
            .join(StocktakeEvent, StocktakeEvent.id == Count.event_id)
            .where(StocktakeEvent.status == EventStatus.OPEN.value)
            .distinct()
        )
        pairs = result.all()

        refreshed = 0
        for event_id, warehouse_code in pairs:
            try:
                await self.refresh(event_id, warehouse_code)
                refreshed += 1
            except SQLAlchemyError as e:
                logger.error(f"❌ Refresh failed for event {event_id}/{warehouse_code}: {e}")
        return refreshed

    async def get_totals(self, event_id: int, warehouse_code: str) -> List[CountTotal]:
        result = await self.db.execute(
            select(CountTotal)
            .where(and_(CountTotal.event_id == event_id, CountTotal.warehouse_code == warehouse_code))
            .order_by(CountTotal.stock_code, CountTotal.lot_number)
        )
        return list(result.scalars().all())

async def refresh_totals_in_background(
    session_maker: async_sessionmaker,
    event_id: int,
    warehouse_code: str,
) -> Optional[int]:
    """Best-effort refresh after a submission; failures are logged only"""
    async with session_maker() as session:
        try:
            return await AggregationService(session).refresh(event_id, warehouse_code)
        except Exception:
            logger.exception(f"⚠️ Background refresh failed for event {event_id}/{warehouse_code}")
            return None
