from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.shared.enums import UNSPECIFIED_LOT
from app.schemas.inventory.count_total_schema import VarianceRow
from app.services.inventory.aggregation_service import AggregationService

class VarianceService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_variance(self, event_id: int, warehouse_code: str) -> List[VarianceRow]:
        """Counted minus expected units, biggest shortfall first"""
        totals = await AggregationService(self.db).get_totals(event_id, warehouse_code)
        rows = [
            VarianceRow(
                event_id=t.event_id,
                warehouse_code=t.warehouse_code,
                stock_code=t.stock_code,
                description=t.product_description,
                lot_number=None if t.lot_number == UNSPECIFIED_LOT else t.lot_number,
                counted_units=t.counted_units,
                expected_units=t.expected_units or 0,
                variance_units=t.counted_units - (t.expected_units or 0),
            )
            for t in totals
        ]
        rows.sort(key=lambda r: (r.variance_units, r.stock_code, r.lot_number or ""))
        return rows
