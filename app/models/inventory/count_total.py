from sqlalchemy import Column, Integer, BigInteger, String, Text, DateTime, ForeignKey, UniqueConstraint
from app.db.base import BaseModel

class CountTotal(BaseModel):
    """Aggregate of counted units per stock code and lot, rebuilt by AggregationService"""
    __tablename__ = "count_totals"

    event_id = Column(Integer, ForeignKey("stocktake_events.id", ondelete="CASCADE"), nullable=False)
    warehouse_code = Column(String(20), nullable=False)
    stock_code = Column(String(100), nullable=False)
    lot_number = Column(String(100), nullable=False)
    product_description = Column(Text, default="")
    counted_units = Column(BigInteger, nullable=False, default=0)
    expected_units = Column(BigInteger)
    refreshed_at = Column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("event_id", "warehouse_code", "stock_code", "lot_number", name="uq_count_totals_key"),
    )
