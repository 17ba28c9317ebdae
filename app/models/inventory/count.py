from sqlalchemy import Column, Integer, BigInteger, String, Text, ForeignKey, Index
from app.db.base import BaseModel

class Count(BaseModel):
    """Finalized stocktake observation. Rows are never updated in place."""
    __tablename__ = "counts"

    event_id = Column(Integer, ForeignKey("stocktake_events.id", ondelete="CASCADE"), nullable=False)
    warehouse_code = Column(String(20), ForeignKey("warehouses.code", ondelete="RESTRICT"), nullable=False)
    stock_code = Column(String(100), nullable=False, index=True)
    product_description = Column(Text, default="")
    lot_number = Column(String(100))
    counted_by = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)

    # Raw tier quantities
    singles_units = Column(Integer, nullable=False, default=0)
    singles_cases = Column(Integer, nullable=False, default=0)
    pick_face_layers = Column(Integer, nullable=False, default=0)
    pick_face_cases = Column(Integer, nullable=False, default=0)
    bulk_pallets = Column(Integer, nullable=False, default=0)
    bulk_layers = Column(Integer, nullable=False, default=0)
    bulk_cases = Column(Integer, nullable=False, default=0)

    total_units = Column(BigInteger, nullable=False, default=0)

    # Packaging ratios in effect at submission time
    units_per_case_snapshot = Column(Integer, nullable=False, default=1)
    cases_per_layer_snapshot = Column(Integer, nullable=False, default=1)
    layers_per_pallet_snapshot = Column(Integer, nullable=False, default=1)
    pack_size_snapshot = Column(String(100), default="")

    photo_path = Column(String(500))
    recount_task_id = Column(Integer, ForeignKey("recount_tasks.id", ondelete="SET NULL"))
    idempotency_key = Column(String(100), unique=True)

    __table_args__ = (
        Index("idx_counts_event_warehouse", "event_id", "warehouse_code"),
    )

    def __repr__(self):
        return f"<Count {self.id} {self.stock_code} total={self.total_units}>"
