from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from app.db.base import BaseModel
from app.models.shared.enums import RecountTaskStatus

class RecountTask(BaseModel):
    __tablename__ = "recount_tasks"

    event_id = Column(Integer, ForeignKey("stocktake_events.id", ondelete="CASCADE"), nullable=False)
    warehouse_code = Column(String(20), ForeignKey("warehouses.code", ondelete="RESTRICT"), nullable=False)
    stock_code = Column(String(100), nullable=False)
    lot_number = Column(String(100))
    notes = Column(Text)
    assigned_to = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    status = Column(String(20), nullable=False, default=RecountTaskStatus.PENDING.value)  # pending, done
    completed_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_recount_tasks_event_warehouse", "event_id", "warehouse_code", "created_at"),
    )

    def __repr__(self):
        return f"<RecountTask {self.id} {self.stock_code} -> {self.assigned_to} ({self.status})>"
