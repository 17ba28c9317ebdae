from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class WarehouseAssignment(BaseModel):
    __tablename__ = "user_warehouse_assignments"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    warehouse_code = Column(String(20), ForeignKey("warehouses.code", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="warehouse_assignments")
    warehouse = relationship("Warehouse", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("user_id", "warehouse_code", name="uq_user_warehouse_assignment"),
    )

    def __repr__(self):
        return f"<WarehouseAssignment user_id={self.user_id} warehouse={self.warehouse_code}>"
