from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class Warehouse(BaseModel):
    __tablename__ = "warehouses"

    code = Column(String(20), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)

    # Relationships
    assignments = relationship("WarehouseAssignment", back_populates="warehouse", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Warehouse {self.code}>"
