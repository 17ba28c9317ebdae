from sqlalchemy import Column, Integer, String, Text
from app.db.base import BaseModel

class Product(BaseModel):
    __tablename__ = "products"

    stock_code = Column(String(100), unique=True, index=True, nullable=False)
    case_barcode = Column(String(100), index=True)
    unit_barcode = Column(String(100), index=True)
    description = Column(Text, default="")
    pack_size = Column(String(100), default="")
    expected_quantity = Column(Integer)

    # Packaging ratios; unconfigured ratios behave as 1
    units_per_case = Column(Integer, nullable=False, default=1)
    cases_per_layer = Column(Integer, nullable=False, default=1)
    layers_per_pallet = Column(Integer, nullable=False, default=1)

    def __repr__(self):
        return f"<Product {self.stock_code}>"
