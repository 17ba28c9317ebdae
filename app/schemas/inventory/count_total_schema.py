from pydantic import BaseModel
from typing import Optional

class CountExportRow(BaseModel):
    stock_code: str
    description: Optional[str] = None
    lot_number: Optional[str] = None
    counted_units: int

class VarianceRow(BaseModel):
    event_id: int
    warehouse_code: str
    stock_code: str
    description: Optional[str] = None
    lot_number: Optional[str] = None
    counted_units: int
    expected_units: int
    variance_units: int
