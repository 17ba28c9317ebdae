from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

class RecountItem(BaseModel):
    # Presence is checked by the scheduler so the whole batch fails together
    stock_code: Optional[str] = None
    lot_number: Optional[str] = None
    notes: Optional[str] = None

class RecountAssignRequest(BaseModel):
    event_id: int
    warehouse_code: str
    items: List[RecountItem] = Field(default_factory=list)

class RecountTaskSummary(BaseModel):
    id: int
    stock_code: str
    lot_number: Optional[str] = None
    assigned_to: int
    status: str
    class Config:
        from_attributes = True

class RecountAssignResponse(BaseModel):
    ok: bool = True
    tasks: List[RecountTaskSummary] = Field(default_factory=list)

class RecountTaskOut(RecountTaskSummary):
    event_id: int
    warehouse_code: str
    notes: Optional[str] = None
    assigned_by: Optional[int] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
