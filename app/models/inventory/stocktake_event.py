from sqlalchemy import Column, String, DateTime
from app.db.base import BaseModel
from app.models.shared.enums import EventStatus

class StocktakeEvent(BaseModel):
    __tablename__ = "stocktake_events"

    name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=EventStatus.OPEN.value)  # open, closed
    starts_at = Column(DateTime(timezone=True))
    ends_at = Column(DateTime(timezone=True))

    @property
    def is_open(self) -> bool:
        return self.status == EventStatus.OPEN.value

    def __repr__(self):
        return f"<StocktakeEvent {self.id} {self.status}>"
