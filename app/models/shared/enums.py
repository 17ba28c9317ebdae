from enum import Enum

class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    STOCK_TAKER = "stock_taker"

class EventStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"

class RecountTaskStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"

# Aggregate rows without a lot number are grouped under this key
UNSPECIFIED_LOT = "UNSPECIFIED"
