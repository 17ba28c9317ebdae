# app/models/auth/__init__.py

# Import models in dependency order
from .user import User
from .warehouse_assignment import WarehouseAssignment

__all__ = [
    "User",
    "WarehouseAssignment",
]
