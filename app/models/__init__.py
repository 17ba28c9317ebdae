from app.models.auth.user import User
from app.models.auth.warehouse_assignment import WarehouseAssignment
from app.models.organization.warehouse import Warehouse
from app.models.inventory.stocktake_event import StocktakeEvent
from app.models.inventory.product import Product
from app.models.inventory.recount_task import RecountTask
from app.models.inventory.count import Count
from app.models.inventory.count_total import CountTotal


__all__ = [
    "User",
    "WarehouseAssignment",
    "Warehouse",
    "StocktakeEvent",
    "Product",
    "RecountTask",
    "Count",
    "CountTotal",
]
