from fastapi import APIRouter
from app.api.v1.endpoints.inventory import counts, exports, recount_tasks

api_router = APIRouter()

# Inventory routes
api_router.include_router(counts.router, prefix="/inventory/count", tags=["Inventory"])
api_router.include_router(recount_tasks.router, prefix="/inventory/recount-task", tags=["Inventory"])
api_router.include_router(exports.router, prefix="/inventory", tags=["Inventory"])
