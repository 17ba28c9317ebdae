from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from typing import List
import logging
from app.api.dependencies import get_permission_checker
from app.auth.permissions import WarehousePermissionChecker
from app.core.database import get_async_session
from app.schemas.inventory.count_total_schema import VarianceRow
from app.services.inventory.aggregation_service import AggregationService
from app.services.inventory.variance_service import VarianceService
from app.utils.data_exporter import DataExportService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/export/counts")
async def export_counts(
    event_id: int = Query(...),
    warehouse_code: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_async_session),
    checker: WarehousePermissionChecker = Depends(get_permission_checker),
):
    """Download counted units per stock code and lot as CSV"""
    checker.require_supervisor(warehouse_code)

    service = AggregationService(db)
    try:
        await service.refresh(event_id, warehouse_code)
    except SQLAlchemyError as e:
        logger.warning(f"⚠️ Refresh before export failed for event {event_id}/{warehouse_code}, exporting last totals: {e}")

    totals = await service.get_totals(event_id, warehouse_code)
    return DataExportService().export_counts(totals, event_id, warehouse_code)

@router.get("/variance", response_model=List[VarianceRow])
async def get_variance(
    event_id: int = Query(...),
    warehouse_code: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_async_session),
    checker: WarehousePermissionChecker = Depends(get_permission_checker),
):
    """Counted minus expected units per stock code and lot"""
    checker.require_supervisor(warehouse_code)
    return await VarianceService(db).get_variance(event_id, warehouse_code)
