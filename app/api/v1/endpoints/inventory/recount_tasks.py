from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from app.api.dependencies import get_current_user, get_permission_checker
from app.auth.permissions import WarehousePermissionChecker
from app.core.database import get_async_session
from app.models.auth.user import User
from app.schemas.inventory.recount_schema import (
    RecountAssignRequest,
    RecountAssignResponse,
    RecountTaskOut,
    RecountTaskSummary,
)
from app.services.inventory.recount_assignment_service import RecountAssignmentService

router = APIRouter()

@router.post("/assign", response_model=RecountAssignResponse)
async def assign_recount_tasks(
    request: RecountAssignRequest,
    db: AsyncSession = Depends(get_async_session),
    checker: WarehousePermissionChecker = Depends(get_permission_checker),
):
    """Distribute recount items over the warehouse's stock takers"""
    service = RecountAssignmentService(db)
    tasks = await service.assign_recounts(request, checker)
    return RecountAssignResponse(tasks=[RecountTaskSummary.model_validate(t) for t in tasks])

@router.get("/mine", response_model=List[RecountTaskOut])
async def get_my_recount_tasks(
    event_id: Optional[int] = Query(None),
    warehouse_code: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_user: User = Depends(get_current_user),
):
    """Pending recount tasks for the current user"""
    service = RecountAssignmentService(db)
    return await service.list_tasks_for_user(current_user.id, event_id, warehouse_code)

@router.post("/{task_id}/complete", response_model=RecountTaskOut)
async def complete_recount_task(
    task_id: int,
    db: AsyncSession = Depends(get_async_session),
    checker: WarehousePermissionChecker = Depends(get_permission_checker),
):
    service = RecountAssignmentService(db)
    return await service.complete_task(task_id, checker)
