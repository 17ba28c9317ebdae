from typing import List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.future import select
from sqlalchemy import and_, desc
import logging

from app.auth.permissions import WarehousePermissionChecker
from app.core.exceptions import Conflict, Forbidden, NotFoundError, ValidationError
from app.db.base import utcnow
from app.models.auth.user import User
from app.models.auth.warehouse_assignment import WarehouseAssignment
from app.models.inventory.recount_task import RecountTask
from app.models.inventory.stocktake_event import StocktakeEvent
from app.models.shared.enums import RecountTaskStatus, UserRole
from app.schemas.inventory.recount_schema import RecountAssignRequest
from app.utils.validators.validation_utils import clean_text

logger = logging.getLogger(__name__)

def rotation_start_index(pool: Sequence[int], last_assignee: Optional[int]) -> int:
    """Index after the previous assignee, wrapping; 0 when there is none or they left the pool"""
    if last_assignee is None or last_assignee not in pool:
        return 0
    return (list(pool).index(last_assignee) + 1) % len(pool)

class RecountAssignmentService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def assign_recounts(self, request: RecountAssignRequest, checker: WarehousePermissionChecker) -> List[RecountTask]:
        """Create one pending task per item, round-robin over the warehouse's stock takers"""
        checker.require_role(UserRole.ADMIN, UserRole.MANAGER)

        warehouse_code = clean_text(request.warehouse_code)
        if not warehouse_code:
            raise ValidationError("warehouse_code is required")
        checker.require_warehouse(warehouse_code, "Managers may only assign recounts for assigned warehouses")

        if not request.items:
            raise ValidationError("At least one item is required")
        items = []
        for position, item in enumerate(request.items):
            stock_code = clean_text(item.stock_code)
            if not stock_code:
                raise ValidationError(f"Item at position {position} is missing stock_code")
            items.append((stock_code, clean_text(item.lot_number), clean_text(item.notes)))

        event = await self.db.get(StocktakeEvent, request.event_id)
        if event is None:
            raise NotFoundError(f"Event {request.event_id} not found")

        pool = await self.get_eligible_pool(warehouse_code)
        if not pool:
            raise Conflict("No stock takers are assigned to this warehouse")

        last_assignee = await self._get_last_assignee(request.event_id, warehouse_code)
        start = rotation_start_index(pool, last_assignee)

        tasks = [
            RecountTask(
                event_id=request.event_id,
                warehouse_code=warehouse_code,
                stock_code=stock_code,
                lot_number=lot_number,
                notes=notes,
                assigned_to=pool[(start + i) % len(pool)],
                assigned_by=checker.user.id,
                status=RecountTaskStatus.PENDING.value,
            )
            for i, (stock_code, lot_number, notes) in enumerate(items)
        ]

        try:
            self.db.add_all(tasks)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"❌ Failed to create recount tasks for {warehouse_code}: {e}")
            raise

        logger.info(
            f"🔁 Assigned {len(tasks)} recount tasks in event {request.event_id}/{warehouse_code} "
            f"over {len(pool)} stock takers starting at index {start}"
        )
        return tasks

    async def get_eligible_pool(self, warehouse_code: str) -> List[int]:
        """Active stock takers assigned to the warehouse, ordered by user id"""
        result = await self.db.execute(
            select(User.id)
            .join(WarehouseAssignment, WarehouseAssignment.user_id == User.id)
            .where(
                and_(
                    WarehouseAssignment.warehouse_code == warehouse_code,
                    User.role == UserRole.STOCK_TAKER.value,
                    User.is_active.is_(True),
                )
            )
            .order_by(User.id)
        )
        return list(result.scalars().all())

    async def _get_last_assignee(self, event_id: int, warehouse_code: str) -> Optional[int]:
        result = await self.db.execute(
            select(RecountTask.assigned_to)
            .where(and_(RecountTask.event_id == event_id, RecountTask.warehouse_code == warehouse_code))
            .order_by(desc(RecountTask.created_at), desc(RecountTask.id))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_tasks_for_user(
        self,
        user_id: int,
        event_id: Optional[int] = None,
        warehouse_code: Optional[str] = None,
    ) -> List[RecountTask]:
        """Pending tasks for one worker, oldest first"""
        query = select(RecountTask).where(
            and_(
                RecountTask.assigned_to == user_id,
                RecountTask.status == RecountTaskStatus.PENDING.value,
            )
        )
        if event_id is not None:
            query = query.where(RecountTask.event_id == event_id)
        if warehouse_code:
            query = query.where(RecountTask.warehouse_code == warehouse_code)

        result = await self.db.execute(query.order_by(RecountTask.created_at, RecountTask.id))
        return list(result.scalars().all())

    async def complete_task(self, task_id: int, checker: WarehousePermissionChecker) -> RecountTask:
        task = await self.db.get(RecountTask, task_id)
        if task is None:
            raise NotFoundError("Recount task not found")

        if task.assigned_to != checker.user.id:
            checker.require_role(UserRole.ADMIN, UserRole.MANAGER, custom_message="Only the assignee can complete this task")
            checker.require_warehouse(task.warehouse_code)

        if task.status == RecountTaskStatus.DONE.value:
            return task

        task.status = RecountTaskStatus.DONE.value
        task.completed_at = utcnow()
        await self.db.commit()

        logger.info(f"✅ Recount task {task.id} completed by user {checker.user.id}")
        return task
