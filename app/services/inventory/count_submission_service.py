from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.future import select
import logging

from app.auth.permissions import WarehousePermissionChecker
from app.core.exceptions import Conflict, NotFoundError, ValidationError
from app.db.base import utcnow
from app.models.inventory.count import Count
from app.models.inventory.product import Product
from app.models.inventory.recount_task import RecountTask
from app.models.inventory.stocktake_event import StocktakeEvent
from app.models.organization.warehouse import Warehouse
from app.models.shared.enums import RecountTaskStatus
from app.schemas.inventory.count_schema import CountSubmission
from app.services.inventory.unit_normalizer import normalize_units, snapshot_from_product
from app.utils.file_handler import PhotoStorageService

logger = logging.getLogger(__name__)

class CountSubmissionService:
    def __init__(self, db: AsyncSession, storage: PhotoStorageService):
        self.db = db
        self.storage = storage

    async def submit_count(self, submission: CountSubmission, checker: WarehousePermissionChecker) -> Count:
        """Validate, normalize and persist one count submission"""
        user = checker.user
        checker.require_warehouse(submission.warehouse_code)

        if submission.idempotency_key:
            existing = await self.get_by_idempotency_key(submission.idempotency_key)
            if existing:
                self._require_same_capture(existing, submission, user.id)
                logger.info(f"♻️ Duplicate submission {submission.idempotency_key} -> count {existing.id}")
                return existing

        await self._require_warehouse_exists(submission.warehouse_code)
        await self._require_open_event(submission.event_id)
        product = await self.resolve_product(submission)

        snapshot = snapshot_from_product(product)
        total_units = normalize_units(submission.quantities, snapshot)

        task = None
        if submission.recount_task_id is not None:
            task = await self._get_closable_task(submission, user.id)

        photo_path = None
        if submission.photo is not None:
            photo_path = await self.storage.save_photo(
                submission.photo, submission.event_id, submission.warehouse_code
            )

        count = Count(
            event_id=submission.event_id,
            warehouse_code=submission.warehouse_code,
            stock_code=product.stock_code,
            product_description=submission.description or product.description or "",
            lot_number=submission.lot_number,
            counted_by=user.id,
            total_units=total_units,
            units_per_case_snapshot=snapshot.units_per_case,
            cases_per_layer_snapshot=snapshot.cases_per_layer,
            layers_per_pallet_snapshot=snapshot.layers_per_pallet,
            pack_size_snapshot=snapshot.pack_size,
            photo_path=photo_path,
            recount_task_id=task.id if task else None,
            idempotency_key=submission.idempotency_key,
            **submission.quantities.model_dump(),
        )

        try:
            self.db.add(count)
            if task is not None:
                task.status = RecountTaskStatus.DONE.value
                task.completed_at = utcnow()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            if photo_path:
                await self.storage.delete_photo(photo_path)
            if isinstance(e, IntegrityError) and submission.idempotency_key:
                # Lost the race against a concurrent retry of the same capture
                existing = await self.get_by_idempotency_key(submission.idempotency_key)
                if existing:
                    self._require_same_capture(existing, submission, user.id)
                    return existing
            logger.error(f"❌ Failed to insert count for {product.stock_code}: {e}")
            raise

        logger.info(
            f"✅ Count {count.id} stored: {count.stock_code} lot={count.lot_number or '-'} "
            f"total={total_units} by user {user.id}"
        )
        return count

    async def get_by_idempotency_key(self, key: str) -> Optional[Count]:
        result = await self.db.execute(select(Count).where(Count.idempotency_key == key))
        return result.scalar_one_or_none()

    def _require_same_capture(self, existing: Count, submission: CountSubmission, user_id: int):
        """A replayed key must match the stored count's user, event, warehouse and stock code"""
        if (
            existing.counted_by != user_id
            or existing.event_id != submission.event_id
            or existing.warehouse_code != submission.warehouse_code
            or (submission.stock_code and existing.stock_code != submission.stock_code)
        ):
            logger.warning(
                f"🚫 Idempotency key {submission.idempotency_key} reused by user {user_id} "
                f"for event {submission.event_id}/{submission.warehouse_code}; belongs to count {existing.id}"
            )
            raise Conflict("Idempotency key already used for a different submission")

    async def resolve_product(self, submission: CountSubmission) -> Product:
        """Stock code, then case barcode, then unit barcode"""
        lookups = (
            ("stock_code", Product.stock_code, submission.stock_code),
            ("case_barcode", Product.case_barcode, submission.case_barcode),
            ("unit_barcode", Product.unit_barcode, submission.unit_barcode),
        )
        tried = []
        for name, column, value in lookups:
            if not value:
                continue
            tried.append(f"{name}={value}")
            result = await self.db.execute(select(Product).where(column == value).order_by(Product.id).limit(1))
            product = result.scalar_one_or_none()
            if product:
                return product

        raise NotFoundError(f"Product not found ({', '.join(tried)})")

    async def _require_warehouse_exists(self, warehouse_code: str):
        result = await self.db.execute(select(Warehouse.id).where(Warehouse.code == warehouse_code))
        if result.scalar_one_or_none() is None:
            raise NotFoundError(f"Warehouse {warehouse_code} not found")

    async def _require_open_event(self, event_id: int) -> StocktakeEvent:
        event = await self.db.get(StocktakeEvent, event_id)
        if event is None or not event.is_open:
            raise Conflict("Event not accepting submissions")
        return event

    async def _get_closable_task(self, submission: CountSubmission, user_id: int) -> RecountTask:
        task = await self.db.get(RecountTask, submission.recount_task_id)
        if (
            task is None
            or task.assigned_to != user_id
            or task.status != RecountTaskStatus.PENDING.value
            or task.event_id != submission.event_id
            or task.warehouse_code != submission.warehouse_code
        ):
            raise ValidationError("Recount task is not a pending task assigned to you for this event and warehouse")
        return task
