from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.datastructures import UploadFile
from app.api.dependencies import get_permission_checker
from app.auth.permissions import WarehousePermissionChecker
from app.core.database import get_async_session, get_session_maker
from app.core.exceptions import ValidationError
from app.schemas.inventory.count_schema import CountSubmitResponse, PhotoUpload
from app.services.inventory.aggregation_service import refresh_totals_in_background
from app.services.inventory.count_submission_service import CountSubmissionService
from app.utils.file_handler import PhotoStorageService, get_photo_storage
from app.utils.validators.validation_utils import build_count_submission

router = APIRouter()

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")

async def read_submission_body(request: Request):
    """Form fields plus optional photo file, or a JSON object"""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        payload = {key: value for key, value in form.items() if isinstance(value, str)}
        photo = None
        upload = form.get("photo")
        if isinstance(upload, UploadFile):
            data = await upload.read()
            if data:
                photo = PhotoUpload(
                    data=data,
                    content_type=upload.content_type or "image/jpeg",
                    filename=upload.filename or "photo.jpg",
                )
        return payload, photo

    try:
        payload = await request.json()
    except ValueError:
        raise ValidationError("Request body must be JSON or multipart form data")
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload, None

@router.post("/submit", response_model=CountSubmitResponse)
async def submit_count(
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_async_session),
    checker: WarehousePermissionChecker = Depends(get_permission_checker),
    storage: PhotoStorageService = Depends(get_photo_storage),
    session_maker: async_sessionmaker = Depends(get_session_maker),
):
    """Submit one physical count"""
    payload, photo = await read_submission_body(request)
    submission = build_count_submission(payload, photo)

    service = CountSubmissionService(db, storage)
    count = await service.submit_count(submission, checker)

    background_tasks.add_task(
        refresh_totals_in_background, session_maker, count.event_id, count.warehouse_code
    )
    return CountSubmitResponse(id=count.id, total_units=count.total_units, photo_path=count.photo_path)
