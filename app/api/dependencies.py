from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.core.exceptions import Unauthorized
from app.auth.jwt_handler import decode_access_token
from app.auth.permissions import WarehousePermissionChecker
from app.models.auth.user import User
from app.models.auth.warehouse_assignment import WarehouseAssignment
import logging

security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)

async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_async_session)
) -> User:
    """Get current authenticated user"""
    if credentials is None or not credentials.credentials:
        raise Unauthorized()

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise Unauthorized()

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise Unauthorized()

    user = await session.get(User, user_id)
    if user is None or not user.is_active:
        logger.warning(f"🔒 Rejected token for missing or inactive user {user_id}")
        raise Unauthorized()

    request.state.current_user = user
    return user

async def get_permission_checker(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session)
) -> WarehousePermissionChecker:
    """Load the caller's warehouse assignments"""
    result = await session.execute(
        select(WarehouseAssignment.warehouse_code).where(
            WarehouseAssignment.user_id == current_user.id
        )
    )
    return WarehousePermissionChecker(current_user, result.scalars().all())
