# app/auth/permissions.py

from typing import Iterable, Optional
import logging

from app.core.exceptions import Forbidden
from app.models.auth.user import User
from app.models.shared.enums import UserRole

logger = logging.getLogger(__name__)


class WarehousePermissionChecker:
    """
    Check a caller's role and warehouse scope.

    Admins reach every warehouse. Managers and stock takers only reach
    the warehouses they are assigned to.
    """

    def __init__(self, user: User, assigned_codes: Iterable[str]):
        self.user = user
        self.assigned_codes = set(assigned_codes or [])

    @property
    def is_admin(self) -> bool:
        return self.user.role == UserRole.ADMIN.value

    def has_role(self, *roles: UserRole) -> bool:
        return self.user.role in {r.value for r in roles}

    def can_access(self, warehouse_code: str) -> bool:
        if self.is_admin:
            return True
        return warehouse_code in self.assigned_codes

    def require_role(self, *roles: UserRole, custom_message: Optional[str] = None):
        """Require one of the roles or raise Forbidden"""
        if not self.has_role(*roles):
            message = custom_message or "Insufficient permissions"
            logger.warning(f"Role check failed for user {self.user.id}: {self.user.role}")
            raise Forbidden(message)

    def require_warehouse(self, warehouse_code: str, custom_message: Optional[str] = None):
        """Require access to a warehouse or raise Forbidden"""
        if not self.can_access(warehouse_code):
            message = custom_message or "Not assigned to this warehouse"
            logger.warning(f"Warehouse check failed for user {self.user.id}: {warehouse_code}")
            raise Forbidden(message)

    def require_supervisor(self, warehouse_code: str):
        """Admin anywhere, or a manager assigned to the warehouse"""
        self.require_role(UserRole.ADMIN, UserRole.MANAGER)
        self.require_warehouse(warehouse_code, "Managers may only act on assigned warehouses")
