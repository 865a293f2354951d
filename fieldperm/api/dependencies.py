"""
API Dependencies
Common dependencies for API routes
"""

from typing import Optional

from fastapi import Depends, Header
from pydantic import BaseModel

from fieldperm.core.exceptions import AuthenticationException, AuthorizationException
from fieldperm.core.logging import get_logger
from fieldperm.core.roles import Role, is_valid_role
from fieldperm.core.security import verify_access_token
from fieldperm.services.permissions import FieldPermissionService, get_permission_service

logger = get_logger(__name__)


class CurrentUser(BaseModel):
    """Authenticated caller"""
    user_id: str


class TableContext(BaseModel):
    """Caller together with their role on the requested table"""
    user_id: str
    table_id: str
    role: Role


async def get_current_user(
    authorization: Optional[str] = Header(None),
) -> CurrentUser:
    """
    Dependency to get current user from JWT token

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        Current authenticated user

    Raises:
        AuthenticationException: If the header or token is invalid
    """
    if not authorization:
        raise AuthenticationException(message="Missing authorization header")

    if not authorization.startswith("Bearer "):
        raise AuthenticationException(message="Invalid authorization header format")

    token = authorization.split(" ", 1)[1]
    payload = verify_access_token(token)

    return CurrentUser(user_id=str(payload["sub"]))


def get_service() -> FieldPermissionService:
    """Dependency returning the permission service"""
    return get_permission_service()


async def get_table_context(
    table_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: FieldPermissionService = Depends(get_service),
) -> TableContext:
    """
    Resolve the caller's role on the table in the path

    Raises:
        AuthorizationException: If the caller has no valid role on the table
    """
    role = await service.get_user_role(current_user.user_id, table_id)
    if role is None or not is_valid_role(role):
        logger.warning(f"User {current_user.user_id} has no access to table {table_id} (role={role!r})")
        raise AuthorizationException(
            message="No access to this table",
            details={"table_id": table_id},
        )

    return TableContext(user_id=current_user.user_id, table_id=table_id, role=Role(role))


async def require_table_manager(
    context: TableContext = Depends(get_table_context),
) -> TableContext:
    """Only owners and admins may configure field permissions"""
    if not context.role.is_protected:
        raise AuthorizationException(
            message="Only table owners and admins can manage field permissions",
            details={"table_id": context.table_id, "role": context.role.value},
        )
    return context
