"""
Field Permission API Routes
Configure and query per-field permissions of a table
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from fieldperm.api.dependencies import (
    TableContext,
    get_service,
    get_table_context,
    require_table_manager,
)
from fieldperm.core.exceptions import AuthorizationException
from fieldperm.core.logging import get_logger
from fieldperm.core.roles import parse_role
from fieldperm.models.common import ErrorResponse
from fieldperm.models.permission import (
    BatchSetFieldPermissionsRequest,
    ClearFieldPermissionsRequest,
    EffectivePermissionsResponse,
    FieldPermissionItem,
    FieldPermissionListResponse,
    MutationResponse,
    PermissionCheckRequest,
    PermissionCheckResponse,
    SetFieldPermissionRequest,
)
from fieldperm.services.permissions import FieldOverride, FieldPermissionService

logger = get_logger(__name__)
router = APIRouter(
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    }
)


def _to_item(override: FieldOverride) -> FieldPermissionItem:
    return FieldPermissionItem(
        field_id=override.field_id,
        role=override.role.value,
        can_read=override.can_read,
        can_write=override.can_write,
        can_delete=override.can_delete,
    )


def _target_role(context: TableContext, requested: Optional[str]) -> str:
    """
    Role a query is answered for

    Members query their own role; owners and admins may query any role.
    """
    if requested is None:
        return context.role.value

    role = parse_role(requested)
    if role != context.role and not context.role.is_protected:
        raise AuthorizationException(
            message="Only table owners and admins can query other roles",
            details={"table_id": context.table_id, "role": requested},
        )
    return role.value


@router.get("/{table_id}/field-permissions", response_model=FieldPermissionListResponse)
async def get_field_permissions(
    table_id: str,
    context: TableContext = Depends(require_table_manager),
    service: FieldPermissionService = Depends(get_service),
):
    """
    List the stored overrides of a table

    Fields and roles without an override follow the default policy and
    are not listed.
    """
    overrides = await service.get_field_permissions(table_id)
    return FieldPermissionListResponse(
        table_id=table_id,
        permissions=[_to_item(o) for o in overrides],
    )


@router.put("/{table_id}/field-permissions", response_model=FieldPermissionItem)
async def set_field_permission(
    table_id: str,
    request: SetFieldPermissionRequest,
    context: TableContext = Depends(require_table_manager),
    service: FieldPermissionService = Depends(get_service),
):
    """Create or replace one override"""
    override = await service.set_field_permission(
        table_id,
        request.field_id,
        request.role,
        request.can_read,
        request.can_write,
        request.can_delete,
    )
    logger.info(
        f"User {context.user_id} set {request.role} permissions on {table_id}/{request.field_id}"
    )
    return _to_item(override)


@router.put("/{table_id}/field-permissions/batch", response_model=MutationResponse)
async def batch_set_field_permissions(
    table_id: str,
    request: BatchSetFieldPermissionsRequest,
    context: TableContext = Depends(require_table_manager),
    service: FieldPermissionService = Depends(get_service),
):
    """
    Apply several overrides atomically

    Every entry is validated first. A single invalid entry rejects the
    whole batch with a 422 listing all failures.
    """
    written = await service.batch_set_field_permissions(table_id, request.permissions)
    logger.info(f"User {context.user_id} applied batch of {len(written)} overrides on {table_id}")
    return MutationResponse(table_id=table_id, affected=len(written))


@router.delete("/{table_id}/field-permissions", response_model=MutationResponse)
async def reset_field_permissions(
    table_id: str,
    context: TableContext = Depends(require_table_manager),
    service: FieldPermissionService = Depends(get_service),
):
    """Remove every override so the table follows the default policy"""
    removed = await service.reset_field_permissions(table_id)
    logger.info(f"User {context.user_id} reset field permissions on {table_id}")
    return MutationResponse(table_id=table_id, affected=removed)


@router.post("/{table_id}/field-permissions/clear", response_model=MutationResponse)
async def clear_field_permissions(
    table_id: str,
    request: Optional[ClearFieldPermissionsRequest] = None,
    context: TableContext = Depends(require_table_manager),
    service: FieldPermissionService = Depends(get_service),
):
    """Deny every action on every field for the given roles"""
    roles = request.roles if request else None
    written = await service.clear_field_permissions(table_id, roles)
    logger.info(f"User {context.user_id} cleared field permissions on {table_id}")
    return MutationResponse(table_id=table_id, affected=len(written))


@router.post("/{table_id}/field-permissions/templates/{name}", response_model=MutationResponse)
async def apply_permission_template(
    table_id: str,
    name: str,
    context: TableContext = Depends(require_table_manager),
    service: FieldPermissionService = Depends(get_service),
):
    """Apply a named template (default, read_only, strict) to every field"""
    written = await service.apply_template(table_id, name)
    logger.info(f"User {context.user_id} applied template '{name}' on {table_id}")
    return MutationResponse(table_id=table_id, affected=len(written))


@router.post("/{table_id}/field-permissions/check", response_model=PermissionCheckResponse)
async def check_permission(
    table_id: str,
    request: PermissionCheckRequest,
    context: TableContext = Depends(get_table_context),
    service: FieldPermissionService = Depends(get_service),
):
    """Decide whether a role may perform an action on a field"""
    role = _target_role(context, request.role)
    allowed = await service.check_permission(table_id, request.field_id, role, request.action)
    return PermissionCheckResponse(
        table_id=table_id,
        field_id=request.field_id,
        role=role,
        action=request.action,
        allowed=allowed,
    )


@router.get("/{table_id}/field-permissions/effective", response_model=EffectivePermissionsResponse)
async def get_effective_permissions(
    table_id: str,
    role: Optional[str] = Query(None, description="Role to resolve (default: caller's role)"),
    readable_only: bool = Query(False, description="Only list readable fields"),
    context: TableContext = Depends(get_table_context),
    service: FieldPermissionService = Depends(get_service),
):
    """Resolved permissions of a role on every field, in schema order"""
    target = _target_role(context, role)
    resolved = await service.get_effective_permissions(table_id, target, readable_only=readable_only)
    return EffectivePermissionsResponse(
        table_id=table_id,
        role=target,
        fields={field_id: perm.as_dict() for field_id, perm in resolved.items()},
    )


@router.delete("/{table_id}/fields/{field_id}/field-permissions", response_model=MutationResponse)
async def delete_field_permissions(
    table_id: str,
    field_id: str,
    context: TableContext = Depends(require_table_manager),
    service: FieldPermissionService = Depends(get_service),
):
    """Drop every override of a deleted field"""
    removed = await service.handle_field_deleted(table_id, field_id)
    logger.info(f"User {context.user_id} removed overrides of {table_id}/{field_id}")
    return MutationResponse(table_id=table_id, affected=removed)
