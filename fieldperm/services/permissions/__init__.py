"""
Field Permission Services
Role hierarchy, default policy, override store, cache, resolver and mutator
"""

from fieldperm.services.permissions.cache import PermissionCache, TableOverrides
from fieldperm.services.permissions.models import (
    FieldOverride,
    OverrideChange,
    PermissionFlags,
    ResolvedPermission,
)
from fieldperm.services.permissions.mutator import BatchMutator
from fieldperm.services.permissions.policy import DEFAULT_POLICY, default_allows, default_permissions
from fieldperm.services.permissions.providers import (
    IdentityProvider,
    SchemaProvider,
    SqlIdentityProvider,
    SqlSchemaProvider,
)
from fieldperm.services.permissions.resolver import PermissionResolver
from fieldperm.services.permissions.service import (
    FieldPermissionService,
    close_permission_service,
    get_permission_service,
    set_permission_service,
)
from fieldperm.services.permissions.store import FieldOverrideStore
from fieldperm.services.permissions.templates import TEMPLATE_NAMES

__all__ = [
    # Main service
    "FieldPermissionService",
    "close_permission_service",
    "get_permission_service",
    "set_permission_service",
    # Components
    "BatchMutator",
    "FieldOverrideStore",
    "PermissionCache",
    "PermissionResolver",
    "TableOverrides",
    # Policy
    "DEFAULT_POLICY",
    "default_allows",
    "default_permissions",
    "TEMPLATE_NAMES",
    # Collaborators
    "IdentityProvider",
    "SchemaProvider",
    "SqlIdentityProvider",
    "SqlSchemaProvider",
    # Models
    "FieldOverride",
    "OverrideChange",
    "PermissionFlags",
    "ResolvedPermission",
]
