"""
Custom Exceptions
Application-specific exception classes
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class AppException(Exception):
    """Base application exception"""

    def __init__(
        self,
        message: str,
        code: str = "app_error",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)


class ValidationException(AppException):
    """Validation error exception"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="validation_error",
            status_code=400,
            details=details,
        )


class AuthenticationException(AppException):
    """Authentication error exception"""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="authentication_error",
            status_code=401,
            details=details,
        )


class AuthorizationException(AppException):
    """Authorization error exception"""

    def __init__(
        self,
        message: str = "Permission denied",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="authorization_error",
            status_code=403,
            details=details,
        )


class NotFoundException(AppException):
    """Resource not found exception"""

    def __init__(
        self,
        resource: str = "Resource",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=f"{resource} not found",
            code="not_found",
            status_code=404,
            details=details,
        )


class InvalidRoleException(AppException):
    """Role outside the owner/admin/editor/viewer enumeration"""

    def __init__(
        self,
        role: Any,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["role"] = str(role)
        super().__init__(
            message=f"Invalid role: {role!r}",
            code="invalid_role",
            status_code=400,
            details=details,
        )


class InvalidActionException(AppException):
    """Action other than read, write or delete"""

    def __init__(
        self,
        action: Any,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["action"] = str(action)
        super().__init__(
            message=f"Invalid action: {action!r}",
            code="invalid_action",
            status_code=400,
            details=details,
        )


class ProtectedRoleException(AppException):
    """Attempt to override permissions of a protected role"""

    def __init__(
        self,
        role: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["role"] = role
        super().__init__(
            message=f"Permissions of role '{role}' cannot be overridden",
            code="protected_role",
            status_code=403,
            details=details,
        )


class UnknownFieldException(AppException):
    """Field does not belong to the table's schema"""

    def __init__(
        self,
        table_id: str,
        field_id: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details.update({"table_id": table_id, "field_id": field_id})
        super().__init__(
            message=f"Field '{field_id}' does not exist in table '{table_id}'",
            code="unknown_field",
            status_code=404,
            details=details,
        )


class BatchValidationException(AppException):
    """
    One or more entries of a batch failed validation

    Every offending entry is listed in details["errors"].
    """

    def __init__(
        self,
        errors: List[Dict[str, Any]],
        message: Optional[str] = None,
    ):
        self.errors = errors
        super().__init__(
            message=message or f"Batch rejected: {len(errors)} invalid entr{'y' if len(errors) == 1 else 'ies'}",
            code="validation_failed",
            status_code=422,
            details={"errors": errors},
        )


class StoreUnavailableException(AppException):
    """Permission store I/O failed or timed out"""

    def __init__(
        self,
        message: str = "Permission store unavailable",
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(
            message=message,
            code="store_unavailable",
            status_code=503,
            details=details,
        )
