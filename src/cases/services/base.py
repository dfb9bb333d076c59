"""
Base service class for collaboration business logic.

Provides the service error hierarchy, caller context, logging and
validation helpers shared by every service.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from accounts.models import User
from ..errors import ErrorCode


class ServiceError(Exception):
    """Base exception for service errors."""
    status_code = 500
    default_code = 'service_error'

    def __init__(self, message=None, code=None):
        if isinstance(message, ErrorCode):
            code = code or message.value
            message = message.label
        self.message = message or 'Service error'
        self.code = code or self.default_code
        super().__init__(self.message)


class AuthenticationServiceError(ServiceError):
    """No verified caller."""
    status_code = 401
    default_code = ErrorCode.AUTHENTICATION_REQUIRED.value


class ValidationServiceError(ServiceError):
    """Service error for validation failures."""
    status_code = 400
    default_code = 'invalid'


class PermissionServiceError(ServiceError):
    """Service error for permission failures."""
    status_code = 403
    default_code = 'forbidden'


class NotFoundServiceError(ServiceError):
    """Service error for not found resources."""
    status_code = 404
    default_code = 'not_found'


class ConflictServiceError(ServiceError):
    """Service error for duplicate or state conflicts."""
    status_code = 409
    default_code = 'conflict'


class BaseService:
    """
    Base service class providing common functionality.

    All collaboration services inherit from this class to get consistent
    caller handling, logging and field validation.
    """

    def __init__(self, user: Optional[User] = None):
        """
        Initialize service with caller context.

        Args:
            user: The authenticated broker performing the operation
        """
        self.user = user
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    def _require_user(self) -> User:
        if self.user is None or not getattr(self.user, 'is_authenticated', False):
            raise AuthenticationServiceError(ErrorCode.AUTHENTICATION_REQUIRED)
        return self.user

    def _log_operation(self, operation: str, details: Dict[str, Any] = None):
        """Log service operation."""
        user_info = f"user={self.user.email}" if self.user else "user=anonymous"
        details_info = f" details={details}" if details else ""
        self.logger.info(f"{operation} - {user_info}{details_info}")

    def _validate_required_fields(self, data: Dict[str, Any], required_fields: Iterable[str], code: ErrorCode):
        """
        Validate that required fields are present and non-blank.

        Raises:
            ValidationServiceError: If a field is missing
        """
        for field in required_fields:
            value = data.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationServiceError(code)
