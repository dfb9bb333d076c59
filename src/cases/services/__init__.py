"""
Case collaboration services for business logic and operations.
"""

from .base import (
    ServiceError,
    AuthenticationServiceError,
    ValidationServiceError,
    PermissionServiceError,
    NotFoundServiceError,
    ConflictServiceError,
)
from .permissions import CasePermissionResolver, accessible_cases, get_case_for
from .timeline import TimelineService
from .calendar_sync import CalendarProjector
from .collaborator_registry import CollaboratorRegistry
from .milestone_service import MilestoneService

__all__ = [
    'ServiceError',
    'AuthenticationServiceError',
    'ValidationServiceError',
    'PermissionServiceError',
    'NotFoundServiceError',
    'ConflictServiceError',
    'CasePermissionResolver',
    'accessible_cases',
    'get_case_for',
    'TimelineService',
    'CalendarProjector',
    'CollaboratorRegistry',
    'MilestoneService',
]
