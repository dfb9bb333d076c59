"""
Permission resolver for case collaboration.

Answers who may read, edit, approve or administer a case from two sources:
the legacy ``Case.primary_owner`` reference and the collaborator roster.
This is the only module that reads ``primary_owner``.
"""

import logging
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError, models
from django.db.models import Q

from accounts.models import User
from ..errors import ErrorCode
from ..models import Case, Collaborator
from ..roles import APPROVER_ROLES, CollaboratorRole, OWNER_ROLES
from .base import (
    AuthenticationServiceError,
    NotFoundServiceError,
    PermissionServiceError,
)

logger = logging.getLogger(__name__)


class CasePermissionResolver:
    """
    Resolve a broker's capabilities on a case.

    Every question checks the legacy owner and the roster together. A store
    failure resolves to "no access".
    """

    def __init__(self, case: Case, broker: Optional[User]):
        self.case = case
        self.broker = broker
        self._row_loaded = False
        self._row = None

    # Store access

    @property
    def is_legacy_owner(self) -> bool:
        return bool(
            self.broker is not None
            and self.case.primary_owner_id is not None
            and self.case.primary_owner_id == self.broker.pk
        )

    def _collaborator_row(self) -> Optional[Collaborator]:
        if not self._row_loaded:
            self._row = Collaborator.objects.filter(
                case_id=self.case.pk,
                broker_id=self.broker.pk
            ).exclude(status=Collaborator.Status.REMOVED).first()
            self._row_loaded = True
        return self._row

    def _active_row(self) -> Optional[Collaborator]:
        row = self._collaborator_row()
        if row is not None and row.status == Collaborator.Status.ACTIVE:
            return row
        return None

    def _resolve(self, question, check) -> bool:
        if self.broker is None or not getattr(self.broker, 'is_authenticated', False):
            return False
        try:
            return bool(check())
        except DatabaseError:
            logger.error(
                f"Permission lookup '{question}' failed for case={self.case.pk} "
                f"broker={self.broker.pk}; denying",
                exc_info=True
            )
            return False

    # Questions

    def has_access(self) -> bool:
        """Legacy owner, or a pending or active collaborator row."""
        return self._resolve(
            'has_access',
            lambda: self.is_legacy_owner or self._collaborator_row() is not None
        )

    def is_owner(self) -> bool:
        """Legacy owner, or an active row with role owner."""
        def check():
            if self.is_legacy_owner:
                return True
            row = self._active_row()
            return row is not None and row.role == CollaboratorRole.OWNER
        return self._resolve('is_owner', check)

    def is_owner_or_co_owner(self) -> bool:
        def check():
            if self.is_legacy_owner:
                return True
            row = self._active_row()
            return row is not None and row.role in OWNER_ROLES
        return self._resolve('is_owner_or_co_owner', check)

    def _has_flag(self, flag: str) -> bool:
        row = self._active_row()
        return row is not None and getattr(row, flag)

    def can_edit(self) -> bool:
        return self.is_owner_or_co_owner() or self._resolve(
            'can_edit', lambda: self._has_flag('can_edit')
        )

    def can_approve(self) -> bool:
        def check():
            if self.is_legacy_owner:
                return True
            row = self._active_row()
            return row is not None and (row.role in APPROVER_ROLES or row.can_approve)
        return self._resolve('can_approve', check)

    def can_message(self) -> bool:
        return self.is_owner_or_co_owner() or self._resolve(
            'can_message', lambda: self._has_flag('can_message')
        )

    def can_upload(self) -> bool:
        return self.is_owner_or_co_owner() or self._resolve(
            'can_upload', lambda: self._has_flag('can_upload')
        )

    def summary(self) -> dict:
        """The caller's capabilities, as returned alongside case details."""
        return {
            'has_access': self.has_access(),
            'is_owner': self.is_owner(),
            'is_owner_or_co_owner': self.is_owner_or_co_owner(),
            'can_edit': self.can_edit(),
            'can_approve': self.can_approve(),
            'can_message': self.can_message(),
            'can_upload': self.can_upload(),
        }

    def require(self, question: str, code: ErrorCode):
        """
        Raise unless ``question`` resolves true.

        Raises:
            AuthenticationServiceError: If there is no verified caller
            PermissionServiceError: If the answer is no
        """
        if self.broker is None or not getattr(self.broker, 'is_authenticated', False):
            raise AuthenticationServiceError(ErrorCode.AUTHENTICATION_REQUIRED)
        if not getattr(self, question)():
            raise PermissionServiceError(code)


def accessible_case_ids(broker: User):
    """Ids of every case the broker can access, for use as a subquery."""
    return Case.objects.filter(
        Q(primary_owner_id=broker.pk)
        | Q(
            collaborators__broker_id=broker.pk,
            collaborators__status__in=[
                Collaborator.Status.ACTIVE, Collaborator.Status.PENDING
            ]
        )
    ).values('id')


def accessible_cases(broker: Optional[User]):
    """Queryset of cases the broker can access."""
    if broker is None or not getattr(broker, 'is_authenticated', False):
        return Case.objects.none()
    return Case.objects.filter(id__in=accessible_case_ids(broker))


def owned_cases(broker: User):
    """Cases the broker administers through the legacy owner reference."""
    return Case.objects.filter(primary_owner_id=broker.pk)


def get_case_for(broker: Optional[User], case_id) -> Case:
    """
    Load a case the caller may read.

    Raises:
        AuthenticationServiceError: If there is no verified caller
        NotFoundServiceError: If the case does not exist
        PermissionServiceError: If the caller has no access
    """
    if broker is None or not getattr(broker, 'is_authenticated', False):
        raise AuthenticationServiceError(ErrorCode.AUTHENTICATION_REQUIRED)
    try:
        case = Case.objects.filter(pk=case_id).first()
    except (ValueError, ValidationError):
        case = None
    if case is None:
        raise NotFoundServiceError(ErrorCode.CASE_NOT_FOUND)
    CasePermissionResolver(case, broker).require('has_access', ErrorCode.NO_CASE_ACCESS)
    return case


def legacy_owner(case: Case) -> Optional[User]:
    """The case's legacy single owner, if one was ever recorded."""
    return case.primary_owner


def cases_missing_owner_row():
    """Cases whose legacy owner has no collaborator row on them yet."""
    return Case.objects.filter(primary_owner__isnull=False).exclude(
        collaborators__broker_id=models.F('primary_owner_id')
    ).select_related('primary_owner')
