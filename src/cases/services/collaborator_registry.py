"""
Collaborator registry service.

Manages the roster of brokers with access to a case: invite, accept,
decline, change role, override permissions and remove.
"""

from typing import Any, Dict, List

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounts.identity import get_broker_by_email
from ..errors import ErrorCode
from ..models import Collaborator, Milestone, TimelineEntryType
from ..roles import CollaboratorRole, PERMISSION_FLAGS, get_role_config, is_valid_role
from . import notifications, timeline
from .base import (
    BaseService,
    ConflictServiceError,
    NotFoundServiceError,
    PermissionServiceError,
    ValidationServiceError,
)
from .permissions import (
    CasePermissionResolver,
    accessible_case_ids,
    get_case_for,
    owned_cases,
)


class CollaboratorRegistry(BaseService):
    """
    Service for the collaborator roster of a case.

    Each (case, broker) pair has a single row; removal only flips its status
    and a later invite reuses the removed row.
    """

    def _get_collaborator(self, collaborator_id, for_update=False) -> Collaborator:
        self._require_user()
        queryset = Collaborator.objects.select_related('case', 'broker')
        if for_update:
            queryset = queryset.select_for_update(of=('self',))
        try:
            collaborator = queryset.filter(id=collaborator_id).first()
        except (ValueError, ValidationError):
            collaborator = None
        if collaborator is None:
            raise NotFoundServiceError(ErrorCode.COLLABORATOR_NOT_FOUND)
        return collaborator

    def list_for_case(self, case_id):
        """Non-removed collaborators of a case, oldest invite first."""
        case = get_case_for(self.user, case_id)
        return Collaborator.objects.filter(case=case).exclude(
            status=Collaborator.Status.REMOVED
        ).select_related('broker', 'invited_by').order_by('invited_at')

    def invite(self, case_id, email: str, role: str) -> Collaborator:
        """
        Invite a broker onto a case by email.

        Raises:
            ValidationServiceError: Missing email/role, unknown or owner role
            PermissionServiceError: Caller is not an owner or co-owner
            NotFoundServiceError: No broker account has this email
            ConflictServiceError: Self-invite or existing non-removed row
        """
        self._require_user()
        self._validate_required_fields(
            {'email': email, 'role': role}, ('email', 'role'), ErrorCode.EMAIL_AND_ROLE_REQUIRED
        )
        case = get_case_for(self.user, case_id)
        CasePermissionResolver(case, self.user).require(
            'is_owner_or_co_owner', ErrorCode.OWNER_OR_CO_OWNER_REQUIRED
        )

        broker = get_broker_by_email(email)
        if broker is None:
            raise NotFoundServiceError(ErrorCode.BROKER_NOT_FOUND)
        if broker.pk == self.user.pk:
            raise ConflictServiceError(ErrorCode.CANNOT_INVITE_SELF)
        if not is_valid_role(role):
            raise ValidationServiceError(ErrorCode.INVALID_ROLE)
        if role == CollaboratorRole.OWNER:
            raise ValidationServiceError(ErrorCode.OWNER_ROLE_NOT_ASSIGNABLE)

        try:
            with transaction.atomic():
                collaborator = self._write_invite(case, broker, role)
                role_label = get_role_config(role).label
                timeline.append(
                    case, self.user, TimelineEntryType.COLLABORATOR_ADDED,
                    f"invited {broker.full_name or broker.email} as {role_label}",
                    metadata={
                        'collaborator_id': str(collaborator.pk),
                        'broker_id': str(broker.pk),
                        'broker_name': broker.full_name or None,
                        'role': role,
                    }
                )
        except IntegrityError:
            raise ConflictServiceError(ErrorCode.ALREADY_COLLABORATOR)

        self._log_operation('invite', {'case': str(case.pk), 'broker': broker.email, 'role': role})
        notifications.notify_collaborator_invited(collaborator)
        return collaborator

    def _write_invite(self, case, broker, role) -> Collaborator:
        existing = Collaborator.objects.select_for_update().filter(
            case=case, broker=broker
        ).first()

        if existing is not None:
            if existing.status != Collaborator.Status.REMOVED:
                raise ConflictServiceError(ErrorCode.ALREADY_COLLABORATOR)
            existing.reinvite(invited_by=self.user)
            existing.role = role
            existing.apply_role_defaults()
            existing.save()
            return existing

        collaborator = Collaborator(
            case=case,
            broker=broker,
            role=role,
            invited_by=self.user,
            invited_at=timezone.now(),
        )
        collaborator.apply_role_defaults()
        collaborator.save()
        return collaborator

    def _respond(self, collaborator_id, accept: bool) -> Collaborator:
        with transaction.atomic():
            collaborator = self._get_collaborator(collaborator_id, for_update=True)
            if collaborator.broker_id != self.user.pk:
                raise PermissionServiceError(ErrorCode.NOT_OWN_INVITE)
            if collaborator.status != Collaborator.Status.PENDING:
                raise PermissionServiceError(ErrorCode.INVITE_NOT_PENDING)

            if accept:
                collaborator.accept()
                content = f"joined the case as {collaborator.role_label}"
            else:
                collaborator.decline()
                content = "declined the invitation"
            collaborator.save()

            timeline.append(
                collaborator.case, self.user, TimelineEntryType.SYSTEM, content,
                metadata={
                    'action': 'accept' if accept else 'decline',
                    'collaborator_id': str(collaborator.pk),
                    'role': collaborator.role,
                }
            )

        self._log_operation(
            'accept_invite' if accept else 'decline_invite',
            {'collaborator': str(collaborator.pk)}
        )
        return collaborator

    def accept(self, collaborator_id) -> Collaborator:
        """
        Accept the caller's own pending invite.

        Raises:
            PermissionServiceError: Not the invited broker, or not pending
        """
        return self._respond(collaborator_id, accept=True)

    def decline(self, collaborator_id) -> Collaborator:
        """
        Decline the caller's own pending invite.

        Raises:
            PermissionServiceError: Not the invited broker, or not pending
        """
        return self._respond(collaborator_id, accept=False)

    def change_role(self, collaborator_id, role: str) -> Collaborator:
        """
        Change a collaborator's role. Owner only.

        Permission flags are reset to the new role's defaults; earlier
        per-flag overrides are discarded.
        """
        with transaction.atomic():
            collaborator = self._get_collaborator(collaborator_id, for_update=True)
            CasePermissionResolver(collaborator.case, self.user).require(
                'is_owner', ErrorCode.OWNER_ONLY_ROLE_CHANGE
            )
            if not role or not is_valid_role(role):
                raise ValidationServiceError(ErrorCode.INVALID_ROLE)
            if role == CollaboratorRole.OWNER:
                raise ValidationServiceError(ErrorCode.OWNER_ROLE_NOT_ASSIGNABLE)
            if collaborator.role == CollaboratorRole.OWNER:
                raise ConflictServiceError(ErrorCode.OWNER_ROW_LOCKED)
            if collaborator.status == Collaborator.Status.REMOVED:
                raise ConflictServiceError(ErrorCode.COLLABORATOR_ALREADY_REMOVED)

            old_role = collaborator.role
            collaborator.role = role
            collaborator.apply_role_defaults()
            collaborator.save()

            broker = collaborator.broker
            timeline.append(
                collaborator.case, self.user, TimelineEntryType.SYSTEM,
                f"changed {broker.full_name or broker.email}'s role to {collaborator.role_label}",
                metadata={
                    'action': 'change_role',
                    'broker_id': str(broker.pk),
                    'old_role': old_role,
                    'new_role': role,
                }
            )

        self._log_operation('change_role', {'collaborator': str(collaborator.pk), 'role': role})
        return collaborator

    def update_permissions(self, collaborator_id, permissions: Dict[str, Any]) -> Collaborator:
        """
        Override individual permission flags without changing the role.
        Owner only.
        """
        with transaction.atomic():
            collaborator = self._get_collaborator(collaborator_id, for_update=True)
            CasePermissionResolver(collaborator.case, self.user).require(
                'is_owner', ErrorCode.OWNER_ONLY_PERMISSIONS
            )
            if (
                not isinstance(permissions, dict)
                or not permissions
                or any(flag not in PERMISSION_FLAGS for flag in permissions)
                or any(not isinstance(value, bool) for value in permissions.values())
            ):
                raise ValidationServiceError(ErrorCode.INVALID_PERMISSIONS)
            if collaborator.role == CollaboratorRole.OWNER:
                raise ConflictServiceError(ErrorCode.OWNER_ROW_LOCKED)
            if collaborator.status == Collaborator.Status.REMOVED:
                raise ConflictServiceError(ErrorCode.COLLABORATOR_ALREADY_REMOVED)

            for flag, value in permissions.items():
                setattr(collaborator, flag, value)
            collaborator.save()

            broker = collaborator.broker
            timeline.append(
                collaborator.case, self.user, TimelineEntryType.SYSTEM,
                f"updated permissions for {broker.full_name or broker.email}",
                metadata={
                    'action': 'update_permissions',
                    'broker_id': str(broker.pk),
                    'permissions': collaborator.permissions,
                }
            )

        self._log_operation('update_permissions', {'collaborator': str(collaborator.pk)})
        return collaborator

    def remove(self, collaborator_id) -> Collaborator:
        """
        Revoke a collaborator's access. Owner only.

        Raises:
            ConflictServiceError: The row holds the owner role, or is already removed
            PermissionServiceError: Caller is not the owner
        """
        with transaction.atomic():
            collaborator = self._get_collaborator(collaborator_id, for_update=True)
            if collaborator.role == CollaboratorRole.OWNER:
                raise ConflictServiceError(ErrorCode.OWNER_NOT_REMOVABLE)
            CasePermissionResolver(collaborator.case, self.user).require(
                'is_owner', ErrorCode.OWNER_REQUIRED
            )
            if collaborator.status == Collaborator.Status.REMOVED:
                raise ConflictServiceError(ErrorCode.COLLABORATOR_ALREADY_REMOVED)

            collaborator.remove()
            collaborator.save()

            broker = collaborator.broker
            timeline.append(
                collaborator.case, self.user, TimelineEntryType.COLLABORATOR_REMOVED,
                f"removed {broker.full_name or broker.email or 'a collaborator'}",
                metadata={'broker_id': str(broker.pk)}
            )

        self._log_operation('remove', {'collaborator': str(collaborator.pk)})
        return collaborator

    # Caller-centric reads

    def pending_invites(self):
        """The caller's own pending invites, most recent first."""
        broker = self._require_user()
        return Collaborator.objects.filter(
            broker=broker,
            status=Collaborator.Status.PENDING
        ).select_related('case', 'invited_by').order_by('-invited_at')

    def overview(self) -> Dict[str, Any]:
        """
        Everything the caller collaborates on, plus the teams on their own cases.
        """
        broker = self._require_user()

        collaborations = list(
            Collaborator.objects.filter(broker=broker)
            .exclude(status=Collaborator.Status.REMOVED)
            .select_related('case', 'invited_by')
            .order_by('-created_at')
        )
        own_cases = list(owned_cases(broker).order_by('-created_at'))
        own_case_ids = {case.pk for case in own_cases}

        teams: Dict[Any, List[Collaborator]] = {}
        members = Collaborator.objects.filter(case_id__in=own_case_ids).exclude(
            status=Collaborator.Status.REMOVED
        ).exclude(broker=broker).select_related('broker').order_by('invited_at')
        for member in members:
            teams.setdefault(member.case_id, []).append(member)

        owned_with_team = [
            {'case': case, 'collaborators': teams[case.pk]}
            for case in own_cases if case.pk in teams
        ]
        active_on_others = sum(
            1 for collaboration in collaborations
            if collaboration.status == Collaborator.Status.ACTIVE
            and collaboration.case_id not in own_case_ids
        )

        return {
            'collaborations': collaborations,
            'owned_cases': own_cases,
            'owned_with_collaborators': owned_with_team,
            'summary': {
                'total_owned_team_members': sum(len(team) for team in teams.values()),
                'active_collaborations_on_others': active_on_others,
                'owned_cases_with_teams': len(owned_with_team),
                'total_team_cases': len(owned_with_team) + active_on_others,
            },
        }

    def stats(self) -> Dict[str, int]:
        """Dashboard counters for the caller."""
        broker = self._require_user()
        own_case_ids = owned_cases(broker).values('id')
        today = timezone.now().date()

        milestones = Milestone.objects.filter(case_id__in=accessible_case_ids(broker))
        return {
            'total_collaborations': Collaborator.objects.filter(
                broker=broker, status=Collaborator.Status.ACTIVE
            ).exclude(case_id__in=own_case_ids).count(),
            'pending_invites': Collaborator.objects.filter(
                broker=broker, status=Collaborator.Status.PENDING
            ).count(),
            'milestones_due_today': milestones.filter(due_date=today).exclude(
                status__in=Milestone.TERMINAL_STATUSES
            ).count(),
            'blocked_milestones': milestones.filter(status=Milestone.Status.BLOCKED).count(),
        }
