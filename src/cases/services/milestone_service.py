"""
Milestone service.

Editors create, edit, move and delete milestones; reviewers approve, reject
or request changes. Both paths write ``Milestone.status`` through
``cases.workflow.apply_status``.
"""

from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max

from ..errors import ErrorCode
from ..models import Case, Milestone, TimelineEntryType
from ..workflow import (
    ReviewAction,
    apply_status,
    editor_transitions,
    is_reviewable,
    review_target,
)
from . import notifications, timeline
from .base import (
    BaseService,
    ConflictServiceError,
    NotFoundServiceError,
    ValidationServiceError,
)
from .calendar_sync import CalendarProjector
from .permissions import CasePermissionResolver, get_case_for

EDITABLE_FIELDS = ('title', 'description', 'priority', 'owner', 'due_date')


class MilestoneService(BaseService):
    """Service for the milestones of a case."""

    def _milestone_queryset(self, for_update=False):
        queryset = Milestone.objects.select_related('case', 'owner')
        if for_update:
            # Lock only the milestone row; owner is a nullable outer join
            queryset = queryset.select_for_update(of=('self',))
        return queryset

    def _get_milestone(self, milestone_id, for_update=False) -> Milestone:
        self._require_user()
        queryset = self._milestone_queryset(for_update)
        try:
            milestone = queryset.filter(id=milestone_id).first()
        except (ValueError, ValidationError):
            milestone = None
        if milestone is None:
            raise NotFoundServiceError(ErrorCode.MILESTONE_NOT_FOUND)
        return milestone

    def _check_version(self, milestone: Milestone, expected_version: Optional[int]):
        if expected_version is not None and int(expected_version) != milestone.version:
            raise ConflictServiceError(ErrorCode.STALE_MILESTONE)

    def _validate_fields(self, data: Dict[str, Any]):
        if 'title' in data and (not data['title'] or not str(data['title']).strip()):
            raise ValidationServiceError(ErrorCode.TITLE_REQUIRED)
        if data.get('priority') is not None and data['priority'] not in Milestone.Priority.values:
            raise ValidationServiceError(ErrorCode.INVALID_PRIORITY)

    def _record_status_change(self, milestone: Milestone, old_status: str):
        new_status = milestone.status
        if new_status == Milestone.Status.COMPLETED:
            entry_type = TimelineEntryType.MILESTONE_COMPLETED
            content = f'completed milestone "{milestone.title}"'
        else:
            entry_type = TimelineEntryType.STATUS_CHANGE
            content = f'changed milestone "{milestone.title}" to {new_status.replace("_", " ")}'
        timeline.append(
            milestone.case, self.user, entry_type, content,
            metadata={'old_status': old_status, 'new_status': new_status},
            milestone=milestone
        )

    # Reads

    def list_for_case(self, case_id):
        """Milestones of a case by sort order, then creation time."""
        case = get_case_for(self.user, case_id)
        return Milestone.objects.filter(case=case).select_related(
            'owner', 'completed_by'
        ).order_by('sort_order', 'created_at')

    def get(self, milestone_id) -> Milestone:
        milestone = self._get_milestone(milestone_id)
        CasePermissionResolver(milestone.case, self.user).require(
            'has_access', ErrorCode.NO_CASE_ACCESS
        )
        return milestone

    def available_transitions(self, milestone_id) -> Dict[str, Any]:
        """
        What the caller may do to the milestone from its current status.

        Editors get the workflow edges; approvers get the reviewer actions
        while the milestone is not completed or cancelled.
        """
        milestone = self.get(milestone_id)
        resolver = CasePermissionResolver(milestone.case, self.user)
        editor = list(editor_transitions(milestone.status)) if resolver.can_edit() else []
        reviewer = []
        if resolver.can_approve() and is_reviewable(milestone.status):
            reviewer = list(ReviewAction.values)
        return {
            'status': milestone.status,
            'version': milestone.version,
            'editor_transitions': editor,
            'review_actions': reviewer,
        }

    # Editor path

    def create(self, case_id, data: Dict[str, Any]) -> Milestone:
        """
        Create a milestone at the end of the case's list.

        ``owner`` defaults to the creator when omitted and ``priority`` to
        medium.
        """
        case = get_case_for(self.user, case_id)
        CasePermissionResolver(case, self.user).require('can_edit', ErrorCode.EDIT_FORBIDDEN)
        if not data.get('title') or not str(data['title']).strip():
            raise ValidationServiceError(ErrorCode.TITLE_REQUIRED)
        self._validate_fields(data)

        with transaction.atomic():
            # Serialise sort_order allocation per case
            Case.objects.select_for_update().filter(pk=case.pk).first()
            last = Milestone.objects.filter(case=case).aggregate(
                last=Max('sort_order')
            )['last']

            milestone = Milestone.objects.create(
                case=case,
                title=str(data['title']).strip(),
                description=data.get('description') or None,
                priority=data.get('priority') or Milestone.Priority.MEDIUM,
                owner=data['owner'] if 'owner' in data else self.user,
                due_date=data.get('due_date'),
                sort_order=(last or 0) + 1,
            )
            timeline.append(
                case, self.user, TimelineEntryType.MILESTONE_CREATED,
                f'created milestone "{milestone.title}"',
                metadata={
                    'priority': milestone.priority,
                    'due_date': milestone.due_date.isoformat() if milestone.due_date else None,
                },
                milestone=milestone
            )

        self._log_operation('create_milestone', {'case': str(case.pk), 'milestone': str(milestone.pk)})
        if milestone.due_date:
            notifications.sync_milestone_calendar(milestone)
        return milestone

    def update(self, milestone_id, data: Dict[str, Any],
               expected_version: Optional[int] = None) -> Milestone:
        """
        Edit fields and/or set the status of a milestone.

        Any status target is accepted; the lifecycle timestamps are kept
        consistent by ``apply_status``. A stale ``expected_version`` is
        rejected.
        """
        with transaction.atomic():
            milestone = self._get_milestone(milestone_id, for_update=True)
            CasePermissionResolver(milestone.case, self.user).require(
                'can_edit', ErrorCode.EDIT_FORBIDDEN
            )
            self._validate_fields(data)
            new_status = data.get('status')
            if new_status is not None and new_status not in Milestone.Status.values:
                raise ValidationServiceError(ErrorCode.INVALID_STATUS)
            self._check_version(milestone, expected_version)

            changed = []
            for field in EDITABLE_FIELDS:
                if field in data:
                    value = data[field]
                    if field == 'title':
                        value = str(value).strip()
                    setattr(milestone, field, value)
                    changed.append(field)

            old_status = milestone.status
            status_changed = new_status is not None and new_status != old_status
            if new_status is not None:
                apply_status(milestone, new_status, actor=self.user)
                changed.append('status')

            milestone.version += 1
            milestone.save()

            if status_changed:
                self._record_status_change(milestone, old_status)

        if status_changed:
            self.logger.info(
                f"Milestone {milestone.pk} moved from {old_status} to {milestone.status}"
            )
        self._log_operation('update_milestone', {'milestone': str(milestone.pk), 'fields': changed})
        notifications.milestone_changed(milestone, changed)
        return milestone

    def delete(self, milestone_id):
        """Hard delete a milestone and its calendar events."""
        with transaction.atomic():
            milestone = self._get_milestone(milestone_id, for_update=True)
            case = milestone.case
            CasePermissionResolver(case, self.user).require('can_edit', ErrorCode.EDIT_FORBIDDEN)
            milestone_pk, title = milestone.pk, milestone.title
            milestone.delete()
            timeline.append(
                case, self.user, TimelineEntryType.SYSTEM,
                f'deleted milestone "{title}"',
                metadata={'action': 'delete_milestone', 'milestone_id': str(milestone_pk)}
            )

        self._log_operation('delete_milestone', {'milestone': str(milestone_pk)})
        notifications.remove_milestone_calendar(milestone_pk)

    # Reviewer path

    def review(self, milestone_id, action: str, reason: str = '',
               expected_version: Optional[int] = None) -> Dict[str, Any]:
        """
        Approve, reject or request changes on a milestone.

        The target status depends only on the action: approve completes,
        reject blocks and request_changes puts the milestone back in
        progress. Completed and cancelled milestones cannot be reviewed.
        """
        with transaction.atomic():
            milestone = self._get_milestone(milestone_id, for_update=True)
            resolver = CasePermissionResolver(milestone.case, self.user)
            resolver.require('has_access', ErrorCode.NO_CASE_ACCESS)
            resolver.require('can_approve', ErrorCode.APPROVE_FORBIDDEN)

            try:
                new_status = review_target(action)
            except ValueError:
                raise ValidationServiceError(ErrorCode.INVALID_REVIEW_ACTION)
            if not is_reviewable(milestone.status):
                raise ConflictServiceError(ErrorCode.MILESTONE_TERMINAL)
            self._check_version(milestone, expected_version)

            reason = (reason or '').strip()
            old_status = apply_status(milestone, new_status, actor=self.user)
            milestone.version += 1
            milestone.save()

            title = milestone.title
            if action == ReviewAction.APPROVE:
                entry_type = TimelineEntryType.MILESTONE_COMPLETED
                content = f'approved milestone "{title}"'
            elif action == ReviewAction.REJECT:
                entry_type = TimelineEntryType.STATUS_CHANGE
                content = f'rejected milestone "{title}"'
            else:
                entry_type = TimelineEntryType.STATUS_CHANGE
                content = f'requested changes on milestone "{title}"'
            if reason:
                content = f"{content} — {reason}"

            entry = timeline.append(
                milestone.case, self.user, entry_type, content,
                metadata={
                    'action': action,
                    'reason': reason or None,
                    'old_status': old_status,
                    'new_status': new_status,
                    'approved_by': str(self.user.pk) if action == ReviewAction.APPROVE else None,
                },
                milestone=milestone
            )

        self.logger.info(
            f"Milestone {milestone.pk} reviewed ({action}): {old_status} -> {new_status}"
        )
        notifications.milestone_changed(milestone, ['status'])
        return {'milestone': milestone, 'timeline_entry': entry, 'action': action}

    # Calendar

    def sync_calendar(self, milestone_id) -> Dict[str, Any]:
        """Manually re-project a milestone onto calendars."""
        milestone = self.get(milestone_id)
        if not milestone.due_date:
            raise ValidationServiceError(ErrorCode.NO_DUE_DATE)
        created = CalendarProjector().sync_milestone(milestone)
        if not milestone.is_terminal:
            for broker in created:
                notifications.notify_milestone_deadline(milestone, broker)
        self._log_operation('sync_calendar', {'milestone': str(milestone.pk)})
        return {'milestone': milestone, 'created': len(created)}
