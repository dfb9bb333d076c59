"""
Calendar projection of milestone deadlines.

Each milestone with a due date owns one deadline event per targeted broker.
Events are rewritten from the milestone's current state on every sync.
"""

import logging
from datetime import datetime, time, timedelta, timezone as dt_timezone
from typing import List

from django.db import transaction
from django.utils import timezone

from accounts.models import User
from ..conf import get_setting
from ..models import CalendarEvent, Collaborator, Milestone
from .permissions import legacy_owner

logger = logging.getLogger(__name__)


class CalendarProjector:
    """Idempotent upsert and removal of milestone deadline events."""

    def target_brokers(self, milestone: Milestone) -> List[User]:
        """
        Brokers who should see the deadline.

        The assignee alone when the milestone is assigned, otherwise the
        legacy owner plus every active collaborator.
        """
        if milestone.owner_id:
            return [milestone.owner]

        targets = []
        owner = legacy_owner(milestone.case)
        if owner is not None:
            targets.append(owner)
        active = Collaborator.objects.filter(
            case_id=milestone.case_id,
            status=Collaborator.Status.ACTIVE
        ).select_related('broker')
        for collaborator in active:
            if all(collaborator.broker_id != broker.pk for broker in targets):
                targets.append(collaborator.broker)
        return targets

    def _event_values(self, milestone: Milestone) -> dict:
        start = datetime.combine(milestone.due_date, time.min, tzinfo=dt_timezone.utc)
        duration = timedelta(minutes=get_setting('CALENDAR_EVENT_DURATION_MINUTES'))
        completed = milestone.status == Milestone.Status.COMPLETED
        return {
            'title': f"Deadline: {milestone.title}",
            'description': milestone.description or f"Milestone deadline for {milestone.case.label}",
            'start_time': start,
            'end_time': start + duration,
            'status': CalendarEvent.Status.COMPLETED if completed else CalendarEvent.Status.SCHEDULED,
        }

    @transaction.atomic
    def sync_milestone(self, milestone: Milestone) -> List[User]:
        """
        Project the milestone onto its targets' calendars.

        Updates existing events, creates missing ones and deletes events of
        brokers no longer targeted. A milestone without a due date is left
        alone.

        Returns:
            Brokers for whom an event was newly created
        """
        if not milestone.due_date:
            return []

        values = self._event_values(milestone)
        is_completed = values['status'] == CalendarEvent.Status.COMPLETED
        now = timezone.now()

        existing = {
            event.broker_id: event
            for event in CalendarEvent.objects.filter(milestone=milestone)
        }
        created = []

        for broker in self.target_brokers(milestone):
            event = existing.pop(broker.pk, None)
            if event is None:
                CalendarEvent.objects.create(
                    broker=broker,
                    case_id=milestone.case_id,
                    milestone=milestone,
                    event_type=CalendarEvent.EventType.DEADLINE,
                    reminders=list(get_setting('MILESTONE_REMINDER_MINUTES')),
                    completed_at=now if is_completed else None,
                    **values
                )
                created.append(broker)
                continue

            for field, value in values.items():
                setattr(event, field, value)
            if not is_completed:
                event.completed_at = None
            elif event.completed_at is None:
                event.completed_at = now
            event.save()

        if existing:
            CalendarEvent.objects.filter(
                id__in=[event.id for event in existing.values()]
            ).delete()

        logger.info(
            f"Synced calendar for milestone {milestone.pk}: "
            f"{len(created)} created, {len(existing)} removed"
        )
        return created

    def remove_milestone_events(self, milestone_id) -> int:
        """Delete every calendar event of a milestone."""
        deleted, _ = CalendarEvent.objects.filter(milestone_id=milestone_id).delete()
        if deleted:
            logger.info(f"Removed {deleted} calendar events for milestone {milestone_id}")
        return deleted
