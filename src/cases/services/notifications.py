"""
Best-effort notification and calendar dispatch.

Every public function here is isolated: a failure is logged and swallowed so
it can never fail or roll back the mutation that triggered it.
"""

import functools
import logging

from ..models import Collaborator, Milestone
from .. import tasks
from .calendar_sync import CalendarProjector

logger = logging.getLogger(__name__)


def isolated(name):
    """Run the wrapped dispatch, logging and discarding any failure."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception:
                logger.error(
                    f"Dispatch '{name}' failed (args={args!r}); continuing",
                    exc_info=True
                )
                return None
        return wrapper
    return decorator


@isolated('collaboration_invite_email')
def notify_collaborator_invited(collaborator: Collaborator):
    tasks.send_collaboration_invite_email.delay(str(collaborator.pk))


@isolated('milestone_deadline_email')
def notify_milestone_deadline(milestone: Milestone, broker):
    tasks.send_milestone_deadline_email.delay(str(milestone.pk), str(broker.pk))


@isolated('calendar_sync')
def sync_milestone_calendar(milestone: Milestone):
    """
    Project the milestone onto calendars and email brokers who just gained
    a deadline event.
    """
    created = CalendarProjector().sync_milestone(milestone)
    if milestone.is_terminal:
        return created
    for broker in created:
        notify_milestone_deadline(milestone, broker)
    return created


@isolated('calendar_remove')
def remove_milestone_calendar(milestone_id):
    return CalendarProjector().remove_milestone_events(milestone_id)


def milestone_changed(milestone: Milestone, changed_fields):
    """
    Keep calendar events in step with a milestone edit.

    Events are removed when the due date is cleared and re-synced when the
    due date, assignee, status or title changed.
    """
    if not {'due_date', 'owner', 'status', 'title'} & set(changed_fields):
        return
    if milestone.due_date is None:
        remove_milestone_calendar(milestone.pk)
    else:
        sync_milestone_calendar(milestone)
