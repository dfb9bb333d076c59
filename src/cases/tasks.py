"""
Celery tasks for collaboration emails.

Invite and milestone-deadline emails, plus the periodic sweep that sends
deadline reminders from projected calendar events.
"""

import logging
from datetime import timedelta
from typing import Any, Dict

from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils import timezone

from accounts.identity import get_broker_by_id
from accounts.models import User
from .conf import get_setting
from .models import CalendarEvent, Collaborator, Milestone
from .roles import get_role_config

logger = logging.getLogger(__name__)


def _deliver(subject: str, template: str, context: Dict[str, Any], to: str) -> bool:
    """
    Render ``cases/email/<template>.txt|.html`` and send it.

    Returns False when notifications are switched off.
    """
    if not get_setting('NOTIFICATIONS_ENABLED'):
        logger.info(f"Notifications disabled; skipping '{template}' email to {to}")
        return False

    context = dict(context, app_name=get_setting('APP_NAME'))
    text_body = render_to_string(f'cases/email/{template}.txt', context)
    html_body = render_to_string(f'cases/email/{template}.html', context)

    message = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to]
    )
    message.attach_alternative(html_body, 'text/html')
    message.send()
    return True


def case_url(case_id) -> str:
    return f"{get_setting('APP_BASE_URL')}/dashboard/clients/{case_id}"


def deliver_milestone_deadline(milestone: Milestone, broker: User) -> bool:
    """Send one deadline email for ``milestone`` to ``broker``."""
    case = milestone.case
    urgent = milestone.priority == Milestone.Priority.URGENT
    prefix = 'URGENT: ' if urgent else ''
    context = {
        'broker_name': broker.full_name or 'there',
        'milestone_title': milestone.title,
        'case_label': case.label,
        'due_date': milestone.due_date,
        'priority': milestone.get_priority_display(),
        'urgent': urgent,
        'description': milestone.description or '',
        'case_url': case_url(case.pk),
    }
    return _deliver(
        f'{prefix}Milestone Deadline: "{milestone.title}" for {case.label}',
        'milestone_deadline',
        context,
        broker.email
    )


@shared_task
def send_collaboration_invite_email(collaborator_id: str) -> Dict[str, Any]:
    """
    Email a broker about their pending collaboration invite.

    Args:
        collaborator_id: UUID of the pending Collaborator row
    """
    try:
        collaborator = Collaborator.objects.select_related(
            'case', 'broker', 'invited_by'
        ).get(id=collaborator_id)
    except Collaborator.DoesNotExist:
        logger.error(f"Collaborator {collaborator_id} not found for invite email")
        return {'status': 'failed', 'reason': 'not_found'}

    if collaborator.status != Collaborator.Status.PENDING:
        return {'status': 'skipped', 'reason': 'not_pending'}

    role = get_role_config(collaborator.role)
    inviter = collaborator.invited_by
    inviter_name = inviter.display_name if inviter else 'A colleague'
    base_url = get_setting('APP_BASE_URL')
    context = {
        'invited_name': collaborator.broker.full_name or 'there',
        'inviter_name': inviter_name,
        'case_label': collaborator.case.label,
        'role': role.label,
        'role_description': role.description,
        'collaboration_url': f"{base_url}/dashboard/collaboration",
        'case_url': case_url(collaborator.case_id),
    }

    try:
        sent = _deliver(
            f"{inviter_name} invited you to collaborate on a case - {get_setting('APP_NAME')}",
            'collaboration_invite',
            context,
            collaborator.broker.email
        )
    except Exception as e:
        logger.error(f"Failed to send invite email for collaborator {collaborator_id}: {str(e)}")
        return {'status': 'failed', 'reason': str(e)}

    if sent:
        logger.info(f"Sent collaboration invite to {collaborator.broker.email}")
    return {'status': 'sent' if sent else 'disabled'}


@shared_task
def send_milestone_deadline_email(milestone_id: str, broker_id: str) -> Dict[str, Any]:
    """
    Email a broker about a milestone deadline on their calendar.

    Args:
        milestone_id: UUID of the Milestone
        broker_id: UUID of the receiving User
    """
    milestone = Milestone.objects.select_related('case').filter(id=milestone_id).first()
    broker = get_broker_by_id(broker_id)
    if milestone is None or broker is None:
        logger.error(f"Deadline email target missing: milestone={milestone_id} broker={broker_id}")
        return {'status': 'failed', 'reason': 'not_found'}

    try:
        sent = deliver_milestone_deadline(milestone, broker)
    except Exception as e:
        logger.error(f"Failed to send deadline email for milestone {milestone_id}: {str(e)}")
        return {'status': 'failed', 'reason': str(e)}

    return {'status': 'sent' if sent else 'disabled'}


@shared_task
def process_milestone_reminders() -> Dict[str, int]:
    """
    Send deadline reminders that fall due in the current sweep window.

    A reminder ``m`` on an event fires once, when ``start_time - m minutes``
    lies within the last ``REMINDER_WINDOW_MINUTES``. Sent reminders are
    recorded on the event.
    """
    now = timezone.now()
    window_start = now - timedelta(minutes=get_setting('REMINDER_WINDOW_MINUTES'))
    results = {'processed': 0, 'sent': 0, 'skipped': 0, 'failed': 0}

    events = CalendarEvent.objects.filter(
        status=CalendarEvent.Status.SCHEDULED,
        event_type=CalendarEvent.EventType.DEADLINE,
        start_time__gte=now,
    ).select_related('broker', 'milestone', 'milestone__case')

    for event in events:
        for minutes in event.reminders or []:
            results['processed'] += 1
            fire_at = event.start_time - timedelta(minutes=minutes)
            if minutes in (event.reminders_sent or []) or not window_start <= fire_at <= now:
                results['skipped'] += 1
                continue

            try:
                deliver_milestone_deadline(event.milestone, event.broker)
            except Exception as e:
                results['failed'] += 1
                logger.error(f"Failed to send reminder for event {event.id}: {str(e)}")
                continue

            event.reminders_sent = list(event.reminders_sent or []) + [minutes]
            event.save(update_fields=['reminders_sent', 'updated_at'])
            results['sent'] += 1

    logger.info(f"Processed milestone reminders: {results}")
    return results
