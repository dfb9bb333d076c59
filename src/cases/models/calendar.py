"""
Calendar events projected from milestone deadlines.
"""

from django.db import models

from accounts.models import User
from ..base_models import TimestampedModel, UUIDModel


class CalendarEvent(TimestampedModel, UUIDModel):
    """
    A broker's calendar entry for a milestone deadline.

    Rows are owned by the calendar projector: they are rewritten from the
    milestone's current state on every sync.
    """

    class EventType(models.TextChoices):
        DEADLINE = 'deadline', 'Deadline'

    class Status(models.TextChoices):
        SCHEDULED = 'scheduled', 'Scheduled'
        COMPLETED = 'completed', 'Completed'

    broker = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='calendar_events'
    )
    case = models.ForeignKey(
        'Case',
        on_delete=models.CASCADE,
        related_name='calendar_events'
    )
    milestone = models.ForeignKey(
        'Milestone',
        on_delete=models.CASCADE,
        related_name='calendar_events'
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    event_type = models.CharField(
        max_length=20,
        choices=EventType.choices,
        default=EventType.DEADLINE
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.SCHEDULED
    )
    completed_at = models.DateTimeField(null=True, blank=True)

    # Reminders, in minutes before start_time
    reminders = models.JSONField(default=list, blank=True)
    reminders_sent = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = 'case_calendar_events'
        verbose_name = 'Calendar Event'
        verbose_name_plural = 'Calendar Events'
        ordering = ['start_time']
        constraints = [
            models.UniqueConstraint(
                fields=['milestone', 'broker'],
                name='unique_milestone_calendar_event'
            ),
        ]
        indexes = [
            models.Index(fields=['broker', 'start_time'], name='case_cal_broker_start_idx'),
            models.Index(fields=['status', 'start_time'], name='case_cal_status_start_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.broker})"
