"""
Milestone models for tracking deliverables on a case.
"""

from django.db import models
from django.utils import timezone

from accounts.models import User
from ..base_models import TimestampedModel, UUIDModel


class Milestone(TimestampedModel, UUIDModel):
    """
    A trackable deliverable belonging to a case.

    ``status`` is written by two authority paths (editors and reviewers);
    the lifecycle timestamps are maintained by ``cases.workflow``.
    """

    class Status(models.TextChoices):
        NOT_STARTED = 'not_started', 'Not Started'
        IN_PROGRESS = 'in_progress', 'In Progress'
        BLOCKED = 'blocked', 'Blocked'
        COMPLETED = 'completed', 'Completed'
        CANCELLED = 'cancelled', 'Cancelled'

    class Priority(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'
        URGENT = 'urgent', 'Urgent'

    TERMINAL_STATUSES = (Status.COMPLETED, Status.CANCELLED)

    case = models.ForeignKey(
        'Case',
        on_delete=models.CASCADE,
        related_name='milestones'
    )

    # Basic information
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.NOT_STARTED
    )
    priority = models.CharField(
        max_length=20,
        choices=Priority.choices,
        default=Priority.MEDIUM
    )

    # Assignment and timing
    owner = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_milestones'
    )
    due_date = models.DateField(null=True, blank=True)
    sort_order = models.PositiveIntegerField(default=1)

    # Lifecycle
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='completed_milestones'
    )

    version = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = 'case_milestones'
        verbose_name = 'Case Milestone'
        verbose_name_plural = 'Case Milestones'
        ordering = ['sort_order', 'created_at']
        indexes = [
            models.Index(fields=['case', 'status'], name='case_ms_case_status_idx'),
            models.Index(fields=['due_date', 'status'], name='case_ms_due_status_idx'),
            models.Index(fields=['owner', 'status'], name='case_ms_owner_status_idx'),
        ]

    def __str__(self):
        return f"{self.case} - {self.title}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def is_overdue(self):
        if self.is_terminal or not self.due_date:
            return False
        return timezone.now().date() > self.due_date
