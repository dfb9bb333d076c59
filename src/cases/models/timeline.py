"""
Timeline models: the append-only activity record of a case.
"""

from django.core.exceptions import ValidationError
from django.db import models

from accounts.models import User
from ..base_models import UUIDModel


class TimelineEntryType(models.TextChoices):
    """Types of events recorded on a case timeline"""
    COMMENT = 'comment', 'Comment'
    MENTION = 'mention', 'Mention'
    MILESTONE_CREATED = 'milestone_created', 'Milestone Created'
    MILESTONE_COMPLETED = 'milestone_completed', 'Milestone Completed'
    DOCUMENT_UPLOADED = 'document_uploaded', 'Document Uploaded'
    DOCUMENT_VERIFIED = 'document_verified', 'Document Verified'
    STATUS_CHANGE = 'status_change', 'Status Change'
    COLLABORATOR_ADDED = 'collaborator_added', 'Collaborator Added'
    COLLABORATOR_REMOVED = 'collaborator_removed', 'Collaborator Removed'
    SYSTEM = 'system', 'System'


class TimelineEntryQuerySet(models.QuerySet):

    def update(self, **kwargs):
        raise ValidationError("Timeline entries are immutable")

    def delete(self):
        raise ValidationError("Timeline entries cannot be deleted")


class TimelineEntry(UUIDModel):
    """
    An immutable fact about something that happened on a case.

    Entries are written once and never updated or deleted.
    """
    case = models.ForeignKey(
        'Case',
        on_delete=models.CASCADE,
        related_name='timeline_entries'
    )
    author = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='timeline_entries',
        help_text="Null for system-generated entries"
    )
    entry_type = models.CharField(
        max_length=30,
        choices=TimelineEntryType.choices
    )
    content = models.TextField(blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)
    mentions = models.JSONField(
        default=list,
        blank=True,
        help_text="List of {user_id, display_name}"
    )
    milestone = models.ForeignKey(
        'Milestone',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='timeline_entries'
    )
    is_internal = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = TimelineEntryQuerySet.as_manager()

    class Meta:
        db_table = 'case_timeline'
        verbose_name = 'Timeline Entry'
        verbose_name_plural = 'Timeline Entries'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['case', 'created_at'], name='case_tl_case_created_idx'),
            models.Index(fields=['entry_type', 'created_at'], name='case_tl_type_created_idx'),
        ]

    def __str__(self):
        return f"{self.case} - {self.get_entry_type_display()}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Timeline entries are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Timeline entries cannot be deleted")
