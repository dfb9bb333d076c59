"""
Collaborator models for managing brokers with access to a case.
"""

from django.db import models
from django.utils import timezone
from django_fsm import FSMField, transition

from accounts.models import User
from ..base_models import TimestampedModel, UUIDModel
from ..roles import CollaboratorRole, PERMISSION_FLAGS, get_role_config


class Collaborator(TimestampedModel, UUIDModel):
    """
    A broker's grant of access to a case.

    There is exactly one row per (case, broker). Removing a collaborator only
    flips the status, and a later invite reuses the removed row.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        ACTIVE = 'active', 'Active'
        REMOVED = 'removed', 'Removed'

    case = models.ForeignKey(
        'Case',
        on_delete=models.CASCADE,
        related_name='collaborators'
    )
    broker = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='case_collaborations'
    )
    role = models.CharField(
        max_length=20,
        choices=CollaboratorRole.choices,
        default=CollaboratorRole.SUPPORTING
    )
    status = FSMField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING
    )

    # Permission flags, defaulted from the role table
    can_edit = models.BooleanField(default=False)
    can_message = models.BooleanField(default=False)
    can_upload = models.BooleanField(default=False)
    can_approve = models.BooleanField(default=False)
    can_delete = models.BooleanField(default=False)

    # Invite details
    invited_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='case_invites_sent'
    )
    invited_at = models.DateTimeField(default=timezone.now)
    accepted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'case_collaborators'
        verbose_name = 'Case Collaborator'
        verbose_name_plural = 'Case Collaborators'
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['case', 'broker'],
                name='unique_case_collaborator'
            ),
        ]
        indexes = [
            models.Index(fields=['broker', 'status'], name='case_collab_broker_status_idx'),
            models.Index(fields=['case', 'status'], name='case_collab_case_status_idx'),
        ]

    def __str__(self):
        return f"{self.case} - {self.broker} ({self.get_role_display()})"

    @property
    def is_active(self):
        return self.status == self.Status.ACTIVE

    @property
    def role_label(self):
        return get_role_config(self.role).label

    @property
    def permissions(self):
        return {flag: getattr(self, flag) for flag in PERMISSION_FLAGS}

    def apply_role_defaults(self):
        """Reset every permission flag to the current role's default bundle."""
        for flag, value in get_role_config(self.role).default_permissions.as_dict().items():
            setattr(self, flag, value)

    # Invite lifecycle

    @transition(field=status, source=Status.PENDING, target=Status.ACTIVE)
    def accept(self):
        """Invited broker accepts their own invite."""
        self.accepted_at = timezone.now()

    @transition(field=status, source=Status.PENDING, target=Status.REMOVED)
    def decline(self):
        """Invited broker declines their own invite."""

    @transition(field=status, source=[Status.PENDING, Status.ACTIVE], target=Status.REMOVED)
    def remove(self):
        """Owner revokes the grant."""

    @transition(field=status, source=Status.REMOVED, target=Status.PENDING)
    def reinvite(self, invited_by=None):
        """Reactivate a removed row as a fresh pending invite."""
        self.invited_by = invited_by
        self.invited_at = timezone.now()
        self.accepted_at = None
