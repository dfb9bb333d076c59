"""
Case model: the client onboarding record collaboration is scoped to.
"""

from django.core.exceptions import ValidationError
from django.db import models

from accounts.models import User
from ..base_models import TimestampedModel, UUIDModel


class Case(TimestampedModel, UUIDModel):
    """
    A client onboarding record.

    ``primary_owner`` is the legacy single-owner reference. It predates the
    collaborator roster and is only ever read by the permission resolver.
    """

    class OnboardingStatus(models.TextChoices):
        INVITED = 'invited', 'Invited'
        IN_PROGRESS = 'in_progress', 'In Progress'
        SUBMITTED = 'submitted', 'Submitted'
        COMPLETED = 'completed', 'Completed'
        ARCHIVED = 'archived', 'Archived'

    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, default='')
    onboarding_status = models.CharField(
        max_length=20,
        choices=OnboardingStatus.choices,
        default=OnboardingStatus.INVITED,
        help_text="Managed by the onboarding flow; informational here"
    )
    primary_owner = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='owned_cases',
        help_text="Legacy single owner, immutable once set"
    )

    class Meta:
        db_table = 'cases'
        verbose_name = 'Case'
        verbose_name_plural = 'Cases'
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    @property
    def label(self):
        return self.name or 'a client case'

    def save(self, *args, **kwargs):
        if not self._state.adding and self.pk:
            previous = Case.objects.filter(pk=self.pk).values_list(
                'primary_owner_id', flat=True
            ).first()
            if previous is not None and previous != self.primary_owner_id:
                raise ValidationError("The primary owner of a case cannot be changed")
        super().save(*args, **kwargs)
