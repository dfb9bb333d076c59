"""
Broker accounts.

The identity store for the collaboration engine: every collaborator, milestone
assignee and timeline author is a ``User``.
"""

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models.functions import Lower


class User(AbstractUser):
    """
    Platform user. Brokers are the only accounts that can be invited
    onto a case.
    """

    class Role(models.TextChoices):
        BROKER = 'broker', 'Broker'
        ADMIN = 'admin', 'Administrator'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.BROKER
    )
    avatar_url = models.URLField(blank=True, default='')
    company = models.CharField(max_length=200, blank=True, default='')

    class Meta:
        db_table = 'accounts_users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['email']
        constraints = [
            models.UniqueConstraint(Lower('email'), name='unique_user_email_ci'),
        ]

    def __str__(self):
        return self.full_name or self.email

    @property
    def full_name(self):
        return self.get_full_name().strip()

    @property
    def display_name(self):
        """Name used in emails and timeline content."""
        return self.full_name or self.email.split('@')[0]
