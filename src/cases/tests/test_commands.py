"""
Tests for case management commands.
"""

from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from ..models import Collaborator
from ..roles import CollaboratorRole
from .factories import CaseFactory, CollaboratorFactory


class BackfillCaseOwnersTests(TestCase):

    def setUp(self):
        self.legacy = CaseFactory(name='Legacy Case')
        self.migrated = CaseFactory(name='Migrated Case')
        CollaboratorFactory(
            case=self.migrated, broker=self.migrated.primary_owner, role=CollaboratorRole.OWNER
        )

    def test_backfill(self):
        out = StringIO()
        call_command('backfill_case_owners', stdout=out)

        row = Collaborator.objects.get(case=self.legacy, broker=self.legacy.primary_owner)
        self.assertEqual(row.role, CollaboratorRole.OWNER)
        self.assertEqual(row.status, Collaborator.Status.ACTIVE)
        self.assertIsNotNone(row.accepted_at)
        self.assertTrue(all(row.permissions.values()))
        self.assertEqual(Collaborator.objects.filter(case=self.migrated).count(), 1)
        self.assertIn('Backfilled owner rows on 1 cases', out.getvalue())

    def test_dry_run(self):
        out = StringIO()
        call_command('backfill_case_owners', '--dry-run', stdout=out)

        self.assertFalse(Collaborator.objects.filter(case=self.legacy).exists())
        self.assertIn('Would backfill "Legacy Case"', out.getvalue())

    def test_nothing_to_do(self):
        call_command('backfill_case_owners', stdout=StringIO())
        out = StringIO()
        call_command('backfill_case_owners', stdout=out)

        self.assertIn('already has a collaborator row', out.getvalue())
