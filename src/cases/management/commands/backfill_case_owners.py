"""
Management command to give every legacy case owner an explicit owner row
on the collaborator roster.
"""
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from cases.models import Collaborator
from cases.roles import CollaboratorRole
from cases.services.permissions import cases_missing_owner_row


class Command(BaseCommand):
    help = 'Creates active owner collaborator rows for cases that only have a legacy owner'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the cases that would be backfilled without writing anything'
        )

    def handle(self, *args, **options):
        dry_run = options.get('dry_run')
        cases = list(cases_missing_owner_row())

        if not cases:
            self.stdout.write(self.style.SUCCESS('Every case owner already has a collaborator row'))
            return

        for case in cases:
            if dry_run:
                self.stdout.write(f'  - Would backfill "{case.name}" for {case.primary_owner.email}')
                continue
            self._create_owner_row(case)
            self.stdout.write(f'  - Backfilled "{case.name}" for {case.primary_owner.email}')

        if dry_run:
            self.stdout.write(self.style.WARNING(f'{len(cases)} cases need an owner row (dry run)'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Backfilled owner rows on {len(cases)} cases'))

    @transaction.atomic
    def _create_owner_row(self, case):
        now = timezone.now()
        collaborator = Collaborator(
            case=case,
            broker=case.primary_owner,
            role=CollaboratorRole.OWNER,
            status=Collaborator.Status.ACTIVE,
            invited_by=case.primary_owner,
            invited_at=now,
            accepted_at=now,
        )
        collaborator.apply_role_defaults()
        collaborator.save()
        return collaborator
