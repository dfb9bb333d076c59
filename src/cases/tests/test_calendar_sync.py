"""
Tests for the calendar projection of milestone deadlines.
"""

from datetime import date, datetime, timedelta, timezone as dt_timezone

from django.test import TestCase

from ..models import CalendarEvent, Collaborator, Milestone
from ..services.calendar_sync import CalendarProjector
from .factories import (
    BrokerFactory,
    CalendarEventFactory,
    CaseFactory,
    CollaboratorFactory,
    MilestoneFactory,
)


class CalendarProjectorTests(TestCase):

    def setUp(self):
        self.owner = BrokerFactory()
        self.case = CaseFactory(primary_owner=self.owner, name='Acme Ltd')
        self.member = CollaboratorFactory(case=self.case).broker
        self.projector = CalendarProjector()

    def test_assignee_is_sole_target(self):
        milestone = MilestoneFactory(case=self.case, owner=self.member)
        self.assertEqual(self.projector.target_brokers(milestone), [self.member])

    def test_unassigned_targets_owner_and_active_team(self):
        CollaboratorFactory(case=self.case, status=Collaborator.Status.PENDING)
        CollaboratorFactory(case=self.case, status=Collaborator.Status.REMOVED)
        milestone = MilestoneFactory(case=self.case)

        self.assertEqual(self.projector.target_brokers(milestone), [self.owner, self.member])

    def test_owner_row_is_not_duplicated(self):
        CollaboratorFactory(case=self.case, broker=self.owner, role='owner')
        milestone = MilestoneFactory(case=self.case)

        targets = self.projector.target_brokers(milestone)

        self.assertEqual(len(targets), 2)
        self.assertEqual(set(targets), {self.owner, self.member})

    def test_event_fields(self):
        milestone = MilestoneFactory(
            case=self.case, owner=self.member, title='Sign', description='',
            due_date=date(2030, 5, 17)
        )

        created = self.projector.sync_milestone(milestone)

        self.assertEqual(created, [self.member])
        event = CalendarEvent.objects.get(milestone=milestone)
        self.assertEqual(event.title, 'Deadline: Sign')
        self.assertEqual(event.description, 'Milestone deadline for Acme Ltd')
        self.assertEqual(event.start_time, datetime(2030, 5, 17, tzinfo=dt_timezone.utc))
        self.assertEqual(event.end_time - event.start_time, timedelta(minutes=30))
        self.assertEqual(event.status, CalendarEvent.Status.SCHEDULED)
        self.assertEqual(event.reminders, [1440, 60])
        self.assertEqual(event.case, self.case)

    def test_no_due_date_is_a_no_op(self):
        milestone = MilestoneFactory(case=self.case)
        self.assertEqual(self.projector.sync_milestone(milestone), [])
        self.assertFalse(CalendarEvent.objects.exists())

    def test_resync_updates_in_place(self):
        milestone = MilestoneFactory(case=self.case, owner=self.member, due_date=date(2030, 1, 1))
        self.projector.sync_milestone(milestone)
        event = CalendarEvent.objects.get(milestone=milestone)

        milestone.title = 'Renamed'
        milestone.due_date = date(2030, 2, 1)
        created = self.projector.sync_milestone(milestone)

        self.assertEqual(created, [])
        event.refresh_from_db()
        self.assertEqual(event.title, 'Deadline: Renamed')
        self.assertEqual(event.start_time.date(), date(2030, 2, 1))

    def test_stale_events_are_deleted(self):
        milestone = MilestoneFactory(case=self.case, owner=self.member, due_date=date(2030, 1, 1))
        stale = CalendarEventFactory(milestone=milestone, broker=self.owner)

        self.projector.sync_milestone(milestone)

        self.assertFalse(CalendarEvent.objects.filter(pk=stale.pk).exists())
        self.assertEqual(CalendarEvent.objects.filter(milestone=milestone).count(), 1)

    def test_completion_is_stamped_once(self):
        milestone = MilestoneFactory(
            case=self.case, owner=self.member, due_date=date(2030, 1, 1),
            status=Milestone.Status.COMPLETED
        )
        self.projector.sync_milestone(milestone)
        completed_at = CalendarEvent.objects.get(milestone=milestone).completed_at
        self.assertIsNotNone(completed_at)

        self.projector.sync_milestone(milestone)
        self.assertEqual(CalendarEvent.objects.get(milestone=milestone).completed_at, completed_at)

        milestone.status = Milestone.Status.IN_PROGRESS
        self.projector.sync_milestone(milestone)
        event = CalendarEvent.objects.get(milestone=milestone)
        self.assertEqual(event.status, CalendarEvent.Status.SCHEDULED)
        self.assertIsNone(event.completed_at)

    def test_remove_milestone_events(self):
        milestone = MilestoneFactory(case=self.case, due_date=date(2030, 1, 1))
        self.projector.sync_milestone(milestone)

        self.assertEqual(self.projector.remove_milestone_events(milestone.pk), 2)
        self.assertFalse(CalendarEvent.objects.filter(milestone=milestone).exists())
