"""
API tests for case collaboration endpoints.
"""

import shutil
import tempfile
from datetime import date, timedelta

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from ..models import Collaborator, Milestone, TimelineEntry, TimelineEntryType
from ..roles import CollaboratorRole
from .factories import BrokerFactory, CaseFactory, CollaboratorFactory, MilestoneFactory


class CaseAPITestCase(APITestCase):
    """Base test case with common setup."""

    def setUp(self):
        self.owner = BrokerFactory(first_name='Xavier', last_name='Owner')
        self.case = CaseFactory(primary_owner=self.owner, name='Acme Onboarding')
        self.reviewer = BrokerFactory(first_name='Yara', last_name='Review', email='yara@example.com')
        self.editor = CollaboratorFactory(case=self.case, role=CollaboratorRole.SUPPORTING).broker

    def case_url(self, suffix=''):
        return f'/api/cases/{self.case.pk}/{suffix}'


class InviteAndAcceptAPITests(CaseAPITestCase):
    """Owner invites a reviewer who then accepts."""

    def test_invite_then_accept(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(
            self.case_url('collaborators/'),
            {'email': 'yara@example.com', 'role': 'reviewer'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['role_label'], 'Reviewer')
        self.assertFalse(response.data['permissions']['can_edit'])
        self.assertTrue(response.data['permissions']['can_approve'])
        self.assertEqual(response.data['broker']['email'], 'yara@example.com')
        collaborator_id = response.data['id']
        self.assertTrue(TimelineEntry.objects.filter(
            case=self.case, entry_type=TimelineEntryType.COLLABORATOR_ADDED
        ).exists())

        self.client.force_authenticate(user=self.reviewer)
        response = self.client.get('/api/cases/invites/')
        self.assertEqual([invite['id'] for invite in response.data], [collaborator_id])
        self.assertEqual(response.data[0]['case']['name'], 'Acme Onboarding')

        response = self.client.post(f'/api/collaborators/{collaborator_id}/accept/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'active')
        self.assertIsNotNone(response.data['accepted_at'])

    def test_invite_error_shape(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(
            self.case_url('collaborators/'),
            {'email': 'ghost@example.com', 'role': 'reviewer'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'broker_not_found')
        self.assertIn('broker account', response.data['detail'])

    def test_missing_fields(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(self.case_url('collaborators/'), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'email_and_role_required')

    def test_duplicate_invite_conflicts(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.post(
            self.case_url('collaborators/'),
            {'email': self.editor.email, 'role': 'observer'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_decline(self):
        invite = CollaboratorFactory(
            case=self.case, broker=self.reviewer, status=Collaborator.Status.PENDING
        )
        self.client.force_authenticate(user=self.reviewer)

        response = self.client.post(f'/api/collaborators/{invite.pk}/decline/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'removed')

    def test_list_collaborators(self):
        self.client.force_authenticate(user=self.editor)
        response = self.client.get(self.case_url('collaborators/'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['broker']['id'], str(self.editor.pk))


class MilestoneWorkflowAPITests(CaseAPITestCase):
    """Editors move milestones; reviewers approve or reject them."""

    def setUp(self):
        super().setUp()
        CollaboratorFactory(case=self.case, broker=self.reviewer, role=CollaboratorRole.REVIEWER)

    def create_milestone(self, **data):
        self.client.force_authenticate(user=self.editor)
        payload = {'title': 'Collect ID'}
        payload.update(data)
        response = self.client.post(self.case_url('milestones/'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def test_editor_progress_then_reviewer_reject(self):
        milestone = self.create_milestone()
        self.assertEqual(milestone['status'], 'not_started')

        response = self.client.patch(
            f"/api/milestones/{milestone['id']}/",
            {'status': 'in_progress', 'expected_version': milestone['version']},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['started_at'])

        self.client.force_authenticate(user=self.reviewer)
        response = self.client.post(
            f"/api/milestones/{milestone['id']}/review/",
            {'action': 'reject', 'reason': 'needs more detail'},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['milestone']['status'], 'blocked')
        entry = response.data['timeline_entry']
        self.assertEqual(entry['type'], 'status_change')
        self.assertEqual(entry['metadata']['old_status'], 'in_progress')
        self.assertEqual(entry['metadata']['new_status'], 'blocked')
        self.assertEqual(entry['metadata']['reason'], 'needs more detail')

    def test_complete_then_reopen(self):
        milestone = self.create_milestone()
        url = f"/api/milestones/{milestone['id']}/"
        self.client.patch(url, {'status': 'in_progress'}, format='json')

        response = self.client.patch(url, {'status': 'completed'}, format='json')
        self.assertEqual(response.data['status'], 'completed')
        self.assertIsNotNone(response.data['completed_at'])
        self.assertEqual(response.data['completed_by']['id'], str(self.editor.pk))
        self.assertTrue(TimelineEntry.objects.filter(
            milestone_id=milestone['id'], entry_type=TimelineEntryType.MILESTONE_COMPLETED
        ).exists())

        response = self.client.patch(url, {'status': 'in_progress'}, format='json')
        self.assertEqual(response.data['status'], 'in_progress')
        self.assertIsNone(response.data['completed_at'])
        self.assertIsNone(response.data['completed_by'])

    def test_stale_edit_conflicts(self):
        milestone = self.create_milestone()
        url = f"/api/milestones/{milestone['id']}/"
        self.client.patch(url, {'priority': 'high'}, format='json')

        response = self.client.patch(
            url, {'status': 'blocked', 'expected_version': milestone['version']}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'stale_milestone')

    def test_reviewer_cannot_edit(self):
        milestone = self.create_milestone()
        self.client.force_authenticate(user=self.reviewer)

        response = self.client.patch(
            f"/api/milestones/{milestone['id']}/", {'status': 'completed'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'edit_forbidden')

    def test_unassign_with_null_owner(self):
        milestone = self.create_milestone()
        self.assertEqual(milestone['owner']['id'], str(self.editor.pk))

        response = self.client.patch(
            f"/api/milestones/{milestone['id']}/", {'owner_id': None}, format='json'
        )

        self.assertIsNone(response.data['owner'])

    def test_transitions(self):
        milestone = self.create_milestone()
        self.client.force_authenticate(user=self.reviewer)

        response = self.client.get(f"/api/milestones/{milestone['id']}/transitions/")

        self.assertEqual(response.data['editor_transitions'], [])
        self.assertEqual(response.data['review_actions'], ['approve', 'reject', 'request_changes'])

    def test_list_filters_by_status(self):
        MilestoneFactory(case=self.case, status=Milestone.Status.BLOCKED)
        MilestoneFactory(case=self.case, status=Milestone.Status.IN_PROGRESS)
        self.client.force_authenticate(user=self.reviewer)

        response = self.client.get(self.case_url('milestones/'), {'status': 'blocked'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['status'] for m in response.data], ['blocked'])

    def test_sync_calendar(self):
        milestone = self.create_milestone(due_date=str(date.today() + timedelta(days=3)))

        response = self.client.post(f"/api/milestones/{milestone['id']}/sync-calendar/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 0)
        self.assertEqual(len(response.data['events']), 1)
        self.assertEqual(response.data['events'][0]['broker']['id'], str(self.editor.pk))

    def test_delete(self):
        milestone = self.create_milestone()

        response = self.client.delete(f"/api/milestones/{milestone['id']}/")

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Milestone.objects.filter(pk=milestone['id']).exists())


class RosterGuardAPITests(CaseAPITestCase):
    """Owner rows cannot be removed; observers can read but not write."""

    def test_owner_row_cannot_be_removed(self):
        owner_row = CollaboratorFactory(case=self.case, broker=self.owner, role=CollaboratorRole.OWNER)
        self.client.force_authenticate(user=self.owner)

        response = self.client.delete(f'/api/collaborators/{owner_row.pk}/')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        owner_row.refresh_from_db()
        self.assertEqual(owner_row.status, Collaborator.Status.ACTIVE)
        self.assertEqual(Collaborator.objects.filter(case=self.case).count(), 2)

    def test_owner_removes_collaborator(self):
        row = Collaborator.objects.get(case=self.case, broker=self.editor)
        self.client.force_authenticate(user=self.owner)

        response = self.client.delete(f'/api/collaborators/{row.pk}/')

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.client.force_authenticate(user=self.editor)
        self.assertEqual(self.client.get(self.case_url()).status_code, status.HTTP_403_FORBIDDEN)

    def test_change_role(self):
        row = Collaborator.objects.get(case=self.case, broker=self.editor)
        self.client.force_authenticate(user=self.owner)

        response = self.client.patch(
            f'/api/collaborators/{row.pk}/', {'role': 'observer'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], 'observer')
        self.assertFalse(any(response.data['permissions'].values()))

    def test_override_permissions(self):
        row = Collaborator.objects.get(case=self.case, broker=self.editor)
        self.client.force_authenticate(user=self.owner)

        response = self.client.patch(
            f'/api/collaborators/{row.pk}/', {'permissions': {'can_approve': True}}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['permissions']['can_approve'])

    def test_update_requires_role_or_permissions(self):
        row = Collaborator.objects.get(case=self.case, broker=self.editor)
        self.client.force_authenticate(user=self.owner)

        response = self.client.patch(f'/api/collaborators/{row.pk}/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_rejects_role_with_permissions(self):
        row = Collaborator.objects.get(case=self.case, broker=self.editor)
        self.client.force_authenticate(user=self.owner)

        response = self.client.patch(
            f'/api/collaborators/{row.pk}/',
            {'role': 'observer', 'permissions': {'can_approve': True}},
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        row.refresh_from_db()
        self.assertEqual(row.role, CollaboratorRole.SUPPORTING)
        self.assertFalse(row.can_approve)

    def test_observer_can_read_but_not_create(self):
        observer = CollaboratorFactory(case=self.case, role=CollaboratorRole.OBSERVER).broker
        MilestoneFactory(case=self.case)
        self.client.force_authenticate(user=observer)

        response = self.client.post(self.case_url('milestones/'), {'title': 'Sneaky'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.get(self.case_url('milestones/'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        response = self.client.get(self.case_url())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['permissions']['has_access'])
        self.assertFalse(response.data['permissions']['can_edit'])


class CaseAndTimelineAPITests(CaseAPITestCase):
    """Case listing, timeline, feed and dashboard endpoints."""

    def test_unauthenticated(self):
        response = self.client.get('/api/cases/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_list_cases(self):
        CaseFactory()
        self.client.force_authenticate(user=self.editor)

        response = self.client.get('/api/cases/')

        self.assertEqual([case['id'] for case in response.data], [str(self.case.pk)])

    def test_retrieve_outsider(self):
        self.client.force_authenticate(user=BrokerFactory())
        response = self.client.get(self.case_url())

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'no_case_access')

    def test_retrieve_missing(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.get('/api/cases/00000000-0000-0000-0000-000000000000/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_comment_and_list_timeline(self):
        self.client.force_authenticate(user=self.editor)
        response = self.client.post(
            self.case_url('timeline/'),
            {
                'content': 'Please review @Xavier',
                'mentions': [{'user_id': str(self.owner.pk), 'display_name': 'Xavier'}],
            },
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['type'], 'mention')

        response = self.client.get(self.case_url('timeline/'))
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['author']['id'], str(self.editor.pk))

    def test_blank_comment(self):
        self.client.force_authenticate(user=self.editor)
        response = self.client.post(self.case_url('timeline/'), {'content': ' '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'content_required')

    def test_upload_document(self):
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, True)
        self.client.force_authenticate(user=self.editor)

        with override_settings(MEDIA_ROOT=media_root):
            response = self.client.post(
                self.case_url('timeline/upload/'),
                {
                    'file': SimpleUploadedFile('id.png', b'\x89PNG', content_type='image/png'),
                    'description': 'Passport',
                },
                format='multipart'
            )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['entry']['type'], 'document_uploaded')
        self.assertEqual(response.data['entry']['metadata']['file_type'], 'image')
        self.assertTrue(response.data['file_url'])

    def test_upload_without_file(self):
        self.client.force_authenticate(user=self.editor)
        response = self.client.post(self.case_url('timeline/upload/'), {}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'file_required')

    def test_feed(self):
        self.client.force_authenticate(user=self.owner)
        self.client.post(self.case_url('timeline/'), {'content': 'hello'}, format='json')

        response = self.client.get('/api/cases/feed/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]['case']['id'], str(self.case.pk))

    def test_overview_and_stats(self):
        self.client.force_authenticate(user=self.owner)

        overview = self.client.get('/api/cases/overview/')
        stats = self.client.get('/api/cases/stats/')

        self.assertEqual(overview.status_code, status.HTTP_200_OK)
        self.assertEqual(overview.data['summary']['total_owned_team_members'], 1)
        self.assertEqual(stats.status_code, status.HTTP_200_OK)
        self.assertEqual(stats.data['pending_invites'], 0)
