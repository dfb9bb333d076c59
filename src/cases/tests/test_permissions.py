"""
Tests for the case permission resolver.
"""

import uuid
from unittest.mock import patch

from django.contrib.auth.models import AnonymousUser
from django.db import DatabaseError
from django.test import TestCase

from ..errors import ErrorCode
from ..models import Collaborator
from ..roles import CollaboratorRole
from ..services.base import (
    AuthenticationServiceError,
    NotFoundServiceError,
    PermissionServiceError,
)
from ..services.permissions import (
    CasePermissionResolver,
    accessible_cases,
    cases_missing_owner_row,
    get_case_for,
)
from .factories import BrokerFactory, CaseFactory, CollaboratorFactory


class CasePermissionResolverTests(TestCase):
    """Test capability answers for each kind of broker."""

    def setUp(self):
        self.owner = BrokerFactory()
        self.case = CaseFactory(primary_owner=self.owner)

    def resolver_for(self, broker):
        return CasePermissionResolver(self.case, broker)

    def add(self, role, status=Collaborator.Status.ACTIVE, **flags):
        collaborator = CollaboratorFactory(case=self.case, role=role, status=status, **flags)
        return collaborator.broker

    def test_legacy_owner_has_every_capability(self):
        summary = self.resolver_for(self.owner).summary()
        self.assertTrue(all(summary.values()))

    def test_outsider_has_nothing(self):
        summary = self.resolver_for(BrokerFactory()).summary()
        self.assertFalse(any(summary.values()))

    def test_pending_collaborator_can_read_only(self):
        broker = self.add(CollaboratorRole.SUPPORTING, status=Collaborator.Status.PENDING)
        resolver = self.resolver_for(broker)

        self.assertTrue(resolver.has_access())
        self.assertFalse(resolver.can_edit())
        self.assertFalse(resolver.can_message())
        self.assertFalse(resolver.can_upload())
        self.assertFalse(resolver.can_approve())

    def test_removed_collaborator_has_no_access(self):
        broker = self.add(CollaboratorRole.CO_OWNER, status=Collaborator.Status.REMOVED)
        resolver = self.resolver_for(broker)

        self.assertFalse(resolver.has_access())
        self.assertFalse(resolver.is_owner_or_co_owner())

    def test_co_owner_administers_but_is_not_owner(self):
        resolver = self.resolver_for(self.add(CollaboratorRole.CO_OWNER))

        self.assertTrue(resolver.is_owner_or_co_owner())
        self.assertFalse(resolver.is_owner())
        self.assertTrue(resolver.can_edit())
        self.assertTrue(resolver.can_approve())

    def test_active_owner_row_is_owner(self):
        resolver = self.resolver_for(self.add(CollaboratorRole.OWNER))
        self.assertTrue(resolver.is_owner())

    def test_supporting_edits_but_cannot_approve(self):
        resolver = self.resolver_for(self.add(CollaboratorRole.SUPPORTING))

        self.assertTrue(resolver.can_edit())
        self.assertTrue(resolver.can_upload())
        self.assertTrue(resolver.can_message())
        self.assertFalse(resolver.can_approve())

    def test_reviewer_approves_but_cannot_edit(self):
        resolver = self.resolver_for(self.add(CollaboratorRole.REVIEWER))

        self.assertTrue(resolver.can_approve())
        self.assertTrue(resolver.can_message())
        self.assertFalse(resolver.can_edit())
        self.assertFalse(resolver.can_upload())

    def test_reviewer_role_approves_even_with_flag_cleared(self):
        resolver = self.resolver_for(self.add(CollaboratorRole.REVIEWER, can_approve=False))
        self.assertTrue(resolver.can_approve())

    def test_approve_flag_override_grants_approval(self):
        resolver = self.resolver_for(self.add(CollaboratorRole.SUPPORTING, can_approve=True))
        self.assertTrue(resolver.can_approve())

    def test_observer_can_only_read(self):
        resolver = self.resolver_for(self.add(CollaboratorRole.OBSERVER))
        summary = resolver.summary()

        self.assertTrue(summary.pop('has_access'))
        self.assertFalse(any(summary.values()))

    def test_anonymous_caller_is_denied(self):
        resolver = self.resolver_for(AnonymousUser())
        self.assertFalse(resolver.has_access())
        self.assertFalse(resolver.can_edit())

    def test_store_failure_fails_closed(self):
        broker = self.add(CollaboratorRole.CO_OWNER)
        resolver = self.resolver_for(broker)

        with patch.object(Collaborator.objects, 'filter', side_effect=DatabaseError("down")):
            with self.assertLogs('cases.services.permissions', level='ERROR'):
                self.assertFalse(resolver.has_access())

    def test_require_raises_permission_error_with_code(self):
        resolver = self.resolver_for(BrokerFactory())
        with self.assertRaises(PermissionServiceError) as ctx:
            resolver.require('can_edit', ErrorCode.EDIT_FORBIDDEN)
        self.assertEqual(ctx.exception.code, 'edit_forbidden')
        self.assertEqual(ctx.exception.status_code, 403)

    def test_require_without_caller_raises_authentication_error(self):
        with self.assertRaises(AuthenticationServiceError):
            self.resolver_for(None).require('has_access', ErrorCode.NO_CASE_ACCESS)


class CaseLookupTests(TestCase):
    """Test case loading and accessible-case queries."""

    def setUp(self):
        self.owner = BrokerFactory()
        self.case = CaseFactory(primary_owner=self.owner)

    def test_get_case_for_owner(self):
        self.assertEqual(get_case_for(self.owner, self.case.pk), self.case)

    def test_get_case_for_missing_case(self):
        with self.assertRaises(NotFoundServiceError) as ctx:
            get_case_for(self.owner, uuid.uuid4())
        self.assertEqual(ctx.exception.code, 'case_not_found')

    def test_get_case_for_malformed_id(self):
        with self.assertRaises(NotFoundServiceError):
            get_case_for(self.owner, 'not-a-uuid')

    def test_get_case_for_outsider(self):
        with self.assertRaises(PermissionServiceError) as ctx:
            get_case_for(BrokerFactory(), self.case.pk)
        self.assertEqual(ctx.exception.code, 'no_case_access')

    def test_get_case_for_anonymous(self):
        with self.assertRaises(AuthenticationServiceError):
            get_case_for(AnonymousUser(), self.case.pk)

    def test_accessible_cases(self):
        broker = BrokerFactory()
        active = CollaboratorFactory(broker=broker).case
        pending = CollaboratorFactory(broker=broker, status=Collaborator.Status.PENDING).case
        removed = CollaboratorFactory(broker=broker, status=Collaborator.Status.REMOVED).case
        owned = CaseFactory(primary_owner=broker)

        cases = set(accessible_cases(broker))

        self.assertEqual(cases, {active, pending, owned})
        self.assertNotIn(removed, cases)
        self.assertNotIn(self.case, cases)

    def test_accessible_cases_does_not_duplicate(self):
        CollaboratorFactory(case=self.case, broker=self.owner, role=CollaboratorRole.OWNER)
        self.assertEqual(accessible_cases(self.owner).count(), 1)

    def test_cases_missing_owner_row(self):
        backfilled = CaseFactory()
        CollaboratorFactory(
            case=backfilled, broker=backfilled.primary_owner, role=CollaboratorRole.OWNER
        )
        CollaboratorFactory(case=self.case)

        missing = list(cases_missing_owner_row())

        self.assertIn(self.case, missing)
        self.assertNotIn(backfilled, missing)
