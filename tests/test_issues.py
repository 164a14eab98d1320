"""
Tests for the issue workflow: report -> assign (creates a task) -> resolve.
"""

import json

from django.core import mail
from django.core.exceptions import PermissionDenied, ValidationError
from django.test import TestCase
from django.urls import reverse

from apps.activity_log.models import ActivityLog
from apps.issues.models import Issue
from apps.issues.services import assign_issue, delete_issue, report_issue, update_issue
from apps.notifications.models import Notification
from apps.tasks.models import Task
from tests.helpers import make_admin, make_user


class IssueServiceTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.second_admin = make_admin()
        self.reporter = make_user()
        self.fixer = make_user()

    def _report(self, **overrides):
        values = {
            'reported_by': self.reporter,
            'title': 'Printer on fire',
            'description': 'Smoke from tray 2',
            'priority': Issue.Priority.HIGH,
            'suggested_assignee': self.fixer,
        }
        values.update(overrides)
        return report_issue(**values)

    def test_report_notifies_every_admin(self):
        issue = self._report()

        self.assertEqual(issue.status, Issue.Status.PENDING_ASSIGNMENT)
        recipients = set(
            Notification.objects.filter(type=Notification.Type.ISSUE_REPORTED)
            .values_list('recipient_id', flat=True)
        )
        self.assertEqual(recipients, {self.admin.pk, self.second_admin.pk})
        self.assertEqual(len(mail.outbox), 2)
        self.assertTrue(ActivityLog.objects.filter(action='issue_created', entity_id=issue.pk).exists())

    def test_report_requires_fields(self):
        with self.assertRaises(ValidationError):
            self._report(title=' ')
        with self.assertRaises(ValidationError):
            self._report(priority='meh')

    def test_assign_creates_linked_task_in_one_step(self):
        issue = self._report()

        issue, task = assign_issue(issue, self.admin, self.fixer, title='Printer fire (tray 2)')

        self.assertEqual(issue.status, Issue.Status.ASSIGNED)
        self.assertEqual(issue.assigned_to, self.fixer)
        self.assertIsNotNone(issue.assigned_at)
        self.assertEqual(issue.title, 'Printer fire (tray 2)')

        self.assertEqual(task.category, Task.Category.ISSUE_RESOLUTION)
        self.assertEqual(task.related_issue, issue)
        self.assertEqual(task.assigned_to, self.fixer)
        self.assertEqual(task.title, 'Printer fire (tray 2)')
        self.assertEqual(task.priority, Issue.Priority.HIGH)

        # Only the issue notification, not a second "task assigned" one
        fixer_types = list(
            Notification.objects.filter(recipient=self.fixer).values_list('type', flat=True)
        )
        self.assertEqual(fixer_types, [Notification.Type.ISSUE_ASSIGNED])

        log = ActivityLog.objects.get(action='issue_assigned')
        self.assertEqual(log.details['task_id'], task.pk)

    def test_assign_twice_is_rejected(self):
        issue = self._report()
        assign_issue(issue, self.admin, self.fixer)
        with self.assertRaises(ValidationError):
            assign_issue(issue, self.admin, self.reporter)
        self.assertEqual(Task.objects.count(), 1)

    def test_employee_cannot_assign(self):
        issue = self._report()
        with self.assertRaises(PermissionDenied):
            assign_issue(issue, self.fixer, self.fixer)
        self.assertFalse(Task.objects.exists())

    def test_resolved_at_is_stamped_once(self):
        issue = self._report()
        update_issue(issue, self.admin, status=Issue.Status.RESOLVED)
        first = issue.resolved_at
        self.assertIsNotNone(first)

        update_issue(issue, self.admin, status=Issue.Status.CLOSED)
        update_issue(issue, self.admin, status=Issue.Status.RESOLVED)
        self.assertEqual(issue.resolved_at, first)

    def test_only_admin_updates_or_deletes(self):
        issue = self._report()
        with self.assertRaises(PermissionDenied):
            update_issue(issue, self.reporter, title='mine')
        with self.assertRaises(PermissionDenied):
            delete_issue(issue, self.reporter)
        delete_issue(issue, self.admin)
        self.assertFalse(Issue.objects.exists())


class IssueApiTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.reporter = make_user()
        self.fixer = make_user()
        self.outsider = make_user()

    def _post(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def _create_issue(self):
        self.client.force_login(self.reporter)
        response = self._post(reverse('issues:issue_list'), {
            'title': 'VPN drops',
            'description': 'Every 10 minutes',
            'priority': 'medium',
            'suggested_assignee_id': self.fixer.pk,
        })
        self.assertEqual(response.status_code, 201)
        return response.json()['data']

    def test_report_and_visibility(self):
        issue = self._create_issue()
        self.assertEqual(issue['suggested_assignee']['id'], self.fixer.pk)

        self.client.force_login(self.fixer)
        self.assertEqual(self.client.get(reverse('issues:issue_list')).json()['count'], 1)

        self.client.force_login(self.outsider)
        self.assertEqual(self.client.get(reverse('issues:issue_list')).json()['count'], 0)
        detail = self.client.get(reverse('issues:issue_detail', args=[issue['id']]))
        self.assertEqual(detail.status_code, 403)

    def test_missing_suggested_assignee_is_400(self):
        self.client.force_login(self.reporter)
        response = self._post(reverse('issues:issue_list'), {
            'title': 'x', 'description': 'y', 'priority': 'low',
        })
        self.assertEqual(response.status_code, 400)

    def test_admin_assigns_through_api(self):
        issue = self._create_issue()

        self.client.force_login(self.admin)
        response = self._post(reverse('issues:issue_assign', args=[issue['id']]), {
            'assignee_id': self.fixer.pk,
            'edited_issue': {'priority': 'critical'},
        })
        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['issue']['status'], 'assigned')
        self.assertEqual(data['task']['category'], 'issue_resolution')
        self.assertEqual(data['task']['priority'], 'critical')
        self.assertEqual(data['task']['related_issue_id'], issue['id'])

        again = self._post(reverse('issues:issue_assign', args=[issue['id']]),
                           {'assignee_id': self.fixer.pk})
        self.assertEqual(again.status_code, 400)

    def test_employee_assign_is_403(self):
        issue = self._create_issue()
        response = self._post(reverse('issues:issue_assign', args=[issue['id']]),
                              {'assignee_id': self.fixer.pk})
        self.assertEqual(response.status_code, 403)

    def test_filter_by_status(self):
        self._create_issue()
        self.client.force_login(self.admin)
        pending = self.client.get(reverse('issues:issue_list'), {'status': 'pending_assignment'}).json()
        resolved = self.client.get(reverse('issues:issue_list'), {'status': 'resolved'}).json()
        self.assertEqual((pending['count'], resolved['count']), (1, 0))
