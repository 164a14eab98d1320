"""
Tests for the tasks app: services, permissions and JSON endpoints.
"""

import json
from datetime import timedelta
from unittest import mock

from django.core import mail
from django.core.exceptions import PermissionDenied, ValidationError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from apps.activity_log.models import ActivityLog
from apps.notifications.models import Notification
from apps.tasks.models import ChecklistItem, Task
from apps.tasks.services import (
    add_checklist_item, change_status, create_task, delete_task, update_checklist_item, update_task,
)
from tests.helpers import make_admin, make_task, make_user


class CreateTaskTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.employee = make_user()

    def test_admin_assigns_and_assignee_is_notified(self):
        task = create_task(
            created_by=self.admin,
            title='  Quarterly report  ',
            category=Task.Category.PROJECT,
            priority=Task.Priority.HIGH,
            assigned_to=self.employee,
            tags=[' finance ', 'finance', '', 'ops'],
        )

        self.assertEqual(task.title, 'Quarterly report')
        self.assertEqual(task.status, Task.Status.NOT_STARTED)
        self.assertEqual(task.progress_percentage, 0)
        self.assertEqual(task.tags, ['finance', 'ops'])
        self.assertTrue(ActivityLog.objects.filter(action='task_created', entity_id=task.pk).exists())

        notification = Notification.objects.get(recipient=self.employee)
        self.assertEqual(notification.type, Notification.Type.TASK_ASSIGNED)
        self.assertEqual(notification.link, f'/tasks/{task.pk}')
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn('Quarterly report', mail.outbox[0].subject)

    def test_employee_cannot_assign_to_someone_else(self):
        with self.assertRaises(PermissionDenied):
            create_task(
                created_by=self.employee,
                title='Not mine to give',
                category=Task.Category.ONE_TIME,
                priority=Task.Priority.LOW,
                assigned_to=self.admin,
            )

    def test_employee_may_assign_to_self_without_notification(self):
        task = create_task(
            created_by=self.employee,
            title='Self task',
            category=Task.Category.ROUTINE,
            priority=Task.Priority.LOW,
            assigned_to=self.employee,
        )
        self.assertEqual(task.assigned_to, self.employee)
        self.assertFalse(Notification.objects.exists())

    def test_rejects_invalid_input(self):
        with self.assertRaises(ValidationError):
            create_task(self.admin, '   ', Task.Category.ONE_TIME, Task.Priority.LOW)
        with self.assertRaises(ValidationError):
            create_task(self.admin, 'x', 'weird', Task.Priority.LOW)
        with self.assertRaises(ValidationError):
            create_task(self.admin, 'x', Task.Category.ONE_TIME, Task.Priority.LOW, bogus=1)

    def test_email_preference_is_honoured(self):
        self.employee.notification_preferences = {'email': False, 'in_app': True}
        self.employee.save()
        create_task(self.admin, 'Quiet', Task.Category.ONE_TIME, Task.Priority.LOW,
                    assigned_to=self.employee)
        self.assertEqual(len(mail.outbox), 0)
        self.assertEqual(Notification.objects.filter(recipient=self.employee).count(), 1)


class StatusTransitionTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.employee = make_user()
        self.other = make_user()

    def test_completion_stamps_and_reopen_clears(self):
        task = make_task(self.admin, assigned_to=self.employee,
                         due_date=timezone.localdate() + timedelta(days=2))

        change_status(task, self.employee, Task.Status.COMPLETED)
        task.refresh_from_db()
        self.assertIsNotNone(task.completed_at)
        self.assertFalse(task.late_completion)
        self.assertEqual(task.progress_percentage, 100)

        change_status(task, self.employee, Task.Status.IN_PROGRESS, progress=140)
        task.refresh_from_db()
        self.assertIsNone(task.completed_at)
        self.assertEqual(task.progress_percentage, 100)

    def test_completing_an_overdue_task_marks_it_late(self):
        task = make_task(self.admin, assigned_to=self.employee,
                         due_date=timezone.localdate() - timedelta(days=3))
        self.assertTrue(task.is_overdue)

        change_status(task, self.employee, Task.Status.COMPLETED)
        task.refresh_from_db()
        self.assertTrue(task.late_completion)
        self.assertFalse(task.is_overdue)

    def test_progress_is_clamped(self):
        task = make_task(self.admin, assigned_to=self.employee)
        change_status(task, self.employee, Task.Status.IN_PROGRESS, progress=-5)
        self.assertEqual(task.progress_percentage, 0)

    def test_only_admin_or_assignee_changes_status(self):
        task = make_task(self.admin, assigned_to=self.employee)
        with self.assertRaises(PermissionDenied):
            change_status(task, self.other, Task.Status.IN_PROGRESS)

    def test_status_change_is_logged(self):
        task = make_task(self.admin, assigned_to=self.employee)
        change_status(task, self.admin, Task.Status.BLOCKED)
        log = ActivityLog.objects.get(action='task_status_changed')
        self.assertEqual(log.details['old_status'], 'not_started')
        self.assertEqual(log.details['new_status'], 'blocked')


class UpdateTaskTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.employee = make_user()

    def test_blank_values_clear_optional_dates(self):
        task = make_task(self.admin, due_date=timezone.localdate(), description='keep?')
        update_task(task, self.admin, due_date=None, description=None, title='')
        task.refresh_from_db()
        self.assertIsNone(task.due_date)
        self.assertEqual(task.description, '')
        self.assertEqual(task.title, 'A task')

    def test_changes_are_logged_with_old_and_new_values(self):
        task = make_task(self.admin, priority=Task.Priority.LOW)
        update_task(task, self.admin, priority=Task.Priority.CRITICAL)
        log = ActivityLog.objects.get(action='task_updated')
        self.assertEqual(log.details['changes']['priority'], ['low', 'critical'])

    def test_reassignment_notifies_new_assignee(self):
        task = make_task(self.admin)
        update_task(task, self.admin, assigned_to=self.employee)
        self.assertTrue(
            Notification.objects.filter(recipient=self.employee, type='task_assigned').exists()
        )

    def test_stranger_cannot_edit(self):
        task = make_task(self.admin)
        with self.assertRaises(PermissionDenied):
            update_task(task, self.employee, title='Mine now')

    def test_only_admin_deletes(self):
        task = make_task(self.admin, assigned_to=self.employee)
        with self.assertRaises(PermissionDenied):
            delete_task(task, self.employee)
        delete_task(task, self.admin)
        self.assertFalse(Task.objects.filter(pk=task.pk).exists())
        self.assertTrue(ActivityLog.objects.filter(action='task_deleted').exists())


class ChecklistTests(TestCase):

    def test_items_are_appended_and_ticked(self):
        admin = make_admin()
        task = make_task(admin)
        first = add_checklist_item(task, admin, 'Gather data')
        second = add_checklist_item(task, admin, 'Write summary')
        self.assertEqual((first.position, second.position), (0, 1))

        update_checklist_item(first, admin, is_completed=True)
        first.refresh_from_db()
        self.assertTrue(first.is_completed)
        self.assertEqual(first.completed_by, admin)
        self.assertIsNotNone(first.completed_at)

        update_checklist_item(first, admin, is_completed=False)
        first.refresh_from_db()
        self.assertIsNone(first.completed_at)
        self.assertIsNone(first.completed_by)


class TaskApiTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.employee = make_user()
        self.other = make_user()
        self.client.force_login(self.employee)

    def _json(self, method, url, payload):
        return getattr(self.client, method)(
            url, data=json.dumps(payload), content_type='application/json',
        )

    def test_anonymous_gets_401(self):
        self.client.logout()
        response = self.client.get(reverse('tasks:task_list'))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], 'Unauthorized')

    def test_wrong_method_gets_405(self):
        response = self.client.delete(reverse('tasks:task_list'))
        self.assertEqual(response.status_code, 405)
        self.assertIn('GET', response['Allow'])

    def test_create_and_list_only_visible_tasks(self):
        response = self._json('post', reverse('tasks:task_list'), {
            'title': 'Call supplier',
            'category': 'one_time',
            'priority': 'high',
            'tags': 'vendors, calls',
            'due_date': '2030-01-01',
        })
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body['data']['tags'], ['vendors', 'calls'])
        self.assertEqual(body['data']['status'], 'not_started')

        make_task(self.admin, title='Hidden from employee')

        listing = self.client.get(reverse('tasks:task_list')).json()
        self.assertEqual(listing['count'], 1)
        self.assertEqual(listing['data'][0]['title'], 'Call supplier')

    def test_create_validation_error(self):
        response = self._json('post', reverse('tasks:task_list'), {
            'title': 'Bad times', 'category': 'one_time', 'priority': 'low',
            'start_time': '10:00', 'end_time': '09:00',
        })
        self.assertEqual(response.status_code, 400)
        self.assertIn('end_time', response.json()['details'])

    def test_invalid_json_is_400(self):
        response = self.client.post(reverse('tasks:task_list'), data='{nope',
                                    content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_employee_assigning_to_other_gets_403(self):
        response = self._json('post', reverse('tasks:task_list'), {
            'title': 'Push work', 'category': 'one_time', 'priority': 'low',
            'assigned_to': self.other.pk,
        })
        self.assertEqual(response.status_code, 403)

    def test_filters_and_sorting(self):
        today = timezone.localdate()
        make_task(self.employee, title='Late', priority='low', due_date=today - timedelta(days=1),
                  tags=['ops'])
        make_task(self.employee, title='Fine', priority='critical', due_date=today + timedelta(days=5))
        make_task(self.employee, title='Done', status='completed', due_date=today - timedelta(days=9),
                  tags=['ops'])

        overdue = self.client.get(reverse('tasks:task_list'), {'overdue': 'true'}).json()
        self.assertEqual([t['title'] for t in overdue['data']], ['Late'])
        self.assertTrue(overdue['data'][0]['is_overdue'])

        tagged = self.client.get(reverse('tasks:task_list'), {'tag': 'ops'}).json()
        self.assertEqual({t['title'] for t in tagged['data']}, {'Late', 'Done'})

        by_priority = self.client.get(
            reverse('tasks:task_list'), {'sort_by': 'priority', 'sort_order': 'desc'},
        ).json()
        self.assertEqual(by_priority['data'][0]['title'], 'Fine')

        statuses = self.client.get(reverse('tasks:task_list'), {'status': 'completed,blocked'}).json()
        self.assertEqual([t['title'] for t in statuses['data']], ['Done'])

    def test_overdue_filter_follows_the_shared_predicate(self):
        today = timezone.localdate()
        make_task(self.employee, title='Future', due_date=today + timedelta(days=5))
        make_task(self.employee, title='Undated')
        url = reverse('tasks:task_list')

        with mock.patch('apps.reports.analytics.is_overdue', return_value=True):
            overdue = self.client.get(url, {'overdue': 'true'}).json()
            on_time = self.client.get(url, {'overdue': 'false'}).json()

        self.assertEqual([t['title'] for t in overdue['data']], ['Future'])
        self.assertTrue(overdue['data'][0]['is_overdue'])
        self.assertEqual([t['title'] for t in on_time['data']], ['Undated'])

    def test_pagination(self):
        for i in range(5):
            make_task(self.employee, title=f'T{i}')
        body = self.client.get(reverse('tasks:task_list'), {'limit': 2, 'offset': 2}).json()
        self.assertEqual(body['count'], 5)
        self.assertEqual(len(body['data']), 2)
        self.assertEqual((body['limit'], body['offset']), (2, 2))

    def test_detail_forbidden_for_strangers(self):
        task = make_task(self.admin)
        response = self.client.get(reverse('tasks:task_detail', args=[task.pk]))
        self.assertEqual(response.status_code, 403)

    def test_missing_task_is_404(self):
        response = self.client.get(reverse('tasks:task_detail', args=[9999]))
        self.assertEqual(response.status_code, 404)

    def test_partial_update_and_status_patch(self):
        task = make_task(self.admin, assigned_to=self.employee, title='Original')

        response = self._json('put', reverse('tasks:task_detail', args=[task.pk]), {'title': 'Renamed'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['title'], 'Renamed')
        self.assertEqual(response.json()['data']['priority'], 'medium')

        response = self._json('patch', reverse('tasks:task_status', args=[task.pk]),
                              {'status': 'completed'})
        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(response.json()['data']['completed_at'])

        completed = self.client.get(reverse('tasks:task_completed')).json()
        self.assertEqual([t['id'] for t in completed['data']], [task.pk])

    def test_employee_delete_is_forbidden(self):
        task = make_task(self.employee, assigned_to=self.employee)
        response = self.client.delete(reverse('tasks:task_detail', args=[task.pk]))
        self.assertEqual(response.status_code, 403)

    def test_notes_and_checklist_endpoints(self):
        task = make_task(self.employee, assigned_to=self.employee)

        note = self._json('post', reverse('tasks:task_notes', args=[task.pk]), {'content': ' Called '})
        self.assertEqual(note.status_code, 201)
        self.assertEqual(note.json()['data']['content'], 'Called')

        item = self._json('post', reverse('tasks:task_checklist', args=[task.pk]), {'title': 'Step 1'})
        self.assertEqual(item.status_code, 201)
        item_id = item.json()['data']['id']

        ticked = self._json('patch', reverse('tasks:checklist_item', args=[task.pk, item_id]),
                            {'is_completed': True})
        self.assertTrue(ticked.json()['data']['is_completed'])

        removed = self.client.delete(reverse('tasks:checklist_item', args=[task.pk, item_id]))
        self.assertEqual(removed.status_code, 200)
        self.assertFalse(ChecklistItem.objects.exists())
