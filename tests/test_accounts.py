"""
Tests for authentication, user management and the activity log.
"""

import json

from django.core import mail
from django.test import TestCase
from django.urls import reverse

from apps.accounts.models import User
from apps.accounts.services import generate_temp_password
from apps.activity_log.models import ActivityLog, log_activity
from tests.helpers import make_admin, make_user


def post_json(client, url, payload=None):
    return client.post(url, data=json.dumps(payload or {}), content_type='application/json')


class AuthenticationTests(TestCase):

    def setUp(self):
        self.user = make_user(email='sam@example.com', password='Corr3ct-horse!')

    def test_login_is_case_insensitive_and_starts_session(self):
        response = post_json(self.client, reverse('accounts:login'),
                             {'email': 'SAM@Example.com', 'password': 'Corr3ct-horse!'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['email'], 'sam@example.com')

        me = self.client.get(reverse('accounts:me'))
        self.assertEqual(me.json()['data']['id'], self.user.pk)

    def test_wrong_password_is_401(self):
        response = post_json(self.client, reverse('accounts:login'),
                             {'email': 'sam@example.com', 'password': 'nope'})
        self.assertEqual(response.status_code, 401)

    def test_inactive_user_cannot_log_in(self):
        self.user.is_active = False
        self.user.save()
        response = post_json(self.client, reverse('accounts:login'),
                             {'email': 'sam@example.com', 'password': 'Corr3ct-horse!'})
        self.assertEqual(response.status_code, 401)

    def test_malformed_login_is_400(self):
        response = self.client.post(reverse('accounts:login'), data='{', content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(post_json(self.client, reverse('accounts:login'), {'email': 'x'}).status_code, 400)

    def test_logout_ends_session(self):
        self.client.force_login(self.user)
        self.assertEqual(self.client.post(reverse('accounts:logout')).status_code, 200)
        self.assertEqual(self.client.get(reverse('accounts:me')).status_code, 401)

    def test_change_password_clears_flag_and_keeps_session(self):
        self.user.must_change_password = True
        self.user.save()
        self.client.force_login(self.user)
        url = reverse('accounts:change_password')

        wrong = post_json(self.client, url, {'current_password': 'bad', 'new_password': 'N3w-Passw0rd!x'})
        self.assertEqual(wrong.status_code, 400)

        weak = post_json(self.client, url, {'current_password': 'Corr3ct-horse!',
                                            'new_password': 'alllowercaseletters'})
        self.assertEqual(weak.status_code, 400)

        response = post_json(self.client, url, {'current_password': 'Corr3ct-horse!',
                                                'new_password': 'N3w-Passw0rd!x'})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()['data']['must_change_password'])
        self.assertEqual(self.client.get(reverse('accounts:me')).status_code, 200)

        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('N3w-Passw0rd!x'))

    def test_csrf_endpoint_sets_cookie(self):
        response = self.client.get(reverse('accounts:csrf'))
        self.assertIn('csrf_token', response.json()['data'])
        self.assertIn('csrftoken', response.cookies)


class UserManagementTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.employee = make_user()
        self.client.force_login(self.admin)

    def test_temp_password_has_every_character_class(self):
        password = generate_temp_password()
        self.assertEqual(len(password), 16)
        self.assertTrue(any(c.isupper() for c in password))
        self.assertTrue(any(c.islower() for c in password))
        self.assertTrue(any(c.isdigit() for c in password))
        self.assertTrue(any(not c.isalnum() for c in password))

    def test_create_user_emails_credentials(self):
        response = post_json(self.client, reverse('accounts:user_list'), {
            'email': 'New.Hire@Example.com',
            'first_name': 'New',
            'last_name': 'Hire',
            'weekly_hours': '37.5',
        })

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body['email_sent'])
        self.assertEqual(body['data']['role'], 'employee')
        self.assertEqual(body['data']['weekly_hours'], 37.5)

        user = User.objects.get(email='new.hire@example.com')
        self.assertTrue(user.must_change_password)
        self.assertEqual(mail.outbox[0].to, ['new.hire@example.com'])
        self.assertTrue(ActivityLog.objects.filter(action='user_created', entity_id=user.pk).exists())

    def test_duplicate_email_is_400(self):
        response = post_json(self.client, reverse('accounts:user_list'), {
            'email': self.employee.email.upper(), 'first_name': 'Again',
        })
        self.assertEqual(response.status_code, 400)

    def test_employee_cannot_manage_users(self):
        self.client.force_login(self.employee)
        self.assertEqual(self.client.get(reverse('accounts:user_list')).status_code, 403)

    def test_reset_password(self):
        old_hash = self.employee.password
        response = self.client.post(reverse('accounts:user_reset_password', args=[self.employee.pk]))

        self.assertEqual(response.status_code, 200)
        self.employee.refresh_from_db()
        self.assertNotEqual(self.employee.password, old_hash)
        self.assertTrue(self.employee.must_change_password)
        self.assertEqual(len(mail.outbox), 1)

    def test_deactivate_and_not_self(self):
        response = self.client.post(reverse('accounts:user_deactivate', args=[self.employee.pk]))
        self.assertFalse(response.json()['data']['is_active'])

        own = self.client.post(reverse('accounts:user_deactivate', args=[self.admin.pk]))
        self.assertEqual(own.status_code, 400)

        active = self.client.get(reverse('accounts:user_list'), {'active': 'true'}).json()['data']
        self.assertEqual([u['id'] for u in active], [self.admin.pk])

    def test_unknown_user_is_404(self):
        response = self.client.post(reverse('accounts:user_reset_password', args=[9999]))
        self.assertEqual(response.status_code, 404)


class ActivityLogTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.employee = make_user(first_name='Robin')
        log_activity(self.employee, 'task_created', 'task', 1, {'title': 'A'})
        log_activity(self.admin, 'issue_assigned', 'issue', 2)
        log_activity(None, 'overdue_reminder_sent', 'task', 1)

    def test_admin_only(self):
        self.client.force_login(self.employee)
        self.assertEqual(self.client.get(reverse('activity_log:activity_list')).status_code, 403)

    def test_newest_first_with_filters(self):
        self.client.force_login(self.admin)
        url = reverse('activity_log:activity_list')

        everything = self.client.get(url).json()
        self.assertEqual(everything['count'], 3)
        self.assertEqual(everything['data'][0]['action'], 'overdue_reminder_sent')
        self.assertIsNone(everything['data'][0]['user'])

        tasks = self.client.get(url, {'entity_type': 'task', 'entity_id': 1}).json()
        self.assertEqual(tasks['count'], 2)

        by_name = self.client.get(url, {'search': 'robin'}).json()
        self.assertEqual([a['action'] for a in by_name['data']], ['task_created'])

        self.assertEqual(self.client.get(url, {'date_from': 'yesterday'}).status_code, 400)
