from unittest import mock

from django.core import mail

from social.errors import AppError
from social.models import User

from .base import PASSWORD, ApiTestCase, make_user


def registration(**overrides):
    data = {
        'firstname': 'Ada',
        'lastname': 'Lovelace',
        'username': 'ada',
        'email': 'ada@example.com',
        'password': 'analytical',
    }
    data.update(overrides)
    return data


class RegistrationTests(ApiTestCase):

    def test_create_account(self):
        response = self.post('/users', registration())

        self.assertEqual(response.status_code, 201)
        data = response.json()['data']
        self.assertEqual(data['username'], 'ada')
        self.assertNotIn('password', data)
        user = User.objects.get(username='ada')
        self.assertTrue(user.check_password('analytical'))

    def test_welcome_email_is_sent(self):
        self.post('/users', registration())
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, "Welcome to OausConnect!")
        self.assertEqual(mail.outbox[0].to, ['ada@example.com'])

    def test_welcome_email_failure_does_not_fail_registration(self):
        with mock.patch('social.views.emails.send_welcome_email', side_effect=AppError("Failed to send email")):
            response = self.post('/users', registration())
        self.assertEqual(response.status_code, 201)

    def test_duplicate_username(self):
        make_user('ada', email='other@example.com')
        response = self.post('/users', registration())
        self.assertError(response, 409, "Username already exists")

    def test_duplicate_email(self):
        make_user('someone', email='ada@example.com')
        response = self.post('/users', registration())
        self.assertError(response, 409, "Email already exists")

    def test_missing_fields(self):
        response = self.post('/users', {'username': 'ada'})
        self.assertError(response, 400, "Missing required fields: firstname, lastname, email, password")

    def test_invalid_email_and_short_password_are_reported_together(self):
        response = self.post('/users', registration(email='not-an-email', password='123'))
        self.assertError(
            response, 400,
            "Please provide a valid email address; Password must be at least 6 characters long",
        )

    def test_non_string_email(self):
        response = self.post('/users', registration(email=12345))
        self.assertError(response, 400, "Email must be a string")
        self.assertFalse(User.objects.exists())

    def test_non_string_names(self):
        response = self.post('/users', registration(firstname=['Ada'], username=99))
        self.assertError(response, 400, "First name must be a string; Username must be a string")

    def test_login_with_non_string_username(self):
        response = self.post('/auth/login', {'username': 5, 'password': 'whatever'})
        self.assertError(response, 400, "username must be a string")

    def test_malformed_json(self):
        response = self.client.post('/users', '{not json', content_type='application/json')
        self.assertError(response, 400, "Request body must be valid JSON")


class ProfileTests(ApiTestCase):

    def setUp(self):
        self.user = make_user('alice')

    def test_me(self):
        response = self.get('/users/me', user=self.user)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['email'], 'alice@example.com')

    def test_update_profile(self):
        response = self.put('/users', {
            'firstname': 'Alicia',
            'bio': 'Loves graphs',
            'interests': ['math', 'music'],
            'dob': '1990-04-01',
        }, user=self.user)

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['firstname'], 'Alicia')
        self.assertEqual(data['interests'], ['math', 'music'])
        self.assertEqual(data['dob'], '1990-04-01')

    def test_update_profile_rejects_bad_date(self):
        response = self.put('/users', {'dob': 'yesterday'}, user=self.user)
        self.assertError(response, 400, "dob must be a date in YYYY-MM-DD format")

    def test_update_profile_requires_auth(self):
        response = self.put('/users', {'bio': 'x'})
        self.assertEqual(response.status_code, 401)

    def test_delete_account(self):
        response = self.delete('/users', user=self.user)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(User.objects.filter(pk=self.user.pk).exists())

    def test_user_detail(self):
        response = self.get(f'/users/{self.user.id}')
        self.assertEqual(response.json()['data']['username'], 'alice')

    def test_user_detail_not_found(self):
        self.assertError(self.get('/users/9999'), 404, "User not found")

    def test_list_users_is_paginated(self):
        make_user('bob')
        make_user('carol')
        response = self.get('/users', params={'limit': 2})

        body = response.json()
        self.assertEqual(len(body['data']), 2)
        self.assertEqual(body['pagination'], {
            'page': 1, 'limit': 2, 'total': 3, 'pages': 2, 'hasNext': True, 'hasPrev': False,
        })

    def test_unsupported_method(self):
        response = self.patch('/users', {}, user=self.user)
        self.assertEqual(response.status_code, 405)


class SearchAndPasswordTests(ApiTestCase):

    def setUp(self):
        self.user = make_user('alice')
        make_user('alicia', first_name='Alicia')
        make_user('bob', first_name='Bob', last_name='Builder')

    def test_search_matches_names_and_excludes_caller(self):
        response = self.get('/users/search', user=self.user, params={'q': 'ali'})
        usernames = [user['username'] for user in response.json()['data']]
        self.assertEqual(usernames, ['alicia'])

    def test_search_by_last_name(self):
        response = self.get('/users/search', user=self.user, params={'q': 'build'})
        self.assertEqual([user['username'] for user in response.json()['data']], ['bob'])

    def test_search_requires_query(self):
        self.assertError(self.get('/users/search', user=self.user), 400, "Search query is required")

    def test_change_password(self):
        response = self.put('/users/change-password',
                            {'oldPassword': PASSWORD, 'newPassword': 'fresh-one'}, user=self.user)
        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('fresh-one'))

    def test_change_password_wrong_current(self):
        response = self.put('/users/change-password',
                            {'oldPassword': 'wrong', 'newPassword': 'fresh-one'}, user=self.user)
        self.assertError(response, 400, "Current password is incorrect")
