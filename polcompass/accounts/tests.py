import json
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse

from core.services import db

User = get_user_model()

PROFILE = {
    'id': 'u1',
    'username': 'adalovelace1815',
    'display_name': 'Ada Lovelace',
    'email': 'ada@example.com',
    'first_name': 'Ada',
    'last_name': 'Lovelace',
}
OTHER = {'id': 'u2', 'username': 'charles1791', 'display_name': 'Charles', 'email': 'c@example.com'}


class AccountsViewTestBase(TestCase):
    def setUp(self):
        cache.clear()
        patchers = [
            patch.object(db, 'get_hot_topic_questions', return_value=[]),
            patch.object(db, 'get_user_profile', return_value=PROFILE),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    def sign_in(self, uid='u1'):
        session = self.client.session
        session['uid'] = uid
        session.save()

    def post_json(self, url, data=None):
        return self.client.post(url, data=json.dumps(data or {}), content_type='application/json')


class FirebaseLoginTest(AccountsViewTestBase):
    def test_missing_token(self):
        response = self.post_json(reverse('accounts:firebase_login'), {})
        self.assertEqual(response.status_code, 400)

    def test_requires_post(self):
        self.assertEqual(self.client.get(reverse('accounts:firebase_login')).status_code, 405)

    def test_invalid_token(self):
        with patch('core.authentication.auth.verify_id_token', side_effect=Exception('expired')):
            response = self.post_json(reverse('accounts:firebase_login'), {'idToken': 'bad'})
        self.assertEqual(response.status_code, 401)

    def test_login_creates_user_and_session(self):
        decoded = {'uid': 'u1', 'email': 'ada@example.com', 'name': 'Ada Lovelace'}
        with patch('core.authentication.auth.verify_id_token', return_value=decoded), \
                patch.object(db, 'ensure_user_profile', return_value=True) as ensure, \
                patch.object(db, 'is_super_staff', return_value=False):
            response = self.post_json(reverse('accounts:firebase_login'), {'idToken': 'good'})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['created'])
        ensure.assert_called_once_with('u1', 'ada@example.com', 'Ada', 'Lovelace')
        self.assertEqual(self.client.session['uid'], 'u1')

        user = User.objects.get(username='u1')
        self.assertEqual(user.first_name, 'Ada')
        self.assertFalse(user.has_usable_password())
        self.assertFalse(user.is_staff)

    def test_super_staff_login(self):
        decoded = {'uid': 'u1', 'email': 'ada@example.com', 'name': 'Ada'}
        with patch('core.authentication.auth.verify_id_token', return_value=decoded), \
                patch.object(db, 'ensure_user_profile', return_value=False), \
                patch.object(db, 'is_super_staff', return_value=True):
            self.post_json(reverse('accounts:firebase_login'), {'idToken': 'good'})

        user = User.objects.get(username='u1')
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_superuser)

    def test_logout(self):
        self.sign_in()
        response = self.client.post(reverse('accounts:logout'))
        self.assertEqual(response.status_code, 200)
        self.assertNotIn('uid', self.client.session)


class ProfileTest(AccountsViewTestBase):
    def test_requires_login(self):
        self.assertEqual(self.client.get(reverse('accounts:profile')).status_code, 401)

    def test_profile(self):
        self.sign_in()
        result = {'economic_score': 2.5, 'social_score': -5, 'global_score': 0, 'progress_score': 1,
                  'answered_count': 12}
        with patch.object(db, 'get_user_result', return_value=result), \
                patch.object(db, 'get_follower_ids', return_value=['u2', 'u3']), \
                patch.object(db, 'get_following_ids', return_value=['u2']), \
                patch.object(db, 'is_super_staff', return_value=False):
            response = self.client.get(reverse('accounts:profile'))

        data = response.json()
        self.assertEqual(data['profile']['username'], 'adalovelace1815')
        self.assertEqual(data['profile']['email'], 'ada@example.com')
        self.assertEqual(data['result']['scores'], {'economic': 50, 'social': -100, 'global': 0, 'progress': 20})
        self.assertEqual((data['followers'], data['following']), (2, 1))

    def test_profile_without_result(self):
        self.sign_in()
        with patch.object(db, 'get_user_result', return_value=None), \
                patch.object(db, 'get_follower_ids', return_value=[]), \
                patch.object(db, 'get_following_ids', return_value=[]), \
                patch.object(db, 'is_super_staff', return_value=False):
            response = self.client.get(reverse('accounts:profile'))
        self.assertIsNone(response.json()['result'])


class SyncProfileTest(AccountsViewTestBase):
    def setUp(self):
        super().setUp()
        self.sign_in()
        self.url = reverse('accounts:sync_profile')

    def test_username_too_short(self):
        response = self.post_json(self.url, {'username': 'ab'})
        self.assertEqual(response.status_code, 400)

    def test_username_characters(self):
        response = self.post_json(self.url, {'username': 'ada lovelace'})
        self.assertEqual(response.status_code, 400)

    def test_username_taken(self):
        with patch.object(db, 'is_username_taken', return_value=True):
            response = self.post_json(self.url, {'username': 'charles1791'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Username is already taken')

    def test_update(self):
        with patch.object(db, 'update_user_username') as update_username, \
                patch.object(db, 'update_user_display_name') as update_display_name:
            response = self.post_json(self.url, {'username': 'ada_l', 'display_name': ' Countess '})
        self.assertEqual(response.status_code, 200)
        update_username.assert_called_once_with('u1', 'ada_l')
        update_display_name.assert_called_once_with('u1', 'Countess')


class PublicProfileTest(AccountsViewTestBase):
    def test_unknown_user(self):
        with patch.object(db, 'get_user_by_username', return_value=None):
            response = self.client.get(reverse('accounts:public_profile', args=['ghost']))
        self.assertEqual(response.status_code, 404)

    def test_public_profile_hides_email(self):
        self.sign_in()
        with patch.object(db, 'get_user_by_username', return_value=OTHER), \
                patch.object(db, 'get_user_result', return_value=None), \
                patch.object(db, 'get_follower_ids', return_value=['u1']), \
                patch.object(db, 'get_following_ids', return_value=[]), \
                patch.object(db, 'is_following', return_value=True):
            response = self.client.get(reverse('accounts:public_profile', args=['charles1791']))

        data = response.json()
        self.assertNotIn('email', data['profile'])
        self.assertTrue(data['is_following'])
        self.assertFalse(data['is_self'])


class FollowTest(AccountsViewTestBase):
    def setUp(self):
        super().setUp()
        self.sign_in()

    def test_follow(self):
        with patch.object(db, 'get_user_by_username', return_value=OTHER), \
                patch.object(db, 'toggle_follow', return_value=True) as toggle, \
                patch.object(db, 'get_follower_ids', return_value=['u1']):
            response = self.client.post(reverse('accounts:toggle_follow', args=['charles1791']))
        self.assertEqual(response.json(), {'success': True, 'following': True, 'followers': 1})
        toggle.assert_called_once_with('u1', 'u2')

    def test_cannot_follow_self(self):
        with patch.object(db, 'get_user_by_username', return_value=PROFILE), \
                patch.object(db, 'is_following', return_value=False):
            response = self.client.post(reverse('accounts:toggle_follow', args=['adalovelace1815']))
        self.assertEqual(response.status_code, 400)

    def test_followers_list(self):
        with patch.object(db, 'get_user_by_username', return_value=OTHER), \
                patch.object(db, 'get_follower_ids', return_value=['u1']), \
                patch.object(db, 'get_users_by_ids', return_value={'u1': PROFILE}):
            response = self.client.get(reverse('accounts:followers', args=['charles1791']))
        self.assertEqual([u['username'] for u in response.json()['followers']], ['adalovelace1815'])


class FeedTest(AccountsViewTestBase):
    def test_feed(self):
        self.sign_in()
        posts = [
            {'id': 'u2_4', 'uid': 'u2', 'question_id': '4', 'value': 5, 'updated_at': None, 'profile': OTHER},
            {'id': 'u2_gone', 'uid': 'u2', 'question_id': 'hot:gone', 'value': 1, 'updated_at': None,
             'profile': OTHER},
        ]
        with patch.object(db, 'get_feed_posts', return_value=posts) as feed:
            response = self.client.get(reverse('accounts:feed'), {'limit': 10})

        feed.assert_called_once_with('u1', limit=10)
        data = response.json()
        self.assertEqual(len(data['posts']), 1)
        self.assertEqual(data['posts'][0]['label'], 'Strongly Agree')
        self.assertEqual(data['posts'][0]['author']['username'], 'charles1791')

    def test_bad_limit(self):
        self.sign_in()
        response = self.client.get(reverse('accounts:feed'), {'limit': 'many'})
        self.assertEqual(response.status_code, 400)
