import json
from datetime import timedelta
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from core.services import db
from core.services.hot_topics import AlreadyAnsweredError


def make_topic(topic_id='t1', **overrides):
    topic = {
        'id': topic_id,
        'text': 'Should the voting age be lowered to 16?',
        'type': 'scale',
        'axis': 'progress',
        'weight': 1,
        'direction': -1,
        'active': True,
        'start_at': timezone.now(),
        'end_at': None,
    }
    topic.update(overrides)
    return topic


class HotTopicViewTestBase(TestCase):
    def setUp(self):
        cache.clear()
        patchers = [
            patch.object(db, 'get_hot_topic_questions', return_value=[]),
            patch.object(db, 'get_user_profile', return_value={'id': 'u1', 'username': 'tester1234'}),
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


class TopicListTest(HotTopicViewTestBase):
    def test_requires_login(self):
        response = self.client.get(reverse('hot_topics:list'))
        self.assertEqual(response.status_code, 401)

    def test_answered_flags(self):
        self.sign_in()
        with patch.object(db, 'get_hot_topics', return_value=[make_topic('t1'), make_topic('t2')]) as topics, \
                patch.object(db, 'get_answered_topic_ids', return_value={'t1'}):
            response = self.client.get(reverse('hot_topics:list'))

        topics.assert_called_once_with(active_only=True)
        data = response.json()
        self.assertEqual([t['answered'] for t in data['topics']], [True, False])
        self.assertEqual([t['id'] for t in data['unanswered']], ['t2'])


class AnswerTopicTest(HotTopicViewTestBase):
    def setUp(self):
        super().setUp()
        self.sign_in()
        self.url = reverse('hot_topics:answer', args=['t1'])

    def test_requires_login(self):
        self.client.logout()
        response = self.post_json(self.url, {'value': 5})
        self.assertEqual(response.status_code, 401)

    def test_requires_post(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 405)

    def test_unknown_topic(self):
        with patch.object(db, 'get_hot_topic', return_value=None):
            response = self.post_json(self.url, {'value': 5})
        self.assertEqual(response.status_code, 404)

    def test_closed_topic(self):
        with patch.object(db, 'get_hot_topic', return_value=make_topic(active=False)):
            response = self.post_json(self.url, {'value': 5})
        self.assertEqual(response.status_code, 400)

    def test_invalid_value(self):
        with patch.object(db, 'get_hot_topic', return_value=make_topic(type='yesno')), \
                patch.object(db, 'record_hot_topic_response') as record:
            response = self.post_json(self.url, {'value': 3})
        self.assertEqual(response.status_code, 400)
        record.assert_not_called()

    def test_second_answer_conflicts(self):
        with patch.object(db, 'get_hot_topic', return_value=make_topic()), \
                patch.object(db, 'record_hot_topic_response', side_effect=AlreadyAnsweredError('answered')), \
                patch.object(db, 'save_user_answers') as save:
            response = self.post_json(self.url, {'value': 5})
        self.assertEqual(response.status_code, 409)
        save.assert_not_called()

    def test_answer_is_recorded_and_rescored(self):
        deltas = {'economic': 0.0, 'social': 0.0, 'global': 0.0, 'progress': -2.0}
        with patch.object(db, 'get_hot_topic', return_value=make_topic()), \
                patch.object(db, 'record_hot_topic_response') as record, \
                patch.object(db, 'get_user_answers', return_value={'1': 3}), \
                patch.object(db, 'save_user_answers') as save, \
                patch.object(db, 'recompute_results') as recompute, \
                patch.object(db, 'get_hot_topic_deltas', return_value=deltas):
            response = self.post_json(self.url, {'value': 5})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['value'], 5)
        self.assertAlmostEqual(data['contribution'], -2.0, places=3)
        self.assertEqual(data['hot_deltas'], deltas)

        uid, topic, value, contribution = record.call_args[0]
        self.assertEqual((uid, topic['id'], value), ('u1', 't1', 5))
        save.assert_called_once_with('u1', {'1': 3, 'hot:t1': 5})
        self.assertEqual(recompute.call_args[0][:2], ('u1', {'1': 3, 'hot:t1': 5}))

    def test_old_topics_contribute_less(self):
        old = make_topic(start_at=timezone.now() - timedelta(days=45))
        with patch.object(db, 'get_hot_topic', return_value=old), \
                patch.object(db, 'record_hot_topic_response'), \
                patch.object(db, 'get_user_answers', return_value={}), \
                patch.object(db, 'save_user_answers'), \
                patch.object(db, 'recompute_results'), \
                patch.object(db, 'get_hot_topic_deltas', return_value={}):
            response = self.post_json(self.url, {'value': 5})
        self.assertAlmostEqual(response.json()['contribution'], -1.0, places=3)

    def test_failed_answer_save_withdraws_the_response(self):
        with patch.object(db, 'get_hot_topic', return_value=make_topic()), \
                patch.object(db, 'record_hot_topic_response') as record, \
                patch.object(db, 'withdraw_hot_topic_response') as withdraw, \
                patch.object(db, 'get_user_answers', return_value={}), \
                patch.object(db, 'save_user_answers', side_effect=Exception('firestore down')), \
                patch.object(db, 'recompute_results') as recompute:
            response = self.post_json(self.url, {'value': 5})

        self.assertEqual(response.status_code, 503)
        uid, topic, contribution = withdraw.call_args[0]
        self.assertEqual((uid, topic['id']), ('u1', 't1'))
        self.assertEqual(contribution, record.call_args[0][3])
        recompute.assert_not_called()


class AdminTopicTest(HotTopicViewTestBase):
    def setUp(self):
        super().setUp()
        self.sign_in('admin1')

    def test_non_staff_is_forbidden(self):
        with patch.object(db, 'is_super_staff', return_value=False), \
                patch.object(db, 'create_document') as create:
            response = self.post_json(reverse('hot_topics:admin_create'), {'text': 'x', 'axis': 'social'})
        self.assertEqual(response.status_code, 403)
        create.assert_not_called()

    def test_anonymous_is_unauthorized(self):
        self.client.logout()
        response = self.post_json(reverse('hot_topics:admin_create'), {'text': 'x', 'axis': 'social'})
        self.assertEqual(response.status_code, 401)

    def test_create(self):
        cache.set('hot_topic_questions', [])
        with patch.object(db, 'is_super_staff', return_value=True), \
                patch.object(db, 'create_document', return_value='new1') as create:
            response = self.post_json(reverse('hot_topics:admin_create'), {
                'text': 'Ban phones in schools?', 'type': 'yesno', 'axis': 'social', 'direction': 1, 'weight': 1,
            })

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['id'], 'new1')
        collection, topic = create.call_args[0]
        self.assertEqual(collection, 'hot_topics')
        self.assertEqual(topic['created_by'], 'admin1')
        self.assertIsNone(cache.get('hot_topic_questions'))

    def test_create_validation(self):
        with patch.object(db, 'is_super_staff', return_value=True), \
                patch.object(db, 'create_document') as create:
            response = self.post_json(reverse('hot_topics:admin_create'), {'text': 'x', 'axis': 'cultural'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Invalid axis.')
        create.assert_not_called()

    def test_toggle(self):
        with patch.object(db, 'is_super_staff', return_value=True), \
                patch.object(db, 'get_hot_topic', return_value=make_topic(active=True)), \
                patch.object(db, 'set_hot_topic_active') as set_active:
            response = self.client.post(reverse('hot_topics:admin_toggle', args=['t1']))
        self.assertEqual(response.json()['active'], False)
        set_active.assert_called_once_with('t1', False)

    def test_delete_missing(self):
        with patch.object(db, 'is_super_staff', return_value=True), \
                patch.object(db, 'get_hot_topic', return_value=None), \
                patch.object(db, 'delete_hot_topic') as delete:
            response = self.client.post(reverse('hot_topics:admin_delete', args=['t9']))
        self.assertEqual(response.status_code, 404)
        delete.assert_not_called()

    def test_delete(self):
        with patch.object(db, 'is_super_staff', return_value=True), \
                patch.object(db, 'get_hot_topic', return_value=make_topic()), \
                patch.object(db, 'delete_hot_topic') as delete:
            response = self.client.post(reverse('hot_topics:admin_delete', args=['t1']))
        self.assertEqual(response.status_code, 200)
        delete.assert_called_once_with('t1')
