import json
from unittest.mock import patch

from django.core.cache import cache
from django.test import SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from core.answers import answers_hash
from core.quiz_data import QUESTIONS
from core.services import db
from .services import InsightService, strip_markdown_json


class MarkdownTest(SimpleTestCase):
    def test_strip_fences(self):
        self.assertEqual(strip_markdown_json('```json\n{"a": 1}\n```'), '{"a": 1}')
        self.assertEqual(strip_markdown_json('```\n{"a": 1}\n```'), '{"a": 1}')
        self.assertEqual(strip_markdown_json(' {"a": 1} '), '{"a": 1}')


@override_settings(GROK_API_KEY='')
class LocalInsightTest(SimpleTestCase):
    def setUp(self):
        self.service = InsightService()

    def test_compact_answers(self):
        items = self.service.compact_answers({'1': 4, '2': 'x'}, QUESTIONS)
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]['id'], '1')
        self.assertEqual(items[0]['label'], 'Agree')
        self.assertEqual(items[0]['axis'], 'economic')

    def test_simple_contradictions(self):
        issues = self.service.detect_simple_contradictions({'12': 5, '28': 4, '18': 5, '15': 2})
        self.assertEqual(len(issues), 1)
        self.assertIn('free speech', issues[0])

    def test_no_contradictions_for_unanswered_pairs(self):
        self.assertEqual(self.service.detect_simple_contradictions({'12': 5}), [])

    def test_degrades_without_api_key(self):
        insights = self.service.generate_insights({'40': 5, '20': 5}, questions=QUESTIONS)
        self.assertTrue(insights['ok'])
        self.assertEqual(insights['summary'], '')
        self.assertEqual(insights['topDrivers'], [])
        self.assertEqual(len(insights['contradictions']), 1)


@override_settings(GROK_API_KEY='test-key', INSIGHTS_MODEL='grok-test')
class GrokInsightTest(SimpleTestCase):
    def test_call_grok_parses_fenced_json(self):
        with patch('insights.services.Client') as client_cls:
            chat = client_cls.return_value.chat.create.return_value
            chat.sample.return_value.content = '```json\n{"summary": "Centre-left."}\n```'
            result = InsightService().call_grok('prompt')

        client_cls.assert_called_once_with(api_key='test-key')
        client_cls.return_value.chat.create.assert_called_once_with(model='grok-test')
        self.assertEqual(result, {'summary': 'Centre-left.'})

    def test_call_grok_failure_returns_none(self):
        with patch('insights.services.Client', side_effect=Exception('network')):
            self.assertIsNone(InsightService().call_grok('prompt'))

    def test_call_grok_rejects_non_objects(self):
        with patch('insights.services.Client') as client_cls:
            client_cls.return_value.chat.create.return_value.sample.return_value.content = '[1, 2]'
            self.assertIsNone(InsightService().call_grok('prompt'))

    def test_model_output_is_merged_with_local_checks(self):
        local_note = InsightService().detect_simple_contradictions({'12': 5, '28': 5})[0]
        responses = [
            {'contradictions': ['Wants lower taxes and more spending.', {'reason': local_note}]},
            {'summary': 'Socially liberal.', 'topDrivers': [
                {'qid': 1, 'axis': 'economic', 'driver': 'Tax the rich'},
                {'qid': 2, 'axis': 'economic'},
            ]},
        ]
        service = InsightService()
        with patch.object(service, 'call_grok', side_effect=responses):
            insights = service.generate_insights({'12': 5, '28': 5}, questions=QUESTIONS)

        self.assertEqual(insights['summary'], 'Socially liberal.')
        self.assertEqual(insights['contradictions'], ['Wants lower taxes and more spending.', local_note])
        self.assertEqual(insights['topDrivers'], [{'qid': '1', 'axis': 'economic', 'driver': 'Tax the rich'}])


@override_settings(GROK_API_KEY='', INSIGHTS_VERSION='v1')
class InsightViewTest(TestCase):
    def setUp(self):
        cache.clear()
        patchers = [
            patch.object(db, 'get_hot_topic_questions', return_value=[]),
            patch.object(db, 'get_user_profile', return_value={'id': 'u1'}),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    def sign_in(self, uid='u1'):
        session = self.client.session
        session['uid'] = uid
        session.save()

    def test_generate_requires_post(self):
        self.assertEqual(self.client.get(reverse('insights:generate')).status_code, 405)

    def test_generate_requires_answers(self):
        response = self.client.post(reverse('insights:generate'), data=json.dumps({}),
                                    content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_generate(self):
        response = self.client.post(
            reverse('insights:generate'),
            data=json.dumps({'answersById': {'18': 5, '15': 5}, 'finalScores': {'economic': 0.2}}),
            content_type='application/json',
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['ok'])
        self.assertEqual(len(data['contradictions']), 1)

    def test_mine_requires_login(self):
        self.assertEqual(self.client.get(reverse('insights:mine')).status_code, 401)

    def test_mine_uses_cached_insights(self):
        self.sign_in()
        answers = {'1': 5}
        result = {
            'ai_answers_hash': answers_hash(answers),
            'ai_version': 'v1',
            'ai_summary': 'Cached summary',
            'ai_contradictions': [],
            'ai_top_drivers': [],
        }
        with patch.object(db, 'get_user_answers', return_value=answers), \
                patch.object(db, 'get_user_result', return_value=result), \
                patch.object(db, 'save_result_insights') as save:
            response = self.client.get(reverse('insights:mine'))

        data = response.json()
        self.assertTrue(data['cached'])
        self.assertEqual(data['summary'], 'Cached summary')
        save.assert_not_called()

    def test_mine_regenerates_when_answers_changed(self):
        self.sign_in()
        result = {'ai_answers_hash': 'old', 'ai_version': 'v1', 'ai_summary': 'Stale'}
        with patch.object(db, 'get_user_answers', return_value={'12': 5, '28': 5}), \
                patch.object(db, 'get_user_result', return_value=result), \
                patch.object(db, 'save_result_insights') as save:
            response = self.client.get(reverse('insights:mine'))

        data = response.json()
        self.assertFalse(data['cached'])
        self.assertEqual(len(data['contradictions']), 1)
        uid, insights, hash_value, version = save.call_args[0]
        self.assertEqual((uid, hash_value, version), ('u1', answers_hash({'12': 5, '28': 5}), 'v1'))

    def test_mine_regenerates_when_version_bumped(self):
        self.sign_in()
        answers = {'1': 5}
        result = {'ai_answers_hash': answers_hash(answers), 'ai_version': 'v0'}
        with patch.object(db, 'get_user_answers', return_value=answers), \
                patch.object(db, 'get_user_result', return_value=result), \
                patch.object(db, 'save_result_insights') as save:
            response = self.client.get(reverse('insights:mine'))
        self.assertFalse(response.json()['cached'])
        save.assert_called_once()
