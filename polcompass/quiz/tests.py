import json
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse

from core.quiz_data import QUESTIONS
from core.services import db


class QuizViewTestBase(TestCase):
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

    def post_json(self, url, data):
        return self.client.post(url, data=json.dumps(data), content_type='application/json')


class QuestionsViewTest(QuizViewTestBase):
    def test_questions_are_grouped(self):
        hot = {'id': 'hot:t1', 'topicId': 't1', 'type': 'hot', 'format': 'yesno', 'axis': 'social',
               'weight': 1, 'direction': 1, 'text': 'Ban it?', 'active': True}
        closed = {**hot, 'id': 'hot:t0', 'topicId': 't0', 'active': False}
        with patch.object(db, 'get_hot_topic_questions', return_value=[hot, closed]):
            response = self.client.get(reverse('quiz:questions'))

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(len(data['questions']['core']), 20)
        self.assertEqual(len(data['questions']['advanced']), 20)
        self.assertEqual([q['id'] for q in data['questions']['hot']], ['hot:t1'])
        self.assertEqual(data['labels']['yesno']['5'], 'Yes')


class AnonymousAnswersTest(QuizViewTestBase):
    def test_answers_round_trip_in_session(self):
        response = self.post_json(reverse('quiz:answers'), {'answers': {'1': 5, '2': '4', '3': 9, 'nope': 1}})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['answers'], {'1': 5, '2': 4})
        self.assertEqual(sorted(data['rejected']), ['3', 'nope'])

        self.post_json(reverse('quiz:answers'), {'answers': {'2': 1}})
        response = self.client.get(reverse('quiz:answers'))
        self.assertEqual(response.json()['answers'], {'1': 5, '2': 1})

    def test_invalid_json(self):
        response = self.client.post(reverse('quiz:answers'), data='{nope', content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()['success'])

    def test_answers_must_be_an_object(self):
        response = self.post_json(reverse('quiz:answers'), {'answers': [1, 2]})
        self.assertEqual(response.status_code, 400)

    def test_method_not_allowed(self):
        response = self.client.put(reverse('quiz:answers'))
        self.assertEqual(response.status_code, 405)

    def test_reset(self):
        self.post_json(reverse('quiz:answers'), {'answers': {'1': 5}})
        response = self.client.post(reverse('quiz:reset_answers'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get(reverse('quiz:answers')).json()['answers'], {})

    def test_anonymous_answers_never_touch_firestore(self):
        with patch.object(db, 'save_user_answers') as save, \
                patch.object(db, 'recompute_results') as recompute:
            self.post_json(reverse('quiz:answers'), {'answers': {'1': 5}})
        save.assert_not_called()
        recompute.assert_not_called()


class SignedInAnswersTest(QuizViewTestBase):
    def setUp(self):
        super().setUp()
        self.sign_in()

    def test_post_merges_and_recomputes(self):
        with patch.object(db, 'get_user_answers', return_value={'1': 1, '2': 2}), \
                patch.object(db, 'save_user_answers') as save, \
                patch.object(db, 'recompute_results') as recompute:
            response = self.post_json(reverse('quiz:answers'), {'answers': {'2': 5}})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['answers'], {'1': 1, '2': 5})
        save.assert_called_once_with('u1', {'1': 1, '2': 5})
        self.assertEqual(recompute.call_args[0][:2], ('u1', {'1': 1, '2': 5}))

    def test_hot_topics_cannot_be_answered_here(self):
        hot = {'id': 'hot:t1', 'topicId': 't1', 'type': 'hot', 'format': 'scale', 'axis': 'social',
               'weight': 1, 'direction': 1, 'text': 'Lower the voting age?', 'active': True}
        with patch.object(db, 'get_hot_topic_questions', return_value=[hot]), \
                patch.object(db, 'get_user_answers', return_value={}), \
                patch.object(db, 'save_user_answers') as save, \
                patch.object(db, 'recompute_results'):
            response = self.post_json(reverse('quiz:answers'), {'answers': {'hot:t1': 5, '1': 4}})

        data = response.json()
        self.assertEqual(data['rejected'], ['hot:t1'])
        self.assertEqual(data['answers'], {'1': 4})
        save.assert_called_once_with('u1', {'1': 4})

    def test_failed_save_is_reported_and_not_scored(self):
        with patch.object(db, 'get_user_answers', return_value={'1': 1}), \
                patch.object(db, 'save_user_answers', side_effect=Exception('firestore down')), \
                patch.object(db, 'recompute_results') as recompute:
            response = self.post_json(reverse('quiz:answers'), {'answers': {'1': 5}})
        self.assertEqual(response.status_code, 503)
        self.assertFalse(response.json()['success'])
        recompute.assert_not_called()

        with patch.object(db, 'get_user_answers', return_value={'1': 1}):
            self.assertEqual(self.client.get(reverse('quiz:answers')).json()['answers'], {'1': 1})

    def test_recompute_failure_does_not_fail_the_request(self):
        with patch.object(db, 'get_user_answers', return_value={}), \
                patch.object(db, 'save_user_answers'), \
                patch.object(db, 'recompute_results', side_effect=Exception('firestore down')):
            response = self.post_json(reverse('quiz:answers'), {'answers': {'1': 4}})
        self.assertEqual(response.status_code, 200)

    def test_firestore_read_failure_falls_back_to_cache(self):
        cache.set('answers_u1', {'7': 2})
        with patch.object(db, 'get_user_answers', side_effect=Exception('firestore down')):
            response = self.client.get(reverse('quiz:answers'))
        self.assertEqual(response.json()['answers'], {'7': 2})

    def test_failed_reset_keeps_results(self):
        with patch.object(db, 'delete_user_answers', side_effect=Exception('firestore down')), \
                patch.object(db, 'recompute_results') as recompute:
            response = self.client.post(reverse('quiz:reset_answers'))
        self.assertEqual(response.status_code, 503)
        recompute.assert_not_called()

    def test_reset_clears_firestore(self):
        with patch.object(db, 'delete_user_answers') as delete, \
                patch.object(db, 'recompute_results') as recompute:
            response = self.client.post(reverse('quiz:reset_answers'))
        self.assertEqual(response.status_code, 200)
        delete.assert_called_once_with('u1')
        self.assertEqual(recompute.call_args[0][:2], ('u1', {}))


class ResultsViewTest(QuizViewTestBase):
    def test_empty_answers_are_centrist(self):
        response = self.client.get(reverse('quiz:results'))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['display'], {'economic': 0, 'social': 0, 'global': 0, 'progress': 0})
        self.assertEqual(data['quadrant'], 'Centrist')
        self.assertEqual(data['top_drivers'], [])
        self.assertNotIn('hot_deltas', data)

    def test_signed_in_results(self):
        self.sign_in()
        answers = {str(q['id']): (5 if q['direction'] > 0 else 1) for q in QUESTIONS}
        deltas = {'economic': 0.0, 'social': 1.5, 'global': 0.0, 'progress': 0.0}
        with patch.object(db, 'get_user_answers', return_value=answers), \
                patch.object(db, 'get_hot_topic_deltas', return_value=deltas):
            response = self.client.get(reverse('quiz:results'))

        data = response.json()
        self.assertEqual(data['display']['economic'], 100)
        self.assertEqual(data['snapshot']['social'], 5.0)
        self.assertEqual(data['quadrant'], 'Market-leaning, Authoritarian-leaning')
        self.assertEqual(len(data['top_drivers']), 5)
        self.assertEqual(data['hot_deltas'], deltas)
        self.assertEqual(data['answered_count'], len(QUESTIONS))


class PartyMatchViewTest(QuizViewTestBase):
    def test_default_country_with_no_answers(self):
        response = self.client.get(reverse('quiz:party_match'))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['country'], 'UK')
        self.assertEqual(data['matches'][0]['party']['id'], 'uk-libdem')
        self.assertEqual(data['matches'][0]['matchPercent'], 95.0)

    def test_usa(self):
        response = self.client.get(reverse('quiz:party_match'), {'country': 'us'})
        data = response.json()
        self.assertEqual(data['country'], 'USA')
        self.assertTrue(all(m['party']['country'] == 'USA' for m in data['matches']))

    def test_unknown_country(self):
        response = self.client.get(reverse('quiz:party_match'), {'country': 'Atlantis'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual({c['id'] for c in response.json()['countries']}, {'UK', 'USA'})
