from datetime import datetime, timedelta, timezone
from io import StringIO
from unittest.mock import MagicMock, patch

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase
from google.api_core.exceptions import AlreadyExists

from core.answers import (
    AnswerRepository,
    AnswerStoreError,
    answers_hash,
    encode_answer,
    encode_answers,
    normalize_answers,
)
from core.catalog import get_scoring_catalog
from core.parties import (
    MAX_DISTANCE,
    MAX_REASONS,
    compute_party_matches,
    distance_to_percent,
    get_parties,
    match_position,
    normalize_country,
)
from core.quiz_data import AXES, QUESTION_TYPES, QUESTIONS, answer_label, group_questions
from core.scoring import (
    aggregate_axes,
    compute_contributions,
    display_scores,
    find_contradictions,
    from_percent_scale,
    from_snapshot_scale,
    hot_topic_decay,
    legacy_axis_scores,
    score_answers,
    summarize_quadrant,
    to_percent_scale,
    to_snapshot_scale,
    top_drivers,
)
from core.services import db
from core.services.hot_topics import AlreadyAnsweredError, topic_to_question, validate_hot_topic
from core.services.results import snapshot_fields, snapshot_scores

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def agree_with(question):
    """The answer that pushes a question's axis furthest in its direction."""
    return 5 if question['direction'] > 0 else 1


class ContributionTest(SimpleTestCase):
    def test_base_contribution(self):
        question = {'id': 1, 'axis': 'economic', 'weight': 2, 'direction': -1, 'type': 'scale'}
        contributions = compute_contributions({'1': 5}, [question], now=NOW)
        self.assertEqual(len(contributions), 1)
        self.assertEqual(contributions[0]['strength'], 2)
        self.assertEqual(contributions[0]['contribution'], -4)
        self.assertEqual(contributions[0]['abs'], 4)

    def test_int_and_string_keys(self):
        question = {'id': 3, 'axis': 'social', 'weight': 1, 'direction': 1}
        by_str = compute_contributions({'3': 4}, [question], now=NOW)
        by_int = compute_contributions({3: 4}, [question], now=NOW)
        self.assertEqual(by_str[0]['contribution'], by_int[0]['contribution'])

    def test_non_numeric_answers_are_skipped(self):
        answers = {'1': 'abc', '2': None, '3': '', '4': True}
        self.assertEqual(compute_contributions(answers, QUESTIONS, now=NOW), [])

    def test_out_of_table_values_have_zero_strength(self):
        question = {'id': 1, 'axis': 'economic', 'weight': 1, 'direction': 1}
        contributions = compute_contributions({'1': 7}, [question], now=NOW)
        self.assertEqual(contributions[0]['contribution'], 0)

    def test_missing_weight_defaults_to_one(self):
        question = {'id': 1, 'axis': 'economic', 'direction': 1}
        contributions = compute_contributions({'1': 5}, [question], now=NOW)
        self.assertEqual(contributions[0]['contribution'], 2)

    def test_catalog_order_is_kept(self):
        answers = {'3': 5, '1': 5, '2': 5}
        qids = [c['qid'] for c in compute_contributions(answers, QUESTIONS, now=NOW)]
        self.assertEqual(qids, [1, 2, 3])


class DecayTest(SimpleTestCase):
    def hot_question(self, start_at):
        return {'id': 'hot:t1', 'type': 'hot', 'axis': 'social', 'weight': 1, 'direction': 1, 'startAt': start_at}

    def test_decay_at_age_zero_is_one(self):
        self.assertEqual(hot_topic_decay(0), 1.0)

    def test_decay_halves_every_half_life(self):
        self.assertAlmostEqual(hot_topic_decay(45, 45), 0.5)
        self.assertAlmostEqual(hot_topic_decay(90, 45), 0.25)

    def test_decay_vanishes_for_old_topics(self):
        self.assertLess(hot_topic_decay(10000), 1e-6)

    def test_future_start_is_not_amplified(self):
        question = self.hot_question(NOW + timedelta(days=10))
        contributions = compute_contributions({'hot:t1': 5}, [question], now=NOW)
        self.assertEqual(contributions[0]['decay'], 1.0)

    def test_hot_contribution_decays_with_age(self):
        question = self.hot_question((NOW - timedelta(days=45)).isoformat())
        contributions = compute_contributions({'hot:t1': 5}, [question], now=NOW, half_life_days=45)
        self.assertAlmostEqual(contributions[0]['contribution'], 1.0)

    def test_static_questions_never_decay(self):
        question = {'id': 1, 'type': 'scale', 'axis': 'economic', 'weight': 1, 'direction': 1,
                    'startAt': NOW - timedelta(days=400)}
        contributions = compute_contributions({'1': 5}, [question], now=NOW)
        self.assertEqual(contributions[0]['decay'], 1.0)


class AggregationTest(SimpleTestCase):
    def test_empty_answers_are_neutral(self):
        self.assertEqual(score_answers({}, QUESTIONS, now=NOW), {axis: 0.0 for axis in AXES})

    def test_all_axes_present(self):
        result = aggregate_axes([], QUESTIONS)
        for key in ('sums', 'norms', 'normalized'):
            self.assertEqual(set(result[key]), set(AXES))

    def test_extreme_answers_reach_the_edge(self):
        answers = {str(q['id']): agree_with(q) for q in QUESTIONS}
        scores = score_answers(answers, QUESTIONS, now=NOW)
        for axis in AXES:
            self.assertAlmostEqual(scores[axis], 1.0)

    def test_normalized_scores_stay_in_range(self):
        # Heavier weights than the catalog expects still clamp
        questions = [dict(q, weight=(i % 4) + 0.5) for i, q in enumerate(QUESTIONS)]
        for offset in range(5):
            answers = {str(q['id']): ((i + offset) % 5) + 1 for i, q in enumerate(questions)}
            scores = score_answers(answers, questions, now=NOW)
            for value in scores.values():
                self.assertGreaterEqual(value, -1.0)
                self.assertLessEqual(value, 1.0)

    def test_scoring_is_idempotent(self):
        answers = {str(q['id']): (q['id'] % 5) + 1 for q in QUESTIONS}
        self.assertEqual(score_answers(answers, QUESTIONS, now=NOW), score_answers(answers, QUESTIONS, now=NOW))

    def test_negating_direction_and_answer_is_symmetric(self):
        answers = {str(q['id']): (q['id'] % 5) + 1 for q in QUESTIONS}
        flipped_questions = [dict(q, direction=-q['direction']) for q in QUESTIONS]
        flipped_answers = {k: 6 - v for k, v in answers.items()}
        original = score_answers(answers, QUESTIONS, now=NOW)
        flipped = score_answers(flipped_answers, flipped_questions, now=NOW)
        for axis in AXES:
            self.assertAlmostEqual(original[axis], flipped[axis])

    def test_denominator_floor(self):
        question = {'id': 1, 'axis': 'global', 'weight': 0, 'direction': 1}
        result = aggregate_axes(compute_contributions({'1': 5}, [question], now=NOW), [question])
        self.assertEqual(result['norms']['global'], 1)
        self.assertEqual(result['normalized']['global'], 0.0)

    def test_legacy_formula(self):
        questions = [
            {'id': 1, 'axis': 'economic', 'weight': 1, 'direction': 1},
            {'id': 2, 'axis': 'economic', 'weight': 1, 'direction': 1},
        ]
        legacy = legacy_axis_scores({'1': 5}, questions)
        # (5 - 3) / 2 * 5
        self.assertEqual(legacy['economic'], 5.0)
        self.assertEqual(legacy['social'], 0.0)


class DriversTest(SimpleTestCase):
    def test_top_drivers_sorted_by_absolute_effect(self):
        questions = [
            {'id': 'a', 'axis': 'economic', 'weight': 1, 'direction': 1},
            {'id': 'b', 'axis': 'economic', 'weight': 3, 'direction': -1},
            {'id': 'c', 'axis': 'social', 'weight': 2, 'direction': 1},
        ]
        contributions = compute_contributions({'a': 5, 'b': 5, 'c': 4}, questions, now=NOW)
        self.assertEqual([d['qid'] for d in top_drivers(contributions, n=2)], ['b', 'a'])

    def test_contradictions_need_strong_pulls_both_ways(self):
        questions = [
            {'id': 'a', 'axis': 'economic', 'weight': 2, 'direction': 1},
            {'id': 'b', 'axis': 'economic', 'weight': 2, 'direction': -1},
        ]
        strong = compute_contributions({'a': 5, 'b': 5}, questions, now=NOW)
        weak = compute_contributions({'a': 4, 'b': 4}, questions, now=NOW)
        self.assertEqual(len(find_contradictions(strong)), 1)
        self.assertEqual(find_contradictions(weak), [])

    def test_quadrant_summary(self):
        self.assertEqual(summarize_quadrant({'economic': 0, 'social': 5}), 'Centrist')
        self.assertEqual(
            summarize_quadrant({'economic': 40, 'social': -30}),
            'Market-leaning, Libertarian-leaning',
        )


class ScaleConversionTest(SimpleTestCase):
    scores = {'economic': 0.5, 'social': -0.25, 'global': 1.0, 'progress': 0.0}

    def test_percent_round_trip(self):
        back = from_percent_scale(to_percent_scale(self.scores))
        for axis in AXES:
            self.assertAlmostEqual(back[axis], self.scores[axis])

    def test_snapshot_round_trip(self):
        back = from_snapshot_scale(to_snapshot_scale(self.scores))
        for axis in AXES:
            self.assertAlmostEqual(back[axis], self.scores[axis])

    def test_snapshot_is_clamped(self):
        self.assertEqual(to_snapshot_scale({'economic': 3})['economic'], 5)

    def test_display_scores_are_whole_percent(self):
        self.assertEqual(display_scores(self.scores), {'economic': 50, 'social': -25, 'global': 100, 'progress': 0})

    def test_snapshot_fields(self):
        fields = snapshot_fields(self.scores)
        self.assertEqual(fields['economic_score'], 2.5)
        self.assertAlmostEqual(snapshot_scores(fields)['social'], -0.25)
        self.assertIsNone(snapshot_scores(None))


class QuestionCatalogTest(SimpleTestCase):
    def test_groups(self):
        hot = {'id': 'hot:x', 'type': 'hot', 'axis': 'social', 'text': 'x'}
        groups = group_questions(QUESTIONS + [hot])
        self.assertEqual(len(groups['core']), 20)
        self.assertEqual(len(groups['advanced']), 20)
        self.assertEqual(groups['hot'], [hot])

    def test_catalog_fields(self):
        for q in QUESTIONS:
            self.assertIn(q['axis'], AXES)
            self.assertIn(q['type'], QUESTION_TYPES)
            self.assertIn(q['direction'], (-1, 1))
            self.assertGreater(q['weight'], 0)

    def test_labels(self):
        self.assertEqual(answer_label(QUESTIONS[0], 4), 'Agree')
        self.assertEqual(answer_label({'type': 'hot', 'format': 'yesno'}, 5), 'Yes')


class PartyMatchTest(SimpleTestCase):
    def test_exact_position_is_full_match(self):
        matches = match_position('UK', {'economic': 60, 'social': 40})
        self.assertEqual(matches[0]['party']['id'], 'uk-conservative')
        self.assertEqual(matches[0]['matchPercent'], 100.0)

    def test_opposite_corners_are_zero(self):
        self.assertEqual(distance_to_percent(MAX_DISTANCE), 0.0)

    def test_percent_is_rounded_to_whole_numbers(self):
        self.assertEqual(distance_to_percent(MAX_DISTANCE * 0.054), 95)
        self.assertEqual(distance_to_percent(MAX_DISTANCE * 0.056), 94)
        self.assertIsInstance(distance_to_percent(MAX_DISTANCE * 0.056), int)

    def test_near_ties_after_rounding_keep_catalog_order(self):
        parties = [
            {'id': 'far', 'name': 'Far', 'country': 'UK', 'position': {'economic': -10.1, 'social': 0}, 'blurb': ''},
            {'id': 'near', 'name': 'Near', 'country': 'UK', 'position': {'economic': 10, 'social': 0}, 'blurb': ''},
        ]
        matches = match_position('UK', {'economic': 0, 'social': 0}, parties=parties)
        self.assertEqual([m['party']['id'] for m in matches], ['far', 'near'])
        self.assertEqual(matches[0]['matchPercent'], 96)

    def test_ties_keep_catalog_order(self):
        parties = [
            {'id': 'east', 'name': 'East', 'country': 'UK', 'position': {'economic': 10, 'social': 0}, 'blurb': ''},
            {'id': 'west', 'name': 'West', 'country': 'UK', 'position': {'economic': -10, 'social': 0}, 'blurb': ''},
        ]
        matches = match_position('UK', {'economic': 0, 'social': 0}, parties=parties)
        self.assertEqual([m['party']['id'] for m in matches], ['east', 'west'])
        self.assertEqual(matches[0]['matchPercent'], matches[1]['matchPercent'])

        reversed_matches = match_position('UK', {'economic': 0, 'social': 0}, parties=parties[::-1])
        self.assertEqual([m['party']['id'] for m in reversed_matches], ['west', 'east'])

    def test_empty_answers_match_from_the_centre(self):
        matches = compute_party_matches('UK', {}, QUESTIONS, now=NOW)
        self.assertEqual(matches[0]['party']['id'], 'uk-libdem')
        self.assertAlmostEqual(matches[0]['matchPercent'], 95.0, places=1)

    def test_sorted_descending(self):
        answers = {str(q['id']): agree_with(q) for q in QUESTIONS}
        matches = compute_party_matches('USA', answers, QUESTIONS, now=NOW)
        percents = [m['matchPercent'] for m in matches]
        self.assertEqual(percents, sorted(percents, reverse=True))
        self.assertEqual(len(matches), len(get_parties('USA')))

    def test_reasons(self):
        answers = {str(q['id']): agree_with(q) for q in QUESTIONS}
        for match in compute_party_matches('UK', answers, QUESTIONS, now=NOW):
            self.assertGreaterEqual(len(match['reasons']), 1)
            self.assertLessEqual(len(match['reasons']), MAX_REASONS)
            self.assertEqual(len(match['reasons']), len(set(match['reasons'])))

    def test_unknown_country(self):
        self.assertEqual(compute_party_matches('France', {}, QUESTIONS), [])
        self.assertIsNone(normalize_country('France'))
        self.assertEqual(normalize_country('us'), 'USA')


class AnswerEncodingTest(SimpleTestCase):
    scale = {'id': 1, 'type': 'scale'}
    yesno = {'id': 2, 'type': 'yesno'}
    hot_yesno = {'id': 'hot:t', 'type': 'hot', 'format': 'yesno'}

    def test_scale_values(self):
        self.assertEqual(encode_answer(self.scale, 4), 4)
        self.assertEqual(encode_answer(self.scale, '2'), 2)
        self.assertIsNone(encode_answer(self.scale, 6))
        self.assertIsNone(encode_answer(self.scale, 2.5))
        self.assertIsNone(encode_answer(self.scale, True))
        self.assertIsNone(encode_answer(self.scale, 'abc'))

    def test_yesno_values(self):
        self.assertEqual(encode_answer(self.yesno, True), 5)
        self.assertEqual(encode_answer(self.yesno, False), 1)
        self.assertEqual(encode_answer(self.yesno, 'Yes'), 5)
        self.assertEqual(encode_answer(self.yesno, 'no'), 1)
        self.assertEqual(encode_answer(self.yesno, 5), 5)
        self.assertIsNone(encode_answer(self.yesno, 3))
        self.assertEqual(encode_answer(self.hot_yesno, 'yes'), 5)

    def test_encode_answers_reports_rejections(self):
        accepted, rejected = encode_answers({'1': 5, '2': 9, '999': 3}, QUESTIONS)
        self.assertEqual(accepted, {'1': 5})
        self.assertEqual(sorted(rejected), ['2', '999'])

    def test_hash_ignores_key_order(self):
        self.assertEqual(answers_hash({'1': 5, '2': 3}), answers_hash({'2': 3, '1': 5}))
        self.assertNotEqual(answers_hash({'1': 5}), answers_hash({'1': 4}))

    def test_normalize_drops_invalid_values(self):
        self.assertEqual(normalize_answers({1: '5', '2': 'x', '3': 9}), {'1': 5})


class AnswerRepositoryTest(SimpleTestCase):
    def setUp(self):
        cache.clear()
        self.store = MagicMock()
        self.repo = AnswerRepository(store=self.store, cache_backend=cache)

    def test_remote_wins_over_cache(self):
        cache.set('answers_u1', {'1': 1})
        self.store.get_user_answers.return_value = {'1': 5}
        self.assertEqual(self.repo.load('u1'), {'1': 5})
        self.assertEqual(cache.get('answers_u1'), {'1': 5})

    def test_cache_used_when_remote_missing(self):
        cache.set('answers_u1', {'2': 3})
        self.store.get_user_answers.return_value = None
        self.assertEqual(self.repo.load('u1'), {'2': 3})

    def test_cache_used_when_remote_fails(self):
        cache.set('answers_u1', {'2': 3})
        self.store.get_user_answers.side_effect = Exception('unavailable')
        self.assertEqual(self.repo.load('u1'), {'2': 3})

    def test_empty_when_nothing_stored(self):
        self.store.get_user_answers.return_value = None
        self.assertEqual(self.repo.load('u1'), {})

    def test_failed_save_leaves_stored_answers_untouched(self):
        self.store.get_user_answers.return_value = {'1': 1}
        self.store.save_user_answers.side_effect = Exception('unavailable')
        with self.assertRaises(AnswerStoreError):
            self.repo.merge('u1', {'1': 5})
        self.assertEqual(self.repo.load('u1'), {'1': 1})

        self.store.get_user_answers.side_effect = Exception('unavailable')
        self.assertEqual(self.repo.load('u1'), {'1': 1})

    def test_failed_reset_keeps_answers(self):
        cache.set('answers_u1', {'1': 4})
        self.store.delete_user_answers.side_effect = Exception('unavailable')
        with self.assertRaises(AnswerStoreError):
            self.repo.reset('u1')
        self.assertEqual(cache.get('answers_u1'), {'1': 4})

    def test_reset_clears_both_copies(self):
        cache.set('answers_u1', {'1': 4})
        self.repo.reset('u1')
        self.store.delete_user_answers.assert_called_once_with('u1')
        self.assertIsNone(cache.get('answers_u1'))

    def test_merge_overwrites_only_given_ids(self):
        self.store.get_user_answers.return_value = {'1': 1, '2': 2}
        merged = self.repo.merge('u1', {'2': 5})
        self.assertEqual(merged, {'1': 1, '2': 5})
        self.store.save_user_answers.assert_called_once_with('u1', {'1': 1, '2': 5})

    def test_anonymous_owner_is_cache_only(self):
        self.repo.merge('anon_abc', {'1': 3}, remote=False)
        self.assertEqual(self.repo.load('anon_abc', remote=False), {'1': 3})
        self.repo.reset('anon_abc', remote=False)
        self.assertEqual(self.repo.load('anon_abc', remote=False), {})
        self.store.get_user_answers.assert_not_called()
        self.store.save_user_answers.assert_not_called()


class UsernameGenerationTest(TestCase):
    def test_username_generation(self):
        # Mock is_username_taken to always return False (available)
        with patch.object(db, 'is_username_taken', return_value=False):
            username = db.generate_unique_username('John', 'Doe', 'uid123')
            # Should be johndoe + 4 digits
            self.assertTrue(username.startswith('johndoe'))
            self.assertEqual(len(username), 7 + 4)
            self.assertTrue(username[7:].isdigit())

    def test_username_generation_sanitization(self):
        with patch.object(db, 'is_username_taken', return_value=False):
            username = db.generate_unique_username('Jo hn', 'D-oe', 'uid123')
            self.assertTrue(username.startswith('johndoe'))

    def test_username_generation_collision(self):
        with patch.object(db, 'is_username_taken', side_effect=[True, False]):
            username = db.generate_unique_username('Jane', 'Doe', 'uid123')
            self.assertTrue(username.startswith('janedoe'))

    def test_username_generation_fallback(self):
        with patch.object(db, 'is_username_taken', return_value=True):
            username = db.generate_unique_username('Bob', 'Smith', 'uid123456')
            self.assertEqual(username, 'bobsmith_uid123')

    def test_empty_name_uses_user_prefix(self):
        with patch.object(db, 'is_username_taken', return_value=False):
            self.assertTrue(db.generate_unique_username('', '', 'uid1').startswith('user'))


class HotTopicServiceTest(SimpleTestCase):
    valid = {'text': 'Ban TikTok?', 'type': 'yesno', 'axis': 'social', 'direction': 1, 'weight': 1}

    def test_validation_accepts_valid_topic(self):
        topic = validate_hot_topic(self.valid)
        self.assertEqual(topic['type'], 'yesno')
        self.assertTrue(topic['active'])
        self.assertIsNotNone(topic['start_at'])

    def test_validation_errors(self):
        cases = [
            {'text': '  '},
            {'type': 'essay'},
            {'axis': 'cultural'},
            {'direction': 2},
            {'weight': 0},
            {'start_at': '2025-02-01T00:00:00Z', 'end_at': '2025-01-01T00:00:00Z'},
        ]
        for override in cases:
            with self.subTest(override=override):
                with self.assertRaises(ValueError):
                    validate_hot_topic({**self.valid, **override})

    def test_topic_to_question(self):
        question = topic_to_question({**self.valid, 'id': 't1', 'start_at': NOW})
        self.assertEqual(question['id'], 'hot:t1')
        self.assertEqual(question['type'], 'hot')
        self.assertEqual(question['format'], 'yesno')
        self.assertEqual(question['startAt'], NOW)
        self.assertTrue(question['active'])
        self.assertFalse(topic_to_question({**self.valid, 'id': 't2'})['active'])

    def test_second_response_is_rejected(self):
        client = MagicMock()
        client.batch.return_value.commit.side_effect = AlreadyExists('document exists')
        with patch.object(db, '_db', client):
            with self.assertRaises(AlreadyAnsweredError):
                db.record_hot_topic_response('u1', {'id': 't1', 'axis': 'social'}, 5, 2.0)
        client.collection.assert_any_call('hot_topic_responses')
        client.collection.return_value.document.assert_any_call('t1_u1')

    def test_response_and_delta_are_one_batch(self):
        client = MagicMock()
        batch = client.batch.return_value
        with patch.object(db, '_db', client):
            db.record_hot_topic_response('u1', {'id': 't1', 'axis': 'social', 'text': 'Q'}, 5, 2.0)

        payload = batch.create.call_args[0][1]
        self.assertEqual(payload['question_id'], 'hot:t1')
        self.assertEqual(payload['contribution'], 2.0)
        user_update, options = batch.set.call_args
        self.assertEqual(user_update[1]['hot_deltas']['social'].value, 2.0)
        self.assertTrue(options['merge'])
        batch.commit.assert_called_once()

    def test_withdraw_takes_the_contribution_back(self):
        client = MagicMock()
        batch = client.batch.return_value
        with patch.object(db, '_db', client):
            db.withdraw_hot_topic_response('u1', {'id': 't1', 'axis': 'social'}, 2.0)

        batch.delete.assert_called_once()
        self.assertEqual(batch.set.call_args[0][1]['hot_deltas']['social'].value, -2.0)
        batch.commit.assert_called_once()

    def test_deltas_default_to_zero(self):
        with patch.object(db, 'get_user_profile', return_value={'hot_deltas': {'social': 1.5}}):
            self.assertEqual(db.get_hot_topic_deltas('u1'),
                             {'economic': 0.0, 'social': 1.5, 'global': 0.0, 'progress': 0.0})


class ResultsServiceTest(SimpleTestCase):
    def test_recompute_writes_snapshot(self):
        client = MagicMock()
        answers = {str(q['id']): agree_with(q) for q in QUESTIONS}
        with patch.object(db, '_db', client):
            outcome = db.recompute_results('u1', answers, QUESTIONS, now=NOW)

        client.collection.assert_called_with('results')
        payload, kwargs = client.collection.return_value.document.return_value.set.call_args
        self.assertEqual(kwargs, {'merge': True})
        self.assertEqual(payload[0]['economic_score'], 5.0)
        self.assertEqual(payload[0]['answers_hash'], answers_hash(answers))
        self.assertEqual(payload[0]['answered_count'], len(QUESTIONS))
        self.assertAlmostEqual(outcome['scores']['social'], 1.0)


class FollowServiceTest(SimpleTestCase):
    def test_cannot_follow_self(self):
        with patch.object(db, 'is_following', return_value=False):
            with self.assertRaises(ValueError):
                db.toggle_follow('u1', 'u1')

    def test_toggle(self):
        with patch.object(db, 'is_following', return_value=False), \
                patch.object(db, 'follow_user') as follow_user:
            self.assertTrue(db.toggle_follow('u1', 'u2'))
            follow_user.assert_called_once_with('u1', 'u2')

        with patch.object(db, 'is_following', return_value=True), \
                patch.object(db, 'unfollow_user') as unfollow_user:
            self.assertFalse(db.toggle_follow('u1', 'u2'))
            unfollow_user.assert_called_once_with('u1', 'u2')

    def test_feed_is_newest_first(self):
        documents = {
            'u1': {'id': 'u1', 'uid': 'u1', 'answers': {'1': 5}, 'updated_at': NOW - timedelta(days=2)},
            'u2': {'id': 'u2', 'uid': 'u2', 'answers': {'2': 1}, 'updated_at': NOW},
        }
        with patch.object(db, 'get_following_ids', return_value=['u2']), \
                patch.object(db, 'get_users_by_ids', return_value={}), \
                patch.object(db, 'get_document', side_effect=lambda c, doc_id: documents.get(doc_id)):
            posts = db.get_feed_posts('u1')
        self.assertEqual([p['uid'] for p in posts], ['u2', 'u1'])
        self.assertEqual(posts[0]['question_id'], '2')


class CatalogTest(SimpleTestCase):
    def setUp(self):
        cache.clear()

    def test_hot_topics_are_appended(self):
        hot = {'id': 'hot:t1', 'type': 'hot', 'axis': 'social', 'weight': 1, 'direction': 1}
        with patch.object(db, 'get_hot_topic_questions', return_value=[hot]) as loader:
            self.assertEqual(get_scoring_catalog()[-1], hot)
            get_scoring_catalog()
            loader.assert_called_once()

    def test_firestore_failure_falls_back_to_static(self):
        with patch.object(db, 'get_hot_topic_questions', side_effect=Exception('down')) as loader:
            self.assertEqual(len(get_scoring_catalog()), len(QUESTIONS))
            get_scoring_catalog()
            self.assertEqual(loader.call_count, 2)


class ManagementCommandTest(SimpleTestCase):
    def setUp(self):
        cache.clear()

    def test_seed_answers_from_results(self):
        with patch.object(db, 'get_user_answers', return_value=None), \
                patch.object(db, 'get_user_result', return_value={'answers': {'1': 5, '2': 'x'}}), \
                patch.object(db, 'save_user_answers') as save:
            out = StringIO()
            call_command('seed_answers_from_results', 'u1', stdout=out)
        save.assert_called_once_with('u1', {'1': 5})
        self.assertIn('Wrote 1 answers', out.getvalue())

    def test_seed_answers_without_result(self):
        with patch.object(db, 'get_user_answers', return_value=None), \
                patch.object(db, 'get_user_result', return_value=None):
            with self.assertRaises(CommandError):
                call_command('seed_answers_from_results', 'u1', stdout=StringIO())

    def test_backfill_dry_run(self):
        with patch.object(db, 'get_hot_topic_questions', return_value=[]), \
                patch.object(db, 'get_user_answers', side_effect=[{'1': 5}, None]), \
                patch.object(db, 'get_user_result', return_value=None), \
                patch.object(db, 'recompute_results') as recompute:
            out = StringIO()
            call_command('backfill_results', '--dry', '--only', 'u1,u2', stdout=out)
        recompute.assert_not_called()
        self.assertIn('updated=1 skipped=1 errored=0', out.getvalue())

    def test_backfill_writes(self):
        with patch.object(db, 'get_hot_topic_questions', return_value=[]), \
                patch.object(db, 'get_user_answers', return_value={'1': 5}), \
                patch.object(db, 'recompute_results') as recompute:
            call_command('backfill_results', '--only', 'u1', stdout=StringIO())
        self.assertEqual(recompute.call_args[0][:2], ('u1', {'1': 5}))
        self.assertEqual(recompute.call_args[1]['source'], 'backfill:answers/u1')

    def test_set_super_staff(self):
        with patch.object(db, 'get_user_profile', return_value={'id': 'u1'}), \
                patch.object(db, 'set_super_staff') as set_flag:
            call_command('set_super_staff', 'u1', stdout=StringIO())
            call_command('set_super_staff', 'u1', '--revoke', stdout=StringIO())
        self.assertEqual([c[0] for c in set_flag.call_args_list], [('u1', True), ('u1', False)])

    def test_set_super_staff_requires_profile(self):
        with patch.object(db, 'get_user_profile', return_value=None):
            with self.assertRaises(CommandError):
                call_command('set_super_staff', 'u1', stdout=StringIO())
