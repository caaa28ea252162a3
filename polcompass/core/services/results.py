import logging

from firebase_admin import firestore

from core.answers import answers_hash, normalize_answers
from core.quiz_data import AXES
from core.scoring import from_snapshot_scale, score_answers, to_snapshot_scale

logger = logging.getLogger(__name__)


def snapshot_fields(scores):
    """Canonical scores -> the <axis>_score fields stored on results documents."""
    snapshot = to_snapshot_scale(scores)
    return {f'{axis}_score': snapshot[axis] for axis in AXES}


def snapshot_scores(result):
    """Stored <axis>_score fields -> canonical [-1, 1] scores."""
    if not result:
        return None
    return from_snapshot_scale({axis: result.get(f'{axis}_score') for axis in AXES})


class ResultsMixin:
    def get_user_result(self, uid):
        return self.get_document('results', uid)

    def recompute_results(self, uid, answers, questions, now=None, half_life_days=None, source='answers'):
        """
        Recompute and store results/{uid} from the complete answer set.

        Scores are always recomputed (hot topic decay moves them over time).
        The answers hash tells the insights layer whether its cached text is stale.
        """
        answers = normalize_answers(answers)
        scores = score_answers(answers, questions, now=now, half_life_days=half_life_days)
        current_hash = answers_hash(answers)

        payload = {
            'uid': uid,
            'answers': answers,
            'answers_hash': current_hash,
            'answered_count': len(answers),
            'source': source,
            'updated_at': firestore.SERVER_TIMESTAMP,
            **snapshot_fields(scores),
        }
        self.db.collection('results').document(uid).set(payload, merge=True)
        logger.info(f"Recomputed results for {uid} ({len(answers)} answers, hash {current_hash[:8]})")
        return {'scores': scores, 'answers_hash': current_hash}

    def save_result_insights(self, uid, insights, answers_hash_value, version):
        self.db.collection('results').document(uid).set({
            'ai_summary': insights.get('summary', ''),
            'ai_contradictions': insights.get('contradictions', []),
            'ai_top_drivers': insights.get('topDrivers', []),
            'ai_answers_hash': answers_hash_value,
            'ai_version': version,
            'ai_generated_at': firestore.SERVER_TIMESTAMP,
        }, merge=True)
