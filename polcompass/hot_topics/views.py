import logging

from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from django.http import JsonResponse

from core.answers import AnswerStoreError, answer_repository, encode_answer
from core.catalog import get_scoring_catalog, invalidate_catalog
from core.decorators import firebase_login_required, super_staff_required
from core.scoring import compute_contributions
from core.services import db
from core.services.hot_topics import AlreadyAnsweredError, topic_to_question
from core.utils import BadRequest, error_response, parse_json_body
from quiz.services import half_life_days, refresh_results

logger = logging.getLogger(__name__)


def serialize_topic(topic, answered_ids=None):
    data = {
        'id': topic['id'],
        'text': topic.get('text', ''),
        'type': topic.get('type', 'scale'),
        'axis': topic.get('axis'),
        'weight': topic.get('weight', 1),
        'direction': topic.get('direction', 1),
        'active': topic.get('active', False),
        'start_at': topic.get('start_at'),
        'end_at': topic.get('end_at'),
    }
    if answered_ids is not None:
        data['answered'] = topic['id'] in answered_ids
    return data


@require_GET
@firebase_login_required
def topic_list(request):
    """Active topics, newest first, flagged with whether the user answered them."""
    uid = request.session.get('uid')
    try:
        topics = db.get_hot_topics(active_only=True)
        answered_ids = db.get_answered_topic_ids(uid)
        serialized = [serialize_topic(t, answered_ids) for t in topics]
        return JsonResponse({
            'success': True,
            'topics': serialized,
            'unanswered': [t for t in serialized if not t['answered']],
        })
    except Exception as e:
        logger.error(f"Listing hot topics for {uid} failed: {e}")
        return error_response(str(e), status=500)


@csrf_exempt
@require_POST
@firebase_login_required
def answer_topic(request, topic_id):
    """
    Record the user's single answer to a topic together with its signed
    contribution to the running deltas, then rescore from the full answer set.
    If the answer map cannot be saved the response is withdrawn again.
    """
    uid = request.session.get('uid')
    try:
        data = parse_json_body(request)

        topic = db.get_hot_topic(topic_id)
        if not topic:
            return error_response('Topic not found', status=404)
        if not topic.get('active', False):
            return error_response('Topic is closed')

        question = topic_to_question(topic)
        value = encode_answer(question, data.get('value'))
        if value is None:
            return error_response('Invalid answer value')

        contributions = compute_contributions({question['id']: value}, [question], half_life_days=half_life_days())
        contribution = contributions[0]['contribution'] if contributions else 0.0

        db.record_hot_topic_response(uid, topic, value, contribution)
        try:
            merged = answer_repository.merge(uid, {question['id']: value})
        except AnswerStoreError:
            db.withdraw_hot_topic_response(uid, topic, contribution)
            raise
        refresh_results(uid, merged, get_scoring_catalog())

        return JsonResponse({
            'success': True,
            'topic_id': topic_id,
            'value': value,
            'contribution': contribution,
            'hot_deltas': db.get_hot_topic_deltas(uid),
        })
    except AlreadyAnsweredError as e:
        return error_response(str(e), status=409)
    except AnswerStoreError as e:
        return error_response(str(e), status=503)
    except BadRequest as e:
        return error_response(str(e))
    except Exception as e:
        logger.error(f"Answering hot topic {topic_id} for {uid} failed: {e}")
        return error_response(str(e), status=500)


@csrf_exempt
@require_POST
@super_staff_required
def admin_create(request):
    uid = request.session.get('uid')
    try:
        data = parse_json_body(request)
        topic_id = db.create_hot_topic(data, created_by=uid)
        invalidate_catalog()
        logger.info(f"Hot topic {topic_id} created by {uid}")
        return JsonResponse({'success': True, 'id': topic_id}, status=201)
    except ValueError as e:
        return error_response(str(e))
    except Exception as e:
        logger.error(f"Creating hot topic failed: {e}")
        return error_response(str(e), status=500)


@csrf_exempt
@require_POST
@super_staff_required
def admin_toggle(request, topic_id):
    try:
        topic = db.get_hot_topic(topic_id)
        if not topic:
            return error_response('Topic not found', status=404)

        active = not topic.get('active', False)
        db.set_hot_topic_active(topic_id, active)
        invalidate_catalog()
        return JsonResponse({'success': True, 'id': topic_id, 'active': active})
    except Exception as e:
        logger.error(f"Toggling hot topic {topic_id} failed: {e}")
        return error_response(str(e), status=500)


@csrf_exempt
@require_POST
@super_staff_required
def admin_delete(request, topic_id):
    try:
        if not db.get_hot_topic(topic_id):
            return error_response('Topic not found', status=404)

        db.delete_hot_topic(topic_id)
        invalidate_catalog()
        return JsonResponse({'success': True, 'id': topic_id})
    except Exception as e:
        logger.error(f"Deleting hot topic {topic_id} failed: {e}")
        return error_response(str(e), status=500)
