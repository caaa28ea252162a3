import logging

from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET
from django.http import JsonResponse

from core.answers import normalize_answers
from core.decorators import firebase_login_required
from core.quiz_data import AXES
from core.utils import BadRequest, error_response, method_not_allowed, parse_json_body
from .services import InsightService

logger = logging.getLogger(__name__)


@csrf_exempt
def generate(request):
    """POST {answersById, finalScores?} -> {ok, summary, contradictions, topDrivers}"""
    if request.method != 'POST':
        return method_not_allowed()

    try:
        data = parse_json_body(request)
        answers_by_id = data.get('answersById')
        if not isinstance(answers_by_id, dict):
            return error_response('Provide answersById object')

        final_scores = data.get('finalScores')
        if not isinstance(final_scores, dict) or not all(axis in final_scores for axis in AXES):
            final_scores = None

        insights = InsightService().generate_insights(normalize_answers(answers_by_id), scores=final_scores)
        return JsonResponse(insights)
    except BadRequest as e:
        return error_response(str(e))
    except Exception as e:
        logger.error(f"Generating insights failed: {e}")
        return error_response('Failed to generate insights.', status=500)


@require_GET
@firebase_login_required
def mine(request):
    uid = request.session.get('uid')
    try:
        return JsonResponse(InsightService().get_or_generate_for_user(uid))
    except Exception as e:
        logger.error(f"Insights for {uid} failed: {e}")
        return error_response('Failed to generate insights.', status=500)
