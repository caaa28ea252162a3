import logging

from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from django.http import JsonResponse

from core.answers import AnswerStoreError, answer_repository, encode_answers
from core.catalog import get_scoring_catalog
from core.decorators import cache_control_header
from core.parties import get_countries, normalize_country
from core.quiz_data import ANSWER_LABELS, AXES, YESNO_LABELS, group_questions
from core.services import db
from core.utils import BadRequest, answer_owner, error_response, method_not_allowed, parse_json_body
from .services import build_results, party_matches, refresh_results

logger = logging.getLogger(__name__)


@require_GET
@cache_control_header(max_age=60)
def questions(request):
    """The question catalog grouped into core, advanced and hot."""
    # closed topics still score but are no longer offered
    offered = [q for q in get_scoring_catalog() if q.get('type') != 'hot' or q.get('active')]
    return JsonResponse({
        'success': True,
        'axes': AXES,
        'questions': group_questions(offered),
        'labels': {
            'scale': ANSWER_LABELS,
            'yesno': YESNO_LABELS,
        },
    })


@csrf_exempt
def answers(request):
    """GET the current answer map, POST {answers: {...}} to merge new answers."""
    owner, remote = answer_owner(request)

    if request.method == 'GET':
        return JsonResponse({'success': True, 'answers': answer_repository.load(owner, remote=remote)})

    if request.method != 'POST':
        return method_not_allowed()

    try:
        data = parse_json_body(request)
        submitted = data.get('answers')
        if not isinstance(submitted, dict):
            return error_response('answers must be an object of {questionId: value}')

        # hot topics are answered once, through hot_topics.views.answer_topic
        catalog = get_scoring_catalog()
        quiz_questions = [q for q in catalog if q.get('type') != 'hot']
        accepted, rejected = encode_answers(submitted, quiz_questions)
        merged = answer_repository.merge(owner, accepted, remote=remote)

        if remote and accepted:
            refresh_results(owner, merged, catalog)

        return JsonResponse({
            'success': True,
            'answers': merged,
            'accepted': sorted(accepted),
            'rejected': rejected,
        })
    except BadRequest as e:
        return error_response(str(e))
    except AnswerStoreError as e:
        return error_response(str(e), status=503)
    except Exception as e:
        logger.error(f"Saving answers for {owner} failed: {e}")
        return error_response(str(e), status=500)


@csrf_exempt
@require_POST
def reset_answers(request):
    owner, remote = answer_owner(request)
    try:
        answer_repository.reset(owner, remote=remote)
        if remote:
            refresh_results(owner, {}, get_scoring_catalog())
        return JsonResponse({'success': True, 'answers': {}})
    except AnswerStoreError as e:
        return error_response(str(e), status=503)
    except Exception as e:
        logger.error(f"Resetting answers for {owner} failed: {e}")
        return error_response(str(e), status=500)


@require_GET
def results(request):
    """Scores on every scale plus quadrant, drivers and contradictions."""
    owner, remote = answer_owner(request)
    try:
        current = answer_repository.load(owner, remote=remote)
        payload = build_results(current, get_scoring_catalog())

        if remote:
            try:
                payload['hot_deltas'] = db.get_hot_topic_deltas(owner)
            except Exception as e:
                logger.warning(f"Could not load hot topic deltas for {owner}: {e}")
                payload['hot_deltas'] = None

        return JsonResponse({'success': True, **payload})
    except Exception as e:
        logger.error(f"Building results for {owner} failed: {e}")
        return error_response(str(e), status=500)


@require_GET
def party_match(request):
    country = request.GET.get('country', 'UK')
    owner, remote = answer_owner(request)
    try:
        current = answer_repository.load(owner, remote=remote)
        matches = party_matches(country, current, get_scoring_catalog())
        return JsonResponse({'success': True, 'country': normalize_country(country), 'matches': matches})
    except ValueError as e:
        return JsonResponse({
            'success': False,
            'error': str(e),
            'countries': get_countries(),
        }, status=400)
    except Exception as e:
        logger.error(f"Party matching for {owner} failed: {e}")
        return error_response(str(e), status=500)
