import logging

from django.conf import settings

from core.parties import compute_party_matches, normalize_country
from core.scoring import (
    aggregate_axes,
    compute_contributions,
    display_scores,
    find_contradictions,
    legacy_axis_scores,
    summarize_quadrant,
    to_percent_scale,
    to_snapshot_scale,
    top_drivers,
)
from core.services import db

logger = logging.getLogger(__name__)


def half_life_days():
    return getattr(settings, 'HOT_TOPIC_HALF_LIFE_DAYS', None)


def serialize_driver(contribution):
    return {
        'qid': contribution['qid'],
        'axis': contribution['axis'],
        'text': contribution['text'],
        'contribution': round(contribution['contribution'], 4),
        'decay': round(contribution['decay'], 4),
    }


def build_results(answers, questions, now=None):
    """Everything the results page shows for one answer map."""
    contributions = compute_contributions(answers, questions, now=now, half_life_days=half_life_days())
    aggregate = aggregate_axes(contributions, questions)
    scores = aggregate['normalized']
    percent = to_percent_scale(scores)

    return {
        'answered_count': len(contributions),
        'scores': scores,
        'percent': percent,
        'display': display_scores(scores),
        'snapshot': to_snapshot_scale(scores),
        'legacy': legacy_axis_scores(answers, questions),
        'quadrant': summarize_quadrant(percent),
        'top_drivers': [serialize_driver(c) for c in top_drivers(contributions)],
        'contradictions': find_contradictions(contributions),
    }


def refresh_results(uid, answers, questions):
    """Recompute results/{uid}. Failures are logged, the answers are already saved."""
    try:
        return db.recompute_results(uid, answers, questions, half_life_days=half_life_days())
    except Exception as e:
        logger.error(f"Recomputing results for {uid} failed: {e}")
        return None


def party_matches(country, answers, questions, now=None):
    if not normalize_country(country):
        raise ValueError(f"Unknown country: {country}")
    return compute_party_matches(country, answers, questions, now=now, half_life_days=half_life_days())
