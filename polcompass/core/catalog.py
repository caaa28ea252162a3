"""
The scoring catalog: the static question list plus hot topics from Firestore.
"""
import logging

from django.conf import settings
from django.core.cache import cache

from .quiz_data import QUESTIONS

logger = logging.getLogger(__name__)

CATALOG_CACHE_KEY = 'hot_topic_questions'


def get_hot_topic_questions():
    cached = cache.get(CATALOG_CACHE_KEY)
    if cached is not None:
        return cached

    from .services import db
    try:
        questions = db.get_hot_topic_questions()
    except Exception as e:
        # Not cached, so the next request tries Firestore again
        logger.warning(f"Could not load hot topics, scoring with static questions only: {e}")
        return []

    cache.set(CATALOG_CACHE_KEY, questions, getattr(settings, 'CATALOG_CACHE_TIMEOUT', 300))
    return questions


def get_scoring_catalog():
    """Every question that can carry an answer, static questions first."""
    return list(QUESTIONS) + list(get_hot_topic_questions())


def invalidate_catalog():
    cache.delete(CATALOG_CACHE_KEY)
