"""
Answer encoding and the answer repository.

Stored answers are always {str(question_id): int} with values on the 1..5
domain. Yes/no questions use a single encoding: 1 = No, 5 = Yes.
"""
import hashlib
import json
import logging

from django.conf import settings
from django.core.cache import cache

from .scoring import to_number

logger = logging.getLogger(__name__)

YES_VALUE = 5
NO_VALUE = 1

LIKERT_VALUES = (1, 2, 3, 4, 5)
YESNO_VALUES = (NO_VALUE, YES_VALUE)

YES_WORDS = ('yes', 'y', 'true')
NO_WORDS = ('no', 'n', 'false')


def answer_format(question):
    """How a question is answered: 'scale' or 'yesno' (hot topics carry their own format)."""
    if question.get('type') == 'hot':
        return question.get('format') or 'scale'
    return question.get('type') or 'scale'


def encode_answer(question, raw):
    """
    Convert a raw submitted value to the stored 1..5 encoding.
    Returns None when the value is not valid for the question.
    """
    if answer_format(question) == 'yesno':
        if isinstance(raw, bool):
            return YES_VALUE if raw else NO_VALUE
        if isinstance(raw, str) and raw.strip().lower() in YES_WORDS:
            return YES_VALUE
        if isinstance(raw, str) and raw.strip().lower() in NO_WORDS:
            return NO_VALUE
        value = to_number(raw)
        if value is not None and value.is_integer() and int(value) in YESNO_VALUES:
            return int(value)
        return None

    if isinstance(raw, bool):
        return None
    value = to_number(raw)
    if value is None or not value.is_integer() or int(value) not in LIKERT_VALUES:
        return None
    return int(value)


def encode_answers(raw_answers, questions):
    """
    Validate a submitted {id: value} map against the catalog.
    Returns (accepted, rejected_ids).
    """
    by_id = {str(q.get('id')): q for q in questions}
    accepted = {}
    rejected = []
    for key, raw in (raw_answers or {}).items():
        question = by_id.get(str(key))
        value = encode_answer(question, raw) if question else None
        if value is None:
            rejected.append(str(key))
        else:
            accepted[str(key)] = value
    return accepted, rejected


def normalize_answers(answers):
    """String keys, numeric 1..5 values. Anything else is dropped."""
    normalized = {}
    for key, raw in (answers or {}).items():
        value = to_number(raw)
        if value is not None and value.is_integer() and int(value) in LIKERT_VALUES:
            normalized[str(key)] = int(value)
    return normalized


def answers_hash(answers):
    """Stable SHA-256 of an answer map (key order does not matter)."""
    payload = json.dumps(normalize_answers(answers), sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()


class AnswerStoreError(Exception):
    """The remote answer store rejected a write. Nothing was changed."""


class AnswerRepository:
    """
    Answers keyed by owner.

    Reads: remote (Firestore) -> cached -> empty.
    Writes: remote first when the owner is signed in, then the cache. A failed
    remote write raises AnswerStoreError and leaves both copies untouched, so
    the cache only ever mirrors what Firestore accepted.

    Owners are either a Firebase uid (remote=True) or an anonymous session key
    (remote=False, cache only).
    """

    def __init__(self, store=None, cache_backend=None, timeout=None):
        self._store = store
        self._cache = cache_backend or cache
        self._timeout = timeout

    @property
    def store(self):
        if self._store is None:
            from .services import db
            self._store = db
        return self._store

    @property
    def timeout(self):
        if self._timeout is None:
            return getattr(settings, 'ANSWERS_CACHE_TIMEOUT', None)
        return self._timeout

    def _cache_key(self, owner):
        return f'answers_{owner}'

    def load(self, owner, remote=True):
        if remote:
            try:
                stored = self.store.get_user_answers(owner)
            except Exception as e:
                logger.warning(f"Loading answers for {owner} from Firestore failed, using cache: {e}")
                stored = None
            if stored is not None:
                answers = normalize_answers(stored)
                self._cache.set(self._cache_key(owner), answers, self.timeout)
                return answers

        cached = self._cache.get(self._cache_key(owner))
        if cached is not None:
            return dict(cached)
        return {}

    def save(self, owner, answers, remote=True):
        """Replace the owner's answers. Raises AnswerStoreError when Firestore refuses the write."""
        answers = normalize_answers(answers)
        if remote:
            try:
                self.store.save_user_answers(owner, answers)
            except Exception as e:
                logger.error(f"Saving answers for {owner} to Firestore failed: {e}")
                raise AnswerStoreError("Your answers could not be saved. Please try again.") from e
        self._cache.set(self._cache_key(owner), answers, self.timeout)
        return answers

    def merge(self, owner, updates, remote=True):
        """Overwrite only the given question ids. Returns the merged map."""
        answers = self.load(owner, remote=remote)
        answers.update(normalize_answers(updates))
        return self.save(owner, answers, remote=remote)

    def reset(self, owner, remote=True):
        if remote:
            try:
                self.store.delete_user_answers(owner)
            except Exception as e:
                logger.error(f"Resetting answers for {owner} in Firestore failed: {e}")
                raise AnswerStoreError("Your answers could not be reset. Please try again.") from e
        self._cache.delete(self._cache_key(owner))


answer_repository = AnswerRepository()
