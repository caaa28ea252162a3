import logging
from datetime import datetime, timezone

from firebase_admin import firestore
from google.api_core.exceptions import AlreadyExists

from core.quiz_data import AXES
from core.scoring import parse_timestamp, to_number

logger = logging.getLogger(__name__)

HOT_QUESTION_PREFIX = 'hot:'
HOT_TOPIC_FORMATS = ['scale', 'yesno']


class AlreadyAnsweredError(ValueError):
    pass


def hot_question_id(topic_id):
    return f'{HOT_QUESTION_PREFIX}{topic_id}'


def response_id(topic_id, uid):
    return f'{topic_id}_{uid}'


def validate_hot_topic(data):
    """Clean admin input for a new topic. Raises ValueError with a user-facing message."""
    text = (data.get('text') or '').strip()
    if not text:
        raise ValueError("Question text is required.")

    topic_format = data.get('type') or 'scale'
    if topic_format not in HOT_TOPIC_FORMATS:
        raise ValueError("Invalid type.")

    axis = data.get('axis')
    if axis not in AXES:
        raise ValueError("Invalid axis.")

    direction = to_number(data.get('direction', 1))
    if direction not in (1, -1):
        raise ValueError("Direction must be +1 or -1.")

    weight = to_number(data.get('weight', 1))
    if weight is None or weight <= 0:
        raise ValueError("Weight must be a positive number.")

    start_at = parse_timestamp(data.get('start_at')) or datetime.now(timezone.utc)
    end_at = parse_timestamp(data.get('end_at'))
    if end_at and end_at <= start_at:
        raise ValueError("End date must be after the start date.")

    return {
        'text': text,
        'type': topic_format,
        'axis': axis,
        'weight': weight,
        'direction': int(direction),
        'active': bool(data.get('active', True)),
        'start_at': start_at,
        'end_at': end_at,
    }


def topic_to_question(topic):
    """A hot_topics document as a scoring catalog entry."""
    return {
        'id': hot_question_id(topic['id']),
        'topicId': topic['id'],
        'text': topic.get('text', ''),
        'type': 'hot',
        'format': topic.get('type') or 'scale',
        'axis': topic.get('axis'),
        'weight': topic.get('weight', 1),
        'direction': topic.get('direction', 1),
        'startAt': topic.get('start_at') or topic.get('created_at'),
        'endAt': topic.get('end_at'),
        'active': bool(topic.get('active', False)),
    }


def _newest_first(topics):
    epoch = datetime.fromtimestamp(0, tz=timezone.utc)
    return sorted(
        topics,
        key=lambda t: parse_timestamp(t.get('start_at') or t.get('created_at')) or epoch,
        reverse=True,
    )


class HotTopicMixin:
    def get_hot_topics(self, active_only=False):
        if active_only:
            topics = self.query_collection('hot_topics', 'active', '==', True)
        else:
            topics = self.get_collection('hot_topics')
        return _newest_first(topics)

    def get_hot_topic(self, topic_id):
        return self.get_document('hot_topics', topic_id)

    def get_hot_topic_questions(self):
        return [topic_to_question(t) for t in self.get_hot_topics()]

    def create_hot_topic(self, data, created_by=None):
        topic = validate_hot_topic(data)
        topic['created_by'] = created_by
        topic['created_at'] = firestore.SERVER_TIMESTAMP
        topic_id = self.create_document('hot_topics', topic)
        logger.info(f"Created hot topic {topic_id} on {topic['axis']}")
        return topic_id

    def set_hot_topic_active(self, topic_id, active):
        self.update_document('hot_topics', topic_id, {'active': bool(active)})

    def delete_hot_topic(self, topic_id):
        self.delete_document('hot_topics', topic_id)

    def get_answered_topic_ids(self, uid):
        responses = self.query_collection('hot_topic_responses', 'uid', '==', uid)
        return {r.get('topic_id') for r in responses if r.get('topic_id')}

    def _delta_update(self, axis, contribution):
        return {
            'hot_deltas': {axis: firestore.Increment(contribution)},
            'hot_updated_at': firestore.SERVER_TIMESTAMP,
        }

    def record_hot_topic_response(self, uid, topic, value, contribution):
        """
        One response per (topic, user). The response document (<topic>_<uid>)
        is created in the same batch that folds the contribution into
        users/{uid}.hot_deltas, so a second answer fails as a whole and
        raises AlreadyAnsweredError.
        """
        batch = self.db.batch()
        ref = self.db.collection('hot_topic_responses').document(response_id(topic['id'], uid))
        batch.create(ref, {
            'uid': uid,
            'topic_id': topic['id'],
            'question_id': hot_question_id(topic['id']),
            'title': topic.get('text', ''),
            'axis': topic.get('axis'),
            'value': value,
            'contribution': contribution,
            'answered_at': firestore.SERVER_TIMESTAMP,
        })
        if topic.get('axis') in AXES:
            user_ref = self.db.collection('users').document(uid)
            batch.set(user_ref, self._delta_update(topic['axis'], contribution), merge=True)

        try:
            batch.commit()
        except AlreadyExists as e:
            raise AlreadyAnsweredError("You have already answered this topic.") from e

    def withdraw_hot_topic_response(self, uid, topic, contribution):
        """Undo record_hot_topic_response: drop the response and take the contribution back out."""
        batch = self.db.batch()
        batch.delete(self.db.collection('hot_topic_responses').document(response_id(topic['id'], uid)))
        if topic.get('axis') in AXES:
            user_ref = self.db.collection('users').document(uid)
            batch.set(user_ref, self._delta_update(topic['axis'], -contribution), merge=True)
        batch.commit()
        logger.info(f"Withdrew hot topic response {response_id(topic['id'], uid)}")

    def get_hot_topic_deltas(self, uid):
        profile = self.get_user_profile(uid) or {}
        deltas = profile.get('hot_deltas') or {}
        return {axis: to_number(deltas.get(axis)) or 0.0 for axis in AXES}
