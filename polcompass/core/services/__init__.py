from .base import BaseFirestoreService
from .users import UserMixin
from .answers import AnswersMixin
from .results import ResultsMixin
from .hot_topics import HotTopicMixin
from .follows import FollowMixin

class FirestoreService(
    UserMixin,
    AnswersMixin,
    ResultsMixin,
    HotTopicMixin,
    FollowMixin,
    BaseFirestoreService
):
    """
    Main service class combining all mixins.
    """
    pass

# Create singleton instance
db = FirestoreService()
