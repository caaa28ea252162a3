from firebase_admin import firestore


class AnswersMixin:
    def get_user_answers(self, uid):
        """The stored answer map, or None when the user has no answers document."""
        doc = self.get_document('answers', uid)
        if not doc:
            return None
        # Older documents kept the map under answers_by_id
        answers = doc.get('answers')
        if answers is None:
            answers = doc.get('answers_by_id')
        return answers or {}

    def save_user_answers(self, uid, answers):
        """Replace the whole map so removed answers disappear."""
        self.db.collection('answers').document(uid).set({
            'uid': uid,
            'answers': answers,
            'updated_at': firestore.SERVER_TIMESTAMP,
        })

    def delete_user_answers(self, uid):
        self.delete_document('answers', uid)
