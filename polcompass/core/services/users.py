import logging
import random

from firebase_admin import firestore

logger = logging.getLogger(__name__)

USERNAME_ATTEMPTS = 20
FIRESTORE_IN_LIMIT = 30


class UserMixin:
    def get_user_profile(self, uid):
        return self.get_document('users', uid)

    def create_user_profile(self, uid, data):
        return self.create_document('users', data, doc_id=uid)

    def update_user_profile(self, uid, data):
        """Merge fields into the profile, creating it if needed."""
        self.set_document('users', uid, data, merge=True)

    def get_user_by_username(self, username):
        if not username:
            return None
        matches = self.query_collection('users', 'username', '==', username, limit=1)
        return matches[0] if matches else None

    def get_users_by_ids(self, uids):
        """Get multiple user profiles by IDs as {uid: profile}"""
        if not uids:
            return {}

        from google.cloud.firestore_v1.field_path import FieldPath

        unique_uids = list(dict.fromkeys(uids))
        users_map = {}
        # Firestore 'in' queries take at most 30 values
        for i in range(0, len(unique_uids), FIRESTORE_IN_LIMIT):
            chunk = unique_uids[i:i + FIRESTORE_IN_LIMIT]
            try:
                query = self.db.collection('users').where(FieldPath.document_id(), 'in', chunk)
                for doc in query.stream():
                    users_map[doc.id] = {**doc.to_dict(), 'id': doc.id}
            except Exception as e:
                logger.error(f"Error getting users by IDs: {e}")
        return users_map

    def is_username_taken(self, username, exclude_uid=None):
        """Check if a username is already taken by another user"""
        try:
            users_ref = self.db.collection('users')
            query = users_ref.where('username', '==', username).limit(1)
            docs = list(query.stream())

            if not docs:
                return False

            # Saving the same name again is not a collision
            if exclude_uid and docs[0].id == exclude_uid:
                return False

            return True
        except Exception as e:
            logger.error(f"Error checking username availability: {e}")
            return True

    def update_user_username(self, uid, username):
        if self.is_username_taken(username, exclude_uid=uid):
            raise ValueError("Username is already taken")
        self.db.collection('users').document(uid).set({'username': username}, merge=True)

    def update_user_display_name(self, uid, display_name):
        self.db.collection('users').document(uid).set({'display_name': display_name}, merge=True)

    def generate_unique_username(self, first_name, last_name, uid):
        """
        Generate a unique username based on first and last name.
        Format: <firstname><lastname><4 digit number>
        """
        first = ''.join(e for e in first_name if e.isalnum()).lower()
        last = ''.join(e for e in last_name if e.isalnum()).lower()

        base_name = f"{first}{last}"
        if not base_name:
            base_name = "user"

        for _ in range(USERNAME_ATTEMPTS):
            proposal = f"{base_name}{random.randint(1000, 9999)}"
            if not self.is_username_taken(proposal, exclude_uid=uid):
                return proposal

        return f"{base_name}_{uid[:6]}"

    def ensure_user_profile(self, uid, email, first_name, last_name):
        """
        Create the Firestore profile on first login; later logins only refresh
        name and email so flags like is_super_staff survive.
        """
        existing = self.get_user_profile(uid)
        if not existing:
            display_name = f"{first_name} {last_name}".strip()
            self.create_user_profile(uid, {
                'email': email,
                'first_name': first_name,
                'last_name': last_name,
                'display_name': display_name or None,
                'username': self.generate_unique_username(first_name, last_name, uid),
                'is_super_staff': False,
                'created_at': firestore.SERVER_TIMESTAMP,
            })
            return True

        self.update_user_profile(uid, {
            'email': email,
            'first_name': first_name,
            'last_name': last_name,
        })
        return False

    def is_super_staff(self, uid):
        user = self.get_user_profile(uid)
        if not user:
            return False
        flag = user.get('is_super_staff', False)
        return flag is True or flag == 'true'

    def set_super_staff(self, uid, is_staff):
        self.db.collection('users').document(uid).update({'is_super_staff': is_staff})
