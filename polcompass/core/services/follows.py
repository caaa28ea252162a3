from firebase_admin import firestore

from core.scoring import parse_timestamp


def follow_id(follower_uid, followee_uid):
    return f'{follower_uid}__{followee_uid}'


def _updated_at(doc):
    updated = parse_timestamp(doc.get('updated_at'))
    return updated.timestamp() if updated else 0


class FollowMixin:
    def is_following(self, follower_uid, followee_uid):
        return self.get_document('follows', follow_id(follower_uid, followee_uid)) is not None

    def follow_user(self, follower_uid, followee_uid):
        if follower_uid == followee_uid:
            raise ValueError("You cannot follow yourself.")
        self.set_document('follows', follow_id(follower_uid, followee_uid), {
            'follower_uid': follower_uid,
            'followee_uid': followee_uid,
            'created_at': firestore.SERVER_TIMESTAMP,
        })

    def unfollow_user(self, follower_uid, followee_uid):
        self.delete_document('follows', follow_id(follower_uid, followee_uid))

    def toggle_follow(self, follower_uid, followee_uid):
        """Returns True when the viewer follows the user afterwards."""
        if self.is_following(follower_uid, followee_uid):
            self.unfollow_user(follower_uid, followee_uid)
            return False
        self.follow_user(follower_uid, followee_uid)
        return True

    def get_follower_ids(self, uid):
        follows = self.query_collection('follows', 'followee_uid', '==', uid)
        return [f['follower_uid'] for f in follows if f.get('follower_uid')]

    def get_following_ids(self, uid):
        follows = self.query_collection('follows', 'follower_uid', '==', uid)
        return [f['followee_uid'] for f in follows if f.get('followee_uid')]

    def get_follow_profiles(self, uids):
        """Profiles for a list of uids, sorted by username."""
        profiles = list(self.get_users_by_ids(uids).values())
        return sorted(profiles, key=lambda p: (p.get('username') or '').lower())

    def get_feed_posts(self, uid, limit=50):
        """
        The latest answers of everyone the user follows (and the user), one
        post per answered question, newest answer document first.
        """
        uids = list(dict.fromkeys([uid] + self.get_following_ids(uid)))
        profiles = self.get_users_by_ids(uids)

        documents = []
        for member in uids:
            doc = self.get_document('answers', member)
            if doc and doc.get('answers'):
                documents.append(doc)

        documents.sort(key=_updated_at, reverse=True)

        posts = []
        for doc in documents:
            member = doc.get('uid') or doc['id']
            for question_id, value in doc['answers'].items():
                posts.append({
                    'id': f'{member}_{question_id}',
                    'uid': member,
                    'question_id': str(question_id),
                    'value': value,
                    'updated_at': doc.get('updated_at'),
                    'profile': profiles.get(member, {'id': member}),
                })
        return posts[:limit]
