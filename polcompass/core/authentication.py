import logging

from django.contrib.auth.models import User
from firebase_admin import auth

logger = logging.getLogger(__name__)


def split_name(name):
    """'Ada Lovelace King' -> ('Ada', 'Lovelace King')"""
    if not name:
        return '', ''
    parts = name.strip().split(' ', 1)
    return parts[0], parts[1] if len(parts) > 1 else ''


class FirebaseAuthentication:
    @staticmethod
    def verify_token(id_token):
        try:
            return auth.verify_id_token(id_token)
        except Exception as e:
            logger.warning(f"Error verifying token: {e}")
            return None

    @staticmethod
    def get_or_create_user(decoded_token):
        """The Django user mirrors the Firebase account, with the uid as username."""
        uid = decoded_token['uid']
        first_name, last_name = split_name(decoded_token.get('name', ''))

        user, created = User.objects.get_or_create(username=uid)
        user.email = decoded_token.get('email', '')
        user.first_name = first_name
        user.last_name = last_name
        if created:
            user.set_unusable_password()
        user.save()
        return user

    @staticmethod
    def sync_staff_flags(user, is_super_staff):
        if is_super_staff and not (user.is_staff and user.is_superuser):
            user.is_staff = True
            user.is_superuser = True
            user.is_active = True
            user.save()
        elif not is_super_staff and (user.is_staff or user.is_superuser):
            user.is_staff = False
            user.is_superuser = False
            user.save()
