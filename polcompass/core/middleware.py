"""
Attaches the Firestore profile of the signed-in user to the request.
"""
import logging

from django.core.cache import cache

from .authentication import FirebaseAuthentication

logger = logging.getLogger(__name__)

PROFILE_CACHE_TIMEOUT = 300


def profile_cache_key(uid):
    return f'user_profile_{uid}'


def invalidate_profile(uid):
    cache.delete(profile_cache_key(uid))


class FirebaseProfileMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.user_profile = None
        firebase_uid = request.session.get('uid')

        if firebase_uid:
            user_profile = cache.get(profile_cache_key(firebase_uid))
            if user_profile is None:
                from .services import db
                try:
                    user_profile = db.get_user_profile(firebase_uid)
                except Exception as e:
                    logger.warning(f"Could not load profile for {firebase_uid}: {e}")
                    user_profile = None
                if user_profile:
                    cache.set(profile_cache_key(firebase_uid), user_profile, PROFILE_CACHE_TIMEOUT)

            request.user_profile = user_profile

            # Keep Django admin access in line with the Firestore flag
            if user_profile and request.user.is_authenticated:
                flag = user_profile.get('is_super_staff', False)
                FirebaseAuthentication.sync_staff_flags(request.user, flag is True or flag == 'true')

        return self.get_response(request)
